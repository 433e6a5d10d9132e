"""Plan rendering of placement results."""
