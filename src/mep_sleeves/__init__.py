"""Placement of MEP sleeve openings where routing elements cross structural hosts."""

__version__ = "0.1.0"
