"""Placement outcomes: exceptions for faults, skip reasons for policy outcomes."""

from __future__ import annotations

from enum import Enum


class PlacementError(Exception):
    """Base class for element-level faults. Caught, logged and counted per element."""


class GeometryUnavailable(PlacementError):
    """No solid, box or curve could be retrieved for an element or host."""


class UnsupportedGeometry(PlacementError):
    """Routing centerline is not a single straight segment."""


class CreationFailure(PlacementError):
    """An opening could not be created, or vanished right after creation."""


class TransactionError(Exception):
    """The scoped transaction could not be opened. Fatal for the whole run."""


class SkipReason(str, Enum):
    """Why a candidate or cluster produced no opening."""

    NO_INTERSECTION = "no_intersection"
    UNSUPPORTED_GEOMETRY = "unsupported_geometry"
    GEOMETRY_UNAVAILABLE = "geometry_unavailable"
    MISSING_TEMPLATE = "missing_template"
    SUPPRESSED_DUPLICATE = "suppressed_duplicate"
    DEGENERATE_CLUSTER = "degenerate_cluster"
