"""Straight segment helpers: sampling and clamp-projection."""

from __future__ import annotations

import numpy as np

from mep_sleeves.models.geometry import Point3D

# Fixed sample positions along a routing line.
SAMPLE_FRACTIONS: tuple[float, ...] = (0.0, 0.25, 0.5, 0.75, 1.0)


def point_at(start: Point3D, end: Point3D, t: float) -> Point3D:
    """Point at parameter ``t`` (0 = start, 1 = end)."""
    return Point3D(
        x=start.x + (end.x - start.x) * t,
        y=start.y + (end.y - start.y) * t,
        z=start.z + (end.z - start.z) * t,
    )


def sample_segment(
    start: Point3D,
    end: Point3D,
    fractions: tuple[float, ...] = SAMPLE_FRACTIONS,
) -> list[Point3D]:
    return [point_at(start, end, t) for t in fractions]


def direction(start: Point3D, end: Point3D) -> np.ndarray:
    """Unit direction from ``start`` to ``end``.

    Raises:
        ValueError: If the segment has zero length.
    """
    d = end.to_array() - start.to_array()
    length = np.linalg.norm(d)
    if length < 1e-12:
        raise ValueError("Segment has zero length")
    return d / length


def project_onto_segment(point: Point3D, start: Point3D, end: Point3D) -> Point3D:
    """Closest point on the finite segment to ``point``.

    The projection parameter is clamped to [0, 1], so points beyond either
    end snap to that endpoint.
    """
    a, b, p = start.to_array(), end.to_array(), point.to_array()
    ab = b - a
    length_sq = float(ab @ ab)
    if length_sq < 1e-12:
        return start
    t = float((p - a) @ ab) / length_sq
    t = max(0.0, min(1.0, t))
    return Point3D.from_array(a + t * ab)
