"""Line and ray intersection against convex face-based solids."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from mep_sleeves.models.geometry import Point3D
from mep_sleeves.models.solid import Face, Solid

_EPS = 1e-9


@dataclass
class RayHit:
    """First hit of a probe ray on a solid."""

    distance: float
    point: Point3D


def _inside_face(face: Face, normal: np.ndarray, p: np.ndarray) -> bool:
    pts = face.as_array()
    for i in range(len(pts)):
        a, b = pts[i], pts[(i + 1) % len(pts)]
        if np.cross(b - a, p - a) @ normal < -_EPS * max(1.0, np.linalg.norm(b - a)):
            return False
    return True


def _face_hit(origin: np.ndarray, d: np.ndarray, face: Face) -> Optional[float]:
    """Line parameter where ``origin + t*d`` crosses the face, if it does."""
    n = face.normal
    denom = float(n @ d)
    if abs(denom) < _EPS:
        return None  # parallel to the face plane
    t = float(n @ (face.as_array()[0] - origin)) / denom
    if _inside_face(face, n, origin + t * d):
        return t
    return None


def point_in_solid(point: Point3D, solid: Solid, tolerance: float = 0.0) -> bool:
    """Inclusive containment test for a convex solid."""
    p = point.to_array()
    for face in solid.faces:
        if face.normal @ (p - face.as_array()[0]) > tolerance:
            return False
    return True


def intersect_line_solid(start: Point3D, end: Point3D, solid: Solid) -> list[Point3D]:
    """All points where the segment ``start``-``end`` crosses a face of ``solid``.

    Hits on shared edges are reported once.
    """
    a, b = start.to_array(), end.to_array()
    d = b - a
    if np.linalg.norm(d) < _EPS:
        return []
    hits: list[np.ndarray] = []
    for face in solid.faces:
        t = _face_hit(a, d, face)
        if t is None or t < -_EPS or t > 1 + _EPS:
            continue
        p = a + t * d
        if not any(np.linalg.norm(p - h) < 1e-7 for h in hits):
            hits.append(p)
    return [Point3D.from_array(h) for h in hits]


def crossing_point(points: list[Point3D]) -> Optional[Point3D]:
    """Representative crossing point for a set of face intersections.

    Two or more points mean the line passes through: the midpoint of the
    farthest pair. A single point means it only touches one skin.
    """
    if not points:
        return None
    if len(points) == 1:
        return points[0]
    best = (points[0], points[1])
    best_dist = -1.0
    for i, p in enumerate(points):
        for q in points[i + 1:]:
            dist = p.distance_to(q)
            if dist > best_dist:
                best, best_dist = (p, q), dist
    p, q = best
    return Point3D(x=(p.x + q.x) / 2, y=(p.y + q.y) / 2, z=(p.z + q.z) / 2)


def raycast_solid(origin: Point3D, direction: np.ndarray, solid: Solid) -> Optional[RayHit]:
    """First hit of a ray on ``solid``. An origin inside the solid hits at distance 0."""
    if point_in_solid(origin, solid):
        return RayHit(distance=0.0, point=origin)
    o = origin.to_array()
    d = np.asarray(direction, dtype=float)
    d = d / np.linalg.norm(d)
    best: Optional[float] = None
    for face in solid.faces:
        t = _face_hit(o, d, face)
        if t is not None and t >= 0 and (best is None or t < best):
            best = t
    if best is None:
        return None
    return RayHit(distance=best, point=Point3D.from_array(o + best * d))
