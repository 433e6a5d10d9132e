"""Boundary representation of host solids as planar convex faces."""

from __future__ import annotations

import math

import numpy as np
from pydantic import BaseModel, field_validator

from mep_sleeves.models.geometry import BoundingBox3D, Point3D, Transform


class Face(BaseModel):
    """Planar convex polygon. Vertex order is counter-clockwise seen from outside."""

    vertices: list[Point3D]

    @field_validator("vertices")
    @classmethod
    def at_least_3_vertices(cls, v: list[Point3D]) -> list[Point3D]:
        if len(v) < 3:
            raise ValueError("Face must have at least 3 vertices")
        return v

    def as_array(self) -> np.ndarray:
        return np.array([p.to_array() for p in self.vertices], dtype=float)

    def _newell(self) -> np.ndarray:
        pts = self.as_array()
        n = np.zeros(3)
        for i in range(len(pts)):
            cur, nxt = pts[i], pts[(i + 1) % len(pts)]
            n[0] += (cur[1] - nxt[1]) * (cur[2] + nxt[2])
            n[1] += (cur[2] - nxt[2]) * (cur[0] + nxt[0])
            n[2] += (cur[0] - nxt[0]) * (cur[1] + nxt[1])
        return n

    @property
    def is_degenerate(self) -> bool:
        """True when the vertices span no area (collinear or coincident)."""
        return np.linalg.norm(self._newell()) < 1e-12

    @property
    def normal(self) -> np.ndarray:
        """Unit outward normal (Newell's method)."""
        n = self._newell()
        length = np.linalg.norm(n)
        if length < 1e-12:
            raise ValueError("Degenerate face has no normal")
        return n / length


class Solid(BaseModel):
    """Closed convex solid made of planar faces."""

    faces: list[Face]

    @property
    def bbox(self) -> BoundingBox3D:
        return BoundingBox3D.from_points(p for f in self.faces for p in f.vertices)

    def degenerate_faces(self) -> list[int]:
        """Indices of faces without a usable normal."""
        return [i for i, f in enumerate(self.faces) if f.is_degenerate]

    def transformed(self, transform: Transform) -> Solid:
        if transform.is_identity:
            return self
        return Solid(
            faces=[
                Face(vertices=[transform.apply_point(p) for p in f.vertices])
                for f in self.faces
            ]
        )

    # ── Builders ──────────────────────────────────────────────────────

    @classmethod
    def from_box(cls, box: BoundingBox3D) -> Solid:
        """Axis-aligned box solid."""
        x0, y0, z0 = box.min.x, box.min.y, box.min.z
        x1, y1, z1 = box.max.x, box.max.y, box.max.z
        return cls._from_corners(
            [
                (x0, y0, z0), (x1, y0, z0), (x1, y1, z0), (x0, y1, z0),
                (x0, y0, z1), (x1, y0, z1), (x1, y1, z1), (x0, y1, z1),
            ]
        )

    @classmethod
    def from_wall(
        cls,
        start: Point3D,
        end: Point3D,
        thickness: float,
        height: float,
    ) -> Solid:
        """Straight wall solid around a location line at mid-thickness.

        ``start.z`` is the wall base; the wall may run at any angle in plan.
        """
        dx, dy = end.x - start.x, end.y - start.y
        length = math.hypot(dx, dy)
        if length < 1e-12:
            raise ValueError("Wall start and end points must be different")
        # Left-hand perpendicular; the footprint winds counter-clockwise.
        px, py = -dy / length * thickness / 2, dx / length * thickness / 2
        base = [
            (start.x - px, start.y - py),
            (end.x - px, end.y - py),
            (end.x + px, end.y + py),
            (start.x + px, start.y + py),
        ]
        z0, z1 = start.z, start.z + height
        return cls._from_corners(
            [(x, y, z0) for x, y in base] + [(x, y, z1) for x, y in base]
        )

    @classmethod
    def _from_corners(cls, c: list[tuple[float, float, float]]) -> Solid:
        """Hexahedron from 4 bottom corners (CCW from above) then the 4 above them."""
        p = [Point3D(x=x, y=y, z=z) for x, y, z in c]
        quads = [
            (0, 3, 2, 1),  # bottom
            (4, 5, 6, 7),  # top
            (0, 1, 5, 4),
            (1, 2, 6, 5),
            (2, 3, 7, 6),
            (3, 0, 4, 7),
        ]
        return cls(faces=[Face(vertices=[p[i] for i in q]) for q in quads])
