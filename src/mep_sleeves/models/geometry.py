"""Geometric primitives: points, axis-aligned boxes and affine transforms.

Coordinates are in the document's internal length unit (see
``mep_sleeves.geometry.units``). Transforms are stored as plain 4x4 row-major
matrices so they round-trip through JSON; the math runs on numpy.
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


class Point3D(BaseModel):
    """3D point (internal length units)."""

    x: float
    y: float
    z: float = 0.0

    def distance_to(self, other: Point3D) -> float:
        """Euclidean distance to another point."""
        return math.sqrt(
            (self.x - other.x) ** 2
            + (self.y - other.y) ** 2
            + (self.z - other.z) ** 2
        )

    def planar_distance_to(self, other: Point3D) -> float:
        """Distance in the XY plane, ignoring elevation."""
        return math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @classmethod
    def from_array(cls, values: Iterable[float]) -> Point3D:
        x, y, z = (float(v) for v in values)
        return cls(x=x, y=y, z=z)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point3D):
            return NotImplemented
        return (
            math.isclose(self.x, other.x, abs_tol=1e-6)
            and math.isclose(self.y, other.y, abs_tol=1e-6)
            and math.isclose(self.z, other.z, abs_tol=1e-6)
        )

    def __hash__(self) -> int:
        return hash((round(self.x, 6), round(self.y, 6), round(self.z, 6)))


class BoundingBox3D(BaseModel):
    """Axis-aligned bounding box. ``min`` must not exceed ``max`` on any axis."""

    min: Point3D
    max: Point3D

    @model_validator(mode="after")
    def min_not_above_max(self) -> BoundingBox3D:
        if self.min.x > self.max.x or self.min.y > self.max.y or self.min.z > self.max.z:
            raise ValueError("Bounding box min must not exceed max")
        return self

    @classmethod
    def from_points(cls, points: Iterable[Point3D | np.ndarray]) -> BoundingBox3D:
        arr = np.array(
            [p.to_array() if isinstance(p, Point3D) else p for p in points],
            dtype=float,
        )
        if arr.size == 0:
            raise ValueError("Cannot build a bounding box from zero points")
        return cls(
            min=Point3D.from_array(arr.min(axis=0)),
            max=Point3D.from_array(arr.max(axis=0)),
        )

    @property
    def center(self) -> Point3D:
        return Point3D(
            x=(self.min.x + self.max.x) / 2,
            y=(self.min.y + self.max.y) / 2,
            z=(self.min.z + self.max.z) / 2,
        )

    @property
    def size(self) -> tuple[float, float, float]:
        return (
            self.max.x - self.min.x,
            self.max.y - self.min.y,
            self.max.z - self.min.z,
        )

    def corners(self) -> list[Point3D]:
        """All 8 corners, min corner first."""
        return [
            Point3D(x=x, y=y, z=z)
            for x in (self.min.x, self.max.x)
            for y in (self.min.y, self.max.y)
            for z in (self.min.z, self.max.z)
        ]

    def expanded(self, margin: float) -> BoundingBox3D:
        """Box grown by ``margin`` on every side."""
        return BoundingBox3D(
            min=Point3D(x=self.min.x - margin, y=self.min.y - margin, z=self.min.z - margin),
            max=Point3D(x=self.max.x + margin, y=self.max.y + margin, z=self.max.z + margin),
        )

    def contains(self, point: Point3D, tolerance: float = 0.0) -> bool:
        """Inclusive point-in-box test against the box expanded by ``tolerance``."""
        return (
            self.min.x - tolerance <= point.x <= self.max.x + tolerance
            and self.min.y - tolerance <= point.y <= self.max.y + tolerance
            and self.min.z - tolerance <= point.z <= self.max.z + tolerance
        )

    def contains_box(self, other: BoundingBox3D, tolerance: float = 0.0) -> bool:
        return self.contains(other.min, tolerance) and self.contains(other.max, tolerance)

    def intersects(self, other: BoundingBox3D, tolerance: float = 0.0) -> bool:
        return (
            self.min.x - tolerance <= other.max.x
            and other.min.x <= self.max.x + tolerance
            and self.min.y - tolerance <= other.max.y
            and other.min.y <= self.max.y + tolerance
            and self.min.z - tolerance <= other.max.z
            and other.min.z <= self.max.z + tolerance
        )

    def union(self, other: BoundingBox3D) -> BoundingBox3D:
        return BoundingBox3D.from_points([self.min, self.max, other.min, other.max])


def _identity_rows() -> list[list[float]]:
    return np.identity(4).tolist()


class Transform(BaseModel):
    """Affine transform as a 4x4 row-major matrix.

    ``a.compose(b)`` applies ``b`` first, then ``a``. A linked model's
    placement composed with an element's own transform is therefore
    ``link.compose(element)``.
    """

    matrix: list[list[float]] = Field(default_factory=_identity_rows)

    @field_validator("matrix")
    @classmethod
    def must_be_4x4_affine(cls, v: list[list[float]]) -> list[list[float]]:
        if len(v) != 4 or any(len(row) != 4 for row in v):
            raise ValueError("Transform matrix must be 4x4")
        if not np.allclose(v[3], [0.0, 0.0, 0.0, 1.0]):
            raise ValueError("Transform matrix must be affine (last row 0 0 0 1)")
        return v

    # ── Constructors ──────────────────────────────────────────────────

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    @classmethod
    def from_array(cls, matrix: np.ndarray) -> Transform:
        return cls(matrix=np.asarray(matrix, dtype=float).tolist())

    @classmethod
    def translation(cls, dx: float, dy: float, dz: float = 0.0) -> Transform:
        m = np.identity(4)
        m[:3, 3] = [dx, dy, dz]
        return cls.from_array(m)

    @classmethod
    def rotation_z(cls, angle: float, origin: Point3D | None = None) -> Transform:
        """Rotation about the Z axis (radians), optionally about ``origin``."""
        c, s = math.cos(angle), math.sin(angle)
        m = np.identity(4)
        m[0, 0], m[0, 1] = c, -s
        m[1, 0], m[1, 1] = s, c
        rot = cls.from_array(m)
        if origin is None:
            return rot
        return (
            cls.translation(origin.x, origin.y, origin.z)
            .compose(rot)
            .compose(cls.translation(-origin.x, -origin.y, -origin.z))
        )

    # ── Operations ────────────────────────────────────────────────────

    def as_array(self) -> np.ndarray:
        return np.array(self.matrix, dtype=float)

    @property
    def is_identity(self) -> bool:
        return bool(np.allclose(self.as_array(), np.identity(4)))

    def compose(self, other: Transform) -> Transform:
        return Transform.from_array(self.as_array() @ other.as_array())

    def inverse(self) -> Transform:
        return Transform.from_array(np.linalg.inv(self.as_array()))

    def apply_point(self, point: Point3D) -> Point3D:
        v = self.as_array() @ np.append(point.to_array(), 1.0)
        return Point3D.from_array(v[:3])

    def apply_vector(self, vector: Point3D) -> Point3D:
        """Apply the linear part only (no translation)."""
        v = self.as_array()[:3, :3] @ vector.to_array()
        return Point3D.from_array(v)


def transform_bbox(box: BoundingBox3D, transform: Transform) -> BoundingBox3D:
    """Axis-aligned box enclosing all 8 transformed corners of ``box``.

    Transforming only min and max is wrong as soon as the transform rotates.
    """
    if transform.is_identity:
        return box
    return BoundingBox3D.from_points(transform.apply_point(c) for c in box.corners())


def transform_points(points: list[Point3D], transform: Transform) -> list[Point3D]:
    if transform.is_identity:
        return list(points)
    return [transform.apply_point(p) for p in points]
