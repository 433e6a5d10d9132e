"""Routing elements, structural hosts and openings.

Element IDs use IFC-compatible GlobalIds (22-char compressed GUIDs), the same
identifiers the host model uses for its elements. Category and host kind are
explicit enum tags carried from ingestion, never parsed out of type names.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from mep_sleeves.errors import GeometryUnavailable, UnsupportedGeometry
from mep_sleeves.models.geometry import (
    BoundingBox3D,
    Point3D,
    Transform,
    transform_bbox,
    transform_points,
)
from mep_sleeves.models.ifc_id import generate_ifc_id
from mep_sleeves.models.solid import Solid

HOST_DOCUMENT = "host"


class MepCategory(str, Enum):
    """MEP discipline of a routing element or opening."""

    PIPE = "pipe"
    DUCT = "duct"
    CABLE_TRAY = "cable_tray"
    DAMPER = "damper"


class HostKind(str, Enum):
    """Kind of structural barrier an opening is cut through."""

    WALL = "wall"
    FLOOR = "floor"
    FRAMING = "framing"


class OpeningClass(str, Enum):
    """INDIVIDUAL openings serve one routing element; CLUSTER openings replace several."""

    INDIVIDUAL = "individual"
    CLUSTER = "cluster"


class OrientationTag(str, Enum):
    """Dominant orientation of an opening's host.

    X: wall face normal mostly along X
    Y: wall face normal mostly along Y
    FLOOR: floor-hosted
    UNKNOWN: diagonal or undeterminable
    """

    X = "X"
    Y = "Y"
    FLOOR = "FLOOR"
    UNKNOWN = "UNKNOWN"


class CurveType(str, Enum):
    LINE = "line"
    ARC = "arc"
    POLYLINE = "polyline"


def _z_rotation(transform: Transform) -> float:
    m = transform.matrix
    return math.atan2(m[1][0], m[0][0])


class Level(BaseModel):
    """A reference level (storey)."""

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str
    elevation: float = 0.0


class RoutingElement(BaseModel):
    """A pipe, duct, cable tray or damper that may cross a structural barrier.

    Coordinates are in the source document's space; ``transform`` maps them
    into the host document (identity for native elements).
    """

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = ""
    category: MepCategory
    curve_type: CurveType = CurveType.LINE
    centerline: list[Point3D]
    width: Optional[float] = Field(default=None, gt=0, description="Section width (rectangular)")
    height: Optional[float] = Field(default=None, gt=0, description="Section height (rectangular)")
    diameter: Optional[float] = Field(default=None, gt=0, description="Outside diameter (round)")
    insulation_thickness: float = Field(default=0.0, ge=0)
    section_rotation: float = Field(default=0.0, description="Section rotation about Z, radians")
    level_id: Optional[str] = None
    source_id: str = HOST_DOCUMENT
    transform: Transform = Field(default_factory=Transform)

    @field_validator("centerline")
    @classmethod
    def at_least_2_points(cls, v: list[Point3D]) -> list[Point3D]:
        if len(v) < 2:
            raise ValueError("Centerline must have at least 2 points")
        return v

    @model_validator(mode="after")
    def has_cross_section(self) -> RoutingElement:
        if self.diameter is None and (self.width is None or self.height is None):
            raise ValueError("Routing element needs a diameter or both width and height")
        return self

    @property
    def is_round(self) -> bool:
        return self.diameter is not None

    @property
    def is_insulated(self) -> bool:
        return self.insulation_thickness > 0

    @property
    def is_straight(self) -> bool:
        return self.curve_type == CurveType.LINE and len(self.centerline) == 2

    def straight_segment(self) -> tuple[Point3D, Point3D]:
        """The centerline as one straight segment.

        Raises:
            UnsupportedGeometry: For arcs and multi-segment centerlines.
            GeometryUnavailable: For a zero-length centerline.
        """
        if not self.is_straight:
            raise UnsupportedGeometry(
                f"Routing element {self.global_id} has a non-straight centerline "
                f"({self.curve_type.value}, {len(self.centerline)} points)"
            )
        start, end = self.centerline
        if start.distance_to(end) < 1e-9:
            raise GeometryUnavailable(f"Routing element {self.global_id} has a zero-length centerline")
        return start, end

    def to_host_space(self) -> RoutingElement:
        """Copy with coordinates mapped into the host document."""
        if self.transform.is_identity:
            return self
        return self.model_copy(
            update={
                "centerline": transform_points(self.centerline, self.transform),
                "section_rotation": self.section_rotation + _z_rotation(self.transform),
                "transform": Transform(),
            }
        )


class StructuralHost(BaseModel):
    """A wall, floor or framing member that openings are cut through.

    ``centerline`` is the location line at mid-thickness (walls, framing).
    ``normal`` is the exterior face normal.
    """

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = ""
    kind: HostKind
    solid: Optional[Solid] = None
    bbox: Optional[BoundingBox3D] = None
    thickness: float = Field(gt=0, description="Wall width, slab depth or framing section width")
    centerline: Optional[list[Point3D]] = None
    normal: Optional[Point3D] = None
    level_id: Optional[str] = None
    source_id: str = HOST_DOCUMENT
    transform: Transform = Field(default_factory=Transform)

    @field_validator("centerline")
    @classmethod
    def centerline_is_segment(cls, v: Optional[list[Point3D]]) -> Optional[list[Point3D]]:
        if v is not None and len(v) != 2:
            raise ValueError("Host centerline must have exactly 2 points")
        return v

    def bounding_box(self) -> BoundingBox3D:
        if self.bbox is not None:
            return self.bbox
        if self.solid is not None:
            return self.solid.bbox
        raise GeometryUnavailable(f"Host {self.global_id} has neither solid nor bounding box")

    def geometry(self) -> Solid:
        """Solid for intersection tests, falling back to the bounding box.

        Raises:
            GeometryUnavailable: If there is no geometry, or the solid has a
                face whose vertices are collinear.
        """
        if self.solid is not None:
            bad = self.solid.degenerate_faces()
            if bad:
                raise GeometryUnavailable(f"Host {self.global_id} has degenerate face(s) {bad}")
            return self.solid
        if self.bbox is not None:
            return Solid.from_box(self.bbox)
        raise GeometryUnavailable(f"Host {self.global_id} has neither solid nor bounding box")

    def face_normal(self) -> Optional[np.ndarray]:
        """Unit exterior face normal, derived from the centerline when not given."""
        if self.normal is not None:
            n = self.normal.to_array()
        elif self.centerline is not None:
            a, b = self.centerline
            n = np.array([-(b.y - a.y), b.x - a.x, 0.0])
        else:
            return None
        length = np.linalg.norm(n)
        if length < 1e-12:
            return None
        return n / length

    def to_host_space(self) -> StructuralHost:
        if self.transform.is_identity:
            return self
        t = self.transform
        return self.model_copy(
            update={
                "solid": self.solid.transformed(t) if self.solid is not None else None,
                "bbox": transform_bbox(self.bbox, t) if self.bbox is not None else None,
                "centerline": transform_points(self.centerline, t) if self.centerline else None,
                "normal": t.apply_vector(self.normal) if self.normal is not None else None,
                "transform": Transform(),
            }
        )


class OpeningTemplate(BaseModel):
    """Opening type registered for a (host kind, category, class) combination."""

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str
    host_kind: HostKind
    category: MepCategory
    opening_class: OpeningClass = OpeningClass.INDIVIDUAL
    width_parameter: str = "Width"
    height_parameter: str = "Height"
    depth_parameter: str = "Depth"


class Opening(BaseModel):
    """A placed sleeve or opening.

    Width runs along the local u axis, height along v and depth along the
    host normal. On walls and framing u is horizontal and v is vertical; on
    floors both lie in plan and depth is vertical.
    """

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = ""
    opening_class: OpeningClass = OpeningClass.INDIVIDUAL
    category: MepCategory
    host_kind: HostKind
    host_id: Optional[str] = None
    template_id: Optional[str] = None
    position: Point3D
    rotation: float = Field(default=0.0, description="Rotation about Z, radians")
    orientation_tag: OrientationTag = OrientationTag.UNKNOWN
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    depth: float = Field(ge=0)
    level_id: Optional[str] = None
    parameters: dict[str, float] = Field(default_factory=dict)
    mark: Optional[str] = Field(default=None, description="Schedule mark, e.g. DO-001")

    def frame(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Local (u, v, n) unit axes."""
        c, s = math.cos(self.rotation), math.sin(self.rotation)
        u = np.array([c, s, 0.0])
        if self.host_kind == HostKind.FLOOR:
            return u, np.array([-s, c, 0.0]), np.array([0.0, 0.0, 1.0])
        return u, np.array([0.0, 0.0, 1.0]), np.array([s, -c, 0.0])

    def corners(self) -> list[np.ndarray]:
        u, v, n = self.frame()
        center = self.position.to_array()
        return [
            center + su * self.width / 2 * u + sv * self.height / 2 * v + sn * self.depth / 2 * n
            for su in (-1, 1)
            for sv in (-1, 1)
            for sn in (-1, 1)
        ]

    @property
    def bbox(self) -> BoundingBox3D:
        return BoundingBox3D.from_points(self.corners())

    @property
    def is_zero_size(self) -> bool:
        return self.width <= 0 or self.height <= 0 or self.depth <= 0
