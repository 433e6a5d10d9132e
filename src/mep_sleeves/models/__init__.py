"""Data models for routing elements, hosts, openings and settings."""

from mep_sleeves.models.ifc_id import generate_ifc_id
from mep_sleeves.models.geometry import BoundingBox3D, Point3D, Transform, transform_bbox
from mep_sleeves.models.solid import Face, Solid
from mep_sleeves.models.elements import (
    CurveType,
    HostKind,
    Level,
    MepCategory,
    Opening,
    OpeningClass,
    OpeningTemplate,
    OrientationTag,
    RoutingElement,
    StructuralHost,
)
from mep_sleeves.models.document import LinkedModel, ModelDocument
from mep_sleeves.models.settings import PlacementSettings, ResolvedTolerances

__all__ = [
    "generate_ifc_id",
    "BoundingBox3D",
    "Point3D",
    "Transform",
    "transform_bbox",
    "Face",
    "Solid",
    "CurveType",
    "HostKind",
    "Level",
    "MepCategory",
    "Opening",
    "OpeningClass",
    "OpeningTemplate",
    "OrientationTag",
    "RoutingElement",
    "StructuralHost",
    "LinkedModel",
    "ModelDocument",
    "PlacementSettings",
    "ResolvedTolerances",
]
