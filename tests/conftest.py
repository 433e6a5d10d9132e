"""Shared fixtures: small documents in millimeters."""

import pytest

from mep_sleeves.geometry.units import LengthUnit, UnitConversion
from mep_sleeves.models import (
    BoundingBox3D,
    Face,
    HostKind,
    MepCategory,
    ModelDocument,
    Opening,
    OpeningClass,
    OpeningTemplate,
    OrientationTag,
    PlacementSettings,
    Point3D,
    RoutingElement,
    Solid,
    StructuralHost,
)

MM = UnitConversion(LengthUnit.MILLIMETERS)


@pytest.fixture
def mm_tolerances():
    """Default tolerances with a probe cutoff sized for millimeter documents."""
    return PlacementSettings(probe_proximity_cutoff=150.0).resolve(MM)


@pytest.fixture
def mm_settings() -> PlacementSettings:
    return PlacementSettings(probe_proximity_cutoff=150.0)


@pytest.fixture
def make_opening():
    """Factory for openings on a wall running along X (tag Y) unless told otherwise."""

    def _make(
        x: float,
        y: float = 0.0,
        z: float = 0.0,
        width: float = 100.0,
        height: float = 100.0,
        depth: float = 200.0,
        category: MepCategory = MepCategory.DUCT,
        host_kind: HostKind = HostKind.WALL,
        opening_class: OpeningClass = OpeningClass.INDIVIDUAL,
        orientation_tag: OrientationTag = OrientationTag.Y,
        host_id: str | None = None,
        rotation: float = 0.0,
    ) -> Opening:
        return Opening(
            opening_class=opening_class,
            category=category,
            host_kind=host_kind,
            host_id=host_id,
            position=Point3D(x=x, y=y, z=z),
            rotation=rotation,
            orientation_tag=orientation_tag,
            width=width,
            height=height,
            depth=depth,
        )

    return _make


@pytest.fixture
def make_wall():
    """Factory for a straight wall solid around a mid-thickness location line."""

    def _make(
        start: tuple[float, float],
        end: tuple[float, float],
        thickness: float = 200.0,
        height: float = 3000.0,
        base: float = 0.0,
        kind: HostKind = HostKind.WALL,
        name: str = "",
    ) -> StructuralHost:
        a = Point3D(x=start[0], y=start[1], z=base)
        b = Point3D(x=end[0], y=end[1], z=base)
        return StructuralHost(
            name=name,
            kind=kind,
            solid=Solid.from_wall(a, b, thickness, height),
            thickness=thickness,
            centerline=[a, b],
        )

    return _make


@pytest.fixture
def make_collapsed_wall(make_wall):
    """Wall whose bottom face has its vertices squashed onto one line."""

    def _make(start: tuple[float, float], end: tuple[float, float], **kwargs) -> StructuralHost:
        host = make_wall(start, end, **kwargs)
        a, b = host.centerline
        mid = Point3D(x=(a.x + b.x) / 2, y=(a.y + b.y) / 2, z=a.z)
        faces = list(host.solid.faces)
        faces[0] = Face(vertices=[a, mid, b])
        return host.model_copy(update={"solid": Solid(faces=faces)})

    return _make


@pytest.fixture
def make_floor():
    """Factory for an axis-aligned floor slab given by its top elevation."""

    def _make(
        x: tuple[float, float] = (0.0, 10000.0),
        y: tuple[float, float] = (0.0, 10000.0),
        top: float = 3000.0,
        thickness: float = 250.0,
        name: str = "",
    ) -> StructuralHost:
        return StructuralHost(
            name=name,
            kind=HostKind.FLOOR,
            bbox=BoundingBox3D(
                min=Point3D(x=x[0], y=y[0], z=top - thickness),
                max=Point3D(x=x[1], y=y[1], z=top),
            ),
            thickness=thickness,
        )

    return _make


@pytest.fixture
def make_duct():
    def _make(
        start: tuple[float, float, float],
        end: tuple[float, float, float],
        width: float = 300.0,
        height: float = 200.0,
        category: MepCategory = MepCategory.DUCT,
    ) -> RoutingElement:
        return RoutingElement(
            category=category,
            centerline=[
                Point3D(x=start[0], y=start[1], z=start[2]),
                Point3D(x=end[0], y=end[1], z=end[2]),
            ],
            width=width,
            height=height,
        )

    return _make


@pytest.fixture
def make_pipe():
    def _make(
        start: tuple[float, float, float],
        end: tuple[float, float, float],
        diameter: float = 100.0,
        insulation: float = 0.0,
    ) -> RoutingElement:
        return RoutingElement(
            category=MepCategory.PIPE,
            centerline=[
                Point3D(x=start[0], y=start[1], z=start[2]),
                Point3D(x=end[0], y=end[1], z=end[2]),
            ],
            diameter=diameter,
            insulation_thickness=insulation,
        )

    return _make


def all_templates() -> list[OpeningTemplate]:
    """One template per (host kind, category, class)."""
    return [
        OpeningTemplate(
            name=f"{kind.value}-{category.value}-{cls.value}",
            host_kind=kind,
            category=category,
            opening_class=cls,
        )
        for kind in HostKind
        for category in MepCategory
        for cls in OpeningClass
    ]


@pytest.fixture
def empty_document() -> ModelDocument:
    """Millimeter document with every opening template registered."""
    doc = ModelDocument(name="Test", units=LengthUnit.MILLIMETERS, templates=all_templates())
    doc.add_level("GF", elevation=0.0)
    return doc
