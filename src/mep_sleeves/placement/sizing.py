"""Opening size and orientation for one routing element crossing one host."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from mep_sleeves.models.elements import HostKind, OrientationTag, RoutingElement, StructuralHost
from mep_sleeves.models.settings import ResolvedTolerances


@dataclass
class OpeningSize:
    """Dimensions and orientation of an opening, in internal units."""

    width: float
    height: float
    depth: float
    rotation: float
    orientation_tag: OrientationTag


def orientation_tag_for_normal(normal: Optional[np.ndarray]) -> OrientationTag:
    """Tag a wall by the dominant plan axis of its face normal."""
    if normal is None:
        return OrientationTag.UNKNOWN
    nx, ny = abs(normal[0]), abs(normal[1])
    if math.isclose(nx, ny, abs_tol=1e-9):
        return OrientationTag.UNKNOWN
    return OrientationTag.X if nx > ny else OrientationTag.Y


def clearance_for(element: RoutingElement, tolerances: ResolvedTolerances) -> float:
    if element.is_insulated:
        return tolerances.insulated_clearance
    return tolerances.clearance


def size_opening(
    element: RoutingElement,
    host: StructuralHost,
    tolerances: ResolvedTolerances,
) -> OpeningSize:
    """Size an individual opening: section plus insulation plus clearance on each side.

    Walls and framing orient the opening along the host; floors follow the
    element's section rotation.
    """
    margin = 2 * (element.insulation_thickness + clearance_for(element, tolerances))
    if element.is_round:
        width = height = element.diameter + margin
    else:
        width = element.width + margin
        height = element.height + margin

    if host.kind == HostKind.FLOOR:
        return OpeningSize(
            width=width,
            height=height,
            depth=host.thickness,
            rotation=element.section_rotation,
            orientation_tag=OrientationTag.FLOOR,
        )

    normal = host.face_normal()
    # Opening u axis runs along the host, perpendicular to the face normal.
    rotation = math.atan2(normal[0], -normal[1]) if normal is not None else 0.0
    return OpeningSize(
        width=width,
        height=height,
        depth=host.thickness,
        rotation=rotation,
        orientation_tag=orientation_tag_for_normal(normal),
    )
