"""Cluster formation: group adjacent individual openings and merge them.

Openings only cluster within one (host kind, category, orientation tag)
group. Two openings are adjacent when their elevations match and the plan
gap between them, measured as center distance minus the mean of their half
sizes, is within the cluster tolerance:

    gap = planar(cA, cB) - (wA/2 + wB/2 + hA/2 + hB/2) / 2

Each connected component of two or more openings becomes one cluster.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from mep_sleeves.models.elements import (
    HostKind,
    MepCategory,
    Opening,
    OpeningClass,
    OrientationTag,
)
from mep_sleeves.models.geometry import BoundingBox3D, Point3D
from mep_sleeves.models.settings import ResolvedTolerances
from mep_sleeves.placement.grid import SpatialGrid

logger = logging.getLogger(__name__)

GroupKey = tuple[HostKind, MepCategory, OrientationTag]


# ── Adjacency ────────────────────────────────────────────────────────


def group_key(opening: Opening) -> GroupKey:
    return (opening.host_kind, opening.category, opening.orientation_tag)


def effective_half_size(a: Opening, b: Opening) -> float:
    return (a.width / 2 + b.width / 2 + a.height / 2 + b.height / 2) / 2


def planar_gap(a: Opening, b: Opening) -> float:
    return a.position.planar_distance_to(b.position) - effective_half_size(a, b)


def are_adjacent(a: Opening, b: Opening, tolerances: ResolvedTolerances) -> bool:
    """Symmetric adjacency test. Openings in different groups are never adjacent."""
    if group_key(a) != group_key(b):
        return False
    if abs(a.position.z - b.position.z) > tolerances.elevation:
        return False
    return planar_gap(a, b) <= tolerances.cluster


def adjacency_reach(opening: Opening, tolerance: float) -> float:
    """Plan half-extent that any adjacent opening's reach box must overlap."""
    return tolerance / 2 + (opening.width + opening.height) / 4


# ── Components ───────────────────────────────────────────────────────


@dataclass
class Cluster:
    """Two or more adjacent individual openings of one group."""

    members: list[Opening] = field(default_factory=list)

    @property
    def key(self) -> GroupKey:
        return group_key(self.members[0])

    @property
    def host_kind(self) -> HostKind:
        return self.members[0].host_kind

    @property
    def category(self) -> MepCategory:
        return self.members[0].category

    @property
    def orientation_tag(self) -> OrientationTag:
        return self.members[0].orientation_tag

    @property
    def host_id(self) -> Optional[str]:
        """Host shared by most members."""
        ids = Counter(m.host_id for m in self.members if m.host_id is not None)
        if not ids:
            return None
        return ids.most_common(1)[0][0]

    @property
    def member_ids(self) -> list[str]:
        return [m.global_id for m in self.members]

    @property
    def bbox(self) -> BoundingBox3D:
        return BoundingBox3D.from_points(c for m in self.members for c in m.corners())


def _components_of_group(openings: list[Opening], tolerances: ResolvedTolerances) -> list[list[Opening]]:
    grid = SpatialGrid(tolerances.cluster)
    for i, o in enumerate(openings):
        grid.insert(i, o.position.x, o.position.y, adjacency_reach(o, tolerances.cluster))

    visited: set[int] = set()
    components: list[list[Opening]] = []
    for seed in range(len(openings)):
        if seed in visited:
            continue
        visited.add(seed)
        component = [openings[seed]]
        queue = [seed]
        while queue:
            current = queue.pop(0)
            for other in sorted(grid.neighbours(current)):
                if other in visited:
                    continue
                if are_adjacent(openings[current], openings[other], tolerances):
                    visited.add(other)
                    component.append(openings[other])
                    queue.append(other)
        components.append(component)
    return components


def connected_components(openings: list[Opening], tolerances: ResolvedTolerances) -> list[list[Opening]]:
    """All tolerance-connected components, singletons included, group by group."""
    groups: dict[GroupKey, list[Opening]] = {}
    for o in openings:
        groups.setdefault(group_key(o), []).append(o)
    components = []
    for members in groups.values():
        components.extend(_components_of_group(members, tolerances))
    return components


def form_clusters(individuals: list[Opening], tolerances: ResolvedTolerances) -> list[Cluster]:
    """Clusters of two or more adjacent individual openings.

    Cluster-class openings in the input are ignored.
    """
    candidates = [o for o in individuals if o.opening_class == OpeningClass.INDIVIDUAL]
    clusters = [
        Cluster(members=component)
        for component in connected_components(candidates, tolerances)
        if len(component) >= 2
    ]
    logger.info("Formed %d cluster(s) from %d individual opening(s)", len(clusters), len(candidates))
    return clusters


# ── Merge geometry ───────────────────────────────────────────────────


@dataclass
class MergedGeometry:
    """Replacement opening for a cluster.

    ``width``/``height`` are the true extents along the opening axes.
    ``parameter_width``/``parameter_height`` are the values written to the
    template, after the wall orientation rule.
    """

    center: Point3D
    rotation: float
    width: float
    height: float
    depth: float
    parameter_width: float
    parameter_height: float
    host_kind: HostKind
    category: MepCategory
    orientation_tag: OrientationTag
    host_id: Optional[str] = None
    level_id: Optional[str] = None

    def is_degenerate(self, min_size: float) -> bool:
        return self.width < min_size or self.height < min_size


def wall_parameter_size(
    width: float,
    height: float,
    keep_above: float = 1.5,
    swap_below: float = 0.67,
) -> tuple[float, float]:
    """Width/height as written to a wall opening template.

    Aspect above ``keep_above`` keeps the orientation, below ``swap_below``
    swaps it. The band in between also swaps.
    """
    if height <= 0:
        return width, height
    aspect = width / height
    if aspect > keep_above:
        return width, height
    if aspect < swap_below:
        return height, width
    return height, width  # nearly square: placeholder policy, see DESIGN.md


def merge_cluster(
    cluster: Cluster,
    host_thickness: Optional[float] = None,
    keep_above: float = 1.5,
    swap_below: float = 0.67,
) -> MergedGeometry:
    """Union of member extents on the host plane of the first member.

    Depth is the host thickness when known, else the deepest member.
    """
    ref = cluster.members[0]
    u, v, n = ref.frame()
    corners = np.array([c for m in cluster.members for c in m.corners()])
    us, vs, ns = corners @ u, corners @ v, corners @ n
    width = float(us.max() - us.min())
    height = float(vs.max() - vs.min())
    center = (
        u * (us.max() + us.min()) / 2
        + v * (vs.max() + vs.min()) / 2
        + n * (ns.max() + ns.min()) / 2
    )
    if host_thickness:
        depth = host_thickness
    else:
        depth = max(m.depth for m in cluster.members)

    if ref.host_kind == HostKind.WALL:
        param_w, param_h = wall_parameter_size(width, height, keep_above, swap_below)
    else:
        param_w, param_h = width, height

    return MergedGeometry(
        center=Point3D.from_array(center),
        rotation=ref.rotation,
        width=width,
        height=height,
        depth=depth,
        parameter_width=param_w,
        parameter_height=param_h,
        host_kind=ref.host_kind,
        category=ref.category,
        orientation_tag=ref.orientation_tag,
        host_id=cluster.host_id,
        level_id=ref.level_id,
    )
