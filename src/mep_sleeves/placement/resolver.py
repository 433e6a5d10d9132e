"""Structural intersection resolver.

Finds where a straight routing line crosses structural hosts and which host
gets the opening. Both the line and the hosts must already be in the same
coordinate space.

Two modes:

- Bounding-box mode (floors): sample the line at five fixed fractions and
  take, per host, the first sample inside the host box grown by a small
  inclusion tolerance. Every floor hit is reported; duplicates across hosts
  are left to suppression.
- Ray-probe mode (walls; framing as its own group): from each sample, probe
  forward, backward and along both horizontal perpendiculars. Hosts whose
  first hit lies within the proximity cutoff are candidates; the thickest
  one wins, and the crossing point is centered inside it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from mep_sleeves.errors import GeometryUnavailable
from mep_sleeves.geometry.segments import direction, project_onto_segment, sample_segment
from mep_sleeves.geometry.solids import crossing_point, intersect_line_solid, raycast_solid
from mep_sleeves.models.elements import HostKind, RoutingElement, StructuralHost
from mep_sleeves.models.geometry import BoundingBox3D, Point3D
from mep_sleeves.models.settings import ResolvedTolerances
from mep_sleeves.models.solid import Solid

logger = logging.getLogger(__name__)

Segment = tuple[Point3D, Point3D]

PROBE_MODE_KINDS: tuple[HostKind, ...] = (HostKind.WALL, HostKind.FRAMING)


@dataclass
class IntersectionCandidate:
    """A routing element crossing a host at ``point``.

    ``proximity`` is the probe distance that found the host (0 for
    bounding-box hits).
    """

    routing_element: RoutingElement
    host: StructuralHost
    point: Point3D
    proximity: float


@dataclass
class ProbeHit:
    host: StructuralHost
    distance: float
    point: Point3D
    axial: bool  # found by a probe along the line itself


def probe_directions(start: Point3D, end: Point3D) -> list[tuple[np.ndarray, bool]]:
    """Forward, reverse and both horizontal perpendiculars, flagged axial or not."""
    d = direction(start, end)
    perp = np.array([-d[1], d[0], 0.0])
    if np.linalg.norm(perp) < 1e-9:
        perp = np.array([1.0, 0.0, 0.0])  # vertical line
    perp = perp / np.linalg.norm(perp)
    return [(d, True), (-d, True), (perp, False), (-perp, False)]


class StructuralIntersectionResolver:
    """Resolves (host, point) crossings for straight routing lines."""

    def __init__(self, tolerances: ResolvedTolerances):
        self.tolerances = tolerances

    # ── Public API ────────────────────────────────────────────────────

    def resolve(self, line: Segment, hosts: list[StructuralHost]) -> list[tuple[StructuralHost, Point3D]]:
        """All (host, placement point) crossings of ``line``.

        At most one wall and one framing member are returned; any number of
        floors may be.
        """
        return [(hit.host, hit.point) for hit in self._resolve_hits(line, hosts)]

    def resolve_candidates(
        self,
        element: RoutingElement,
        hosts: list[StructuralHost],
    ) -> list[IntersectionCandidate]:
        """Candidates for an element already mapped into host space.

        Raises:
            UnsupportedGeometry: If the centerline is not straight.
        """
        line = element.straight_segment()
        candidates = [
            IntersectionCandidate(
                routing_element=element,
                host=hit.host,
                point=hit.point,
                proximity=hit.distance,
            )
            for hit in self._resolve_hits(line, hosts)
        ]
        if not candidates:
            logger.info("No structural host crossed by %s %s", element.category.value, element.global_id)
        return candidates

    # ── Modes ─────────────────────────────────────────────────────────

    def _resolve_hits(self, line: Segment, hosts: list[StructuralHost]) -> list[ProbeHit]:
        nearby = self._prefilter(line, hosts)
        hits = self.resolve_bbox_mode(line, [h for h in nearby if h.kind == HostKind.FLOOR])
        for kind in PROBE_MODE_KINDS:
            hit = self.resolve_probe_mode(line, [h for h in nearby if h.kind == kind])
            if hit is not None:
                hits.append(hit)
        return hits

    def _prefilter(self, line: Segment, hosts: list[StructuralHost]) -> list[StructuralHost]:
        """Hosts whose box comes within reach of the line's box."""
        reach = max(self.tolerances.bbox_inclusion, self.tolerances.probe_cutoff)
        line_box = BoundingBox3D.from_points(line)
        nearby = []
        for host in hosts:
            try:
                box = host.bounding_box()
            except GeometryUnavailable as exc:
                logger.warning("Skipping host %s: %s", host.global_id, exc)
                continue
            if box.intersects(line_box, reach):
                nearby.append(host)
        return nearby

    def resolve_bbox_mode(self, line: Segment, hosts: list[StructuralHost]) -> list[ProbeHit]:
        samples = sample_segment(*line)
        hits = []
        for host in hosts:
            box = host.bounding_box()
            sample = next(
                (s for s in samples if box.contains(s, self.tolerances.bbox_inclusion)),
                None,
            )
            if sample is not None:
                hits.append(ProbeHit(host=host, distance=0.0, point=sample, axial=True))
        return hits

    def resolve_probe_mode(self, line: Segment, hosts: list[StructuralHost]) -> Optional[ProbeHit]:
        """Thickest host found by the probes, with the placement point centered in it."""
        nearest: dict[str, ProbeHit] = {}
        axial: dict[str, ProbeHit] = {}
        solids: dict[str, Solid] = {}
        for host in hosts:
            try:
                solids[host.global_id] = host.geometry()
            except GeometryUnavailable as exc:
                logger.warning("Skipping host %s: %s", host.global_id, exc)
        hosts = [h for h in hosts if h.global_id in solids]
        for sample in sample_segment(*line):
            for dir_, is_axial in probe_directions(*line):
                for host in hosts:
                    hit = self._probe(sample, dir_, host, solids[host.global_id], is_axial)
                    if hit is None:
                        continue
                    best = nearest.get(host.global_id)
                    if best is None or hit.distance < best.distance:
                        nearest[host.global_id] = hit
                    if is_axial:
                        best_axial = axial.get(host.global_id)
                        if best_axial is None or hit.distance < best_axial.distance:
                            axial[host.global_id] = hit

        # Thickest first; a host the line merely runs alongside is passed over.
        ranked = sorted(nearest.values(), key=lambda h: h.host.thickness, reverse=True)
        for probe in ranked:
            host = probe.host
            raw = crossing_point(intersect_line_solid(line[0], line[1], solids[host.global_id]))
            if raw is None and host.global_id in axial:
                raw = axial[host.global_id].point
            if raw is None:
                logger.debug("Host %s only grazed by the probes, not crossed", host.global_id)
                continue
            return ProbeHit(
                host=host,
                distance=probe.distance,
                point=center_in_host(raw, host),
                axial=probe.axial,
            )
        return None

    def _probe(
        self,
        origin: Point3D,
        dir_: np.ndarray,
        host: StructuralHost,
        solid: Solid,
        is_axial: bool,
    ) -> Optional[ProbeHit]:
        hit = raycast_solid(origin, dir_, solid)
        if hit is None or hit.distance >= self.tolerances.probe_cutoff:
            return None
        return ProbeHit(host=host, distance=hit.distance, point=hit.point, axial=is_axial)


def center_in_host(point: Point3D, host: StructuralHost) -> Point3D:
    """Move a crossing point to mid-thickness of a wall or framing member.

    The point is projected onto the exterior face plane, clamped to the
    host's length, then pushed back by half the thickness along the face
    normal.
    """
    normal = host.face_normal()
    if normal is None:
        return point
    half = host.thickness / 2
    if host.centerline is not None:
        origin = host.centerline[0].to_array()
    else:
        origin = host.bounding_box().center.to_array()
    face_origin = origin + normal * half
    p = point.to_array()
    on_face = p - ((p - face_origin) @ normal) * normal

    if host.centerline is not None:
        a, b = (c.to_array() + normal * half for c in host.centerline)
        clamped = project_onto_segment(
            Point3D(x=on_face[0], y=on_face[1], z=0.0),
            Point3D(x=a[0], y=a[1], z=0.0),
            Point3D(x=b[0], y=b[1], z=0.0),
        )
        on_face = np.array([clamped.x, clamped.y, on_face[2]])

    centered = on_face - normal * half
    return Point3D.from_array(centered)
