"""Tests for the structural intersection resolver (millimeter documents)."""

import numpy as np
import pytest

from mep_sleeves.errors import UnsupportedGeometry
from mep_sleeves.models import CurveType, HostKind, Point3D, StructuralHost
from mep_sleeves.placement.resolver import (
    StructuralIntersectionResolver,
    center_in_host,
    probe_directions,
)


@pytest.fixture
def resolver(mm_tolerances) -> StructuralIntersectionResolver:
    return StructuralIntersectionResolver(mm_tolerances)


def _line(a, b):
    return (Point3D(x=a[0], y=a[1], z=a[2]), Point3D(x=b[0], y=b[1], z=b[2]))


# ── Bounding-box mode ─────────────────────────────────────────────


class TestFloors:
    def test_vertical_pipe_through_slab(self, resolver, make_floor):
        slab = make_floor(top=3100)
        hits = resolver.resolve(_line((5000, 5000, 0), (5000, 5000, 4000)), [slab])
        assert len(hits) == 1
        host, point = hits[0]
        assert host is slab
        assert point == Point3D(x=5000, y=5000, z=3000)

    def test_every_slab_reports_a_hit(self, resolver, make_floor):
        lower = make_floor(top=1100)
        upper = make_floor(top=3100)
        hits = resolver.resolve(_line((5000, 5000, 0), (5000, 5000, 4000)), [lower, upper])
        assert {h.global_id for h, _ in hits} == {lower.global_id, upper.global_id}

    def test_inclusion_tolerance(self, resolver, make_floor):
        # slab top 5mm below the sample at z=3000, within the 10mm tolerance
        slab = make_floor(top=2995)
        assert len(resolver.resolve(_line((5000, 5000, 0), (5000, 5000, 4000)), [slab])) == 1

    def test_line_outside_every_box(self, resolver, make_floor, make_wall):
        hosts = [make_floor(top=3100), make_wall((0, 0), (5000, 0))]
        line = _line((20000, 20000, 0), (20000, 20000, 4000))
        assert resolver.resolve(line, hosts) == []


# ── Ray-probe mode ────────────────────────────────────────────────


class TestWalls:
    def test_duct_through_wall_is_centered(self, resolver, make_wall):
        wall = make_wall((0, 0), (5000, 0), thickness=200)
        hits = resolver.resolve(_line((2000, -1000, 1500), (2000, 1000, 1500)), [wall])
        assert len(hits) == 1
        host, point = hits[0]
        assert host is wall
        assert point == Point3D(x=2000, y=0, z=1500)

    def test_skin_hit_moves_to_mid_thickness(self, resolver, make_wall):
        wall = make_wall((0, 0), (5000, 0), thickness=200)
        # ends inside the wall: only the near face is crossed
        hits = resolver.resolve(_line((2000, -1000, 1500), (2000, 50, 1500)), [wall])
        assert hits[0][1] == Point3D(x=2000, y=0, z=1500)

    def test_axial_probe_finds_wall_just_ahead(self, resolver, make_wall):
        wall = make_wall((0, 0), (5000, 0), thickness=200)
        # stops 100mm short of the wall face, inside the 150mm cutoff
        hits = resolver.resolve(_line((2000, -1000, 1500), (2000, -200, 1500)), [wall])
        assert len(hits) == 1
        assert hits[0][1] == Point3D(x=2000, y=0, z=1500)

    def test_wall_beyond_cutoff_ignored(self, resolver, make_wall):
        wall = make_wall((0, 0), (5000, 0), thickness=200)
        # stops 300mm short of the wall face
        assert resolver.resolve(_line((2000, -1000, 1500), (2000, -400, 1500)), [wall]) == []

    def test_thickest_wall_wins(self, resolver, make_wall):
        partition = make_wall((0, 0), (5000, 0), thickness=100, name="partition")
        bearing = make_wall((0, 400), (5000, 400), thickness=300, name="bearing")
        hits = resolver.resolve(_line((2000, -1000, 1500), (2000, 1000, 1500)), [partition, bearing])
        assert len(hits) == 1
        host, point = hits[0]
        assert host is bearing
        assert point == Point3D(x=2000, y=400, z=1500)

    def test_parallel_run_alongside_wall_is_not_a_crossing(self, resolver, make_wall):
        wall = make_wall((0, 0), (5000, 0), thickness=200)
        # runs 50mm off the wall face, never crosses it
        assert resolver.resolve(_line((1000, 150, 1500), (4000, 150, 1500)), [wall]) == []

    def test_diagonal_wall(self, resolver, make_wall):
        wall = make_wall((0, 0), (4000, 4000), thickness=200)
        hits = resolver.resolve(_line((3000, 0, 1000), (0, 3000, 1000)), [wall])
        assert len(hits) == 1
        assert hits[0][1] == Point3D(x=1500, y=1500, z=1000)

    def test_framing_resolved_separately(self, resolver, make_wall):
        wall = make_wall((0, 0), (5000, 0), thickness=200)
        beam = make_wall((0, 600), (5000, 600), thickness=150, height=400, base=1300, kind=HostKind.FRAMING)
        hits = resolver.resolve(_line((2000, -1000, 1500), (2000, 1000, 1500)), [wall, beam])
        kinds = sorted(h.kind.value for h, _ in hits)
        assert kinds == ["framing", "wall"]

    def test_wall_and_floor_together(self, resolver, make_wall, make_floor):
        wall = make_wall((0, 0), (5000, 0), thickness=200)
        slab = make_floor(x=(0, 5000), y=(-3000, 3000), top=3100)
        line = _line((2000, -1000, 1000), (2000, 1000, 5000))
        hits = resolver.resolve(line, [wall, slab])
        assert {h.kind for h, _ in hits} == {HostKind.WALL, HostKind.FLOOR}


# ── Candidates and edge cases ─────────────────────────────────────


class TestCandidates:
    def test_candidates_carry_element(self, resolver, make_wall, make_duct):
        wall = make_wall((0, 0), (5000, 0))
        duct = make_duct((2000, -1000, 1500), (2000, 1000, 1500))
        [candidate] = resolver.resolve_candidates(duct, [wall])
        assert candidate.routing_element is duct
        assert candidate.host is wall
        assert candidate.proximity == 0.0

    def test_no_intersection_is_empty_not_error(self, resolver, make_wall, make_duct):
        wall = make_wall((0, 0), (5000, 0))
        duct = make_duct((2000, 5000, 1500), (2000, 7000, 1500))
        assert resolver.resolve_candidates(duct, [wall]) == []

    def test_non_straight_element_rejected(self, resolver, make_wall, make_duct):
        duct = make_duct((2000, -1000, 1500), (2000, 1000, 1500)).model_copy(
            update={"curve_type": CurveType.ARC}
        )
        with pytest.raises(UnsupportedGeometry):
            resolver.resolve_candidates(duct, [make_wall((0, 0), (5000, 0))])

    def test_host_without_geometry_is_skipped(self, resolver, make_wall):
        ghost = StructuralHost(kind=HostKind.WALL, thickness=500)
        wall = make_wall((0, 0), (5000, 0))
        hits = resolver.resolve(_line((2000, -1000, 1500), (2000, 1000, 1500)), [ghost, wall])
        assert [h for h, _ in hits] == [wall]

    def test_host_with_degenerate_face_is_skipped(self, resolver, make_wall, make_collapsed_wall):
        wall = make_wall((0, 0), (5000, 0))
        broken = make_collapsed_wall((0, 300), (5000, 300))
        hits = resolver.resolve(_line((2000, -1000, 1500), (2000, 1000, 1500)), [broken, wall])
        assert [h for h, _ in hits] == [wall]


class TestHelpers:
    def test_probe_directions(self):
        dirs = probe_directions(Point3D(x=0, y=0, z=0), Point3D(x=10, y=0, z=0))
        vectors = [tuple(np.round(d, 6)) for d, _ in dirs]
        assert vectors == [(1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0)]
        assert [axial for _, axial in dirs] == [True, True, False, False]

    def test_probe_directions_vertical_line(self):
        dirs = probe_directions(Point3D(x=0, y=0, z=0), Point3D(x=0, y=0, z=10))
        assert tuple(np.round(dirs[2][0], 6)) == (1, 0, 0)

    def test_center_in_host_clamps_to_wall_length(self, make_wall):
        wall = make_wall((0, 0), (1000, 0), thickness=200)
        centered = center_in_host(Point3D(x=1200, y=-100, z=500), wall)
        assert centered == Point3D(x=1000, y=0, z=500)

    def test_center_in_host_without_normal(self, make_floor):
        p = Point3D(x=1, y=2, z=3)
        assert center_in_host(p, make_floor()) is p
