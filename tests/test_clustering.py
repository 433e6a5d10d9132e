"""Tests for adjacency, cluster formation, the spatial grid and merge geometry."""

import itertools
import random

import pytest

from mep_sleeves.models import HostKind, MepCategory, OpeningClass, OrientationTag
from mep_sleeves.placement.clustering import (
    Cluster,
    are_adjacent,
    connected_components,
    form_clusters,
    merge_cluster,
    planar_gap,
    wall_parameter_size,
)
from mep_sleeves.placement.grid import SpatialGrid


def _ids(components):
    return sorted(sorted(o.global_id for o in comp) for comp in components)


# ── Scenarios ─────────────────────────────────────────────────────


class TestScenarios:
    def test_two_overlapping_ducts_merge(self, make_opening, mm_tolerances):
        """Gap = 90mm - 100mm = -10mm, within tolerance."""
        a = make_opening(0)
        b = make_opening(90)
        assert planar_gap(a, b) == pytest.approx(-10.0)
        clusters = form_clusters([a, b], mm_tolerances)
        assert len(clusters) == 1
        merged = merge_cluster(clusters[0])
        box = clusters[0].bbox
        assert box.min.x == pytest.approx(-50.0)
        assert box.max.x == pytest.approx(140.0)
        assert merged.width == pytest.approx(190.0)
        assert merged.center.x == pytest.approx(45.0)

    def test_far_opening_stays_singleton(self, make_opening, mm_tolerances):
        a, b, c = make_opening(0), make_opening(90), make_opening(5000)
        assert planar_gap(b, c) == pytest.approx(4810.0)
        clusters = form_clusters([a, b, c], mm_tolerances)
        assert len(clusters) == 1
        assert c.global_id not in clusters[0].member_ids
        components = connected_components([a, b, c], mm_tolerances)
        assert sorted(len(comp) for comp in components) == [1, 2]


# ── Adjacency ─────────────────────────────────────────────────────


class TestAdjacency:
    def test_gap_at_tolerance_is_adjacent(self, make_opening, mm_tolerances):
        # 200mm apart, half size 100mm: gap exactly 100mm
        assert are_adjacent(make_opening(0), make_opening(200), mm_tolerances)
        assert not are_adjacent(make_opening(0), make_opening(201), mm_tolerances)

    def test_elevation_must_match(self, make_opening, mm_tolerances):
        assert are_adjacent(make_opening(0, z=0), make_opening(50, z=1), mm_tolerances)
        assert not are_adjacent(make_opening(0, z=0), make_opening(50, z=2), mm_tolerances)

    def test_different_group_never_adjacent(self, make_opening, mm_tolerances):
        a = make_opening(0)
        assert not are_adjacent(a, make_opening(50, category=MepCategory.PIPE), mm_tolerances)
        assert not are_adjacent(a, make_opening(50, host_kind=HostKind.FLOOR), mm_tolerances)
        assert not are_adjacent(a, make_opening(50, orientation_tag=OrientationTag.X), mm_tolerances)

    def test_symmetric(self, make_opening, mm_tolerances):
        rng = random.Random(7)
        openings = [
            make_opening(
                rng.uniform(0, 2000),
                y=rng.uniform(0, 500),
                z=rng.choice([0.0, 0.5, 3.0]),
                width=rng.uniform(20, 400),
                height=rng.uniform(20, 400),
            )
            for _ in range(30)
        ]
        for a, b in itertools.combinations(openings, 2):
            assert are_adjacent(a, b, mm_tolerances) == are_adjacent(b, a, mm_tolerances)


# ── Components ────────────────────────────────────────────────────


class TestComponents:
    def test_chain_is_one_cluster(self, make_opening, mm_tolerances):
        # neighbours 190mm apart, gap 90mm
        chain = [make_opening(i * 190) for i in range(5)]
        clusters = form_clusters(chain, mm_tolerances)
        assert len(clusters) == 1
        assert len(clusters[0].members) == 5

    def test_groups_never_mix(self, make_opening, mm_tolerances):
        ducts = [make_opening(0), make_opening(90)]
        pipes = [make_opening(0, category=MepCategory.PIPE), make_opening(90, category=MepCategory.PIPE)]
        clusters = form_clusters(ducts + pipes, mm_tolerances)
        assert len(clusters) == 2
        for cluster in clusters:
            assert len({m.category for m in cluster.members}) == 1

    def test_cluster_openings_ignored(self, make_opening, mm_tolerances):
        a = make_opening(0)
        b = make_opening(90, opening_class=OpeningClass.CLUSTER)
        assert form_clusters([a, b], mm_tolerances) == []

    def test_empty(self, mm_tolerances):
        assert form_clusters([], mm_tolerances) == []

    def test_grid_matches_brute_force(self, make_opening, mm_tolerances):
        rng = random.Random(42)
        openings = [
            make_opening(
                rng.uniform(0, 3000),
                y=rng.uniform(0, 3000),
                width=rng.uniform(20, 300),
                height=rng.uniform(20, 300),
            )
            for _ in range(60)
        ]
        # brute-force union-find over all pairs
        parent = {o.global_id: o.global_id for o in openings}

        def find(x):
            while parent[x] != x:
                x = parent[x]
            return x

        for a, b in itertools.combinations(openings, 2):
            if are_adjacent(a, b, mm_tolerances):
                parent[find(a.global_id)] = find(b.global_id)
        expected: dict[str, list[str]] = {}
        for o in openings:
            expected.setdefault(find(o.global_id), []).append(o.global_id)

        actual = connected_components(openings, mm_tolerances)
        assert _ids(actual) == sorted(sorted(ids) for ids in expected.values())


class TestSpatialGrid:
    def test_neighbours_share_cells(self):
        grid = SpatialGrid(100.0)
        grid.insert(0, 0, 0, 60)
        grid.insert(1, 150, 0, 60)
        grid.insert(2, 1000, 1000, 60)
        assert grid.neighbours(0) == {1}
        assert grid.neighbours(2) == set()
        assert len(grid) == 3

    def test_cell_size_must_be_positive(self):
        with pytest.raises(ValueError):
            SpatialGrid(0)


# ── Merge geometry ────────────────────────────────────────────────


class TestMerge:
    def test_merged_box_contains_members(self, make_opening, mm_tolerances):
        rng = random.Random(3)
        openings = [
            make_opening(i * 100 + rng.uniform(-20, 20),
                         width=rng.uniform(50, 200), height=rng.uniform(50, 200))
            for i in range(6)
        ]
        clusters = form_clusters(openings, mm_tolerances)
        assert len(clusters) == 1
        for cluster in clusters:
            merged = merge_cluster(cluster)
            replacement = make_opening(
                merged.center.x, y=merged.center.y, z=merged.center.z,
                width=merged.width, height=merged.height, depth=merged.depth,
                rotation=merged.rotation, opening_class=OpeningClass.CLUSTER,
            )
            for member in cluster.members:
                assert replacement.bbox.contains_box(member.bbox, tolerance=1e-6)

    def test_merge_on_floor(self, make_opening):
        a = make_opening(0, y=0, host_kind=HostKind.FLOOR, orientation_tag=OrientationTag.FLOOR)
        b = make_opening(100, y=100, host_kind=HostKind.FLOOR, orientation_tag=OrientationTag.FLOOR)
        merged = merge_cluster(Cluster(members=[a, b]))
        assert merged.width == pytest.approx(200.0)
        assert merged.height == pytest.approx(200.0)
        assert (merged.parameter_width, merged.parameter_height) == (merged.width, merged.height)

    def test_depth_from_members(self, make_opening):
        merged = merge_cluster(Cluster(members=[make_opening(0, depth=150), make_opening(90, depth=250)]))
        assert merged.depth == 250

    def test_host_thickness_wins(self, make_opening):
        cluster = Cluster(members=[make_opening(0, depth=150), make_opening(90, depth=250)])
        assert merge_cluster(cluster, host_thickness=300).depth == 300

    def test_wide_wall_cluster_keeps_orientation(self, make_opening):
        merged = merge_cluster(Cluster(members=[make_opening(0), make_opening(90)]))
        # 190 x 100, aspect 1.9
        assert (merged.parameter_width, merged.parameter_height) == pytest.approx((190.0, 100.0))

    def test_degenerate(self, make_opening):
        members = [make_opening(0, width=5, height=15), make_opening(10, width=5, height=15)]
        merged = merge_cluster(Cluster(members=members))
        assert merged.width == pytest.approx(15.0)
        assert merged.height == pytest.approx(15.0)
        assert merged.is_degenerate(20.0)

    def test_host_id_is_majority(self, make_opening):
        members = [make_opening(0, host_id="A"), make_opening(50, host_id="B"), make_opening(90, host_id="B")]
        assert Cluster(members=members).host_id == "B"


class TestWallParameterSize:
    @pytest.mark.parametrize(
        "width, height, expected",
        [
            (300, 100, (300, 100)),  # aspect 3.0 keeps
            (100, 300, (300, 100)),  # aspect 0.33 swaps
            (100, 100, (100, 100)),  # square: swap is a no-op
            (120, 100, (100, 120)),  # aspect 1.2 swaps
        ],
    )
    def test_rule(self, width, height, expected):
        assert wall_parameter_size(width, height) == expected

    def test_band_edges(self):
        assert wall_parameter_size(150, 100) == (100, 150)  # exactly 1.5 is not above
        assert wall_parameter_size(151, 100) == (151, 100)
