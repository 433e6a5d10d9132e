"""Tests for duplicate suppression of individual and cluster candidates."""

import pytest

from mep_sleeves.models import HostKind, MepCategory, OpeningClass, Point3D
from mep_sleeves.placement.suppression import SuppressionService
from mep_sleeves.store.memory import DocumentStore

IND = OpeningClass.INDIVIDUAL
CLU = OpeningClass.CLUSTER


def _p(x: float, y: float = 0.0, z: float = 0.0) -> Point3D:
    return Point3D(x=x, y=y, z=z)


# ── Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def existing_individual(make_opening):
    return make_opening(0, category=MepCategory.PIPE)


@pytest.fixture
def existing_cluster(make_opening):
    """Cluster spanning x in [-50, 140], z in [-50, 50], y in [-100, 100]."""
    return make_opening(45, width=190, height=100, depth=200, opening_class=CLU)


# ── Individual candidates ─────────────────────────────────────────


class TestIndividualCandidates:
    def test_same_point_same_category(self, existing_individual, mm_tolerances):
        service = SuppressionService([existing_individual], mm_tolerances)
        assert service.may_suppress(_p(0), IND, MepCategory.PIPE)

    def test_50mm_away_not_suppressed(self, existing_individual, mm_tolerances):
        service = SuppressionService([existing_individual], mm_tolerances)
        assert not service.may_suppress(_p(50), IND, MepCategory.PIPE)

    def test_tolerance_is_inclusive(self, existing_individual, mm_tolerances):
        service = SuppressionService([existing_individual], mm_tolerances)
        assert service.may_suppress(_p(10), IND, MepCategory.PIPE)
        assert not service.may_suppress(_p(10.5), IND, MepCategory.PIPE)

    def test_other_category_not_suppressed(self, existing_individual, mm_tolerances):
        service = SuppressionService([existing_individual], mm_tolerances)
        assert not service.may_suppress(_p(0), IND, MepCategory.DUCT)

    def test_inside_cluster_suppressed(self, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_cluster], mm_tolerances)
        assert service.may_suppress(_p(100), IND, MepCategory.DUCT)

    def test_inside_cluster_of_other_category_suppressed(self, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_cluster], mm_tolerances)
        assert service.may_suppress(_p(100), IND, MepCategory.PIPE)

    def test_cluster_expansion(self, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_cluster], mm_tolerances)
        assert service.may_suppress(_p(148), IND, MepCategory.DUCT)
        assert not service.may_suppress(_p(160), IND, MepCategory.DUCT)

    def test_both_checks_run(self, existing_individual, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_individual, existing_cluster], mm_tolerances)
        assert service.find_nearby_individual(_p(0), MepCategory.PIPE) is existing_individual
        assert service.find_containing_cluster(_p(0), mm_tolerances.cluster_expansion) is existing_cluster
        assert service.may_suppress(_p(0), IND, MepCategory.PIPE)


# ── Cluster candidates ────────────────────────────────────────────


class TestClusterCandidates:
    def test_inside_existing_cluster(self, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_cluster], mm_tolerances)
        assert service.may_suppress(_p(100), CLU, MepCategory.DUCT, HostKind.WALL)

    def test_individuals_never_block_clusters(self, existing_individual, mm_tolerances):
        service = SuppressionService([existing_individual], mm_tolerances)
        assert not service.may_suppress(_p(0), CLU, MepCategory.PIPE, HostKind.WALL)

    def test_category_must_match(self, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_cluster], mm_tolerances)
        assert not service.may_suppress(_p(100), CLU, MepCategory.PIPE, HostKind.WALL)

    def test_host_kind_must_match(self, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_cluster], mm_tolerances)
        assert not service.may_suppress(_p(100), CLU, MepCategory.DUCT, HostKind.FLOOR)

    def test_cluster_suppression_expansion(self, existing_cluster, mm_tolerances):
        service = SuppressionService([existing_cluster], mm_tolerances)
        assert service.may_suppress(_p(230), CLU, MepCategory.DUCT, HostKind.WALL)
        assert not service.may_suppress(_p(260), CLU, MepCategory.DUCT, HostKind.WALL)


# ── Snapshot ──────────────────────────────────────────────────────


class TestSnapshot:
    def test_empty_inventory_never_suppresses(self, mm_tolerances):
        service = SuppressionService([], mm_tolerances)
        for cls in OpeningClass:
            assert not service.may_suppress(_p(0), cls, MepCategory.PIPE)

    def test_register_and_forget(self, make_opening, mm_tolerances):
        service = SuppressionService([], mm_tolerances)
        opening = make_opening(0, category=MepCategory.PIPE)
        service.register(opening)
        assert service.may_suppress(_p(0), IND, MepCategory.PIPE)
        service.forget(opening.global_id)
        assert not service.may_suppress(_p(0), IND, MepCategory.PIPE)

    def test_from_store(self, empty_document, existing_individual, existing_cluster, mm_tolerances):
        empty_document.openings.extend([existing_individual, existing_cluster])
        service = SuppressionService.from_store(DocumentStore(empty_document), mm_tolerances)
        assert service.individuals == [existing_individual]
        assert service.clusters == [existing_cluster]
