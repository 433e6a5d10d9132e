"""Placement engine: resolver, suppression, clustering and the orchestrator."""

from mep_sleeves.placement.clustering import (
    Cluster,
    MergedGeometry,
    are_adjacent,
    connected_components,
    form_clusters,
    merge_cluster,
)
from mep_sleeves.placement.orchestrator import PlacementOrchestrator, place_openings
from mep_sleeves.placement.report import RunReport
from mep_sleeves.placement.resolver import IntersectionCandidate, StructuralIntersectionResolver
from mep_sleeves.placement.suppression import SuppressionService

__all__ = [
    "Cluster",
    "MergedGeometry",
    "are_adjacent",
    "connected_components",
    "form_clusters",
    "merge_cluster",
    "PlacementOrchestrator",
    "place_openings",
    "RunReport",
    "IntersectionCandidate",
    "StructuralIntersectionResolver",
    "SuppressionService",
]
