"""Duplicate suppression for candidate openings.

A ``SuppressionService`` is built from a snapshot of the openings that exist
when a run starts, and kept current by the run itself as it creates and
deletes openings. Nothing is cached between runs.

Rules:

- Individual candidate: suppressed when an existing individual opening of
  the same category is within the individual tolerance (center to center),
  or when the point falls inside any cluster opening's box grown by the
  cluster expansion. Both checks always run.
- Cluster candidate: suppressed only when the point falls inside a cluster
  opening of the same category and host kind, grown by the cluster
  suppression expansion. Individuals never block a cluster, since the
  cluster is meant to replace them.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from mep_sleeves.models.elements import HostKind, MepCategory, Opening, OpeningClass
from mep_sleeves.models.geometry import Point3D
from mep_sleeves.models.settings import ResolvedTolerances
from mep_sleeves.store.interfaces import OpeningStore

logger = logging.getLogger(__name__)


class SuppressionService:
    """Decides whether a candidate placement duplicates an existing opening."""

    def __init__(self, openings: Iterable[Opening], tolerances: ResolvedTolerances):
        self.tolerances = tolerances
        self._individuals: dict[str, Opening] = {}
        self._clusters: dict[str, Opening] = {}
        for opening in openings:
            self.register(opening)

    @classmethod
    def from_store(cls, store: OpeningStore, tolerances: ResolvedTolerances) -> SuppressionService:
        """Snapshot of the live opening inventory."""
        return cls(store.find_existing(lambda o: True), tolerances)

    # ── Snapshot maintenance ──────────────────────────────────────────

    def register(self, opening: Opening) -> None:
        if opening.opening_class == OpeningClass.CLUSTER:
            self._clusters[opening.global_id] = opening
        else:
            self._individuals[opening.global_id] = opening

    def forget(self, opening_id: str) -> None:
        self._individuals.pop(opening_id, None)
        self._clusters.pop(opening_id, None)

    @property
    def individuals(self) -> list[Opening]:
        return list(self._individuals.values())

    @property
    def clusters(self) -> list[Opening]:
        return list(self._clusters.values())

    # ── Queries ───────────────────────────────────────────────────────

    def may_suppress(
        self,
        point: Point3D,
        opening_class: OpeningClass,
        category: MepCategory,
        host_kind: Optional[HostKind] = None,
    ) -> bool:
        """True when a candidate at ``point`` would duplicate an existing opening."""
        if opening_class == OpeningClass.CLUSTER:
            blocker = self.find_containing_cluster(
                point,
                self.tolerances.cluster_suppression_expansion,
                category=category,
                host_kind=host_kind,
            )
            if blocker is not None:
                logger.info("Cluster candidate at %s lies inside cluster %s", point, blocker.global_id)
                return True
            return False

        nearby = self.find_nearby_individual(point, category)
        containing = self.find_containing_cluster(point, self.tolerances.cluster_expansion)
        if nearby is not None:
            logger.info(
                "Individual %s candidate at %s duplicates opening %s",
                category.value, point, nearby.global_id,
            )
        if containing is not None:
            logger.info(
                "Individual %s candidate at %s lies inside cluster %s",
                category.value, point, containing.global_id,
            )
        return nearby is not None or containing is not None

    def find_nearby_individual(self, point: Point3D, category: MepCategory) -> Optional[Opening]:
        """Same-category individual opening within the individual tolerance."""
        return next(
            (
                o for o in self._individuals.values()
                if o.category == category
                and o.position.distance_to(point) <= self.tolerances.individual
            ),
            None,
        )

    def find_containing_cluster(
        self,
        point: Point3D,
        expansion: float,
        category: Optional[MepCategory] = None,
        host_kind: Optional[HostKind] = None,
    ) -> Optional[Opening]:
        """Cluster opening whose box, grown by ``expansion``, contains ``point``."""
        for cluster in self._clusters.values():
            if category is not None and cluster.category != category:
                continue
            if host_kind is not None and cluster.host_kind != host_kind:
                continue
            if cluster.bbox.contains(point, expansion):
                return cluster
        return None
