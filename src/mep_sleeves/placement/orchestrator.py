"""Placement orchestrator: one batch run over all routing elements.

A run opens one transaction, places individual openings category by
category, then optionally consolidates adjacent individuals into cluster
openings. Element-level faults are logged and counted; the run carries on.
Failing to open the transaction fails the whole run. Any other exception
escaping the run rolls the transaction back and propagates.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from mep_sleeves.errors import (
    CreationFailure,
    GeometryUnavailable,
    PlacementError,
    SkipReason,
    TransactionError,
    UnsupportedGeometry,
)
from mep_sleeves.geometry.units import UnitConversion
from mep_sleeves.models.document import ModelDocument
from mep_sleeves.models.elements import (
    MepCategory,
    OpeningClass,
    RoutingElement,
    StructuralHost,
)
from mep_sleeves.models.geometry import BoundingBox3D
from mep_sleeves.models.settings import PlacementSettings
from mep_sleeves.placement.clustering import Cluster, form_clusters, merge_cluster
from mep_sleeves.placement.report import RunReport
from mep_sleeves.placement.resolver import IntersectionCandidate, StructuralIntersectionResolver
from mep_sleeves.placement.sizing import size_opening
from mep_sleeves.placement.suppression import SuppressionService
from mep_sleeves.store.interfaces import ElementProvider, OpeningStore, OpeningTypeCatalog
from mep_sleeves.store.memory import DocumentStore

logger = logging.getLogger(__name__)

PLACE_TRANSACTION = "Place MEP openings"
CLUSTER_TRANSACTION = "Cluster MEP openings"


class PlacementOrchestrator:
    """Runs resolver, suppression and clustering against the external stores."""

    def __init__(
        self,
        provider: ElementProvider,
        catalog: OpeningTypeCatalog,
        store: OpeningStore,
        settings: Optional[PlacementSettings] = None,
        units: Optional[UnitConversion] = None,
    ):
        self.provider = provider
        self.catalog = catalog
        self.store = store
        self.settings = settings or PlacementSettings()
        self.units = units or UnitConversion()
        self.tolerances = self.settings.resolve(self.units)
        self.resolver = StructuralIntersectionResolver(self.tolerances)

    @classmethod
    def for_document(
        cls,
        document: ModelDocument,
        settings: Optional[PlacementSettings] = None,
    ) -> PlacementOrchestrator:
        store = DocumentStore(document)
        return cls(store, store, store, settings, store.units)

    # ── Runs ──────────────────────────────────────────────────────────

    def run(
        self,
        categories: Optional[Iterable[MepCategory]] = None,
        cluster: Optional[bool] = None,
        region: Optional[BoundingBox3D] = None,
    ) -> RunReport:
        """Full pipeline: individual placement, then the cluster pass.

        With ``region`` (host space), only routing elements and hosts whose
        boxes touch it take part, and only individuals centered in it are
        clustered. Openings outside it still suppress duplicates.
        """
        categories = list(categories) if categories is not None else list(self.settings.categories)
        if cluster is None:
            cluster = self.settings.cluster_openings

        def body(report: RunReport, suppression: SuppressionService, hosts: list[StructuralHost]) -> None:
            for category in categories:
                self._place_category(category, hosts, suppression, report, region)
            if cluster:
                self._cluster_pass(hosts, suppression, report, region)

        return self._run(PLACE_TRANSACTION, body, region)

    def run_cluster_pass(self, region: Optional[BoundingBox3D] = None) -> RunReport:
        """Consolidate existing individual openings only."""
        return self._run(
            CLUSTER_TRANSACTION,
            lambda report, suppression, hosts: self._cluster_pass(hosts, suppression, report, region),
            region,
        )

    def _run(
        self,
        name: str,
        body: Callable[[RunReport, SuppressionService, list[StructuralHost]], None],
        region: Optional[BoundingBox3D] = None,
    ) -> RunReport:
        report = RunReport()
        opened = False
        try:
            with self.store.transaction(name):
                opened = True
                # Snapshot taken inside the transaction, fresh every run.
                suppression = SuppressionService.from_store(self.store, self.tolerances)
                body(report, suppression, self._load_hosts(region))
        except TransactionError as exc:
            if opened:
                raise
            logger.error("Run '%s' failed: %s", name, exc)
            report.mark_failed(str(exc))
            return report

        logger.info("Run '%s' finished: %s", name, report.summary_line())
        for warning in report.warnings:
            logger.warning(warning)
        return report

    def _load_hosts(self, region: Optional[BoundingBox3D] = None) -> list[StructuralHost]:
        hosts = []
        for host in self.provider.get_structural_hosts():
            try:
                host = host.to_host_space()
                box = host.bounding_box()
                host.geometry()
            except GeometryUnavailable as exc:
                logger.warning("Host %s unusable: %s", host.global_id, exc)
                continue
            if region is not None and not region.intersects(box):
                continue
            hosts.append(host)
        return hosts

    def _in_region(self, element: RoutingElement, region: Optional[BoundingBox3D]) -> bool:
        if region is None:
            return True
        line_box = BoundingBox3D.from_points(element.to_host_space().centerline)
        return region.intersects(line_box)

    # ── Individual openings ───────────────────────────────────────────

    def _place_category(
        self,
        category: MepCategory,
        hosts: list[StructuralHost],
        suppression: SuppressionService,
        report: RunReport,
        region: Optional[BoundingBox3D] = None,
    ) -> None:
        elements = [e for e in self.provider.get_routing_elements(category) if self._in_region(e, region)]
        logger.info("Placing %s openings for %d element(s)", category.value, len(elements))
        for element in elements:
            try:
                self._place_element(element, hosts, suppression, report)
            except UnsupportedGeometry as exc:
                logger.warning("Skipping %s: %s", element.global_id, exc)
                report.record_skip(SkipReason.UNSUPPORTED_GEOMETRY)
            except GeometryUnavailable as exc:
                logger.warning("Skipping %s: %s", element.global_id, exc)
                report.record_skip(SkipReason.GEOMETRY_UNAVAILABLE)
            except (PlacementError, ValueError) as exc:
                logger.error("Failed on %s %s: %s", category.value, element.global_id, exc)
                report.record_error(f"{element.global_id}: {exc}")

    def _place_element(
        self,
        element: RoutingElement,
        hosts: list[StructuralHost],
        suppression: SuppressionService,
        report: RunReport,
    ) -> None:
        element = element.to_host_space()
        candidates = self.resolver.resolve_candidates(element, hosts)
        if not candidates:
            report.record_skip(SkipReason.NO_INTERSECTION)
            return
        for candidate in candidates:
            self._place_candidate(candidate, suppression, report)

    def _place_candidate(
        self,
        candidate: IntersectionCandidate,
        suppression: SuppressionService,
        report: RunReport,
    ) -> None:
        element, host = candidate.routing_element, candidate.host
        if suppression.may_suppress(
            candidate.point, OpeningClass.INDIVIDUAL, element.category, host.kind
        ):
            report.record_skip(SkipReason.SUPPRESSED_DUPLICATE)
            return

        template = self.catalog.lookup(host.kind, element.category, OpeningClass.INDIVIDUAL)
        if template is None:
            message = f"No individual opening template for {element.category.value} in {host.kind.value}"
            logger.warning("%s (element %s)", message, element.global_id)
            report.record_skip(SkipReason.MISSING_TEMPLATE, message)
            return

        size = size_opening(element, host, self.tolerances)
        try:
            opening = self.store.create(
                template,
                candidate.point,
                size.rotation,
                size.width,
                size.height,
                size.depth,
                orientation_tag=size.orientation_tag,
                host_id=host.global_id,
                level_id=element.level_id or host.level_id,
            )
            if not self.store.exists(opening.global_id):
                raise CreationFailure(f"Opening {opening.global_id} vanished after creation")
        except CreationFailure as exc:
            logger.error("Could not place opening for %s: %s", element.global_id, exc)
            report.record_error(f"{element.global_id}: {exc}")
            return

        suppression.register(opening)
        report.record_placed(opening.global_id)
        logger.debug(
            "Placed %s opening %s in %s %s",
            element.category.value, opening.global_id, host.kind.value, host.global_id,
        )

    # ── Cluster openings ──────────────────────────────────────────────

    def _cluster_pass(
        self,
        hosts: list[StructuralHost],
        suppression: SuppressionService,
        report: RunReport,
        region: Optional[BoundingBox3D] = None,
    ) -> None:
        individuals = self.store.find_existing(
            lambda o: o.opening_class == OpeningClass.INDIVIDUAL
            and (region is None or region.contains(o.position))
        )
        hosts_by_id = {h.global_id: h for h in hosts}
        for cluster in form_clusters(individuals, self.tolerances):
            try:
                self._place_cluster(cluster, hosts_by_id, suppression, report)
            except (PlacementError, ValueError) as exc:
                logger.error("Failed on cluster of %s: %s", cluster.member_ids, exc)
                report.record_error(f"cluster {cluster.member_ids}: {exc}")

    def _place_cluster(
        self,
        cluster: Cluster,
        hosts_by_id: dict[str, StructuralHost],
        suppression: SuppressionService,
        report: RunReport,
    ) -> None:
        template = self.catalog.lookup(cluster.host_kind, cluster.category, OpeningClass.CLUSTER)
        if template is None:
            message = f"No cluster opening template for {cluster.category.value} in {cluster.host_kind.value}"
            logger.warning("%s (%d members left as they are)", message, len(cluster.members))
            report.record_skip(SkipReason.MISSING_TEMPLATE, message)
            return

        host = hosts_by_id.get(cluster.host_id) if cluster.host_id else None
        merged = merge_cluster(
            cluster,
            host_thickness=host.thickness if host is not None else None,
            keep_above=self.settings.wall_aspect_keep,
            swap_below=self.settings.wall_aspect_swap,
        )
        if merged.is_degenerate(self.tolerances.min_cluster_size):
            logger.warning(
                "Cluster of %d %s openings too small (%.4f x %.4f), skipped",
                len(cluster.members), cluster.category.value, merged.width, merged.height,
            )
            report.record_skip(SkipReason.DEGENERATE_CLUSTER)
            return

        if suppression.may_suppress(
            merged.center, OpeningClass.CLUSTER, cluster.category, cluster.host_kind
        ):
            report.record_skip(SkipReason.SUPPRESSED_DUPLICATE)
            return

        try:
            opening = self.store.create(
                template,
                merged.center,
                merged.rotation,
                merged.width,
                merged.height,
                merged.depth,
                orientation_tag=merged.orientation_tag,
                host_id=merged.host_id,
                level_id=merged.level_id,
                parameters={
                    template.width_parameter: merged.parameter_width,
                    template.height_parameter: merged.parameter_height,
                },
            )
            if not self.store.exists(opening.global_id):
                raise CreationFailure(f"Cluster opening {opening.global_id} vanished after creation")
        except CreationFailure as exc:
            logger.error("Could not place cluster opening, members kept: %s", exc)
            report.record_error(f"cluster {cluster.member_ids}: {exc}")
            return

        suppression.register(opening)
        report.record_placed(opening.global_id, cluster=True)
        # Members go only once the replacement is confirmed to exist.
        for member in cluster.members:
            if self.store.delete(member.global_id):
                report.record_deleted(member.global_id)
            suppression.forget(member.global_id)
        logger.info(
            "Merged %d %s openings into cluster %s",
            len(cluster.members), cluster.category.value, opening.global_id,
        )


def place_openings(
    document: ModelDocument,
    settings: Optional[PlacementSettings] = None,
    categories: Optional[Iterable[MepCategory]] = None,
    cluster: Optional[bool] = None,
    region: Optional[BoundingBox3D] = None,
) -> RunReport:
    """Run the full pipeline on a document in place."""
    return PlacementOrchestrator.for_document(document, settings).run(categories, cluster, region)
