"""Document-backed element provider, opening catalog and opening store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from pydantic import ValidationError

from mep_sleeves.errors import CreationFailure, TransactionError
from mep_sleeves.geometry.units import UnitConversion
from mep_sleeves.models.document import LinkedModel, ModelDocument
from mep_sleeves.models.elements import (
    HOST_DOCUMENT,
    HostKind,
    MepCategory,
    Opening,
    OpeningClass,
    OpeningTemplate,
    OrientationTag,
    RoutingElement,
    StructuralHost,
)
from mep_sleeves.models.geometry import Point3D

logger = logging.getLogger(__name__)


def _linked_copy(
    element: RoutingElement | StructuralHost, link: LinkedModel
) -> RoutingElement | StructuralHost:
    """Element copy carrying the link placement composed onto its own transform."""
    return element.model_copy(
        update={
            "transform": link.transform.compose(element.transform),
            "source_id": link.global_id if element.source_id == HOST_DOCUMENT else element.source_id,
        }
    )


class DocumentStore:
    """Implements ElementProvider, OpeningTypeCatalog and OpeningStore over one document.

    Mutations are only allowed inside ``transaction()``. Leaving the
    transaction by an exception restores the openings as they were when it
    was opened.
    """

    def __init__(self, document: ModelDocument):
        self.document = document
        self.units = UnitConversion(document.units)
        self._active: Optional[str] = None

    # ── ElementProvider ───────────────────────────────────────────────

    def get_routing_elements(self, category: MepCategory) -> list[RoutingElement]:
        elements = [e for e in self.document.routing_elements if e.category == category]
        for link in self.document.linked_models:
            elements.extend(
                _linked_copy(e, link) for e in link.routing_elements if e.category == category
            )
        return elements

    def get_structural_hosts(self) -> list[StructuralHost]:
        hosts = list(self.document.structural_hosts)
        for link in self.document.linked_models:
            hosts.extend(_linked_copy(h, link) for h in link.structural_hosts)
        return hosts

    # ── OpeningTypeCatalog ────────────────────────────────────────────

    def lookup(
        self,
        host_kind: HostKind,
        category: MepCategory,
        opening_class: OpeningClass = OpeningClass.INDIVIDUAL,
    ) -> Optional[OpeningTemplate]:
        return next(
            (
                t for t in self.document.templates
                if t.host_kind == host_kind
                and t.category == category
                and t.opening_class == opening_class
            ),
            None,
        )

    # ── OpeningStore ──────────────────────────────────────────────────

    @property
    def in_transaction(self) -> bool:
        return self._active is not None

    def _require_transaction(self, action: str) -> None:
        if self._active is None:
            raise TransactionError(f"Cannot {action} outside a transaction")

    def find_existing(self, predicate: Callable[[Opening], bool]) -> list[Opening]:
        return [o for o in self.document.openings if predicate(o)]

    def create(
        self,
        template: OpeningTemplate,
        point: Point3D,
        rotation: float,
        width: float,
        height: float,
        depth: float,
        *,
        orientation_tag: OrientationTag = OrientationTag.UNKNOWN,
        host_id: Optional[str] = None,
        level_id: Optional[str] = None,
        parameters: Optional[dict[str, float]] = None,
    ) -> Opening:
        self._require_transaction("create an opening")
        values = {
            template.width_parameter: width,
            template.height_parameter: height,
            template.depth_parameter: depth,
        }
        if parameters:
            values.update(parameters)
        try:
            opening = Opening(
                name=template.name,
                opening_class=template.opening_class,
                category=template.category,
                host_kind=template.host_kind,
                host_id=host_id,
                template_id=template.global_id,
                position=point,
                rotation=rotation,
                orientation_tag=orientation_tag,
                width=width,
                height=height,
                depth=depth,
                level_id=level_id,
                parameters=values,
            )
        except ValidationError as exc:
            raise CreationFailure(f"Cannot instantiate '{template.name}': {exc}") from exc
        self.document.openings.append(opening)
        logger.debug("Created %s opening %s at %s", opening.opening_class.value, opening.global_id, point)
        return opening

    def delete(self, opening_id: str) -> bool:
        self._require_transaction("delete an opening")
        before = len(self.document.openings)
        self.document.openings = [o for o in self.document.openings if o.global_id != opening_id]
        return len(self.document.openings) < before

    def exists(self, opening_id: str) -> bool:
        return self.document.get_opening(opening_id) is not None

    def set_mark(self, opening_id: str, mark: Optional[str]) -> bool:
        self._require_transaction("mark an opening")
        opening = self.document.get_opening(opening_id)
        if opening is None:
            return False
        opening.mark = mark
        return True

    @contextmanager
    def transaction(self, name: str) -> Iterator[None]:
        if self._active is not None:
            raise TransactionError(
                f"Cannot open transaction '{name}': '{self._active}' is still open"
            )
        snapshot = [o.model_copy(deep=True) for o in self.document.openings]
        self._active = name
        logger.debug("Transaction '%s' opened", name)
        try:
            yield
        except BaseException:
            self.document.openings = snapshot
            logger.warning("Transaction '%s' rolled back", name)
            raise
        finally:
            self._active = None
        logger.debug("Transaction '%s' committed", name)
