"""Collaborator protocols consumed by the placement engine.

The engine never touches a document directly: it reads elements through an
``ElementProvider``, resolves opening types through an ``OpeningTypeCatalog``
and mutates openings through an ``OpeningStore``.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Callable, Optional, Protocol

from mep_sleeves.models.elements import (
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


class ElementProvider(Protocol):
    def get_routing_elements(self, category: MepCategory) -> list[RoutingElement]:
        """Routing elements of one category, linked ones carrying their composed transform."""
        ...

    def get_structural_hosts(self) -> list[StructuralHost]:
        """All hosts, linked ones carrying their composed transform."""
        ...


class OpeningTypeCatalog(Protocol):
    def lookup(
        self,
        host_kind: HostKind,
        category: MepCategory,
        opening_class: OpeningClass = OpeningClass.INDIVIDUAL,
    ) -> Optional[OpeningTemplate]:
        ...


class OpeningStore(Protocol):
    def find_existing(self, predicate: Callable[[Opening], bool]) -> list[Opening]:
        ...

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
        """Instantiate an opening from ``template``.

        Raises:
            CreationFailure: If the opening cannot be instantiated.
        """
        ...

    def delete(self, opening_id: str) -> bool:
        ...

    def exists(self, opening_id: str) -> bool:
        ...

    def set_mark(self, opening_id: str, mark: Optional[str]) -> bool:
        ...

    def transaction(self, name: str) -> AbstractContextManager[None]:
        """Scoped all-or-nothing transaction.

        Raises:
            TransactionError: If the transaction cannot be opened.
        """
        ...
