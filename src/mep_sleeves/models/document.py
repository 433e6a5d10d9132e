"""Model document: the host element store with its linked models.

A document is the persisted state of a run. Openings created or deleted by
the placement engine are written back into ``openings``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from mep_sleeves.geometry.units import LengthUnit
from mep_sleeves.models.elements import (
    Level,
    Opening,
    OpeningTemplate,
    RoutingElement,
    StructuralHost,
)
from mep_sleeves.models.geometry import Transform
from mep_sleeves.models.ifc_id import generate_ifc_id


class LinkedModel(BaseModel):
    """An externally referenced model placed into the host by ``transform``."""

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str
    transform: Transform = Field(default_factory=Transform)
    routing_elements: list[RoutingElement] = Field(default_factory=list)
    structural_hosts: list[StructuralHost] = Field(default_factory=list)


class ModelDocument(BaseModel):
    """Host document: native elements, linked models, templates and openings."""

    name: str
    units: LengthUnit = LengthUnit.FEET
    levels: list[Level] = Field(default_factory=list)
    routing_elements: list[RoutingElement] = Field(default_factory=list)
    structural_hosts: list[StructuralHost] = Field(default_factory=list)
    templates: list[OpeningTemplate] = Field(default_factory=list)
    openings: list[Opening] = Field(default_factory=list)
    linked_models: list[LinkedModel] = Field(default_factory=list)

    # ── Serialization ─────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> ModelDocument:
        """Load a document from a JSON file."""
        path = Path(path)
        return cls.model_validate_json(path.read_text())

    def save(self, path: str | Path) -> Path:
        """Save the document to a JSON file. Creates parent dirs if needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))
        return path

    # ── Lookups ───────────────────────────────────────────────────────

    def get_level(self, level_id: str) -> Optional[Level]:
        return next((lv for lv in self.levels if lv.global_id == level_id), None)

    def get_level_by_name(self, name: str) -> Optional[Level]:
        return next((lv for lv in self.levels if lv.name == name), None)

    def get_opening(self, opening_id: str) -> Optional[Opening]:
        return next((o for o in self.openings if o.global_id == opening_id), None)

    def get_host(self, host_id: str) -> Optional[StructuralHost]:
        hosts = list(self.structural_hosts)
        for link in self.linked_models:
            hosts.extend(link.structural_hosts)
        return next((h for h in hosts if h.global_id == host_id), None)

    # ── Authoring helpers ─────────────────────────────────────────────

    def add_level(self, name: str, elevation: float = 0.0) -> Level:
        level = Level(name=name, elevation=elevation)
        self.levels.append(level)
        return level

    def add_template(self, template: OpeningTemplate) -> OpeningTemplate:
        self.templates.append(template)
        return template
