"""Placement settings.

All lengths are given in millimeters and converted into the document's
internal unit once per run (``PlacementSettings.resolve``). The probe cutoff
is the exception: it is already an internal length.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from mep_sleeves.geometry.units import UnitConversion
from mep_sleeves.models.elements import MepCategory


class PlacementSettings(BaseModel):
    """Tolerances and policy switches for one placement run."""

    individual_tolerance_mm: float = Field(default=10.0, gt=0, description="Individual center-to-center")
    cluster_tolerance_mm: float = Field(default=100.0, gt=0, description="Cluster adjacency gap")
    elevation_tolerance_mm: float = Field(default=1.0, ge=0, description="Cluster elevation match")
    min_cluster_size_mm: float = Field(default=20.0, ge=0, description="Smallest merged width/height")
    cluster_expansion_mm: float = Field(
        default=10.0, ge=0, description="Cluster box growth when checking individual candidates"
    )
    cluster_suppression_expansion_mm: float = Field(
        default=100.0, ge=0, description="Cluster box growth when checking cluster candidates"
    )
    bbox_inclusion_tolerance_mm: float = Field(
        default=10.0, ge=0, description="Floor box growth in bounding-box mode"
    )
    probe_proximity_cutoff: float = Field(
        default=0.5, gt=0, description="Ray-probe first-hit cutoff, internal length units"
    )
    clearance_mm: float = Field(default=50.0, ge=0, description="Clearance per side")
    insulated_clearance_mm: float = Field(default=25.0, ge=0, description="Clearance per side, insulated")
    wall_aspect_keep: float = Field(default=1.5, gt=0)
    wall_aspect_swap: float = Field(default=0.67, gt=0)
    categories: list[MepCategory] = Field(default_factory=lambda: list(MepCategory))
    cluster_openings: bool = True

    @model_validator(mode="after")
    def aspect_band_ordered(self) -> PlacementSettings:
        if self.wall_aspect_swap > self.wall_aspect_keep:
            raise ValueError("wall_aspect_swap must not exceed wall_aspect_keep")
        return self

    @classmethod
    def load(cls, path: str | Path) -> PlacementSettings:
        """Load settings from a JSON file."""
        return cls.model_validate_json(Path(path).read_text())

    def resolve(self, units: Optional[UnitConversion] = None) -> ResolvedTolerances:
        """Tolerances converted into internal length units."""
        units = units or UnitConversion()
        return ResolvedTolerances(
            individual=units.to_internal(self.individual_tolerance_mm),
            cluster=units.to_internal(self.cluster_tolerance_mm),
            elevation=units.to_internal(self.elevation_tolerance_mm),
            min_cluster_size=units.to_internal(self.min_cluster_size_mm),
            cluster_expansion=units.to_internal(self.cluster_expansion_mm),
            cluster_suppression_expansion=units.to_internal(self.cluster_suppression_expansion_mm),
            bbox_inclusion=units.to_internal(self.bbox_inclusion_tolerance_mm),
            probe_cutoff=self.probe_proximity_cutoff,
            clearance=units.to_internal(self.clearance_mm),
            insulated_clearance=units.to_internal(self.insulated_clearance_mm),
        )


@dataclass(frozen=True)
class ResolvedTolerances:
    """Run tolerances in internal length units."""

    individual: float
    cluster: float
    elevation: float
    min_cluster_size: float
    cluster_expansion: float
    cluster_suppression_expansion: float
    bbox_inclusion: float
    probe_cutoff: float
    clearance: float
    insulated_clearance: float
