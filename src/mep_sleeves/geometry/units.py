"""Internal length unit ↔ millimeters.

Tolerances are always configured in millimeters and converted once per run
into the document's internal unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LengthUnit(str, Enum):
    """Internal linear unit of a model document."""

    FEET = "feet"
    METERS = "meters"
    MILLIMETERS = "millimeters"


MM_PER_UNIT: dict[LengthUnit, float] = {
    LengthUnit.FEET: 304.8,
    LengthUnit.METERS: 1000.0,
    LengthUnit.MILLIMETERS: 1.0,
}


@dataclass(frozen=True)
class UnitConversion:
    """Converts lengths between a document's internal unit and millimeters."""

    unit: LengthUnit = LengthUnit.FEET

    @property
    def mm_per_unit(self) -> float:
        return MM_PER_UNIT[self.unit]

    def to_internal(self, millimeters: float) -> float:
        return millimeters / self.mm_per_unit

    def to_mm(self, internal: float) -> float:
        return internal * self.mm_per_unit
