"""End-of-run report."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from mep_sleeves.errors import SkipReason


@dataclass
class RunReport:
    """Placed, skipped and errored counts for one placement run."""

    placed: int = 0
    skipped: int = 0
    errored: int = 0
    clusters_placed: int = 0
    openings_deleted: int = 0
    skip_reasons: Counter = field(default_factory=Counter)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    deleted_ids: list[str] = field(default_factory=list)
    failed: bool = False
    message: Optional[str] = None

    def record_placed(self, opening_id: str, cluster: bool = False) -> None:
        self.placed += 1
        if cluster:
            self.clusters_placed += 1
        self.created_ids.append(opening_id)

    def record_skip(self, reason: SkipReason, warning: Optional[str] = None) -> None:
        self.skipped += 1
        self.skip_reasons[reason.value] += 1
        if warning and warning not in self.warnings:
            self.warnings.append(warning)

    def record_error(self, message: str) -> None:
        self.errored += 1
        self.errors.append(message)

    def record_deleted(self, opening_id: str) -> None:
        self.openings_deleted += 1
        self.deleted_ids.append(opening_id)

    def mark_failed(self, message: str) -> None:
        self.failed = True
        self.message = message

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "placed": self.placed,
            "skipped": self.skipped,
            "errored": self.errored,
            "clusters_placed": self.clusters_placed,
            "openings_deleted": self.openings_deleted,
            "skip_reasons": dict(self.skip_reasons),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "message": self.message,
        }

    def summary_line(self) -> str:
        return f"placed={self.placed} skipped={self.skipped} errored={self.errored}"
