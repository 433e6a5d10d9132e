"""Maintenance helpers over the opening inventory: cleanup, marks and summaries."""

from __future__ import annotations

import logging
from collections import Counter

from mep_sleeves.models.elements import MepCategory, Opening, OpeningClass
from mep_sleeves.models.geometry import Point3D
from mep_sleeves.store.interfaces import OpeningStore

logger = logging.getLogger(__name__)


def delete_zero_size_openings(store: OpeningStore) -> list[str]:
    """Delete openings with a zero width, height or depth. Needs an open transaction."""
    doomed = store.find_existing(lambda o: o.is_zero_size)
    deleted = [o.global_id for o in doomed if store.delete(o.global_id)]
    if deleted:
        logger.info("Deleted %d zero-size opening(s)", len(deleted))
    return deleted


MARK_CODES: dict[MepCategory, str] = {
    MepCategory.PIPE: "PO",
    MepCategory.DUCT: "DO",
    MepCategory.DAMPER: "DA",
    MepCategory.CABLE_TRAY: "CT",
}


def assign_marks(store: OpeningStore, prefix: str = "") -> dict[str, str]:
    """Renumber every opening's mark per category, e.g. ``L1-DO-001``.

    Existing marks are replaced. Numbering follows inventory order and
    restarts at 1 for each category. Needs an open transaction.

    Returns:
        Mark per opening id.
    """
    counters: Counter[MepCategory] = Counter()
    marks = {}
    for opening in store.find_existing(lambda o: True):
        counters[opening.category] += 1
        mark = f"{prefix}{MARK_CODES[opening.category]}-{counters[opening.category]:03d}"
        if store.set_mark(opening.global_id, mark):
            marks[opening.global_id] = mark
    logger.info("Assigned %d mark(s)", len(marks))
    return marks


def _describe(opening: Opening, point: Point3D) -> dict:
    return {
        "id": opening.global_id,
        "mark": opening.mark,
        "category": opening.category.value,
        "host_kind": opening.host_kind.value,
        "orientation": opening.orientation_tag.value,
        "distance": round(opening.position.distance_to(point), 6),
        "width": opening.width,
        "height": opening.height,
        "depth": opening.depth,
    }


def summarize_openings_at(store: OpeningStore, point: Point3D, tolerance: float) -> dict:
    """Openings near ``point``: individuals by center distance, clusters by box containment."""
    individuals = store.find_existing(
        lambda o: o.opening_class == OpeningClass.INDIVIDUAL
        and o.position.distance_to(point) <= tolerance
    )
    clusters = store.find_existing(
        lambda o: o.opening_class == OpeningClass.CLUSTER and o.bbox.contains(point, tolerance)
    )
    return {
        "point": [point.x, point.y, point.z],
        "individual": [_describe(o, point) for o in sorted(individuals, key=lambda o: o.position.distance_to(point))],
        "cluster": [_describe(o, point) for o in clusters],
    }


def opening_counts(store: OpeningStore) -> dict:
    """Opening counts per class and per category."""
    openings = store.find_existing(lambda o: True)
    by_class = Counter(o.opening_class.value for o in openings)
    by_category = Counter(o.category.value for o in openings)
    return {
        "total": len(openings),
        "by_class": dict(by_class),
        "by_category": dict(by_category),
        "zero_size": sum(1 for o in openings if o.is_zero_size),
        "unmarked": sum(1 for o in openings if not o.mark),
    }
