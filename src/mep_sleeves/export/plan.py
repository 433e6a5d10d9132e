"""Plan view of hosts, routing lines and openings using matplotlib.

Quick visual check of a placement run:
- Walls and framing as grey footprints, floors as light outlines
- Routing elements as lines colored by category
- Individual openings outlined, cluster openings filled
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")  # headless rendering
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon
import numpy as np

from mep_sleeves.models.document import ModelDocument
from mep_sleeves.models.elements import HostKind, MepCategory, Opening, OpeningClass, StructuralHost
from mep_sleeves.store.memory import DocumentStore

_CATEGORY_COLORS = {
    MepCategory.PIPE: "#1E88E5",
    MepCategory.DUCT: "#43A047",
    MepCategory.CABLE_TRAY: "#FB8C00",
    MepCategory.DAMPER: "#8E24AA",
}


def opening_footprint(opening: Opening) -> np.ndarray:
    """Plan outline (4 x 2) of an opening."""
    u, v, n = opening.frame()
    if opening.host_kind == HostKind.FLOOR:
        a, b, sa, sb = u, v, opening.width, opening.height
    else:
        a, b, sa, sb = u, n, opening.width, opening.depth
    c = opening.position.to_array()
    pts = [c + ia * sa / 2 * a + ib * sb / 2 * b for ia, ib in ((-1, -1), (1, -1), (1, 1), (-1, 1))]
    return np.array([[p[0], p[1]] for p in pts])


def _host_footprint(host: StructuralHost) -> np.ndarray:
    if host.solid is not None:
        lowest = min(p.z for f in host.solid.faces for p in f.vertices)
        bottom = [f for f in host.solid.faces if all(abs(p.z - lowest) < 1e-9 for p in f.vertices)]
        if bottom:
            return np.array([(p.x, p.y) for p in bottom[0].vertices])
    box = host.bounding_box()
    return np.array([
        (box.min.x, box.min.y), (box.max.x, box.min.y),
        (box.max.x, box.max.y), (box.min.x, box.max.y),
    ])


def render_plan(
    document: ModelDocument,
    output_path: str | Path,
    level_id: Optional[str] = None,
    title: Optional[str] = None,
    dpi: int = 150,
    show_labels: bool = False,
) -> Path:
    """Render a plan of hosts, routing lines and openings to PNG.

    Args:
        document: Document to render. Linked elements are drawn in host space.
        output_path: Output image path.
        level_id: Only draw elements on this level (all levels if None).
        title: Plot title (defaults to the document name).
        dpi: Image resolution.
        show_labels: Annotate openings with their mark, or category when unmarked.

    Returns:
        Path to the output image.
    """
    output_path = Path(output_path)
    store = DocumentStore(document)

    def on_level(item_level: Optional[str]) -> bool:
        return level_id is None or item_level == level_id

    fig, ax = plt.subplots(1, 1, figsize=(12, 10))
    ax.set_aspect("equal")
    ax.set_facecolor("#FAFAFA")

    for host in store.get_structural_hosts():
        if not on_level(host.level_id):
            continue
        host = host.to_host_space()
        if host.solid is None and host.bbox is None:
            continue
        outline = _host_footprint(host)
        if host.kind == HostKind.FLOOR:
            ax.add_patch(Polygon(outline, closed=True, fill=False, edgecolor="#BDBDBD", linewidth=0.8, zorder=1))
        else:
            ax.add_patch(Polygon(outline, closed=True, facecolor="#757575", edgecolor="#424242", zorder=2))

    for category in MepCategory:
        for element in store.get_routing_elements(category):
            if not on_level(element.level_id):
                continue
            pts = element.to_host_space().centerline
            ax.plot([p.x for p in pts], [p.y for p in pts],
                    color=_CATEGORY_COLORS[category], linewidth=1.2, zorder=3)

    for opening in document.openings:
        if not on_level(opening.level_id):
            continue
        color = _CATEGORY_COLORS[opening.category]
        is_cluster = opening.opening_class == OpeningClass.CLUSTER
        ax.add_patch(Polygon(
            opening_footprint(opening), closed=True,
            facecolor=color if is_cluster else "none",
            edgecolor=color, alpha=0.6 if is_cluster else 1.0,
            linewidth=1.5, zorder=4,
        ))
        if show_labels:
            ax.text(opening.position.x, opening.position.y, opening.mark or opening.category.value,
                    fontsize=6, ha="center", va="center", zorder=5)

    ax.autoscale_view()
    ax.set_title(title or document.name, fontsize=12, fontweight="bold")
    ax.set_xlabel(f"X ({document.units.value})")
    ax.set_ylabel(f"Y ({document.units.value})")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(str(output_path), dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return output_path
