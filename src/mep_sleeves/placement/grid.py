"""Uniform plan grid for pruning pairwise adjacency tests."""

from __future__ import annotations

import math
from collections import defaultdict


class SpatialGrid:
    """Buckets items by the plan cells their reach box touches.

    Two items can only be adjacent if their boxes overlap, and overlapping
    boxes always share at least one cell.
    """

    def __init__(self, cell_size: float):
        if cell_size <= 0:
            raise ValueError("Grid cell size must be positive")
        self.cell_size = cell_size
        self._cells: dict[tuple[int, int], list[int]] = defaultdict(list)
        self._item_cells: dict[int, list[tuple[int, int]]] = {}

    def _cell_range(self, lo: float, hi: float) -> range:
        return range(math.floor(lo / self.cell_size), math.floor(hi / self.cell_size) + 1)

    def insert(self, item: int, x: float, y: float, reach: float) -> None:
        """Add ``item`` to every cell its box ``(x, y) ± reach`` touches."""
        cells = [
            (i, j)
            for i in self._cell_range(x - reach, x + reach)
            for j in self._cell_range(y - reach, y + reach)
        ]
        for cell in cells:
            self._cells[cell].append(item)
        self._item_cells[item] = cells

    def neighbours(self, item: int) -> set[int]:
        """Items sharing at least one cell with ``item``."""
        found: set[int] = set()
        for cell in self._item_cells.get(item, []):
            found.update(self._cells[cell])
        found.discard(item)
        return found

    def __len__(self) -> int:
        return len(self._item_cells)
