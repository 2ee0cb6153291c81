from __future__ import annotations

import math
from typing import Dict, List, Set, Tuple

Aabb = Tuple[float, float, float, float]
CellKey = Tuple[int, int]


class SpatialGrid:
    """Uniform grid over body bounding boxes, keyed by integer handle."""

    def __init__(self, cell_size: float) -> None:
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self._cell_size = cell_size
        self._cells: Dict[CellKey, List[int]] = {}
        self._handle_keys: Dict[int, List[CellKey]] = {}

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def insert(self, handle: int, aabb: Aabb) -> None:
        keys = self._keys_for(aabb)
        self._handle_keys[handle] = keys
        for key in keys:
            bucket = self._cells.get(key)
            if bucket is None:
                bucket = []
                self._cells[key] = bucket
            bucket.append(handle)

    def remove(self, handle: int) -> None:
        for key in self._handle_keys.pop(handle, ()):
            bucket = self._cells.get(key)
            if bucket is None:
                continue
            bucket.remove(handle)
            if not bucket:
                # Empty buckets are dropped so `candidate_pairs` never walks them.
                del self._cells[key]

    def move(self, handle: int, aabb: Aabb) -> None:
        keys = self._keys_for(aabb)
        if keys == self._handle_keys.get(handle):
            return
        self.remove(handle)
        self.insert(handle, aabb)

    def query(self, aabb: Aabb) -> Set[int]:
        found: Set[int] = set()
        cells = self._cells
        for key in self._keys_for(aabb):
            bucket = cells.get(key)
            if bucket:
                found.update(bucket)
        return found

    def candidate_pairs(self) -> Set[Tuple[int, int]]:
        pairs: Set[Tuple[int, int]] = set()
        for bucket in self._cells.values():
            count = len(bucket)
            if count < 2:
                continue
            for i in range(count):
                first = bucket[i]
                for j in range(i + 1, count):
                    second = bucket[j]
                    pairs.add((first, second) if first < second else (second, first))
        return pairs

    def _keys_for(self, aabb: Aabb) -> List[CellKey]:
        min_x, min_y, max_x, max_y = aabb
        size = self._cell_size
        x0 = int(math.floor(min_x / size))
        y0 = int(math.floor(min_y / size))
        x1 = int(math.floor(max_x / size))
        y1 = int(math.floor(max_y / size))
        return [(x, y) for x in range(x0, x1 + 1) for y in range(y0, y1 + 1)]
