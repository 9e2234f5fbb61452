from __future__ import annotations
import heapq
from typing import Callable, Hashable, Iterable, List, Tuple

import numpy as np

from .dataset import Dataset
from .distances import manhattan_distance
from .errors import InvalidParameter


class _KNNHeap(object):
    """Max-heap holding at most ``k`` of the closest entries seen so far.

    Entries are stored as ``(-distance, -row, key)`` so that the heap top is
    the farthest entry and, among equal distances, the one with the largest
    dataset row. Evicting the top therefore keeps the smaller rows on ties,
    which makes the result independent of the order candidates arrive in.

    Args:
        k (int): Capacity of the heap.
    """

    def __init__(self, k: int) -> None:
        self.k = k
        self._heap: List[Tuple[float, int, Hashable]] = []

    def __len__(self) -> int:
        return len(self._heap)

    def insert(self, dist: float, row: int, key: Hashable) -> None:
        entry = (-dist, -row, key)
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, entry)
        elif entry > self._heap[0]:
            # Closer than the current farthest entry: replace it.
            heapq.heapreplace(self._heap, entry)

    def kdist(self) -> float:
        """Distance of the farthest retained entry (inf when empty)."""
        if not self._heap:
            return float("inf")
        return -self._heap[0][0]

    def to_sorted_list(self) -> List[Tuple[Hashable, float]]:
        """Retained entries as ``(key, distance)`` pairs, closest first."""
        return [(key, -mdist) for mdist, _, key in sorted(self._heap, reverse=True)]


class BoundedExactReranker(object):
    """Reduces a candidate set to its ``k`` closest members by exact distance.

    Every candidate is scored against the query vector, the query object
    itself included (its distance is 0). Only ``k`` entries are kept at any
    time, so the cost is ``O(|candidates| * log k)`` time and ``O(k)`` extra
    memory.

    Args:
        dataset (Dataset): Source of the candidate vectors.
        distance_func: Symmetric distance between two vectors.
    """

    def __init__(
        self,
        dataset: Dataset,
        distance_func: Callable[[np.ndarray, np.ndarray], float] = manhattan_distance,
    ) -> None:
        self.dataset = dataset
        self.distance_func = distance_func

    def rerank(
        self, candidates: Iterable[Hashable], query_vector: np.ndarray, k: int
    ) -> List[Tuple[Hashable, float]]:
        """Return the ``k`` candidates closest to ``query_vector``.

        Returns:
            List[Tuple[Hashable, float]]: ``(key, distance)`` pairs sorted by
                non-decreasing distance, ties by dataset row. Shorter than
                ``k`` when there are fewer candidates.
        """
        if k <= 0:
            raise InvalidParameter(f"k must be positive, got {k}")
        heap = _KNNHeap(k)
        for key in candidates:
            row = self.dataset.row_of(key)
            dist = float(self.distance_func(query_vector, self.dataset.vectors[row]))
            heap.insert(dist, row, key)
        return heap.to_sorted_list()
