import threading
from typing import Callable

import numpy as np


def manhattan_distance(x: np.ndarray, y: np.ndarray) -> float:
    """L1 distance."""
    return float(np.abs(x - y).sum())


def euclidean_distance(x: np.ndarray, y: np.ndarray) -> float:
    return float(np.linalg.norm(x - y))


class CountingDistance(object):
    """Wraps a distance function and counts how often it is called.

    Useful for measuring how many exact distance computations a query
    costs. The counter is guarded by a lock, so a single wrapper can be
    shared by queries running in different threads.

    Args:
        distance_func: The distance function to wrap.

    Examples:

        .. code-block:: python

            dist = CountingDistance(manhattan_distance)
            index = build_index(data, key_funcs, distance_func=dist)
            index.query(0, mask=1, half_window_unit=4, k=10)
            dist.count  # number of candidates scored

    """

    def __init__(self, distance_func: Callable[[np.ndarray, np.ndarray], float]) -> None:
        self.distance_func = distance_func
        self._count = 0
        self._lock = threading.Lock()

    def __call__(self, x: np.ndarray, y: np.ndarray) -> float:
        with self._lock:
            self._count += 1
        return self.distance_func(x, y)

    @property
    def count(self) -> int:
        return self._count

    def reset(self) -> int:
        """Reset the counter to zero and return its previous value."""
        with self._lock:
            count, self._count = self._count, 0
        return count
