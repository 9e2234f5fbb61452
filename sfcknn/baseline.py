"""
Exact kNN baselines and per-query quality measures.

These are the references an evaluation harness compares the approximate
index against: an index-backed exact kNN search (scikit-learn ``BallTree``)
and a plain sorted scan. Aggregating the measures over a workload is left to
the harness.
"""

from __future__ import annotations
from numbers import Real
from typing import Callable, Hashable, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.neighbors import BallTree

from .dataset import Dataset
from .distances import manhattan_distance
from .errors import InvalidParameter


class ExactKNN(object):
    """Exact k-nearest-neighbour search backed by a ``BallTree``.

    Args:
        dataset (Dataset): The objects to search.
        metric (str): Any metric ``BallTree`` supports. Defaults to
            ``"manhattan"``, the metric the approximate index re-ranks with by
            default.
        leaf_size (int): ``BallTree`` leaf size.
    """

    def __init__(self, dataset: Dataset, metric: str = "manhattan", leaf_size: int = 40) -> None:
        self.dataset = dataset
        self.metric = metric
        self._tree = BallTree(dataset.vectors, leaf_size=leaf_size, metric=metric)

    def query(
        self, query: Union[Hashable, np.ndarray], k: int
    ) -> List[Tuple[Hashable, float]]:
        """Exact ``k`` nearest neighbours of an indexed key or of a raw vector.

        Returns:
            List[Tuple[Hashable, float]]: ``(key, distance)`` pairs, closest
                first, at most ``len(dataset)`` of them.
        """
        if k <= 0:
            raise InvalidParameter(f"k must be positive, got {k}")
        if isinstance(query, np.ndarray):
            vector = query
        else:
            vector = self.dataset[query]
        k = min(k, len(self.dataset))
        dists, rows = self._tree.query(vector.reshape(1, -1), k=k)
        return [
            (self.dataset.key_at(int(r)), float(d)) for d, r in zip(dists[0], rows[0])
        ]


def brute_force_knn(
    dataset: Dataset,
    candidates: Iterable[Hashable],
    query_vector: np.ndarray,
    k: int,
    distance_func: Callable[[np.ndarray, np.ndarray], float] = manhattan_distance,
) -> List[Tuple[Hashable, float]]:
    """Score every candidate, sort them all and keep the first ``k``.

    Ties are ordered by dataset row, the same order
    :class:`~sfcknn.rerank.BoundedExactReranker` produces.
    """
    if k <= 0:
        raise InvalidParameter(f"k must be positive, got {k}")
    scored = [
        (float(distance_func(query_vector, dataset[key])), dataset.row_of(key), key)
        for key in candidates
    ]
    scored.sort(key=lambda t: (t[0], t[1]))
    return [(key, dist) for dist, _, key in scored[:k]]


def candidate_recall(
    true_neighbors: Iterable[Union[Hashable, Tuple[Hashable, float]]],
    candidates: Iterable[Hashable],
    k: int,
) -> float:
    """Fraction of the true ``k`` nearest neighbours found among ``candidates``,
    capped at 1.

    ``true_neighbors`` may be plain keys or ``(key, distance)`` pairs as
    returned by :meth:`ExactKNN.query`.
    """
    if k <= 0:
        raise InvalidParameter(f"k must be positive, got {k}")
    keys = set(_keys_of(true_neighbors))
    found = len(keys.intersection(candidates))
    return min(1.0, found / float(k))


def relative_kdist_error(
    approx: Sequence[Tuple[Hashable, float]],
    exact: Sequence[Tuple[Hashable, float]],
    k: int,
) -> Optional[float]:
    """Relative error of the approximate k-distance, ``(approx - exact) / exact``.

    Returns ``None`` when the measure is undefined: the exact k-distance is 0
    (duplicate points) or either result holds fewer than ``k`` entries.
    """
    if len(approx) < k or len(exact) < k:
        return None
    true_kdist = exact[k - 1][1]
    if true_kdist <= 0:
        return None
    return (approx[k - 1][1] - true_kdist) / true_kdist


def _keys_of(neighbors: Iterable[Union[Hashable, Tuple[Hashable, float]]]) -> List[Hashable]:
    keys = []
    for item in neighbors:
        if isinstance(item, tuple) and len(item) == 2 and isinstance(item[1], Real):
            keys.append(item[0])
        else:
            keys.append(item)
    return keys
