"""
sfcknn - approximate kNN with space-filling curves
==================================================

Approximate k-nearest-neighbour search over a fixed dataset using several
space-filling curve orderings of it.

Main features:
- Any number of curves, each given as a key function ``vector -> scalar``
- Boundary-aware windows around the query object on each curve
- Candidate fusion over any subset of curves, selected by a bit mask
- Random-sampling baseline when no curve is selected
- Exact re-ranking with a bounded heap and any distance function

Example:
---------
    >>> from sfcknn import build_index, CurveMask
    >>> import numpy as np
    >>>
    >>> data = np.random.random((1000, 10))
    >>> directions = np.random.randn(3, 10)
    >>> index = build_index(data, [lambda v, d=d: float(v @ d) for d in directions],
    ...                     scale_factors=[25, 25, 25])
    >>>
    >>> neighbors = index.query(0, CurveMask.of(0, 1, 2), half_window_unit=2, k=10)
"""

from .version import __version__
from .errors import ConfigurationError, ConsistencyError, InvalidParameter
from .dataset import Dataset, as_dataset
from .mask import CurveMask, as_mask
from .curves import CandidateWindow, CurveOrder, CurveSet, candidate_window
from .candidates import MultiCurveCandidateGenerator, fallback_sample_size
from .distances import CountingDistance, euclidean_distance, manhattan_distance
from .rerank import BoundedExactReranker
from .index import ApproximateKNNIndex, build_index
from .baseline import ExactKNN, brute_force_knn, candidate_recall, relative_kdist_error

__all__ = [
    "ApproximateKNNIndex",
    "BoundedExactReranker",
    "CandidateWindow",
    "ConfigurationError",
    "ConsistencyError",
    "CountingDistance",
    "CurveMask",
    "CurveOrder",
    "CurveSet",
    "Dataset",
    "ExactKNN",
    "InvalidParameter",
    "MultiCurveCandidateGenerator",
    "__version__",
    "as_dataset",
    "as_mask",
    "brute_force_knn",
    "build_index",
    "candidate_recall",
    "candidate_window",
    "euclidean_distance",
    "fallback_sample_size",
    "manhattan_distance",
    "relative_kdist_error",
]
