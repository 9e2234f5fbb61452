"""
Approximate kNN index over several space-filling curve orders.

The index is built once from a fixed dataset and one key function per curve
and is read-only afterwards. A query for an indexed object works in two
stages:

1. Candidate generation: union the windows around the object on the
   selected curves (or draw a random sample when no curve is selected)
2. Exact re-ranking: score every candidate with the exact distance and keep
   the k closest

"""

from __future__ import annotations
import time
from concurrent.futures import ThreadPoolExecutor
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

import numpy as np

from .candidates import MultiCurveCandidateGenerator
from .curves import CurveOrder, CurveSet
from .dataset import Dataset, as_dataset
from .distances import manhattan_distance
from .errors import ConfigurationError, InvalidParameter
from .mask import CurveMask, as_mask
from .rerank import BoundedExactReranker

RandomState = Optional[Union[int, np.random.RandomState]]
MaskLike = Union[CurveMask, int, Iterable[int]]


class ApproximateKNNIndex(object):
    """Approximate k-nearest-neighbour search over a fixed dataset using
    windows on several space-filling curve orders.

    Use :func:`build_index` to construct one from a dataset and curve key
    functions.

    Args:
        dataset (Dataset): The indexed objects.
        curve_set (CurveSet): Curves over exactly the dataset's keys.
        distance_func: Exact distance used for re-ranking (default: L1).

    Examples:

        .. code-block:: python

            import numpy as np
            from sfcknn import build_index, CurveMask

            data = np.random.random_sample((1000, 4))
            directions = np.random.randn(3, 4)
            key_funcs = [lambda v, d=d: float(v @ d) for d in directions]
            index = build_index(data, key_funcs, scale_factors=[10, 10, 10])

            # 10 nearest neighbours of object 0 using curves 0 and 2
            index.query(0, CurveMask.of(0, 2), half_window_unit=2, k=10)

            # Random-sampling baseline
            index.query(0, 0, half_window_unit=2, k=10, random_state=0)

    """

    def __init__(
        self,
        dataset: Dataset,
        curve_set: CurveSet,
        distance_func: Callable[[np.ndarray, np.ndarray], float] = manhattan_distance,
    ) -> None:
        if len(dataset) == 0:
            raise ConfigurationError("Cannot index an empty dataset.")
        curve_set.check_covers(dataset)
        self._dataset = dataset
        self._curve_set = curve_set
        self._distance_func = distance_func
        self._generator = MultiCurveCandidateGenerator(dataset, curve_set)
        self._reranker = BoundedExactReranker(dataset, distance_func)
        self._no_positions = np.zeros(0, dtype=np.int64)
        self.stats: Dict[str, Any] = {
            "num_objects": len(dataset),
            "dim": dataset.dim,
            "num_curves": len(curve_set),
            "curve_names": curve_set.names,
            "scale_factors": list(curve_set.scale_factors),
            "sample_scale": curve_set.sample_scale,
        }

    def __len__(self) -> int:
        return len(self._dataset)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._dataset

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def curve_set(self) -> CurveSet:
        return self._curve_set

    @property
    def num_curves(self) -> int:
        return len(self._curve_set)

    @property
    def distance_func(self) -> Callable[[np.ndarray, np.ndarray], float]:
        return self._distance_func

    def positions(self, key: Hashable) -> np.ndarray:
        """Positions of ``key`` on every curve. Raises ``KeyError`` if absent."""
        if key not in self._dataset:
            raise KeyError(key)
        if not self._curve_set:
            return self._no_positions
        return self._curve_set.positions_of(key)

    def _check_params(self, mask: MaskLike, half_window_unit: int, k: int) -> CurveMask:
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k <= 0:
            raise InvalidParameter(f"k must be a positive integer, got {k!r}")
        if (
            isinstance(half_window_unit, bool)
            or not isinstance(half_window_unit, (int, np.integer))
            or half_window_unit < 0
        ):
            raise InvalidParameter(
                f"half_window_unit must be a non-negative integer, got {half_window_unit!r}"
            )
        mask = as_mask(mask)
        if mask and not self._curve_set:
            raise ConfigurationError(
                f"Mask {mask!r} selects curves but the index has no curves."
            )
        mask.validate(len(self._curve_set))
        return mask

    def candidates(
        self,
        key: Hashable,
        mask: MaskLike,
        half_window_unit: int,
        k: int,
        random_state: RandomState = None,
        scale: Optional[int] = None,
    ) -> Set[Hashable]:
        """Candidate set of ``key`` before re-ranking.

        Same arguments as :meth:`query`. The result always contains ``key``.
        """
        mask = self._check_params(mask, half_window_unit, k)
        if scale is not None and (
            isinstance(scale, bool) or not isinstance(scale, (int, np.integer)) or scale <= 0
        ):
            raise InvalidParameter(f"scale must be positive, got {scale!r}")
        return self._generator.generate(
            key,
            self.positions(key),
            mask,
            half_window_unit,
            k,
            random_state=random_state,
            scale=scale,
        )

    def query(
        self,
        key: Hashable,
        mask: MaskLike,
        half_window_unit: int,
        k: int,
        random_state: RandomState = None,
        scale: Optional[int] = None,
    ) -> List[Tuple[Hashable, float]]:
        """Approximate ``k`` nearest neighbours of the indexed object ``key``.

        Args:
            key (Hashable): Key of an indexed object.
            mask: Curves to draw candidates from, as a :class:`CurveMask`, an
                int bit set or an iterable of curve indices. An empty mask
                selects the random-sampling baseline.
            half_window_unit (int): Window size; on curve ``c`` the half-width
                in positions is ``half_window_unit * scale_factors[c]``.
            k (int): Number of neighbours to return.
            random_state: Seed or ``numpy.random.RandomState`` for the
                random-sampling baseline. Required when ``mask`` is empty.
            scale (Optional[int]): Overrides all scale factors for this query.

        Returns:
            List[Tuple[Hashable, float]]: Up to ``k`` ``(key, distance)``
                pairs, closest first. The object itself is included with
                distance 0.

        Raises:
            KeyError: If ``key`` is not indexed.
            InvalidParameter: For a non-positive ``k``, a negative
                ``half_window_unit`` or a mask referencing a missing curve.
            ConfigurationError: For a non-empty mask on an index without
                curves.
        """
        cands = self.candidates(
            key, mask, half_window_unit, k, random_state=random_state, scale=scale
        )
        return self._reranker.rerank(cands, self._dataset[key], k)

    def query_batch(
        self,
        keys: Iterable[Hashable],
        mask: MaskLike,
        half_window_unit: int,
        k: int,
        seed: Optional[int] = None,
        scale: Optional[int] = None,
        max_workers: Optional[int] = None,
    ) -> List[List[Tuple[Hashable, float]]]:
        """Run :meth:`query` for every key, optionally in a thread pool.

        Every query gets its own ``RandomState`` spawned from
        ``numpy.random.SeedSequence(seed)``, so the results depend only on
        ``seed`` and the position of the key in ``keys``, not on scheduling.

        Args:
            keys: Keys of indexed objects.
            seed (Optional[int]): Root seed for the random-sampling baseline.
                ``None`` draws fresh entropy.
            max_workers (Optional[int]): Number of worker threads. ``None`` or
                1 runs the queries sequentially.

        Returns:
            List of results, in the order of ``keys``.
        """
        keys = list(keys)
        children = np.random.SeedSequence(seed).spawn(len(keys))
        states = [np.random.RandomState(np.random.MT19937(child)) for child in children]

        def run(i: int) -> List[Tuple[Hashable, float]]:
            return self.query(
                keys[i], mask, half_window_unit, k, random_state=states[i], scale=scale
            )

        if max_workers is None or max_workers <= 1:
            return [run(i) for i in range(len(keys))]
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(run, range(len(keys))))


def build_index(
    dataset: Union[Dataset, Mapping[Hashable, np.ndarray], np.ndarray],
    key_funcs: Sequence[Callable[[np.ndarray], Any]],
    scale_factors: Optional[Sequence[int]] = None,
    sample_scale: int = 1,
    distance_func: Callable[[np.ndarray, np.ndarray], float] = manhattan_distance,
    curve_names: Optional[Sequence[str]] = None,
    max_workers: Optional[int] = None,
    verbose: bool = False,
) -> ApproximateKNNIndex:
    """Build an :class:`ApproximateKNNIndex`.

    Each key function defines one curve: all objects are sorted by
    ``key_func(vector)``. Curves are independent and can be sorted in
    parallel; the index is returned only once every curve and the position
    cache are complete.

    Args:
        dataset: A :class:`Dataset`, a mapping ``{key: vector}`` or an
            ``(N, D)`` array (keys are row numbers).
        key_funcs: One curve key function per curve, ``vector -> scalar``.
        scale_factors: Positive integer per curve converting half-window
            units to positions. Defaults to 1.
        sample_scale (int): Scale of the random-sampling baseline.
        distance_func: Exact distance used for re-ranking (default: L1).
        curve_names: Labels for the curves (default ``curve0``, ``curve1``...).
        max_workers (Optional[int]): Threads used to sort curves. ``None`` or
            1 builds sequentially.
        verbose (bool): Print build progress.

    Raises:
        ConfigurationError: For an empty dataset, mismatched names or scale
            factors.
    """
    dataset = as_dataset(dataset)
    key_funcs = list(key_funcs)
    if curve_names is None:
        curve_names = [f"curve{c}" for c in range(len(key_funcs))]
    if len(curve_names) != len(key_funcs):
        raise ConfigurationError(
            f"Got {len(curve_names)} curve names for {len(key_funcs)} key functions"
        )

    if verbose:
        print(f"Building {len(key_funcs)} curve orders over {len(dataset)} objects...")
    start_time = time.time()

    def build_curve(c: int) -> Tuple[CurveOrder, float]:
        t0 = time.time()
        curve = CurveOrder.build(dataset, key_funcs[c], name=curve_names[c])
        return curve, time.time() - t0

    if max_workers is None or max_workers <= 1:
        built = [build_curve(c) for c in range(len(key_funcs))]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            built = list(executor.map(build_curve, range(len(key_funcs))))

    curves = [curve for curve, _ in built]
    if verbose:
        for curve, seconds in built:
            print(f"  {curve.name}: sorted in {seconds:.3f}s")

    t1 = time.time()
    curve_set = CurveSet(curves, scale_factors=scale_factors, sample_scale=sample_scale)
    position_cache_time = time.time() - t1

    index = ApproximateKNNIndex(dataset, curve_set, distance_func=distance_func)
    index.stats["curve_build_times"] = {curve.name: seconds for curve, seconds in built}
    index.stats["position_cache_time"] = position_cache_time
    index.stats["construction_time"] = time.time() - start_time

    if verbose:
        print(f"Index built in {index.stats['construction_time']:.2f}s")
        print(f"Statistics: {index.stats['num_objects']} objects, "
              f"{index.stats['dim']} dims, "
              f"{index.stats['num_curves']} curves, "
              f"scale factors {index.stats['scale_factors']}")
    return index
