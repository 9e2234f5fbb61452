"""
Candidate generation across several curves.

For a query object the generator collects the objects that lie near it on
each selected curve and unions them. With no curve selected it draws a
uniform random sample instead, which serves as the baseline the curves are
compared against.
"""

from __future__ import annotations
from typing import Hashable, Iterable, Optional, Sequence, Set, Union

import numpy as np
from sklearn.utils import check_random_state

from .curves import CurveSet, candidate_window
from .dataset import Dataset
from .errors import ConsistencyError, InvalidParameter
from .mask import CurveMask, as_mask


def fallback_sample_size(half_window_unit: int, scale: int, k: int) -> int:
    """Number of random candidates drawn when no curve is selected.

    Matches the number of neighbours a single curve window of the same unit
    would contribute, but never more than ``k``.
    """
    return min(k, 2 * half_window_unit * scale)


class MultiCurveCandidateGenerator(object):
    """Builds the candidate set of a query from the selected curves' windows.

    Args:
        dataset (Dataset): The indexed dataset.
        curve_set (CurveSet): Curves over the same keys, with their scale
            factors.
    """

    def __init__(self, dataset: Dataset, curve_set: CurveSet) -> None:
        self.dataset = dataset
        self.curve_set = curve_set

    def generate(
        self,
        key: Hashable,
        positions: Sequence[int],
        mask: Union[CurveMask, int, Iterable[int]],
        half_window_unit: int,
        k: int,
        random_state: Optional[Union[int, np.random.RandomState]] = None,
        scale: Optional[int] = None,
    ) -> Set[Hashable]:
        """Return the candidate set for ``key``.

        The query key is always part of the result.

        With a non-empty ``mask``, every selected curve ``c`` contributes all
        keys in :func:`candidate_window` around ``positions[c]`` with
        half-width ``half_window_unit * scale_c``. Keys found on several
        curves appear once.

        With an empty mask, ``min(k, 2 * half_window_unit * scale)`` keys
        (capped at the dataset size) are sampled uniformly without
        replacement using ``random_state``, then the query key is added.

        Args:
            key (Hashable): The query object's key.
            positions (Sequence[int]): The query object's cached position on
                every curve.
            mask: Curves to use, as a :class:`CurveMask`, an int bit set or an
                iterable of curve indices.
            half_window_unit (int): Window size in abstract units.
            k (int): Number of neighbours wanted; bounds the random sample.
            random_state: Seed or ``numpy.random.RandomState``. Required when
                the mask is empty. Do not share one ``RandomState`` between
                threads.
            scale (Optional[int]): Overrides every curve's scale factor (and
                the sample scale) for this call.

        Returns:
            Set[Hashable]: The deduplicated candidate keys.

        Raises:
            ConsistencyError: If ``positions[c]`` does not point at ``key`` on
                curve ``c``.
            InvalidParameter: If the mask is empty and no random source was
                given.
        """
        mask = as_mask(mask)
        candidates: Set[Hashable] = {key}
        if not mask:
            return self._sample(candidates, half_window_unit, k, random_state, scale)

        n = len(self.dataset)
        for c in mask:
            curve = self.curve_set[c]
            pos = int(positions[c])
            if not 0 <= pos < n:
                raise ConsistencyError(
                    f"Cached position {pos} of key {key!r} is outside curve {c} of length {n}"
                )
            if curve[pos] != key:
                raise ConsistencyError(
                    f"Cached position {pos} of key {key!r} on curve {c} "
                    f"holds key {curve[pos]!r}"
                )
            if scale is None:
                half_width = self.curve_set.half_width(c, half_window_unit)
            else:
                half_width = half_window_unit * scale
            window = candidate_window(n, pos, half_width)
            candidates.update(curve.keys_between(window.start, window.end))
        return candidates

    def _sample(
        self,
        candidates: Set[Hashable],
        half_window_unit: int,
        k: int,
        random_state: Optional[Union[int, np.random.RandomState]],
        scale: Optional[int],
    ) -> Set[Hashable]:
        if random_state is None:
            raise InvalidParameter(
                "Random sampling (empty curve mask) requires a random_state."
            )
        rng = check_random_state(random_state)
        if scale is None:
            scale = self.curve_set.sample_scale
        n = len(self.dataset)
        size = min(fallback_sample_size(half_window_unit, scale, k), n)
        if 2 * size <= n:
            # Expected O(size) draws while size <= n / 2.
            rows = set()
            while len(rows) < size:
                rows.add(int(rng.randint(n)))
        else:
            rows = rng.permutation(n)[:size]
        keys = self.dataset.keys_list
        candidates.update(keys[r] for r in rows)
        return candidates
