"""
Space-filling curve orders over a fixed dataset.

A curve is represented only by the order it induces: every dataset key is
sorted by the scalar key the curve assigns to its vector. Computing that
scalar (Z-order, Peano, Hilbert, ...) is up to the caller; this module takes
it as a plain ``key_func(vector)``.

The module provides:

1. ``candidate_window``: the boundary-aware index range around a position
2. ``CurveOrder``: one curve's order plus the inverse key -> position map
3. ``CurveSet``: all curves of an index, their scale factors and the
   per-key position cache used at query time
"""

from __future__ import annotations
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
)

import numpy as np

from .dataset import Dataset
from .errors import ConfigurationError, InvalidParameter


class CandidateWindow(NamedTuple):
    """Inclusive index range ``[start, end]`` on one curve.

    ``requested_size`` is the width asked for, ``2 * half_width + 1``. It
    exceeds :attr:`size` only when the curve is shorter than the requested
    window, in which case the window is the whole curve.
    """

    start: int
    end: int
    requested_size: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    @property
    def is_truncated(self) -> bool:
        """True when the curve was too short for the requested width."""
        return self.requested_size > self.size

    def covers(self, n: int) -> bool:
        """True when the window spans an entire curve of length ``n``."""
        return self.start == 0 and self.end == n - 1

    def __contains__(self, position: object) -> bool:
        return isinstance(position, (int, np.integer)) and self.start <= position <= self.end

    def positions(self) -> range:
        return range(self.start, self.end + 1)


def candidate_window(n: int, position: int, half_width: int) -> CandidateWindow:
    """Compute the window of ``2 * half_width + 1`` positions around ``position``
    on a curve of length ``n``.

    Near either end of the curve the window is shifted inwards instead of
    being cut off, so it always keeps its full width:

    - ``position <= half_width``: ``[0, 2h]``
    - ``position + half_width >= n``: ``[n - 2h - 1, n - 1]``
    - otherwise: ``[position - h, position + h]``

    If ``2h + 1 >= n`` the window is the whole curve ``[0, n - 1]``.

    For a fixed position, the window for ``h + 1`` always contains the window
    for ``h``, including when one of them is shifted against a boundary.

    Args:
        n (int): Length of the curve.
        position (int): Position of the query object on the curve.
        half_width (int): Number of positions on each side, in index units.

    Returns:
        CandidateWindow: The inclusive range and the requested width.

    Raises:
        InvalidParameter: If ``n <= 0``, ``half_width < 0`` or ``position``
            is not in ``[0, n)``.
    """
    if n <= 0:
        raise InvalidParameter(f"Curve length must be positive, got {n}")
    if half_width < 0:
        raise InvalidParameter(f"Half width must be non-negative, got {half_width}")
    if not 0 <= position < n:
        raise InvalidParameter(f"Position {position} outside curve of length {n}")
    width = 2 * half_width + 1
    if width >= n:
        return CandidateWindow(0, n - 1, width)
    if position <= half_width:
        return CandidateWindow(0, 2 * half_width, width)
    if position + half_width >= n:
        return CandidateWindow(n - width, n - 1, width)
    return CandidateWindow(position - half_width, position + half_width, width)


class CurveOrder(object):
    """One curve's total order over all dataset keys.

    Args:
        order (Sequence[Hashable]): The keys in curve order. Must not contain
            duplicates.
        name (Optional[str]): Label used in diagnostics.

    Use :meth:`build` to derive the order from a dataset and a curve key
    function.
    """

    def __init__(self, order: Sequence[Hashable], name: Optional[str] = None) -> None:
        self._order: Tuple[Hashable, ...] = tuple(order)
        self._positions: Dict[Hashable, int] = {}
        for i, key in enumerate(self._order):
            if key in self._positions:
                raise ConfigurationError(
                    f"Key {key!r} appears twice on curve {name or '<unnamed>'}"
                )
            self._positions[key] = i
        self.name = name

    @classmethod
    def build(
        cls,
        dataset: Dataset,
        key_func: Callable[[np.ndarray], Any],
        name: Optional[str] = None,
    ) -> CurveOrder:
        """Sort all keys of ``dataset`` by ``key_func(vector)``, ascending.

        The sort is stable, so objects with equal curve keys stay in dataset
        order. Exceptions raised by ``key_func`` propagate.
        """
        if len(dataset) == 0:
            raise ConfigurationError("Cannot build a curve over an empty dataset.")
        sort_keys = [key_func(vec) for vec in dataset.vectors]
        rows = sorted(range(len(dataset)), key=sort_keys.__getitem__)
        keys = dataset.keys_list
        return cls([keys[r] for r in rows], name=name)

    def __len__(self) -> int:
        return len(self._order)

    def __getitem__(self, position: int) -> Hashable:
        """Key at ``position`` on the curve."""
        return self._order[position]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._order)

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def __eq__(self, __value: object) -> bool:
        if not isinstance(__value, CurveOrder):
            return False
        return self._order == __value._order

    def __repr__(self) -> str:
        return f"CurveOrder(name={self.name!r}, size={len(self)})"

    def position(self, key: Hashable) -> int:
        """Position of ``key`` on the curve. Raises ``KeyError`` if absent."""
        return self._positions[key]

    def window(self, position: int, half_width: int) -> CandidateWindow:
        """:func:`candidate_window` on this curve."""
        return candidate_window(len(self._order), position, half_width)

    def keys_between(self, start: int, end: int) -> Tuple[Hashable, ...]:
        """Keys at positions ``start`` through ``end``, inclusive."""
        return self._order[start:end + 1]


class CurveSet(object):
    """The curves of an index together with their scale factors and the
    per-key position cache.

    A query specifies its window in abstract *half-window units*; curve ``c``
    turns that into an index half-width by multiplying with
    ``scale_factors[c]``. The random fallback, which has no curve, uses
    ``sample_scale`` instead.

    The position cache stores, for every key, its position on every curve as
    one ``int`` array, so a query looks positions up once instead of once per
    curve.

    Args:
        curves (Sequence[CurveOrder]): The curves. All must be permutations of
            the same key set.
        scale_factors (Optional[Sequence[int]]): One positive integer per
            curve. Defaults to 1 for every curve.
        sample_scale (int): Scale used by the random-sampling fallback.

    Raises:
        ConfigurationError: If curves differ in length or key set, or if the
            scale factors are invalid.
    """

    def __init__(
        self,
        curves: Sequence[CurveOrder],
        scale_factors: Optional[Sequence[int]] = None,
        sample_scale: int = 1,
    ) -> None:
        self._curves: Tuple[CurveOrder, ...] = tuple(curves)
        if scale_factors is None:
            scale_factors = [1] * len(self._curves)
        if len(scale_factors) != len(self._curves):
            raise ConfigurationError(
                f"Got {len(scale_factors)} scale factors for {len(self._curves)} curves"
            )
        for s in list(scale_factors) + [sample_scale]:
            if int(s) != s or s <= 0:
                raise ConfigurationError(f"Scale factors must be positive integers, got {s!r}")
        self._scale_factors: Tuple[int, ...] = tuple(int(s) for s in scale_factors)
        self.sample_scale = int(sample_scale)

        self._position_cache: Dict[Hashable, np.ndarray] = {}
        if self._curves:
            first = self._curves[0]
            for curve in self._curves[1:]:
                if len(curve) != len(first) or any(key not in first for key in curve):
                    raise ConfigurationError(
                        f"Curve {curve.name!r} does not cover the same keys as curve {first.name!r}"
                    )
            for key in first:
                positions = np.array(
                    [curve.position(key) for curve in self._curves], dtype=np.int64
                )
                positions.setflags(write=False)
                self._position_cache[key] = positions

    def __len__(self) -> int:
        return len(self._curves)

    def __getitem__(self, c: int) -> CurveOrder:
        return self._curves[c]

    def __iter__(self) -> Iterator[CurveOrder]:
        return iter(self._curves)

    @property
    def scale_factors(self) -> Tuple[int, ...]:
        return self._scale_factors

    @property
    def names(self) -> List[Optional[str]]:
        return [curve.name for curve in self._curves]

    def half_width(self, c: int, half_window_unit: int) -> int:
        """Half-width in positions on curve ``c`` for the given unit."""
        return half_window_unit * self._scale_factors[c]

    def positions_of(self, key: Hashable) -> np.ndarray:
        """Cached positions of ``key`` on every curve (read-only array)."""
        return self._position_cache[key]

    def check_covers(self, dataset: Dataset) -> None:
        """Raise :class:`ConfigurationError` unless every curve is a permutation
        of the dataset's keys."""
        for curve in self._curves:
            if len(curve) != len(dataset) or any(key not in curve for key in dataset):
                raise ConfigurationError(
                    f"Curve {curve.name!r} is not a permutation of the dataset keys"
                )
