from __future__ import annotations
from collections.abc import Mapping as _MappingABC
from typing import (
    Hashable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import numpy as np

from .errors import ConfigurationError


class Dataset(_MappingABC):
    """Read-only collection of vectors keyed by unique identifiers.

    The dataset keeps the insertion order of its points: every key has a
    *row*, its 0-based position in that order. Rows are what the random
    fallback samples from and what breaks distance ties during re-ranking.

    Args:
        points: A mapping ``{key: vector}`` or an iterable of
            ``(key, vector)`` pairs. Vectors must all have the same length.

    Examples:

        .. code-block:: python

            import numpy as np
            from sfcknn import Dataset

            data = np.random.random_sample((1000, 8))
            ds = Dataset.from_array(data)
            ds[0]          # first vector
            ds.row_of(42)  # 42

    """

    def __init__(
        self,
        points: Union[Mapping[Hashable, np.ndarray], Iterable[Tuple[Hashable, np.ndarray]]],
    ) -> None:
        if isinstance(points, _MappingABC):
            pairs = list(points.items())
        else:
            pairs = list(points)
        if not pairs:
            raise ConfigurationError("Dataset must contain at least one point.")

        keys: List[Hashable] = []
        rows: Dict[Hashable, int] = {}
        for key, _ in pairs:
            if key in rows:
                raise ConfigurationError(f"Duplicate key in dataset: {key!r}")
            rows[key] = len(keys)
            keys.append(key)

        vectors = [np.asarray(vec, dtype=np.float64).ravel() for _, vec in pairs]
        dim = len(vectors[0])
        for key, vec in zip(keys, vectors):
            if len(vec) != dim:
                raise ConfigurationError(
                    f"Vector for key {key!r} has dimension {len(vec)}, expected {dim}"
                )
        matrix = np.vstack(vectors)
        # Shared read-only between concurrent queries.
        matrix.setflags(write=False)

        self._keys: Tuple[Hashable, ...] = tuple(keys)
        self._rows = rows
        self._vectors = matrix

    @classmethod
    def from_array(
        cls, data: np.ndarray, keys: Optional[Sequence[Hashable]] = None
    ) -> Dataset:
        """Build a dataset from an ``(N, D)`` array. Keys default to row numbers."""
        data = np.asarray(data)
        if data.ndim != 2:
            raise ConfigurationError(
                f"Expected a 2-dimensional array, got shape {data.shape}"
            )
        if keys is None:
            keys = range(len(data))
        elif len(keys) != len(data):
            raise ConfigurationError(
                f"Got {len(keys)} keys for {len(data)} vectors"
            )
        return cls(zip(keys, data))

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._rows

    def __getitem__(self, key: Hashable) -> np.ndarray:
        return self._vectors[self._rows[key]]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._keys)

    def __eq__(self, __value: object) -> bool:
        """Equal when keys, their order and all vectors are equal."""
        if not isinstance(__value, Dataset):
            return False
        return self._keys == __value._keys and np.array_equal(
            self._vectors, __value._vectors
        )

    def __repr__(self) -> str:
        return f"Dataset(size={len(self)}, dim={self.dim})"

    @property
    def dim(self) -> int:
        """Dimensionality of the stored vectors."""
        return self._vectors.shape[1]

    @property
    def vectors(self) -> np.ndarray:
        """Read-only ``(N, D)`` matrix of all vectors, in row order."""
        return self._vectors

    @property
    def keys_list(self) -> Tuple[Hashable, ...]:
        """All keys in row order."""
        return self._keys

    def row_of(self, key: Hashable) -> int:
        """Return the row of ``key``. Raises ``KeyError`` for unknown keys."""
        return self._rows[key]

    def key_at(self, row: int) -> Hashable:
        return self._keys[row]


def as_dataset(data: Union[Dataset, Mapping, np.ndarray, Iterable]) -> Dataset:
    """Wrap ``data`` in a :class:`Dataset` unless it already is one."""
    if isinstance(data, Dataset):
        return data
    if isinstance(data, np.ndarray):
        return Dataset.from_array(data)
    return Dataset(data)
