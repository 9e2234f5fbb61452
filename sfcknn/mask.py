from __future__ import annotations
from numbers import Integral
from typing import Iterable, Iterator, Union

from .errors import InvalidParameter


class CurveMask(object):
    """Immutable set of curve indices selecting which curves contribute
    candidates to a query.

    Internally this is a bit set: bit ``c`` is set when curve ``c`` is
    selected. An empty mask selects no curve and makes the candidate
    generator fall back to random sampling.

    Args:
        bits (int): Non-negative integer whose set bits are the selected
            curve indices.

    Examples:

        .. code-block:: python

            CurveMask(0b101)            # curves 0 and 2
            CurveMask.of(0, 2)          # same
            CurveMask.all(9)            # curves 0..8
            CurveMask.of(0) | CurveMask.of(3)

    """

    __slots__ = ("_bits",)

    def __init__(self, bits: int = 0) -> None:
        if isinstance(bits, bool) or not isinstance(bits, Integral):
            raise InvalidParameter(f"Curve mask must be an int, got {bits!r}")
        bits = int(bits)
        if bits < 0:
            raise InvalidParameter(f"Curve mask must be non-negative, got {bits}")
        self._bits = bits

    @classmethod
    def of(cls, *curves: int) -> CurveMask:
        """Mask selecting exactly the given curve indices."""
        bits = 0
        for c in curves:
            if c < 0:
                raise InvalidParameter(f"Curve index must be non-negative, got {c}")
            bits |= 1 << c
        return cls(bits)

    @classmethod
    def all(cls, num_curves: int) -> CurveMask:
        """Mask selecting curves ``0 .. num_curves - 1``."""
        return cls((1 << num_curves) - 1)

    @classmethod
    def none(cls) -> CurveMask:
        return cls(0)

    def __iter__(self) -> Iterator[int]:
        """Selected curve indices in ascending order."""
        bits = self._bits
        c = 0
        while bits:
            if bits & 1:
                yield c
            bits >>= 1
            c += 1

    def __contains__(self, curve: object) -> bool:
        if isinstance(curve, bool) or not isinstance(curve, Integral) or curve < 0:
            return False
        return bool(self._bits >> int(curve) & 1)

    def __len__(self) -> int:
        return bin(self._bits).count("1")

    def __bool__(self) -> bool:
        return self._bits != 0

    def __int__(self) -> int:
        return self._bits

    def __or__(self, other: Union[CurveMask, int]) -> CurveMask:
        return CurveMask(self._bits | int(as_mask(other)))

    def __and__(self, other: Union[CurveMask, int]) -> CurveMask:
        return CurveMask(self._bits & int(as_mask(other)))

    __ror__ = __or__
    __rand__ = __and__

    def __eq__(self, __value: object) -> bool:
        if isinstance(__value, CurveMask):
            return self._bits == __value._bits
        if isinstance(__value, Integral) and not isinstance(__value, bool):
            return self._bits == int(__value)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._bits)

    def __repr__(self) -> str:
        return f"CurveMask.of({', '.join(str(c) for c in self)})"

    def highest(self) -> int:
        """Largest selected curve index, or -1 for an empty mask."""
        return self._bits.bit_length() - 1

    def validate(self, num_curves: int) -> None:
        """Raise :class:`InvalidParameter` if a selected curve is ``>= num_curves``."""
        if self.highest() >= num_curves:
            raise InvalidParameter(
                f"Mask {self!r} references curve {self.highest()} "
                f"but only {num_curves} curves exist"
            )


def as_mask(mask: Union[CurveMask, int, Iterable[int]]) -> CurveMask:
    """Convert an int bit set or an iterable of curve indices to a :class:`CurveMask`."""
    if isinstance(mask, CurveMask):
        return mask
    if isinstance(mask, Integral):
        return CurveMask(mask)
    return CurveMask.of(*mask)
