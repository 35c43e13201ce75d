"""Fixed-width unsigned integers and the bit-size protocol shared by all bitfields."""

from __future__ import annotations

import operator
from functools import lru_cache
from typing import ClassVar

MAX_BITS = 128


class BitsError(Exception):
    """Raised when a bit pattern has no valid interpretation."""

    def __init__(self, message: str = "unable to parse bit pattern") -> None:
        super().__init__(message)

    def __repr__(self) -> str:
        return "BitsError"


class UInt:
    """An unsigned integer restricted to ``BITS`` bits.

    Concrete widths are created with :func:`u`; the base class itself has no width.
    """

    __slots__ = ("value",)

    BITS: ClassVar[int] = 0
    MAX: ClassVar["UInt"]

    def __init__(self, value) -> None:
        bits = type(self).BITS
        if bits <= 0:
            raise TypeError("use u(bits) to create a sized integer type")
        if isinstance(value, bool):
            raise TypeError(f"u{bits} cannot be built from a bool")
        number = operator.index(value)
        if not 0 <= number < (1 << bits):
            raise ValueError(f"value {number} out of range for u{bits}")
        object.__setattr__(self, "value", number)

    def __setattr__(self, name, value) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __eq__(self, other) -> bool:
        if isinstance(other, UInt):
            return type(other).BITS == type(self).BITS and other.value == self.value
        if isinstance(other, int) and not isinstance(other, bool):
            return self.value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"u{type(self).BITS}({self.value})"

    def __format__(self, spec: str) -> str:
        return format(self.value, spec)


@lru_cache(maxsize=None)
def u(bits: int) -> type[UInt]:
    """Return the unsigned integer type that is ``bits`` wide (1 to 128)."""
    if isinstance(bits, bool) or not isinstance(bits, int):
        raise TypeError("bit width must be an integer")
    if not 1 <= bits <= MAX_BITS:
        raise ValueError(f"bit width must be between 1 and {MAX_BITS}")
    cls = type(f"u{bits}", (UInt,), {"__slots__": (), "BITS": bits, "__module__": __name__})
    cls.MAX = cls((1 << bits) - 1)
    return cls


def bits_of(ty) -> int:
    """Number of bits a bitsized type occupies; ``bool`` counts as one bit."""
    if ty is bool:
        return 1
    if isinstance(ty, type):
        bits = getattr(ty, "BITS", None)
        if isinstance(bits, int) and not isinstance(bits, bool) and bits > 0:
            return bits
    raise TypeError(f"{ty!r} is not a bitsized type")


def max_of(ty) -> UInt:
    """The largest value of the integer type underlying ``ty``."""
    return u(bits_of(ty)).MAX