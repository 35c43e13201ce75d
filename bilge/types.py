"""Field type descriptors and the packing of field values into raw bits.

A field type is one of:

* ``bool`` or an integer type made by :func:`bilge.uint.u`;
* a class with an integer ``BITS`` attribute, a ``try_from_bits`` (or
  ``from_bits``) class method taking a :class:`UInt`, and a ``to_bits`` method;
* a tuple of field types, packed from the least significant bit upwards;
* an :class:`Array` of a field type.

Tuple values are Python tuples and array values are lists.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from itertools import accumulate

from .uint import MAX_BITS, BitsError, UInt, bits_of, u


@dataclass(frozen=True)
class Array:
    """A fixed-length array of a field type."""

    elem: object
    length: int

    def __post_init__(self) -> None:
        if isinstance(self.length, bool) or not isinstance(self.length, int):
            raise TypeError("array length must be an integer")
        if self.length < 0:
            raise ValueError("array length must not be negative")

    def flatten(self) -> tuple[int, object]:
        """Fold nested arrays into a total element count and the innermost type."""
        if isinstance(self.elem, Array):
            count, leaf = self.elem.flatten()
            return self.length * count, leaf
        return self.length, self.elem


def _is_uint_type(ty) -> bool:
    return isinstance(ty, type) and issubclass(ty, UInt) and ty.BITS > 0


def _with_offsets(types):
    sizes = [type_bitsize(elem) for elem in types]
    return zip(types, accumulate(sizes, initial=0))


def type_bitsize(ty) -> int:
    """Number of bits a field type occupies."""
    if isinstance(ty, tuple):
        return sum(type_bitsize(elem) for elem in ty)
    if isinstance(ty, Array):
        return type_bitsize(ty.elem) * ty.length
    return bits_of(ty)


def type_mask(ty) -> int:
    """A mask with every bit of the field type set."""
    return (1 << type_bitsize(ty)) - 1


def is_always_filled(ty) -> bool:
    """Whether every bit pattern is valid for ``ty`` judged by its kind alone."""
    return ty is bool or _is_uint_type(ty)


def bitsize_from_type_name(name: str) -> int | None:
    """Bit size of a type named ``bool`` or ``uN``, else ``None``."""
    if name == "bool":
        return 1
    if not name.startswith("u"):
        return None
    suffix = name[1:]
    if not (suffix.isascii() and suffix.isdigit()):
        return None
    bits = int(suffix)
    return bits if bits <= MAX_BITS else None


def parse_bitsize(arg) -> tuple[int, type[UInt]]:
    """Validate a declared bit size and return it with its integer type."""
    if isinstance(arg, bool) or not isinstance(arg, int):
        raise TypeError("attribute value is not a number; define the size like this: bitsize(32)")
    if not 1 <= arg <= MAX_BITS:
        raise ValueError(f"attribute value is not a valid number; numbers from 1 to {MAX_BITS} are allowed")
    return arg, u(arg)


def _from_raw(ty, raw: int):
    if ty is bool:
        return bool(raw)
    if _is_uint_type(ty):
        return ty(raw)
    number = u(bits_of(ty))(raw)
    convert = getattr(ty, "try_from_bits", None) or getattr(ty, "from_bits", None)
    if convert is None:
        raise TypeError(f"{ty!r} cannot be built from bits")
    return convert(number)


def _to_raw(ty, value) -> int:
    if ty is bool:
        if not isinstance(value, bool):
            raise TypeError(f"expected bool, got {value!r}")
        return int(value)
    if _is_uint_type(ty):
        if isinstance(value, bool):
            raise TypeError(f"expected u{ty.BITS}, got {value!r}")
        if isinstance(value, UInt) and type(value).BITS != ty.BITS:
            raise TypeError(f"expected u{ty.BITS}, got {value!r}")
        return ty(operator.index(value)).value
    bits_of(ty)
    if not isinstance(value, ty):
        raise TypeError(f"expected {ty.__name__}, got {value!r}")
    return int(value.to_bits())


def _check_raw(raw) -> int:
    number = operator.index(raw)
    if number < 0:
        raise ValueError("raw bits must not be negative")
    return number


def unpack(ty, raw):
    """Read a value of type ``ty`` from the low bits of ``raw``.

    Raises :class:`BitsError` if a nested type rejects its bits.
    """
    raw = _check_raw(raw)
    if isinstance(ty, tuple):
        return tuple(unpack(elem, raw >> offset) for elem, offset in _with_offsets(ty))
    if isinstance(ty, Array):
        size = type_bitsize(ty.elem)
        return [unpack(ty.elem, raw >> (size * index)) for index in range(ty.length)]
    return _from_raw(ty, raw & type_mask(ty))


def pack(ty, value) -> int:
    """Encode ``value`` of type ``ty`` into an integer starting at bit zero."""
    if isinstance(ty, tuple):
        items = tuple(value)
        if len(items) != len(ty):
            raise ValueError(f"expected a tuple of {len(ty)} elements, got {len(items)}")
        result = 0
        for (elem, offset), item in zip(_with_offsets(ty), items):
            result |= pack(elem, item) << offset
        return result
    if isinstance(ty, Array):
        items = list(value)
        if len(items) != ty.length:
            raise ValueError(f"expected an array of {ty.length} elements, got {len(items)}")
        size = type_bitsize(ty.elem)
        result = 0
        for index, item in enumerate(items):
            result |= pack(ty.elem, item) << (size * index)
        return result
    return _to_raw(ty, value)


def is_valid(ty, raw) -> bool:
    """Whether the low bits of ``raw`` form a valid value of ``ty``."""
    raw = _check_raw(raw)
    if isinstance(ty, tuple):
        return all(is_valid(elem, raw >> offset) for elem, offset in _with_offsets(ty))
    if isinstance(ty, Array):
        count, leaf = ty.flatten()
        size = type_bitsize(leaf)
        return all(is_valid(leaf, raw >> (size * index)) for index in range(count))
    if is_always_filled(ty):
        return True
    try:
        _from_raw(ty, raw & type_mask(ty))
    except BitsError:
        return False
    return True


def check_type_is_supported(ty) -> None:
    """Raise ``TypeError`` unless ``ty`` can be used as a bitfield field type."""
    if isinstance(ty, tuple):
        for elem in ty:
            check_type_is_supported(elem)
        return
    if isinstance(ty, Array):
        check_type_is_supported(ty.elem)
        return
    try:
        bits_of(ty)
    except TypeError:
        raise TypeError(f"This field type is not supported: {ty!r}") from None