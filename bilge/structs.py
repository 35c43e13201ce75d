"""Bitfield structs: named or positional fields packed into one integer.

A struct is declared as a subclass of :class:`Bitfield` and finished by
:func:`build_struct`. Fields are given either as class annotations::

    class Header(Bitfield):
        len: u(11)
        some: u(1)
        ty: u(4)

    build_struct(Header, 16, filled=True)

or as a ``FIELDS`` sequence, which also allows repeated ``reserved`` or
``padding`` names (as ``(name, type)`` pairs) and positional structs (as
bare types, whose fields are then called ``val_0``, ``val_1`` and so on).

The first field occupies the least significant bits. Every field gets a
property; fields of array type additionally get ``<name>_at(index)`` and
``set_<name>_at(index, value)``. Reserved and padding fields are read-only
and are left out of the constructor, which sets them to zero.
"""

from __future__ import annotations

import inspect
import operator
from dataclasses import dataclass
from itertools import accumulate
from typing import ClassVar

from .types import (
    Array,
    check_type_is_supported,
    is_always_filled,
    is_valid,
    pack,
    parse_bitsize,
    type_bitsize,
    type_mask,
    unpack,
)
from .uint import BitsError, UInt

_SPECIAL_NAMES = {
    "reserved": "reserved",
    "_reserved": "reserved",
    "padding": "padding",
    "_padding": "padding",
}


def rename_special_fields(names):
    """Number repeated ``reserved``/``padding`` names as ``reserved_i``, ``reserved_ii``, ...

    ``None`` entries (positional fields) are passed through unchanged.
    """
    counts = {"reserved": 0, "padding": 0}
    renamed = []
    for name in names:
        kind = _SPECIAL_NAMES.get(name) if name is not None else None
        if kind is None:
            renamed.append(name)
            continue
        counts[kind] += 1
        renamed.append(f"{kind}_{'i' * counts[kind]}")
    return renamed


@dataclass(frozen=True)
class FieldSpec:
    """Name, type and bit position of one struct field."""

    name: str
    ty: object
    offset: int
    size: int
    reserved: bool = False

    @property
    def mask(self) -> int:
        """The field's bits, shifted into place within the struct."""
        return type_mask(self.ty) << self.offset


def _replace_bits(raw: int, offset: int, ty, new_value) -> int:
    mask = type_mask(ty)
    packed = pack(ty, new_value) & mask
    return (raw & ~(mask << offset)) | (packed << offset)


def _element_offset(spec: FieldSpec, index) -> int:
    length = spec.ty.length
    index = operator.index(index)
    if not 0 <= index < length:
        raise IndexError(f"assertion failed: index < {length}")
    return spec.offset + type_bitsize(spec.ty.elem) * index


class Bitfield:
    """Base class of structs stored in a fixed number of bits.

    The raw bits live in ``value``; changing it directly bypasses validation.
    """

    __slots__ = ("value",)

    BITS: ClassVar[int] = 0
    MAX: ClassVar[UInt]
    _bilge_int: ClassVar[type | None] = None
    _bilge_filled: ClassVar[bool] = False
    _bilge_fields: ClassVar[tuple] = ()
    _bilge_tuple: ClassVar[bool] = False
    _bilge_signature: ClassVar[inspect.Signature | None] = None

    def __init__(self, *args, **kwargs) -> None:
        cls = type(self)
        signature = cls._bilge_signature
        if signature is None or cls._bilge_int is None:
            raise TypeError(f"{cls.__name__} has not been built with build_struct")
        bound = signature.bind(*args, **kwargs)
        raw = 0
        for spec in cls._bilge_fields:
            if spec.reserved:
                continue
            raw |= (pack(spec.ty, bound.arguments[spec.name]) & type_mask(spec.ty)) << spec.offset
        self.value = cls._bilge_int(raw)

    @classmethod
    def _coerce(cls, value) -> int:
        int_type = cls._bilge_int
        if int_type is None:
            raise TypeError(f"{cls.__name__} has not been built with build_struct")
        if isinstance(value, UInt):
            if type(value).BITS != cls.BITS:
                raise TypeError(f"expected u{cls.BITS}, got {value!r}")
            return value.value
        if isinstance(value, bool):
            raise TypeError(f"expected u{cls.BITS}, got {value!r}")
        return int_type(operator.index(value)).value

    @classmethod
    def _wrap(cls, raw: int):
        instance = object.__new__(cls)
        instance.value = cls._bilge_int(raw)
        return instance

    @classmethod
    def from_bits(cls, value):
        """Build from raw bits; only for structs whose every bit pattern is valid."""
        raw = cls._coerce(value)
        if not cls._bilge_filled:
            raise TypeError(f"{cls.__name__} does not fill its bitsize; use try_from_bits")
        return cls._wrap(raw)

    @classmethod
    def try_from_bits(cls, value):
        """Build from raw bits, raising :class:`BitsError` if a field rejects its bits."""
        raw = cls._coerce(value)
        if not all(is_valid(spec.ty, raw >> spec.offset) for spec in cls._bilge_fields):
            raise BitsError()
        return cls._wrap(raw)

    def to_bits(self) -> UInt:
        return self.value

    def __eq__(self, other) -> bool:
        if not isinstance(other, Bitfield):
            return NotImplemented
        return type(other) is type(self) and other.value == self.value

    def __hash__(self) -> int:
        return hash((type(self), self.value))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(value={self.value!r})"


_RESERVED_NAMES = frozenset(dir(Bitfield))


def _declared_fields(cls):
    own_annotations = cls.__dict__.get("__annotations__", {})
    annotations = {name: ty for name, ty in dict(own_annotations).items() if name != "FIELDS"}
    declared = cls.__dict__.get("FIELDS")
    if declared is not None and annotations:
        raise TypeError("declare fields either as annotations or in FIELDS, not both")
    if declared is None:
        for name, ty in annotations.items():
            if isinstance(ty, str):
                raise TypeError(f"annotation of field `{name}` must be a field type, not a string")
        return list(annotations.items()), False

    items = list(declared)
    named = [isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], str) for item in items]
    if all(named):
        return [(name, ty) for name, ty in items], False
    if not any(named):
        return [(None, ty) for ty in items], True
    raise TypeError("FIELDS must hold either only (name, type) pairs or only types")


def _leaves(ty):
    if isinstance(ty, tuple):
        for elem in ty:
            yield from _leaves(elem)
    elif isinstance(ty, Array):
        yield from _leaves(ty.elem)
    else:
        yield ty


def _leaf_is_filled(ty) -> bool:
    if is_always_filled(ty):
        return True
    flag = getattr(ty, "_bilge_filled", None)
    if flag is not None:
        return bool(flag)
    return callable(getattr(ty, "from_bits", None))


def _make_property(spec: FieldSpec) -> property:
    def getter(self):
        return unpack(spec.ty, self.value.value >> spec.offset)

    if spec.reserved:
        return property(getter, doc=f"Reserved field `{spec.name}` (read-only).")

    def setter(self, new_value):
        raw = _replace_bits(self.value.value, spec.offset, spec.ty, new_value)
        self.value = type(self)._bilge_int(raw)

    return property(getter, setter, doc=f"Field `{spec.name}`.")


def _make_element_getter(spec: FieldSpec):
    def element(self, index):
        offset = _element_offset(spec, index)
        return unpack(spec.ty.elem, self.value.value >> offset)

    element.__name__ = f"{spec.name}_at"
    element.__doc__ = f"Element ``index`` of `{spec.name}`."
    return element


def _make_element_setter(spec: FieldSpec):
    def set_element(self, index, new_value):
        offset = _element_offset(spec, index)
        raw = _replace_bits(self.value.value, offset, spec.ty.elem, new_value)
        self.value = type(self)._bilge_int(raw)

    set_element.__name__ = f"set_{spec.name}_at"
    set_element.__doc__ = f"Set element ``index`` of `{spec.name}`."
    return set_element


def build_struct(cls, bits, *, filled: bool):
    """Turn the field declarations of ``cls`` into a bitsized struct.

    ``filled`` asks for infallible conversion from bits, which needs every
    field type to accept every bit pattern. Returns ``cls``.
    """
    if not (isinstance(cls, type) and issubclass(cls, Bitfield)) or cls is Bitfield:
        raise TypeError("build_struct needs a subclass of Bitfield")
    if cls.__dict__.get("_bilge_int") is not None:
        raise TypeError(f"{cls.__name__} has already been built")
    bits, int_type = parse_bitsize(bits)

    pairs, is_tuple = _declared_fields(cls)
    if not pairs:
        raise ValueError("structs without fields are not supported")
    for _, ty in pairs:
        check_type_is_supported(ty)

    names = rename_special_fields([name for name, _ in pairs])
    positional = iter(range(len(names)))
    names = [name if name is not None else f"val_{next(positional)}" for name in names]

    types = [ty for _, ty in pairs]
    sizes = [type_bitsize(ty) for ty in types]
    total = sum(sizes)
    if total != bits:
        raise ValueError(f"struct size and declared bit size differ: {total} != {bits}")

    specs = tuple(
        FieldSpec(name, ty, offset, size, "reserved_" in name or "padding_" in name)
        for name, ty, offset, size in zip(names, types, accumulate(sizes, initial=0), sizes)
    )

    if filled:
        for spec in specs:
            for leaf in _leaves(spec.ty):
                if not _leaf_is_filled(leaf):
                    raise ValueError(
                        f"field `{spec.name}` has type {leaf!r}, which does not fill its bitsize; use TryFromBits"
                    )

    generated = set()
    for spec in specs:
        wanted = [spec.name]
        if isinstance(spec.ty, Array):
            wanted.append(f"{spec.name}_at")
        if not spec.reserved:
            wanted.append(f"set_{spec.name}")
            if isinstance(spec.ty, Array):
                wanted.append(f"set_{spec.name}_at")
        for name in wanted:
            if name in _RESERVED_NAMES or name in generated or (name in cls.__dict__ and name != "FIELDS"):
                raise ValueError(f"field name `{spec.name}` clashes with `{name}`")
            generated.add(name)

    parameters = [
        inspect.Parameter(spec.name, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        for spec in specs
        if not spec.reserved
    ]

    cls.BITS = bits
    cls.MAX = int_type.MAX
    cls._bilge_int = int_type
    cls._bilge_filled = filled
    cls._bilge_fields = specs
    cls._bilge_tuple = is_tuple
    cls._bilge_signature = inspect.Signature(parameters)

    for spec in specs:
        setattr(cls, spec.name, _make_property(spec))
        if isinstance(spec.ty, Array):
            setattr(cls, f"{spec.name}_at", _make_element_getter(spec))
            if not spec.reserved:
                setattr(cls, f"set_{spec.name}_at", _make_element_setter(spec))
    return cls