"""Bitfield enums: discriminant assignment, fallback variants and bit conversions.

An enum is declared as a subclass of :class:`BitEnum` whose variants are
:func:`variant` markers, and is then finished by :func:`build_enum`::

    class Code(BitEnum):
        Success = variant()
        Error = variant()
        Reserved = variant(fallback=True, with_value=True)

    build_enum(Code, 4, filled=True)

After building, unit variants are singleton instances of the class, and a
fallback variant with a value is a callable that builds instances carrying it.
"""

from __future__ import annotations

import enum
import operator
import warnings
from dataclasses import dataclass
from typing import ClassVar

from .types import parse_bitsize
from .uint import BitsError, UInt

MAX_ENUM_BIT_SIZE = 64


class DiscriminantAssigner:
    """Assigns discriminants in declaration order, as implicit ``previous + 1``."""

    def __init__(self, bitsize: int) -> None:
        self.bitsize = bitsize
        self.max_value = (1 << bitsize) - 1
        self._next = 0

    def assign(self, name: str, discriminant=None) -> int:
        """Return the discriminant of variant ``name``; ``None`` means implicit."""
        if discriminant is None:
            value = self._next
        else:
            if isinstance(discriminant, bool) or not isinstance(discriminant, int):
                raise TypeError(f"variant `{name}` is not a number; only literal integers are supported")
            if discriminant < 0:
                raise ValueError(f"variant `{name}` is not a number; only non-negative integers are supported")
            value = discriminant
        if value > self.max_value:
            raise ValueError(f"Value of variant `{name}` exceeds the given number of bits")
        self._next = value + 1
        return value


class FallbackKind(enum.Enum):
    """Whether a fallback variant discards or keeps the unmatched value."""

    UNIT = "unit"
    WITH_VALUE = "with_value"


@dataclass(frozen=True)
class Fallback:
    """The variant every unmatched bit pattern converts to."""

    kind: FallbackKind
    name: str

    def is_fallback_variant(self, name: str) -> bool:
        return name == self.name


@dataclass(frozen=True)
class Variant:
    """Declaration of one enum variant, replaced by :func:`build_enum`."""

    discriminant: int | None = None
    fallback: bool = False
    with_value: bool = False


def variant(discriminant=None, *, fallback: bool = False, with_value: bool = False) -> Variant:
    """Declare an enum variant, optionally with an explicit discriminant."""
    return Variant(discriminant, fallback, with_value)


def enum_fills_bitsize(bitsize: int, variants_count: int) -> bool:
    """Whether ``variants_count`` variants use every pattern of ``bitsize`` bits.

    Raises ``ValueError`` if there are more variants than patterns.
    """
    max_count = 1 << bitsize
    if variants_count > max_count:
        raise ValueError(f"enum overflows its bitsize; there should only be at most {max_count} variants defined")
    return variants_count == max_count


class _ValueVariant:
    """A fallback variant that carries the raw value it was built from."""

    __slots__ = ("owner", "name")

    def __init__(self, owner, name: str) -> None:
        self.owner = owner
        self.name = name

    def __call__(self, number):
        raw = self.owner._coerce(number)
        return self.owner._make(self.name, self.owner._bilge_int(raw))

    def __repr__(self) -> str:
        return f"{self.owner.__name__}.{self.name}"


class BitEnum:
    """Base class of enums stored in a fixed number of bits."""

    __slots__ = ("_name", "_payload")

    BITS: ClassVar[int] = 0
    MAX: ClassVar[UInt]
    _bilge_int: ClassVar[type | None] = None
    _bilge_filled: ClassVar[bool] = False
    _bilge_fallback: ClassVar[Fallback | None] = None
    _bilge_by_value: ClassVar[dict] = {}
    _bilge_to_value: ClassVar[dict] = {}

    def __new__(cls, *args, **kwargs):
        raise TypeError(f"use {cls.__name__}.from_bits, try_from_bits or one of its variants")

    @property
    def name(self) -> str:
        return self._name

    @property
    def payload(self) -> UInt | None:
        """The carried value of a value fallback, else ``None``."""
        return self._payload

    def __setattr__(self, name, value) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def _make(cls, name: str, payload):
        member = object.__new__(cls)
        object.__setattr__(member, "_name", name)
        object.__setattr__(member, "_payload", payload)
        return member

    @classmethod
    def _coerce(cls, number) -> int:
        int_type = cls._bilge_int
        if int_type is None:
            raise TypeError(f"{cls.__name__} has not been built with build_enum")
        if isinstance(number, UInt):
            if type(number).BITS != cls.BITS:
                raise TypeError(f"expected u{cls.BITS}, got {number!r}")
            return number.value
        if isinstance(number, bool):
            raise TypeError(f"expected u{cls.BITS}, got {number!r}")
        return int_type(operator.index(number)).value

    @classmethod
    def from_bits(cls, number):
        """Convert bits to a variant; only for enums that fill their bitsize."""
        raw = cls._coerce(number)
        if not cls._bilge_filled:
            raise TypeError(f"{cls.__name__} does not fill its bitsize; use try_from_bits")
        member = cls._bilge_by_value.get(raw)
        if member is not None:
            return member
        fallback = cls._bilge_fallback
        if fallback is None:
            raise AssertionError("unreachable: every value of a filled enum has a variant")
        target = getattr(cls, fallback.name)
        if fallback.kind is FallbackKind.WITH_VALUE:
            return target(raw)
        return target

    @classmethod
    def try_from_bits(cls, number):
        """Convert bits to a variant, raising :class:`BitsError` if none matches."""
        raw = cls._coerce(number)
        if cls._bilge_filled:
            return cls.from_bits(raw)
        member = cls._bilge_by_value.get(raw)
        if member is None:
            raise BitsError()
        return member

    def to_bits(self) -> UInt:
        if self._payload is not None:
            return self._payload
        cls = type(self)
        return cls._bilge_int(cls._bilge_to_value[self._name])

    def __eq__(self, other) -> bool:
        if not isinstance(other, BitEnum):
            return NotImplemented
        return type(other) is type(self) and other._name == self._name and other._payload == self._payload

    def __hash__(self) -> int:
        return hash((type(self), self._name, self._payload))

    def __repr__(self) -> str:
        base = f"{type(self).__name__}.{self._name}"
        if self._payload is not None:
            return f"{base}({self._payload.value})"
        return base


_RESERVED_NAMES = frozenset(dir(BitEnum))


def _find_fallback(declared) -> Fallback | None:
    flagged = [(index, name, spec) for index, (name, spec) in enumerate(declared) if spec.fallback]
    if not flagged:
        return None
    if len(flagged) > 1:
        raise ValueError("only one enum variant may be fallback; remove fallback markers until you only have one")
    index, name, spec = flagged[0]
    if not spec.with_value:
        return Fallback(FallbackKind.UNIT, name)
    if index != len(declared) - 1:
        raise ValueError("value fallback is not the last variant; a fallback variant with value must be the last variant")
    return Fallback(FallbackKind.WITH_VALUE, name)


def build_enum(cls, bits, *, filled: bool):
    """Turn the :func:`variant` declarations of ``cls`` into a bitsized enum.

    ``filled`` selects infallible conversion (every bit pattern has a variant
    or a fallback) instead of fallible conversion. Returns ``cls``.
    """
    if not (isinstance(cls, type) and issubclass(cls, BitEnum)) or cls is BitEnum:
        raise TypeError("build_enum needs a subclass of BitEnum")
    if cls.__dict__.get("_bilge_int") is not None:
        raise TypeError(f"{cls.__name__} has already been built")
    bits, int_type = parse_bitsize(bits)
    if bits > MAX_ENUM_BIT_SIZE:
        raise ValueError(f"enum bitsize is limited to {MAX_ENUM_BIT_SIZE}")

    declared = [(name, spec) for name, spec in cls.__dict__.items() if isinstance(spec, Variant)]
    if not declared:
        raise ValueError("empty enums are not supported")
    for name, _ in declared:
        if name in _RESERVED_NAMES:
            raise ValueError(f"variant name `{name}` is reserved")

    fallback = _find_fallback(declared)
    if fallback is not None and not filled:
        raise ValueError("fallback is not allowed with TryFromBits; use FromBits or remove the fallback")

    for name, spec in declared:
        if fallback is not None and fallback.is_fallback_variant(name):
            continue
        if spec.with_value:
            if not filled:
                raise ValueError("TryFromBits only supports unit variants in enums; change this variant to a unit")
            hint = "change this variant to a unit" if fallback else "add a fallback variant or change this variant to a unit"
            raise ValueError(f"FromBits only supports unit variants for variants without fallback; {hint}")

    count = len(declared)
    is_filled = enum_fills_bitsize(bits, count)
    if filled:
        if not is_filled and fallback is None:
            raise ValueError(
                "enum doesn't fill its bitsize; use TryFromBits instead, or specify one of the variants as fallback"
            )
        if is_filled and fallback is not None:
            raise ValueError(f"enum already has {count} variants; remove the fallback")
    elif is_filled:
        warnings.warn(
            f"enum {cls.__name__} fills its bitsize; FromBits can be used instead",
            UserWarning,
            stacklevel=2,
        )

    assigner = DiscriminantAssigner(bits)
    owners: dict[int, str] = {}
    to_value: dict[str, int] = {}
    for name, spec in declared:
        value = assigner.assign(name, spec.discriminant)
        if value in owners:
            raise ValueError(f"discriminant value {value} assigned more than once")
        owners[value] = name
        to_value[name] = value

    cls.BITS = bits
    cls.MAX = int_type.MAX
    cls._bilge_int = int_type
    cls._bilge_filled = filled
    cls._bilge_fallback = fallback
    cls._bilge_to_value = to_value

    by_value = {}
    for name, _ in declared:
        if fallback is not None and fallback.is_fallback_variant(name):
            if fallback.kind is FallbackKind.WITH_VALUE:
                setattr(cls, name, _ValueVariant(cls, name))
            else:
                setattr(cls, name, cls._make(name, None))
            continue
        member = cls._make(name, None)
        setattr(cls, name, member)
        by_value[to_value[name]] = member
    cls._bilge_by_value = by_value
    return cls