"""The ``bitsize`` decorator and the derives that can be applied with it.

``bitsize`` builds a :class:`~bilge.structs.Bitfield` or
:class:`~bilge.enums.BitEnum` subclass and then applies its derives::

    @bitsize(6, derive=["FromBits", "DebugBits"])
    class Example(Bitfield):
        field1: u(2)
        field2: u(4)

``FromBits`` selects infallible conversion from bits and ``TryFromBits``
fallible conversion. Every other derive is looked up among those added with
:func:`register_derive` and then among the built-in ones. Derives whose name
ends in ``Bits`` run first, in the order given, followed by the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from . import paths
from .enums import BitEnum, Variant, enum_fills_bitsize, MAX_ENUM_BIT_SIZE
from .formatting import binary_bits, debug_bits, default_bits
from .serde import deserialize, serializable_fields, serialize
from .structs import Bitfield, build_struct
from .types import parse_bitsize
from .enums import build_enum


class BitfieldDefinitionError(ValueError):
    """Raised when a bitfield declaration or its derives are invalid."""


@dataclass(frozen=True)
class Derive:
    """The path of one derive, optionally with the function that applies it."""

    path: tuple[str, ...]
    func: Callable | None = field(default=None, compare=False)

    @classmethod
    def of(cls, spec) -> "Derive":
        """Make a derive from a path string, a segment sequence or a function."""
        if isinstance(spec, Derive):
            return spec
        if callable(spec):
            return cls((spec.__name__,), spec)
        return cls(paths.split_path(spec))

    def matches(self, segments) -> bool:
        return paths.matches(self.path, segments)

    def matches_core_or_std(self, segments) -> bool:
        return paths.matches_core_or_std(self.path, segments)

    def is_custom_bitfield_derive(self) -> bool:
        """Derives named ``...Bits`` see the bitfield's field information."""
        return self.path[-1].endswith("Bits")

    def __str__(self) -> str:
        return "::".join(self.path)


@dataclass
class SplitAttributes:
    """Derives split into those that need field information and the rest."""

    before_compression: list[Derive]
    after_compression: list[Derive]

    @classmethod
    def from_derives(cls, derives, is_struct: bool) -> "SplitAttributes":
        """Sort ``derives`` and reject invalid combinations."""
        before: list[Derive] = []
        after: list[Derive] = []
        from_bytes = None
        has_frombits = False

        for spec in derives:
            derive = Derive.of(spec)
            if any("bitsize_internal" in segment for segment in derive.path):
                raise BitfieldDefinitionError(
                    "remove bitsize_internal; it can only be applied internally by bitsize"
                )
            if derive.matches(["zerocopy", "FromBytes"]):
                from_bytes = derive
            elif derive.matches(["bilge", "FromBits"]):
                has_frombits = True
            elif derive.matches_core_or_std(["fmt", "Debug"]) and is_struct:
                raise BitfieldDefinitionError("use derive(DebugBits) for structs")
            elif derive.matches_core_or_std(["default", "Default"]) and is_struct:
                derive = Derive(("bilge", "DefaultBits"))

            if derive.is_custom_bitfield_derive():
                before.append(derive)
            else:
                after.append(derive)

        if from_bytes is not None and not has_frombits:
            raise BitfieldDefinitionError("a bitfield with zerocopy::FromBytes also needs to have FromBits")

        if not is_struct:
            before.extend(after)
            after = []
        return cls(before, after)


_REGISTRY: dict[tuple[str, ...], Callable] = {}


def register_derive(name, func):
    """Make ``func(cls)`` available as the derive ``name``; returns ``func``.

    ``func`` receives the built class; a non-``None`` result replaces it.
    """
    if not callable(func):
        raise TypeError("a derive must be callable")
    key = paths.split_path(name)
    if key in _REGISTRY:
        raise ValueError(f"derive `{'::'.join(key)}` is already registered")
    _REGISTRY[key] = func
    return func


def _noop(cls):
    return cls


def _serialize_bits(cls):
    serializable_fields(cls)
    _check_free_name(cls, "to_data")

    def to_data(self):
        return serialize(self)

    to_data.__doc__ = "This struct as plain data."
    cls.to_data = to_data
    return cls


def _deserialize_bits(cls):
    serializable_fields(cls)
    _check_free_name(cls, "from_data")

    def from_data(klass, data):
        return deserialize(klass, data)

    from_data.__doc__ = "Build the struct from plain data."
    cls.from_data = classmethod(from_data)
    return cls


def _check_free_name(cls, name: str) -> None:
    if any(spec.name == name for spec in cls._bilge_fields):
        raise BitfieldDefinitionError(f"field name `{name}` clashes with {name}()")


def _enum_default(cls):
    if not callable(getattr(cls, "default", None)):
        raise BitfieldDefinitionError(f"enum {cls.__name__} needs a default() class method to derive Default")
    return cls


_BILGE_DERIVES = {
    "FromBits": _noop,
    "TryFromBits": _noop,
    "DebugBits": debug_bits,
    "BinaryBits": binary_bits,
    "DefaultBits": default_bits,
    "SerializeBits": _serialize_bits,
    "DeserializeBits": _deserialize_bits,
}

_STD_NOOPS = (("clone", "Clone"), ("marker", "Copy"), ("cmp", "PartialEq"), ("cmp", "Eq"), ("hash", "Hash"), ("fmt", "Debug"))


def _handler(derive: Derive) -> Callable:
    if derive.func is not None:
        return derive.func
    for key, func in _REGISTRY.items():
        if derive.matches(key):
            return func
    for name, func in _BILGE_DERIVES.items():
        if derive.matches(["bilge", name]):
            return func
    for segments in _STD_NOOPS:
        if derive.matches_core_or_std(segments):
            return _noop
    if derive.matches_core_or_std(["default", "Default"]):
        return _enum_default
    if derive.matches(["zerocopy", "FromBytes"]):
        return _noop
    raise BitfieldDefinitionError(f"unknown derive `{derive}`")


def _enum_is_filled(cls, bits: int) -> bool:
    declared = [spec for spec in cls.__dict__.values() if isinstance(spec, Variant)]
    if any(spec.fallback for spec in declared):
        return True
    if not declared:
        return False
    try:
        return enum_fills_bitsize(bits, len(declared))
    except ValueError as error:
        raise BitfieldDefinitionError(str(error)) from error


def bitsize(bits, *, derive=()):
    """Declare the bit size of a struct or enum class and apply its derives."""
    try:
        bits, _ = parse_bitsize(bits)
    except ValueError as error:
        raise BitfieldDefinitionError(str(error)) from error
    derives = [Derive.of(spec) for spec in derive]

    def decorate(cls):
        if not isinstance(cls, type):
            raise TypeError("bitsize can only be used on structs and enums")
        is_struct = issubclass(cls, Bitfield)
        if not is_struct and not issubclass(cls, BitEnum):
            raise TypeError("bitsize can only be used on Bitfield or BitEnum subclasses")

        split = SplitAttributes.from_derives(derives, is_struct)
        ordered = split.before_compression + split.after_compression
        handlers = [_handler(item) for item in ordered]

        from_bits = any(item.matches(["bilge", "FromBits"]) for item in ordered)
        try_from_bits = any(item.matches(["bilge", "TryFromBits"]) for item in ordered)
        if from_bits and try_from_bits:
            raise BitfieldDefinitionError("derive either FromBits or TryFromBits, not both")

        try:
            if is_struct:
                build_struct(cls, bits, filled=from_bits)
            else:
                if bits > MAX_ENUM_BIT_SIZE:
                    raise BitfieldDefinitionError(f"enum bitsize is limited to {MAX_ENUM_BIT_SIZE}")
                if from_bits or try_from_bits:
                    filled = from_bits
                else:
                    filled = _enum_is_filled(cls, bits)
                build_enum(cls, bits, filled=filled)
        except BitfieldDefinitionError:
            raise
        except ValueError as error:
            raise BitfieldDefinitionError(str(error)) from error

        for handler in handlers:
            result = handler(cls)
            if result is not None:
                cls = result
        return cls

    return decorate