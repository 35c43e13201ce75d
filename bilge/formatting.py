"""Debug text, binary text and default values for bitfields."""

from __future__ import annotations

from .enums import BitEnum
from .structs import Bitfield
from .types import Array, is_always_filled
from .uint import UInt


def _require_built(cls, what: str) -> None:
    if not isinstance(cls, type) or not issubclass(cls, (Bitfield, BitEnum)):
        raise TypeError(f"{what} needs a Bitfield or BitEnum subclass")
    if getattr(cls, "_bilge_int", None) is None:
        raise TypeError(f"{cls.__name__} must be built before applying {what}")


def _debug(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, UInt):
        return str(value.value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, tuple):
        inner = ", ".join(_debug(item) for item in value)
        return f"({inner},)" if len(value) == 1 else f"({inner})"
    if isinstance(value, list):
        return "[" + ", ".join(_debug(item) for item in value) + "]"
    if isinstance(value, BitEnum):
        if value.payload is not None:
            return f"{value.name}({value.payload.value})"
        return value.name
    if isinstance(value, Bitfield):
        return _debug_struct(value)
    return repr(value)


def _debug_struct(instance) -> str:
    cls = type(instance)
    fields = cls._bilge_fields
    if cls._bilge_tuple:
        inner = ", ".join(_debug(getattr(instance, spec.name)) for spec in fields)
        return f"{cls.__name__}({inner})"
    inner = ", ".join(f"{spec.name}: {_debug(getattr(instance, spec.name))}" for spec in fields)
    return f"{cls.__name__} {{ {inner} }}"


def debug_bits(cls):
    """Give a bitfield struct a ``repr`` listing its fields; returns ``cls``."""
    if isinstance(cls, type) and issubclass(cls, BitEnum):
        raise TypeError("use the enum's own repr; debug_bits is for structs")
    _require_built(cls, "debug_bits")

    def __repr__(self) -> str:
        return _debug_struct(self)

    cls.__repr__ = __repr__
    return cls


def format_binary(value) -> str:
    """Binary digits of a bitfield value.

    Struct fields are written from most to least significant, each padded to
    its size and separated by underscores; enums are padded to their size.
    """
    if isinstance(value, Bitfield):
        raw = value.value.value
        parts = [
            format((raw >> spec.offset) & ((1 << spec.size) - 1), f"0{spec.size}b")
            for spec in reversed(type(value)._bilge_fields)
        ]
        return "_".join(parts)
    if isinstance(value, BitEnum):
        return format(value.to_bits().value, f"0{type(value).BITS}b")
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, UInt):
        return format(value.value, "b")
    raise TypeError(f"cannot format {value!r} as binary")


def _binary_format(self, spec: str) -> str:
    if spec == "b":
        return format_binary(self)
    if spec == "#b":
        return "0b" + format_binary(self)
    if spec == "":
        return str(self)
    raise ValueError(f"unsupported format specifier {spec!r} for {type(self).__name__}")


def binary_bits(cls):
    """Let ``format(value, "b")`` write the bits of a struct or enum; returns ``cls``."""
    _require_built(cls, "binary_bits")
    cls.__format__ = _binary_format
    return cls


def _leaves(ty):
    if isinstance(ty, tuple):
        for elem in ty:
            yield from _leaves(elem)
    elif isinstance(ty, Array):
        yield from _leaves(ty.elem)
    else:
        yield ty


def _has_default(ty) -> bool:
    return is_always_filled(ty) or callable(getattr(ty, "default", None))


def _default_of(ty):
    if isinstance(ty, tuple):
        return tuple(_default_of(elem) for elem in ty)
    if isinstance(ty, Array):
        return [_default_of(ty.elem) for _ in range(ty.length)]
    if ty is bool:
        return False
    if is_always_filled(ty):
        return ty(0)
    return ty.default()


def default_bits(cls):
    """Give a bitfield struct a ``default()`` class method; returns ``cls``.

    Integers default to zero, ``bool`` to ``False`` and every other field
    type to the result of its own ``default()``.
    """
    if isinstance(cls, type) and issubclass(cls, BitEnum):
        raise TypeError("define default() on the enum itself; default_bits is for structs")
    _require_built(cls, "default_bits")
    fields = cls._bilge_fields
    for spec in fields:
        if spec.name == "default":
            raise ValueError("field name `default` clashes with default()")
        for leaf in _leaves(spec.ty):
            if not _has_default(leaf):
                raise TypeError(f"field `{spec.name}` has type {leaf!r}, which has no default()")

    def default(klass):
        raw = 0
        for spec in klass._bilge_fields:
            from .types import pack, type_mask

            raw |= (pack(spec.ty, _default_of(spec.ty)) & type_mask(spec.ty)) << spec.offset
        return klass.try_from_bits(raw)

    default.__doc__ = "The value with every field at its default."
    cls.default = classmethod(default)
    return cls