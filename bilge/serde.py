"""Conversion of bitfield structs to and from plain data (dicts, lists, ints)."""

from __future__ import annotations

import json
from collections.abc import Mapping

from .enums import BitEnum, FallbackKind
from .structs import Bitfield
from .types import Array, is_always_filled
from .uint import UInt


class DeserializeError(ValueError):
    """Raised when data does not describe a value of the requested type."""


def _require_struct(cls) -> None:
    if isinstance(cls, type) and issubclass(cls, BitEnum):
        raise TypeError("enums are serialized as values, not as structs")
    if not isinstance(cls, type) or not issubclass(cls, Bitfield):
        raise TypeError(f"{cls!r} is not a Bitfield subclass")
    if cls._bilge_int is None:
        raise TypeError(f"{cls.__name__} has not been built with build_struct")


def serializable_fields(cls) -> tuple[str, ...]:
    """Names of the fields that take part in serialization.

    Reserved and padding fields of named structs are left out.
    """
    _require_struct(cls)
    specs = cls._bilge_fields
    if cls._bilge_tuple:
        return tuple(spec.name for spec in specs)
    return tuple(
        spec.name
        for spec in specs
        if not spec.name.startswith("reserved_") and not spec.name.startswith("padding_")
    )


def _to_data(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, UInt):
        return value.value
    if isinstance(value, int):
        return value
    if isinstance(value, (tuple, list)):
        return [_to_data(item) for item in value]
    if isinstance(value, Bitfield):
        return serialize(value)
    if isinstance(value, BitEnum):
        if value.payload is not None:
            return {value.name: value.payload.value}
        return value.name
    raise TypeError(f"cannot serialize {value!r}")


def serialize(value):
    """A named struct as a dict of its fields, a positional struct as a list."""
    if not isinstance(value, Bitfield):
        raise TypeError(f"{value!r} is not a bitfield struct")
    cls = type(value)
    names = serializable_fields(cls)
    if cls._bilge_tuple:
        return [_to_data(getattr(value, name)) for name in names]
    return {name: _to_data(getattr(value, name)) for name in names}


def _one_of(names) -> str:
    quoted = [f"`{name}`" for name in names]
    if len(quoted) == 1:
        return quoted[0]
    if len(quoted) == 2:
        return f"{quoted[0]} or {quoted[1]}"
    return "one of " + ", ".join(quoted)


def _unexpected(data) -> str:
    if isinstance(data, bool):
        return f"boolean `{str(data).lower()}`"
    if isinstance(data, int):
        return f"integer `{data}`"
    if isinstance(data, float):
        return f"floating point `{data}`"
    if isinstance(data, str):
        return f"string {json.dumps(data)}"
    if data is None:
        return "null"
    if isinstance(data, Mapping):
        return "map"
    if isinstance(data, (list, tuple)):
        return "sequence"
    return type(data).__name__


def _expecting(ty) -> str:
    if ty is bool:
        return "a boolean"
    if isinstance(ty, tuple):
        return f"a tuple of size {len(ty)}"
    if isinstance(ty, Array):
        return f"an array of length {ty.length}"
    if isinstance(ty, type) and issubclass(ty, Bitfield):
        return f"struct {ty.__name__}"
    if isinstance(ty, type) and issubclass(ty, BitEnum):
        return f"enum {ty.__name__}"
    return f"u{ty.BITS}"


def _invalid_type(data, ty) -> DeserializeError:
    return DeserializeError(f"invalid type: {_unexpected(data)}, expected {_expecting(ty)}")


def _is_sequence(data) -> bool:
    return isinstance(data, (list, tuple))


def _enum_from_data(ty, data):
    names = list(ty._bilge_to_value)
    fallback = ty._bilge_fallback
    value_variant = (
        fallback.name if fallback is not None and fallback.kind is FallbackKind.WITH_VALUE else None
    )
    if isinstance(data, str):
        if data not in names:
            raise DeserializeError(f"unknown variant `{data}`, expected {_one_of(names)}")
        if data == value_variant:
            raise DeserializeError("invalid type: unit variant, expected tuple variant")
        return getattr(ty, data)
    if isinstance(data, Mapping) and len(data) == 1:
        (name, payload), = data.items()
        if name not in names:
            raise DeserializeError(f"unknown variant `{name}`, expected {_one_of(names)}")
        if name != value_variant:
            raise DeserializeError("invalid type: newtype variant, expected unit variant")
        if isinstance(payload, bool) or not isinstance(payload, int):
            raise DeserializeError(f"invalid type: {_unexpected(payload)}, expected u{ty.BITS}")
        if not 0 <= payload < (1 << ty.BITS):
            raise DeserializeError(f"invalid value: integer `{payload}`, expected u{ty.BITS}")
        return getattr(ty, name)(payload)
    raise _invalid_type(data, ty)


def _from_data(ty, data):
    if ty is bool:
        if not isinstance(data, bool):
            raise _invalid_type(data, ty)
        return data
    if isinstance(ty, tuple):
        if not _is_sequence(data):
            raise _invalid_type(data, ty)
        if len(data) != len(ty):
            raise DeserializeError(f"invalid length {len(data)}, expected {_expecting(ty)}")
        return tuple(_from_data(elem, item) for elem, item in zip(ty, data))
    if isinstance(ty, Array):
        if not _is_sequence(data):
            raise _invalid_type(data, ty)
        if len(data) != ty.length:
            raise DeserializeError(f"invalid length {len(data)}, expected {_expecting(ty)}")
        return [_from_data(ty.elem, item) for item in data]
    if isinstance(ty, type) and issubclass(ty, Bitfield):
        return deserialize(ty, data)
    if isinstance(ty, type) and issubclass(ty, BitEnum):
        return _enum_from_data(ty, data)
    if is_always_filled(ty):
        if isinstance(data, bool) or not isinstance(data, int):
            raise _invalid_type(data, ty)
        if not 0 <= data < (1 << ty.BITS):
            raise DeserializeError(f"invalid value: integer `{data}`, expected {_expecting(ty)}")
        return ty(data)
    raise TypeError(f"cannot deserialize field type {ty!r}")


def _field_expecting(names) -> str:
    quoted = [f"`{name}`" for name in names]
    if len(quoted) > 1:
        quoted[-1] = "or " + quoted[-1]
    return ", ".join(quoted)


def deserialize(cls, data):
    """Build a struct from a dict (named structs only) or a list of its fields."""
    names = serializable_fields(cls)
    types = {spec.name: spec.ty for spec in cls._bilge_fields}
    struct_name = f"struct {cls.__name__}"

    if isinstance(data, Mapping):
        if cls._bilge_tuple:
            raise DeserializeError(f"invalid type: map, expected {struct_name}")
        values = {}
        for key, item in data.items():
            if not isinstance(key, str):
                raise DeserializeError(f"invalid type: {_unexpected(key)}, expected {_field_expecting(names)}")
            if key not in names:
                raise DeserializeError(f"unknown field `{key}`, expected {_one_of(names)}")
            values[key] = _from_data(types[key], item)
        for name in names:
            if name not in values:
                raise DeserializeError(f"missing field `{name}`")
        return cls(**values)

    if _is_sequence(data):
        items = []
        for index, name in enumerate(names):
            if index >= len(data):
                raise DeserializeError(f"invalid length {index}, expected {struct_name}")
            items.append(_from_data(types[name], data[index]))
        if len(data) > len(names):
            raise DeserializeError(f"invalid length {len(data)}, expected {len(names)} elements in sequence")
        if cls._bilge_tuple:
            return cls(*items)
        return cls(**dict(zip(names, items)))

    raise DeserializeError(f"invalid type: {_unexpected(data)}, expected {struct_name}")