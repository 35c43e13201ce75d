import re

import pytest

from bilge.enums import BitEnum, build_enum, variant
from bilge.formatting import binary_bits, debug_bits, default_bits, format_binary
from bilge.structs import Bitfield, build_struct
from bilge.types import Array as Arr
from bilge.uint import u


class Bangers(BitEnum):
    Italian = variant()
    Bratwurst = variant()
    Chorizo = variant(fallback=True, with_value=True)


build_enum(Bangers, 10, filled=True)
binary_bits(Bangers)


class Mash(BitEnum):
    Potatoes = variant()
    Peas = variant(fallback=True)


build_enum(Mash, 2, filled=True)
binary_bits(Mash)


class Register(Bitfield):
    FIELDS = (
        ("reserved", u(13)),
        ("reg1", bool),
        ("reg2", u(16)),
        ("reserved", u(4)),
        ("reg3", u(18)),
    )


build_struct(Register, 52, filled=True)
binary_bits(Register)


class Lunch(Bitfield):
    FIELDS = (Bangers, Mash, Register)


build_struct(Lunch, 64, filled=True)
binary_bits(Lunch)
debug_bits(Lunch)


def _lunch():
    b = Bangers.from_bits(u(10)(0b1100110011))
    m = Mash.from_bits(u(2)(0b00))
    reg = Register.from_bits(u(52)(0b110010110010101001_1011_1011011001100011_1_1011001100000))
    return Lunch(b, m, reg)


def test_fallback_value_is_used():
    lunch = _lunch()
    assert f"0b{lunch.val_0:b}" == "0b1100110011"


def test_output_matches_plain_integer():
    lunch = _lunch()
    bang_raw = 0b1100110011
    bang = Bangers.from_bits(u(10)(bang_raw))
    assert bang == lunch.val_0
    assert f"0b{lunch.val_0:b}" == f"0b{bang_raw:b}"


def test_enum_padding_is_respected():
    assert f"0b{_lunch().val_1:b}" == "0b00"


def test_struct_fields_are_separated():
    assert f"0b{_lunch().val_2:b}" == "0b110010110010101001_1011_1011011001100011_1_1011001100000"


def test_nested_struct_has_no_inner_underscores():
    assert f"0b{_lunch():b}" == "0b1100101100101010011011101101100110001111011001100000_00_1100110011"


def test_alternate_binary_form():
    assert format(_lunch().val_1, "#b") == "0b00"


def test_unsupported_format_spec():
    with pytest.raises(ValueError):
        format(_lunch(), "x")


def test_format_binary_of_plain_values():
    assert format_binary(u(10)(3)) == "11"
    assert format_binary(True) == "1"
    with pytest.raises(TypeError):
        format_binary("text")


class MemoryMappedRegisters(Bitfield):
    FIELDS = (
        ("reserved", u(14)),
        ("status", u(2)),
        ("register1", u(16)),
        ("reserved", u(4)),
        ("register2", u(12)),
        ("reserved", u(16)),
    )


build_struct(MemoryMappedRegisters, 64, filled=True)
debug_bits(MemoryMappedRegisters)


def test_debug_named_with_reserved_fields():
    mapped = MemoryMappedRegisters.from_bits(
        0b0000000000000000_001111110000_0000_1000000010001000_11_00000000000000
    )
    assert repr(mapped) == (
        "MemoryMappedRegisters { reserved_i: 0, status: 3, register1: 32904, "
        "reserved_ii: 0, register2: 1008, reserved_iii: 0 }"
    )


class Array(Bitfield):
    FIELDS = (Arr(u(4), 4),)


build_struct(Array, 16, filled=False)
debug_bits(Array)


def test_debug_tuple_struct_with_array():
    zero = u(4)(0)
    one = u(4)(1)
    arr = Array([zero, zero, zero, zero])
    arr.set_val_0_at(0, one)
    arr.set_val_0_at(1, one)
    assert repr(arr) == "Array([1, 1, 0, 0])"
    arr.set_val_0_at(2, one)
    arr.set_val_0_at(3, one)
    assert repr(arr) == "Array([1, 1, 1, 1])"
    with pytest.raises(IndexError, match=re.escape("assertion failed: index < 4")):
        arr.set_val_0_at(4, one)


class NestedChildEnum(BitEnum):
    A = variant()
    B = variant(2)
    C = variant()


build_enum(NestedChildEnum, 2, filled=False)


class ChildStruct(Bitfield):
    field: NestedChildEnum


build_struct(ChildStruct, 2, filled=False)
debug_bits(ChildStruct)


class ChildEnum(BitEnum):
    A = variant(0b000)
    B = variant(0x001)
    C = variant()
    D = variant(0o003)


build_enum(ChildEnum, 2, filled=True)


class ParentStruct(Bitfield):
    field1: ChildStruct
    field2: ChildEnum
    field3: u(2)


build_struct(ParentStruct, 6, filled=False)
debug_bits(ParentStruct)


def test_debug_nested_struct_and_enums():
    parent = ParentStruct(ChildStruct(NestedChildEnum.A), ChildEnum.D, u(2)(0))
    assert repr(parent) == "ParentStruct { field1: ChildStruct { field: A }, field2: D, field3: 0 }"


class Small(Bitfield):
    arr: Arr(u(4), 2)
    tup: (bool, bool, bool)


build_struct(Small, 11, filled=True)
debug_bits(Small)


def test_debug_arrays_and_tuples():
    small = Small(arr=[u(4)(0), u(4)(15)], tup=(False, True, True))
    assert repr(small) == "Small { arr: [0, 15], tup: (false, true, true) }"


def test_debug_bits_rejects_enums():
    with pytest.raises(TypeError):
        debug_bits(ChildEnum)


class Cool(BitEnum):
    Coool = variant()
    Cooool = variant()
    CooooolDefault = variant()
    Cooooool = variant()

    @classmethod
    def default(cls):
        return cls.CooooolDefault


build_enum(Cool, 2, filled=True)


class NestedNonZeroDefault(Bitfield):
    field1: u(2)
    field2: u(4)
    field3: Cool


build_struct(NestedNonZeroDefault, 8, filled=False)
default_bits(NestedNonZeroDefault)


class ArrayTupleDefault(Bitfield):
    field1: Arr(Arr(((u(2), Cool, bool), (bool, bool, Cool)), 2), 1)
    field2: (Arr(Cool, 2), Arr((u(2), Cool), 3))


build_struct(ArrayTupleDefault, 34, filled=True)
default_bits(ArrayTupleDefault)


def test_default_bits_nested_non_zero():
    default = NestedNonZeroDefault.default()
    assert default == NestedNonZeroDefault(u(2)(0), u(4)(0), Cool.CooooolDefault)


def test_default_bits_arrays_and_tuples():
    default = ArrayTupleDefault.default()
    assert default == ArrayTupleDefault.from_bits(u(34)(0b1000_1000_1000_10_10_1000_01000_1000_01000))


def test_default_bits_rejects_enums():
    with pytest.raises(TypeError):
        default_bits(Cool)


def test_default_bits_needs_defaults_for_fields():
    class NoDefault(Bitfield):
        inner: ChildEnum

    build_struct(NoDefault, 2, filled=True)
    with pytest.raises(TypeError):
        default_bits(NoDefault)


def test_decorators_need_built_classes():
    class Unbuilt(Bitfield):
        a: u(2)

    with pytest.raises(TypeError):
        binary_bits(Unbuilt)