import pytest

from bilge.uint import BitsError, UInt, bits_of, max_of, u


def test_new_keeps_value():
    x = u(4)(3)
    assert int(x) == 3
    assert x == 3
    assert x == u(4)(3)


@pytest.mark.parametrize("value", [16, -1])
def test_out_of_range_rejected(value):
    with pytest.raises(ValueError):
        u(4)(value)


@pytest.mark.parametrize("bits", [1, 7, 64, 128])
def test_max_is_largest_value(bits):
    top = max_of(u(bits))
    assert type(top) is u(bits)
    with pytest.raises(ValueError):
        u(bits)(int(top) + 1)
    assert (int(top) + 1).bit_length() == bits + 1


def test_bool_is_one_bit():
    assert bits_of(bool) == 1
    assert max_of(bool) == u(1).MAX


def test_bits_of_sized_types():
    assert bits_of(u(11)) == 11

    class Custom:
        BITS = 5

    assert bits_of(Custom) == 5


@pytest.mark.parametrize("ty", [int, str, UInt, object()])
def test_bits_of_rejects_unsized(ty):
    with pytest.raises(TypeError):
        bits_of(ty)


def test_types_are_cached_and_named():
    assert u(5) is u(5)
    assert u(5).__name__ == "u5"


@pytest.mark.parametrize("bits", [0, 129])
def test_invalid_width(bits):
    with pytest.raises(ValueError):
        u(bits)


def test_binary_format():
    assert format(u(10)(0b1100110011), "b") == "1100110011"
    assert format(u(2)(0), "02b") == "00"
    assert format(u(4)(3), "") == "3"


def test_repr():
    assert repr(u(4)(3)) == "u4(3)"


def test_different_widths_not_equal():
    assert not (u(2)(1) == u(3)(1))
    assert hash(u(2)(1)) == hash(1)


def test_bool_rejected_and_base_unusable():
    with pytest.raises(TypeError):
        u(1)(True)
    with pytest.raises(TypeError):
        UInt(1)


def test_immutable():
    x = u(3)(2)
    with pytest.raises(AttributeError):
        x.value = 1
    assert x == 2


def test_bits_error_messages():
    err = BitsError()
    assert str(err) == "unable to parse bit pattern"
    assert repr(err) == "BitsError"