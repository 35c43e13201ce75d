import pytest

from bilge.paths import matches, matches_core_or_std, split_path


@pytest.mark.parametrize(
    "path",
    ["::std::default::Default", "std::default::Default", "default::Default", "Default"],
)
def test_path_matching(path):
    assert matches(path, ["std", "default", "Default"])


def test_partial_does_not_match():
    full_path = "std::foo::bar::fizz::Buzz"
    segments = ["std", "foo", "bar", "fizz", "Buzz"]
    for start in range(1, len(segments)):
        assert not matches(full_path, segments[start:])


@pytest.mark.parametrize(
    "path",
    ["::core::fmt::Debug", "core::fmt::Debug", "::std::fmt::Debug", "std::fmt::Debug", "fmt::Debug", "Debug"],
)
def test_path_matching_without_root(path):
    assert matches_core_or_std(path, ["fmt", "Debug"])


def test_other_root_does_not_match():
    assert not matches_core_or_std("alloc::fmt::Debug", ["fmt", "Debug"])
    assert not matches_core_or_std("Debug", [])


def test_wrong_last_segment():
    assert not matches("bilge::FromBits", ["bilge", "TryFromBits"])


def test_split_path():
    assert split_path("::zerocopy::FromBytes") == ("zerocopy", "FromBytes")
    assert split_path(["bilge", "FromBits"]) == ("bilge", "FromBits")


@pytest.mark.parametrize("path", ["", "::", "a::::b"])
def test_split_path_invalid(path):
    with pytest.raises(ValueError):
        split_path(path)