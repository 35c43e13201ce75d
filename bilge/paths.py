"""Matching of ``::``-separated item paths against fully qualified names."""

from __future__ import annotations


def split_path(path) -> tuple[str, ...]:
    """Split a path such as ``::std::fmt::Debug`` into its segments."""
    if isinstance(path, str):
        parts = [part.strip() for part in path.strip().removeprefix("::").split("::")]
    else:
        parts = [str(part) for part in path]
    if not parts or not all(parts):
        raise ValueError(f"invalid path: {path!r}")
    return tuple(parts)


def matches(path, segments) -> bool:
    """Whether ``path`` is a suffix of the fully qualified ``segments``."""
    own = split_path(path)
    segments = list(segments)
    if len(own) > len(segments):
        return False
    return all(a == b for a, b in zip(reversed(own), reversed(segments)))


def matches_core_or_std(path, segments) -> bool:
    """Like :func:`matches`, with ``std`` or ``core`` allowed as the root."""
    segments = list(segments)
    if not segments:
        return False
    if segments[0] != "std":
        segments.insert(0, "std")
    if matches(path, segments):
        return True
    segments[0] = "core"
    return matches(path, segments)