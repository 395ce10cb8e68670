"""Small mapping helpers."""

from __future__ import annotations

from typing import Callable, Mapping, MutableMapping, TypeVar

K = TypeVar("K")
T = TypeVar("T")


def merge_maps(
    a: MutableMapping[K, T], b: Mapping[K, T], combiner: Callable[[T, T], T]
) -> None:
    """Merge ``b`` into ``a`` in place, combining values of shared keys."""
    for key, value in b.items():
        if key in a:
            a[key] = combiner(a[key], value)
        else:
            a[key] = value