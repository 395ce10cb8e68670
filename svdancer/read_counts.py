"""Per-library read counters."""

from __future__ import annotations

import operator
from typing import Dict, Iterator, List, Tuple

from svdancer.utility import merge_maps


class ReadCountsByLib:
    """Read counts keyed by library (or BAM file) name."""

    def __init__(self, counts: Dict[str, int] | None = None) -> None:
        self._counts: Dict[str, int] = dict(counts or {})

    def increment(self, lib: str) -> None:
        self._counts[lib] = self._counts.get(lib, 0) + 1

    def get(self, lib: str, default: int = 0) -> int:
        return self._counts.get(lib, default)

    def items(self) -> List[Tuple[str, int]]:
        """Return (library, count) pairs in ascending library order."""
        return sorted(self._counts.items())

    def clear(self) -> None:
        self._counts.clear()

    def copy(self) -> "ReadCountsByLib":
        return ReadCountsByLib(self._counts)

    def __getitem__(self, lib: str) -> int:
        return self._counts[lib]

    def __setitem__(self, lib: str, count: int) -> None:
        self._counts[lib] = count

    def __contains__(self, lib: object) -> bool:
        return lib in self._counts

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._counts))

    def __len__(self) -> int:
        return len(self._counts)

    def __bool__(self) -> bool:
        return bool(self._counts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReadCountsByLib):
            return NotImplemented
        return self._counts == other._counts

    def __iadd__(self, other: "ReadCountsByLib") -> "ReadCountsByLib":
        merge_maps(self._counts, other._counts, operator.add)
        return self

    def __isub__(self, other: "ReadCountsByLib") -> "ReadCountsByLib":
        for lib, count in other._counts.items():
            if lib not in self._counts:
                self._counts[lib] = -count
                continue
            remaining = self._counts[lib] - count
            if remaining == 0:
                del self._counts[lib]
            else:
                self._counts[lib] = remaining
        return self

    def __add__(self, other: "ReadCountsByLib") -> "ReadCountsByLib":
        result = self.copy()
        result += other
        return result

    def __sub__(self, other: "ReadCountsByLib") -> "ReadCountsByLib":
        result = self.copy()
        result -= other
        return result

    def __str__(self) -> str:
        return "(" + ", ".join(f"{lib}: {count}" for lib, count in self.items()) + ")"

    def __repr__(self) -> str:
        return f"ReadCountsByLib({dict(self.items())!r})"