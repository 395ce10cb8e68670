"""A genomic region that collects the abnormally mapped reads inside it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List

ReadPredicate = Callable[[Any], bool]


@dataclass(eq=False)
class BasicRegion:
    """A contiguous stretch of one chromosome and the reads held for it.

    Reads are alignment objects with at least ``query_name``, ``bdflag``
    and ``ori`` attributes.
    """

    index: int
    chr: int
    start: int
    end: int
    normal_read_pairs: int
    fwd_read_count: int = 0
    rev_read_count: int = 0
    times_accessed: int = 0
    times_collapsed: int = 0
    _reads: List[Any] = field(default_factory=list, repr=False)

    @property
    def reads(self) -> List[Any]:
        """The reads currently held by the region."""
        return self._reads

    def size(self) -> int:
        """Number of bases covered, both ends included."""
        return self.end - self.start + 1

    def swap_reads(self, reads: List[Any]) -> None:
        """Exchange the region's reads with the contents of ``reads``."""
        old = list(self._reads)
        self._reads = list(reads)
        reads[:] = old

    def reads_range(self, pred: ReadPredicate) -> Iterator[Any]:
        """Yield the held reads for which ``pred`` is true, in order."""
        return (read for read in self._reads if pred(read))