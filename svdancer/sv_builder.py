"""Assemble a structural variant call from the reads of one or two regions."""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from svdancer.options import Options
from svdancer.read_counts import ReadCountsByLib
from svdancer.read_flags import NUM_ORIENTATION_FLAGS, ReadFlag
from svdancer.region import BasicRegion


def _divide(numerator: float, denominator: float) -> float:
    """Floating point division that yields inf or nan instead of raising."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


class SvBuilder:
    """Pairs up reads from the given regions and derives the SV they support.

    ``regions`` holds one or two regions; ``read_ranges`` holds, for each
    region, the reads to consider. Reads are alignment objects with
    ``query_name``, ``bdflag``, ``lib_index`` and ``abs_isize`` attributes.
    """

    def __init__(
        self,
        opts: Options,
        regions: Sequence[BasicRegion],
        read_ranges: Sequence[Iterable[Any]],
        max_readlen: int,
    ) -> None:
        n = len(regions)
        if n not in (1, 2):
            raise ValueError(f"an SV spans one or two regions, not {n}")
        if len(read_ranges) != n:
            raise ValueError("one read range is needed for each region")

        self._opts = opts
        self.current_region = -1
        self.num_regions = n
        self.num_pairs = 0
        self.diffspan = 0
        self.flag_counts: List[int] = [0] * NUM_ORIENTATION_FLAGS
        self.reads_to_free: List[str] = []
        self.type_library_readcount: List[Dict[int, int]] = [
            {} for _ in range(NUM_ORIENTATION_FLAGS)
        ]
        self.type_library_meanspan: List[Dict[int, int]] = [
            {} for _ in range(NUM_ORIENTATION_FLAGS)
        ]
        self.observed_reads: Dict[str, Any] = {}
        self.support_reads: List[Any] = []
        self.chr = [0, 0]
        self.pos = [0, 0]
        self.fwd_read_count = [0, 0]
        self.rev_read_count = [0, 0]
        self.copy_number: Dict[str, float] = {}
        self.allele_frequency = 0.0

        for i, (region, reads) in enumerate(zip(regions, read_ranges)):
            for aln in reads:
                self._observe_read(aln)
            self.fwd_read_count[i] = region.fwd_read_count
            self.rev_read_count[i] = region.rev_read_count

        self.flag = self.choose_sv_flag()

        first = regions[0]
        self.chr[0] = first.chr
        self.pos[0] = first.start
        self.pos[1] = first.end

        if n == 2:
            second = regions[1]
            if self.flag == ReadFlag.ARP_RF:
                self.pos[1] = second.end + max_readlen - 5
            elif self.flag == ReadFlag.ARP_FF:
                self.pos[0] = self.pos[1]
                self.pos[1] = second.end + max_readlen - 5
            elif self.flag == ReadFlag.ARP_RR:
                self.pos[1] = second.start
            else:
                self.pos[0] = self.pos[1]
                self.pos[1] = second.start
            self.chr[1] = second.chr
        else:
            self.fwd_read_count[1] = self.fwd_read_count[0]
            self.rev_read_count[1] = self.rev_read_count[0]
            self.chr[1] = first.chr
            self.pos[1] = first.end

    def compute_copy_number(
        self, counts: ReadCountsByLib, read_density: Mapping[str, float]
    ) -> None:
        """Estimate copy number per library and the allele frequency.

        Raises KeyError when a library in ``counts`` has no read density.
        """
        span = float(self.pos[1] - self.pos[0])
        total = 0.0
        for lib, count in counts.items():
            value = _divide(float(count), read_density[lib] * span) * 2.0
            self.copy_number[lib] = value
            total += value
        self.allele_frequency = 1 - _divide(total, 2.0 * len(counts))

    def choose_sv_flag(self) -> ReadFlag:
        """Return the most frequent flag among paired reads, NA if none."""
        best = max(range(len(self.flag_counts)), key=self.flag_counts.__getitem__)
        if self.flag_counts[best] > 0:
            return ReadFlag(best)
        return ReadFlag.NA

    def sv_type(self) -> str:
        """Name of the SV type for the chosen flag."""
        return self._opts.sv_type(self.flag)

    def _observe_read(self, aln: Any) -> None:
        mate = self.observed_reads.get(aln.query_name)
        if mate is None:
            self.observed_reads[aln.query_name] = aln
            return
        bdflag = ReadFlag(aln.bdflag)
        index = aln.lib_index
        self.flag_counts[bdflag] += 1
        readcount = self.type_library_readcount[bdflag]
        readcount[index] = readcount.get(index, 0) + 1
        meanspan = self.type_library_meanspan[bdflag]
        meanspan[index] = meanspan.get(index, 0) + aln.abs_isize
        self.num_pairs += 1
        self.reads_to_free.append(aln.query_name)
        self.support_reads.append(aln)
        self.support_reads.append(mate)
        del self.observed_reads[aln.query_name]