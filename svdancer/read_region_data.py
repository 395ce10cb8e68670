"""Bookkeeping of regions, the reads linking them and per-library counts."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TextIO

from svdancer.graph import UndirectedWeightedGraph
from svdancer.options import Options
from svdancer.read_counts import ReadCountsByLib
from svdancer.read_flags import ReadFlag, Strand
from svdancer.region import BasicRegion

_SUMMARY_READ_NAMES = 10


class ReadRegionData:
    """Tracks regions, which regions each read falls in, and the region graph."""

    def __init__(self, opts: Options) -> None:
        self._opts = opts
        self._read_count_roi: List[ReadCountsByLib] = []
        self._read_count_fr: List[ReadCountsByLib] = []
        self._regions: List[Optional[BasicRegion]] = []
        self._nread_roi = ReadCountsByLib()
        self._nread_fr = ReadCountsByLib()
        self._read_regions: Dict[str, List[int]] = {}
        self._persistent_graph: UndirectedWeightedGraph[int] = UndirectedWeightedGraph()

    @property
    def persistent_graph(self) -> UndirectedWeightedGraph[int]:
        """Graph of regions weighted by the number of read pairs joining them."""
        return self._persistent_graph

    @property
    def read_regions(self) -> Dict[str, List[int]]:
        """Map from read name to the indices of regions holding that read."""
        return self._read_regions

    def summary(self, out: TextIO) -> None:
        """Write a tab separated report of all regions to ``out``."""
        out.write(f"Number of tracked reads: {len(self._read_regions)}\n")
        out.write("Active region summary:\n")
        out.write(
            "region_id\tregion_tid\tregion_start\tregion_end\tnreads"
            "\tn_unpaired_reads\ttimes_processed\ttimes_collapsed\n"
        )
        n_active = 0
        for idx, region in enumerate(self._regions):
            if region is None:
                continue
            n_active += 1
            out.write(
                f"{idx}\t{region.chr}\t{region.start}\t{region.end}"
                f"\t{len(region.reads)}\t{self._unpaired_reads(idx)}"
                f"\t{region.times_accessed}\t{region.times_collapsed}\n"
            )
            shown = region.reads[:_SUMMARY_READ_NAMES]
            if shown:
                out.write(f"\tfirst {len(shown)} read names:\n")
                for read in shown:
                    out.write(f"\t\t{read.query_name}\n")
        total = len(self._regions)
        out.write(f"Total regions: {total}\n")
        out.write(f"Active regions: {n_active}\n")
        out.write(f"Deleted regions: {total - n_active}\n")

    def accumulate_reads_between_regions(
        self, acc: ReadCountsByLib, begin: int, end: int
    ) -> None:
        """Add to ``acc`` the normal read counts of regions ``begin`` up to ``end``."""
        for i in range(begin, min(end, len(self._read_count_roi))):
            acc += self._read_count_roi[i]
            # the flanking region does not contain the first node
            if i > begin and i < len(self._read_count_fr):
                acc += self._read_count_fr[i]

    def region_lib_read_count(self, region_idx: int, lib: str) -> int:
        """Normal read count recorded for ``lib`` in a region, or 0."""
        if region_idx >= len(self._read_count_roi):
            return 0
        return self._read_count_roi[region_idx].get(lib, 0)

    def swap_reads_in_region(self, region_idx: int, reads: List[Any]) -> None:
        """Exchange a region's reads with the contents of ``reads``."""
        self.region(region_idx).swap_reads(reads)

    def remove_reads_in_region_if(
        self, region_idx: int, pred: Callable[[Any], bool]
    ) -> None:
        """Keep only tracked reads of the region for which ``pred`` is false."""
        filtered = [read for read in self.region_reads(region_idx) if not pred(read)]
        self.swap_reads_in_region(region_idx, filtered)

    def num_reads_in_region(self, region_idx: int) -> int:
        return len(self.region(region_idx).reads)

    def region_exists(self, region_idx: int) -> bool:
        return 0 <= region_idx < len(self._regions) and self._regions[region_idx] is not None

    def add_region(
        self,
        start_tid: int,
        start_pos: int,
        end_pos: int,
        normal_reads: int,
        reads: List[Any],
    ) -> int:
        """Register a new region holding ``reads`` and return its index.

        When the region has enough reads they are moved into it and
        ``reads`` receives the region's previous (empty) contents.
        """
        region_idx = len(self._regions)
        region = BasicRegion(region_idx, start_tid, start_pos, end_pos, normal_reads)
        self._regions.append(region)
        self._add_current_read_counts_to_region(region_idx)

        non_ctx_reads = 0
        for aln in reads:
            if aln.bdflag != ReadFlag.ARP_CTX:
                non_ctx_reads += 1
            if aln.ori == Strand.FWD:
                region.fwd_read_count += 1
            else:
                region.rev_read_count += 1

            regions = self._read_regions.setdefault(aln.query_name, [])
            regions.append(region_idx)
            if len(regions) == 2:
                self._persistent_graph.increment_edge_weight(regions[0], regions[1])

        valid_reads = non_ctx_reads if self._opts.chr else len(reads)
        if valid_reads >= self._opts.min_read_pair:
            self.swap_reads_in_region(region_idx, reads)

        return region_idx

    def is_region_final(self, region_idx: int) -> bool:
        """True when every read of a non-last region has found its mate region."""
        if not self.region_exists(region_idx) or region_idx == self.last_region_idx():
            return False
        for aln in self.region(region_idx).reads:
            if self._opts.chr and aln.bdflag == ReadFlag.ARP_CTX:
                continue
            found = self._read_regions.get(aln.query_name)
            if found is None or len(found) != 2:
                return False
        return True

    def sum_of_region_sizes(self, region_ids: Iterable[int]) -> int:
        return sum(self.region(idx).size() for idx in region_ids)

    def clear_region(self, region_idx: int) -> None:
        """Delete a region and drop it from the read-to-region map."""
        if not self.region_exists(region_idx):
            return
        for read in self.region(region_idx).reads:
            found = self._read_regions.get(read.query_name)
            if found is None:
                continue
            remaining = [idx for idx in found if idx != region_idx]
            if remaining:
                self._read_regions[read.query_name] = remaining
            else:
                del self._read_regions[read.query_name]
        self._regions[region_idx] = None

    def num_regions(self) -> int:
        return len(self._regions)

    def last_region_idx(self) -> int:
        """Index of the most recently added region, -1 if there is none."""
        return len(self._regions) - 1

    def region(self, region_idx: int) -> BasicRegion:
        """Return a live region; raise LookupError if it is absent or deleted."""
        if not self.region_exists(region_idx):
            raise LookupError(f"region {region_idx} does not exist")
        region = self._regions[region_idx]
        assert region is not None
        return region

    def incr_normal_read_count(self, key: str) -> None:
        self._nread_roi.increment(key)
        self._nread_fr.increment(key)

    def clear_region_accumulator(self) -> None:
        self._nread_roi.clear()

    def clear_flanking_region_accumulator(self) -> None:
        self._nread_fr.clear()

    def collapse_accumulated_data_into_last_region(self, reads: Iterable[Any]) -> None:
        """Merge the flanking counts into the last region and forget ``reads``."""
        if self._regions:
            self._add_per_lib_read_counts_to_last_region(self._nread_fr)
            last = self._regions[self.last_region_idx()]
            if last is not None:
                last.times_collapsed += 1
        for read in reads:
            self._read_regions.pop(read.query_name, None)

    def erase_read(self, read_name: str) -> None:
        self._read_regions.pop(read_name, None)

    def read_exists(self, read: Any) -> bool:
        return read.query_name in self._read_regions

    def region_reads(self, region_idx: int) -> Iterator[Any]:
        """Yield the region's reads that are still tracked."""
        return self.region(region_idx).reads_range(self.read_exists)

    def incr_region_access_counter(self, region_idx: int) -> None:
        if self.region_exists(region_idx):
            self.region(region_idx).times_accessed += 1

    def _ensure_count_slots(self, counts: List[ReadCountsByLib], region_idx: int) -> None:
        if region_idx >= len(counts):
            counts.extend(
                ReadCountsByLib() for _ in range(2 * (region_idx + 1) - len(counts))
            )

    def _add_current_read_counts_to_region(self, region_idx: int) -> None:
        self._ensure_count_slots(self._read_count_roi, region_idx)
        self._read_count_roi[region_idx] = self._nread_roi.copy()
        self._ensure_count_slots(self._read_count_fr, region_idx)
        self._read_count_fr[region_idx] = self._nread_fr - self._nread_roi

    def _add_per_lib_read_counts_to_last_region(self, counts: ReadCountsByLib) -> None:
        region_idx = self.last_region_idx()
        self._ensure_count_slots(self._read_count_roi, region_idx)
        self._read_count_roi[region_idx] += counts

    def _unpaired_reads(self, region_idx: int) -> int:
        if not self.region_exists(region_idx):
            return 0
        return sum(
            1
            for read in self.region(region_idx).reads
            if len(self._read_regions.get(read.query_name, ())) != 2
        )