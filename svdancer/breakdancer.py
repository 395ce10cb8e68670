"""Structural variant detection driven by a stream of classified alignments."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TextIO

from scipy.stats import chi2, poisson

from svdancer.bed_writer import BedWriter
from svdancer.options import Options
from svdancer.read_counts import ReadCountsByLib
from svdancer.read_flags import ReadFlag
from svdancer.read_region_data import ReadRegionData
from svdancer.sv_builder import SvBuilder

_LZERO = -99
_ZERO = math.exp(_LZERO)


@dataclass
class LibraryParams:
    """Configuration and read statistics of one sequencing library."""

    name: str
    bam_file: str
    mean_insertsize: float
    uppercutoff: float
    lowercutoff: float
    min_mapping_quality: int = -1
    read_counts_by_flag: Dict[ReadFlag, int] = field(default_factory=dict)


def _log(value: float) -> float:
    return math.log(value) if value > 0 else -math.inf


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        if numerator == 0:
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def compute_prob_score(
    total_region_size: int,
    library_readcount: Mapping[int, int],
    flag: ReadFlag,
    fisher: bool,
    libraries: Sequence[LibraryParams],
    covered_reference_length: int,
) -> float:
    """Return the log p-value of observing the given read counts per library."""
    log_p = 0.0
    err = 0.0
    for lib_index, readcount in sorted(library_readcount.items()):
        lib = libraries[lib_index]
        count_for_flag = lib.read_counts_by_flag.get(ReadFlag(flag), 0)
        lam = total_region_size * _ratio(float(count_for_flag), float(covered_reference_length))
        lam = max(1.0e-10, lam)
        # compensated summation of the per-library log p-values
        tmp_a = _log(float(poisson.sf(readcount, lam))) - err
        tmp_b = log_p + tmp_a
        err = (tmp_b - log_p) - tmp_a
        log_p = tmp_b

    if fisher and log_p < 0:
        fisher_p = float(chi2.sf(-2 * log_p, 2 * len(library_readcount)))
        log_p = math.log(fisher_p) if fisher_p > _ZERO else float(_LZERO)

    return log_p


class BreakDancer:
    """Groups abnormally paired reads into regions and reports linked regions as SVs.

    Alignments are objects with ``query_name``, ``tid``, ``pos``, ``bdflag``
    (writable), ``lib_index``, ``bdqual``, ``either_unmapped``,
    ``interchrom_pair``, ``abs_isize``, ``proper_pair``, ``leftmost``,
    ``query_length``, ``ori`` and ``has_sequence`` attributes.
    """

    def __init__(
        self,
        opts: Options,
        libraries: Sequence[LibraryParams],
        read_regions: ReadRegionData,
        target_names: Sequence[str],
        max_read_window_size: int,
        covered_reference_length: int,
        *,
        bam_files: Optional[Sequence[str]] = None,
        out: Optional[TextIO] = None,
        bed_stream: Optional[TextIO] = None,
    ) -> None:
        self._opts = opts
        self._libraries = list(libraries)
        self._rdata = read_regions
        self._target_names = target_names
        self._max_read_window_size = max_read_window_size
        self._covered_reference_length = covered_reference_length
        self._bam_files = (
            list(bam_files)
            if bam_files is not None
            else list(dict.fromkeys(lib.bam_file for lib in self._libraries))
        )
        self._out = out if out is not None else sys.stdout

        self._collecting_normal_reads = False
        self._nnormal_reads = 0
        self._ntotal_nucleotides = 0
        self._max_readlen = 0
        self._buffer_size = 0

        self._region_start_tid = -1
        self._region_start_pos = -1
        self._region_end_tid = -1
        self._region_end_pos = -1

        self._reads_in_current_region: List[Any] = []
        self._read_density: Dict[str, float] = {}
        # once a copy number has been printed, later floats use two decimals
        self._fixed_floats = False

        self._owned_bed_stream: Optional[TextIO] = None
        self._bed_writer: Optional[BedWriter] = None
        if bed_stream is None and opts.dump_bed:
            self._owned_bed_stream = open(opts.dump_bed, "w", encoding="utf-8")
            bed_stream = self._owned_bed_stream
        if bed_stream is not None:
            self._bed_writer = BedWriter(
                bed_stream, [lib.name for lib in self._libraries], target_names
            )

    def run(self, alignments: Iterable[Any]) -> None:
        """Process every alignment, then flush the remaining regions."""
        try:
            for aln in alignments:
                self.push_read(aln)
            self.process_final_region()
        finally:
            if self._owned_bed_stream is not None:
                self._owned_bed_stream.close()
                self._owned_bed_stream = None

    def set_max_read_window_size(self, val: int) -> None:
        self._max_read_window_size = val

    def set_read_density(self, lib_name: str, density: float) -> None:
        self._read_density[lib_name] = density

    def push_read(self, aln: Any) -> None:
        """Feed one alignment into the current region."""
        opts = self._opts
        lib = self._libraries[aln.lib_index]
        min_mapq = opts.min_map_qual if lib.min_mapping_quality < 0 else lib.min_mapping_quality

        if (
            aln.bdflag == ReadFlag.NA
            or aln.either_unmapped
            or aln.bdqual <= min_mapq
            or (opts.transchr_rearrange and not aln.interchrom_pair)
            or (aln.bdflag != ReadFlag.ARP_CTX and aln.abs_isize > opts.max_sd)
        ):
            return

        if aln.proper_pair:
            key = lib.name if opts.cn_lib else lib.bam_file
            self._rdata.incr_normal_read_count(key)

        if opts.illumina_long_insert:
            if aln.abs_isize > lib.uppercutoff and aln.bdflag == ReadFlag.NORMAL_RF:
                aln.bdflag = ReadFlag.ARP_RF
            if aln.abs_isize < lib.uppercutoff and aln.bdflag == ReadFlag.ARP_RF:
                aln.bdflag = ReadFlag.NORMAL_RF
            if aln.abs_isize < lib.lowercutoff and aln.bdflag == ReadFlag.NORMAL_RF:
                aln.bdflag = ReadFlag.ARP_SMALL_INSERT

        if aln.bdflag == ReadFlag.ARP_RR:
            aln.bdflag = ReadFlag.ARP_FF

        if aln.bdflag in (ReadFlag.NORMAL_FR, ReadFlag.NORMAL_RF):
            if self._collecting_normal_reads and aln.leftmost:
                self._nnormal_reads += 1
            return

        if self._collecting_normal_reads:
            self._ntotal_nucleotides += aln.query_length
            self._max_readlen = max(self._max_readlen, aln.query_length)

        do_break = (
            aln.tid != self._region_end_tid
            or aln.pos - self._region_end_pos > self._max_read_window_size
        )
        if do_break:
            self.process_breakpoint()
            self._region_start_tid = aln.tid
            self._region_start_pos = aln.pos
            self._reads_in_current_region.clear()
            self._collecting_normal_reads = False
            self._nnormal_reads = 0
            self._max_readlen = 0
            self._ntotal_nucleotides = 0
            self._rdata.clear_region_accumulator()
            self._rdata.clear_flanking_region_accumulator()

        self._reads_in_current_region.append(aln)
        if len(self._reads_in_current_region) == 1:
            self._collecting_normal_reads = True
        self._region_end_tid = aln.tid
        self._region_end_pos = aln.pos

        self._rdata.clear_region_accumulator()

    def process_breakpoint(self) -> None:
        """Close the current region: register it or merge it into the last one."""
        span = self._region_end_pos - self._region_start_pos
        seq_coverage = _ratio(
            float(self._ntotal_nucleotides), float(span + 1 + self._max_readlen)
        )
        if span > self._opts.min_len and seq_coverage < self._opts.seq_coverage_lim:
            self._rdata.add_region(
                self._region_start_tid,
                self._region_start_pos,
                self._region_end_pos,
                self._nnormal_reads,
                self._reads_in_current_region,
            )
            self._buffer_size += 1
            if self._buffer_size > self._opts.buffer_size:
                self.build_connection()
                self._buffer_size = 0
        else:
            self._rdata.collapse_accumulated_data_into_last_region(
                self._reads_in_current_region
            )

    def build_connection(self) -> None:
        """Walk the region graph and process every sufficiently linked pair."""
        graph = self._rdata.persistent_graph
        active_nodes = graph.vertices()

        for head in active_nodes:
            if head not in graph:
                continue
            tails = [head]
            while tails:
                newtails: List[int] = []
                for tail in tails:
                    if not self._rdata.region_exists(tail) or tail not in graph:
                        continue
                    edges = graph.edges(tail)
                    while edges:
                        s1 = min(edges)
                        nlinks = edges.pop(s1)
                        if nlinks < self._opts.min_read_pair or not self._rdata.region_exists(s1):
                            continue
                        if tail != s1:
                            graph.erase_edge(s1, tail)
                            snodes = [min(s1, tail), max(s1, tail)]
                        else:
                            snodes = [s1]
                        newtails.append(s1)
                        self.process_sv(snodes)
                    graph.remove_vertex(tail)
                tails = newtails

        for node in active_nodes:
            if self._rdata.is_region_final(node):
                self._rdata.clear_region(node)

        graph.clear()

    def process_sv(self, snodes: Sequence[int]) -> None:
        """Build an SV from one or two regions and report it if it scores high enough."""
        opts = self._opts
        rdata = self._rdata
        regions = []
        read_ranges = []
        for region_idx in snodes:
            rdata.incr_region_access_counter(region_idx)
            regions.append(rdata.region(region_idx))
            read_ranges.append(list(rdata.region_reads(region_idx)))
        svb = SvBuilder(opts, regions, read_ranges, self._max_readlen)

        def is_supportive(read: Any) -> bool:
            return read.query_name not in svb.observed_reads

        for region_idx in snodes:
            rdata.remove_reads_in_region_if(region_idx, is_supportive)

        if svb.num_pairs < opts.min_read_pair:
            return
        flag = svb.flag
        if svb.flag_counts[flag] < opts.min_read_pair:
            return

        read_count_accumulator = ReadCountsByLib()
        if len(snodes) == 2:
            rdata.accumulate_reads_between_regions(
                read_count_accumulator, snodes[0], snodes[1]
            )
        svb.compute_copy_number(read_count_accumulator, self._read_density)

        padding = self._max_readlen - 5
        if flag not in (ReadFlag.ARP_RF, ReadFlag.ARP_RR) and svb.pos[0] + padding < svb.pos[1]:
            svb.pos[0] += padding

        readcounts = svb.type_library_readcount[flag]
        meanspans = svb.type_library_meanspan[flag]
        diff = 0.0
        parts: List[str] = []
        if opts.cn_lib:
            for index, read_count in sorted(readcounts.items()):
                lib = self._libraries[index]
                copy_number = "NA"
                if flag != ReadFlag.ARP_CTX and lib.name in svb.copy_number:
                    copy_number = f"{svb.copy_number[lib.name]:.2f}"
                parts.append(f"{lib.name}|{read_count},{copy_number}")
                diff += float(meanspans.get(index, 0)) - float(read_count) * lib.mean_insertsize
            sptype = ":".join(parts)
        else:
            bam_readcount: Dict[str, int] = {}
            for index, read_count in sorted(readcounts.items()):
                lib = self._libraries[index]
                bam_readcount[lib.bam_file] = bam_readcount.get(lib.bam_file, 0) + read_count
                diff += float(meanspans.get(index, 0)) - float(read_count) * lib.mean_insertsize
            parts = [f"{bam}|{count}" for bam, count in sorted(bam_readcount.items())]
            sptype = ":".join(parts) if parts else "NA"

        flag_count = svb.flag_counts[flag]
        svb.diffspan = int(diff / float(flag_count) + 0.5) if flag_count else 0

        total_region_size = rdata.sum_of_region_sizes(snodes)
        log_p = compute_prob_score(
            total_region_size,
            readcounts,
            flag,
            opts.fisher,
            self._libraries,
            self._covered_reference_length,
        )
        phred_tmp = -10 * log_p / math.log(10)
        phred = 99 if phred_tmp > 99 else int(phred_tmp + 0.5)

        # report coordinates in base 1
        svb.pos[0] += 1
        svb.pos[1] += 1
        if phred > opts.score_threshold:
            self._report(svb, phred, sptype)
            if self._bed_writer is not None:
                self._bed_writer.write(svb)

        for read_name in svb.reads_to_free:
            rdata.erase_read(read_name)

    def process_final_region(self) -> None:
        """Close the last open region and connect everything left."""
        if self._reads_in_current_region:
            self.process_breakpoint()
        self.build_connection()

    def _format_float(self, value: float) -> str:
        return f"{value:.2f}" if self._fixed_floats else f"{value:g}"

    def _report(self, svb: SvBuilder, phred: int, sptype: str) -> None:
        fields = [
            self._target_names[svb.chr[0]],
            str(svb.pos[0]),
            f"{svb.fwd_read_count[0]}+{svb.rev_read_count[0]}-",
            self._target_names[svb.chr[1]],
            str(svb.pos[1]),
            f"{svb.fwd_read_count[1]}+{svb.rev_read_count[1]}-",
            svb.sv_type(),
            str(svb.diffspan),
            str(phred),
            str(svb.flag_counts[svb.flag]),
            sptype,
        ]
        if self._opts.print_af:
            fields.append(self._format_float(svb.allele_frequency))
        if not self._opts.cn_lib and svb.flag != ReadFlag.ARP_CTX:
            for bam in self._bam_files:
                value = svb.copy_number.get(bam)
                if value is None:
                    fields.append("NA")
                else:
                    self._fixed_floats = True
                    fields.append(self._format_float(value))
        self._out.write("\t".join(fields) + "\n")