"""Command-line options for structural variant detection."""

from __future__ import annotations

import getopt
import re
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from svdancer.read_flags import ReadFlag

_SHORTOPTS = "o:s:c:m:q:r:x:b:tfd:g:lahy:C:R:"

_INT_OPTIONS = {
    "-s": "min_len",
    "-c": "cut_sd",
    "-m": "max_sd",
    "-q": "min_map_qual",
    "-r": "min_read_pair",
    "-x": "seq_coverage_lim",
    "-b": "buffer_size",
    "-y": "score_threshold",
}

_STR_OPTIONS = {
    "-C": "cache_file",
    "-o": "chr",
    "-d": "prefix_fastq",
    "-g": "dump_bed",
}

_BOOL_OPTIONS = {
    "-t": "transchr_rearrange",
    "-f": "fisher",
    "-l": "illumina_long_insert",
    "-a": "cn_lib",
    "-h": "print_af",
}


class UsageError(Exception):
    """Raised when the command line cannot be used."""


@dataclass
class Options:
    """Settings controlling the analysis."""

    chr: str = ""
    cache_file: str = field(default="", compare=False)
    restore_file: str = field(default="", compare=False)
    bam_config_path: str = field(default="", compare=False)
    min_len: int = 7
    cut_sd: int = 3
    max_sd: int = 1000000000
    min_map_qual: int = 35
    min_read_pair: int = 2
    seq_coverage_lim: int = 1000
    buffer_size: int = 100
    transchr_rearrange: bool = False
    fisher: bool = False
    illumina_long_insert: bool = False
    cn_lib: bool = False
    print_af: bool = False
    score_threshold: int = 30
    bam_file: str = ""
    prefix_fastq: str = ""
    dump_bed: str = ""
    sv_types: Dict[ReadFlag, str] = field(default_factory=dict)
    orig_argv: List[str] = field(default_factory=list)

    def need_sequence_data(self) -> bool:
        """Sequence data is kept when dumping fastq or BED output."""
        return bool(self.prefix_fastq or self.dump_bed)

    def sv_type(self, flag: ReadFlag) -> str:
        """Return the SV type name for ``flag``, or an empty string."""
        return self.sv_types.get(ReadFlag(flag), "")


def _default_sv_types(long_insert: bool) -> Dict[ReadFlag, str]:
    if long_insert:
        return {
            ReadFlag.ARP_FF: "INV",
            ReadFlag.ARP_SMALL_INSERT: "INS",
            ReadFlag.ARP_RF: "DEL",
            ReadFlag.ARP_RR: "INV",
            ReadFlag.ARP_CTX: "CTX",
        }
    return {
        ReadFlag.ARP_FF: "INV",
        ReadFlag.ARP_LARGE_INSERT: "DEL",
        ReadFlag.ARP_SMALL_INSERT: "INS",
        ReadFlag.ARP_RF: "ITX",
        ReadFlag.ARP_RR: "INV",
        ReadFlag.ARP_CTX: "CTX",
    }


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def usage_text(options: Options) -> str:
    """Return the usage message, showing the values currently in ``options``."""
    lines = [
        "",
        "Usage: breakdancer-max <analysis.config>",
        "",
        "Options: ",
        "       -o STRING       operate on a single chromosome [all chromosome]",
        f"       -s INT          minimum length of a region [{options.min_len}]",
        f"       -c INT          cutoff in unit of standard deviation [{options.cut_sd}]",
        f"       -m INT          maximum SV size [{options.max_sd}]",
        f"       -q INT          minimum alternative mapping quality [{options.min_map_qual}]",
        "       -r INT          minimum number of read pairs required to establish a "
        f"connection [{options.min_read_pair}]",
        "       -x INT          maximum threshold of haploid sequence coverage for regions "
        f"to be ignored [{options.seq_coverage_lim}]",
        f"       -b INT          buffer size for building connection [{options.buffer_size}]",
        "       -t              only detect transchromosomal rearrangement, by default off",
        "       -d STRING       prefix of fastq files that SV supporting reads will be saved by library",
        "       -g STRING       dump SVs and supporting reads in BED format for GBrowse",
        "       -l              analyze Illumina long insert (mate-pair) library",
        "       -a              print out copy number and support reads per library rather "
        "than per bam, by default off",
        "       -h              print out Allele Frequency column, by default off",
        f"       -y INT          output score filter [{options.score_threshold}]",
        "",
    ]
    return "\n".join(lines) + "\n"


def parse_options(argv: Sequence[str]) -> Options:
    """Parse a full argument vector (program name first) into Options."""
    argv = list(argv)
    options = Options(orig_argv=list(argv))
    try:
        pairs, positional = getopt.gnu_getopt(argv[1:], _SHORTOPTS)
    except getopt.GetoptError as exc:
        raise UsageError(f"Unrecognized option '-{exc.opt}'.") from exc

    for opt, value in pairs:
        if opt == "-R":
            if len(argv) != 3:
                raise UsageError("When using -R, no other options are allowed")
            options.restore_file = value
            return options
        if opt in _INT_OPTIONS:
            setattr(options, _INT_OPTIONS[opt], _atoi(value))
        elif opt in _STR_OPTIONS:
            setattr(options, _STR_OPTIONS[opt], value)
        else:
            setattr(options, _BOOL_OPTIONS[opt], True)

    if not positional:
        raise UsageError(usage_text(options))

    options.sv_types = _default_sv_types(options.illumina_long_insert)
    options.bam_config_path = positional[0]
    return options