"""BED track output of SV calls and their supporting reads."""

from __future__ import annotations

from typing import Any, Sequence, TextIO

from svdancer.read_flags import Strand

_FWD_COLOR = "0,0,255"
_REV_COLOR = "255,0,0"


class BedWriter:
    """Writes one BED track per SV to a text stream.

    ``library_names`` maps a library index to its name and
    ``target_names`` maps a reference id to its sequence name.
    """

    def __init__(
        self,
        stream: TextIO,
        library_names: Sequence[str],
        target_names: Sequence[str],
    ) -> None:
        self._stream = stream
        self._library_names = library_names
        self._target_names = target_names

    def write(self, sv: Any) -> None:
        """Write the track header and a line for each supporting read."""
        seq_name = self._target_names[sv.chr[0]]
        sv_type = sv.sv_type()
        trackname = f"{seq_name}_{sv.pos[0]}_{sv_type}_{sv.diffspan}"
        self._stream.write(
            f"track name={trackname}\tdescription=\"BreakDancer "
            f"{seq_name} {sv.pos[0]} {sv_type} {sv.diffspan}\"\tuseScore=0\n"
        )

        prefix = "" if seq_name.startswith("chr") else "chr"
        for read in sv.support_reads:
            if not read.has_sequence or read.bdflag != sv.flag:
                continue
            aln_end = read.pos - read.query_length - 1
            color = _FWD_COLOR if read.ori == Strand.FWD else _REV_COLOR
            lib_name = self._library_names[read.lib_index]
            fields = [
                f"{prefix}{seq_name}",
                str(read.pos),
                str(aln_end),
                f"{read.query_name}|{lib_name}",
                str(read.bdqual * 10),
                str(int(read.ori)),
                str(read.pos),
                str(aln_end),
                color,
            ]
            self._stream.write("\t".join(fields) + "\n")