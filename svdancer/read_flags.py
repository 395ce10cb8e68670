"""Read-pair orientation flags and strand identifiers."""

from __future__ import annotations

from enum import IntEnum


class Strand(IntEnum):
    """Strand a read maps to."""

    FWD = 0
    REV = 1


class ReadFlag(IntEnum):
    """Classification of a read pair by orientation and insert size."""

    NA = 0
    ARP_FF = 1
    ARP_LARGE_INSERT = 2
    ARP_SMALL_INSERT = 3
    ARP_RF = 4
    ARP_RR = 5
    NORMAL_FR = 6
    NORMAL_RF = 7
    ARP_CTX = 8
    MATE_UNMAPPED = 9
    UNMAPPED = 10


NUM_ORIENTATION_FLAGS = len(ReadFlag)

_FLAG_VALUES = {
    ReadFlag.NA: 0,
    ReadFlag.ARP_FF: 1,
    ReadFlag.ARP_LARGE_INSERT: 2,
    ReadFlag.ARP_SMALL_INSERT: 3,
    ReadFlag.ARP_RF: 4,
    ReadFlag.ARP_RR: 8,
    ReadFlag.NORMAL_FR: 18,
    ReadFlag.NORMAL_RF: 20,
    ReadFlag.ARP_CTX: 32,
    ReadFlag.MATE_UNMAPPED: 64,
    ReadFlag.UNMAPPED: 192,
}


def flag_value(flag: ReadFlag | int) -> int:
    """Return the numeric value reported for ``flag`` in output."""
    return _FLAG_VALUES[ReadFlag(flag)]


def flag_name(flag: ReadFlag | int) -> str:
    """Return the textual name of ``flag``."""
    return ReadFlag(flag).name