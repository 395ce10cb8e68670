import io
from dataclasses import dataclass

import pytest

from svdancer.breakdancer import BreakDancer, LibraryParams, compute_prob_score
from svdancer.options import parse_options
from svdancer.read_flags import ReadFlag, Strand
from svdancer.read_region_data import ReadRegionData

MEAN = 300
ISIZE = 5000
COVERED = 1_000_000
NPAIRS = 5


@dataclass
class FakeRead:
    query_name: str
    tid: int
    pos: int
    bdflag: ReadFlag
    ori: Strand = Strand.FWD
    abs_isize: int = ISIZE
    lib_index: int = 0
    bdqual: int = 60
    either_unmapped: bool = False
    interchrom_pair: bool = False
    proper_pair: bool = False
    leftmost: bool = True
    query_length: int = 100
    has_sequence: bool = True


def make_library():
    return LibraryParams(
        name="lib1",
        bam_file="a.bam",
        mean_insertsize=MEAN,
        uppercutoff=600,
        lowercutoff=100,
        read_counts_by_flag={ReadFlag.ARP_LARGE_INSERT: 10},
    )


def make_dancer(argv, window=100, **kwargs):
    opts = parse_options(["breakdancer-max", *argv, "analysis.cfg"])
    rdata = ReadRegionData(opts)
    out = io.StringIO()
    dancer = BreakDancer(
        opts, [make_library()], rdata, ["chr1"], window, COVERED, out=out, **kwargs
    )
    return dancer, rdata, out


def deletion_reads():
    first = [
        FakeRead(f"r{i}", 0, 1000 + 10 * i, ReadFlag.ARP_LARGE_INSERT, Strand.FWD)
        for i in range(NPAIRS)
    ]
    second = [
        FakeRead(f"r{i}", 0, 6000 + 10 * i, ReadFlag.ARP_LARGE_INSERT, Strand.REV)
        for i in range(NPAIRS)
    ]
    return first, second


def output_fields(out):
    lines = out.getvalue().splitlines()
    assert len(lines) == 1
    return lines[0].split("\t")


def test_deletion_is_reported():
    dancer, rdata, out = make_dancer([])
    first, second = deletion_reads()
    dancer.run(first + second)
    fields = output_fields(out)
    assert fields[0] == "chr1"
    assert fields[3] == "chr1"
    assert fields[2] == f"{NPAIRS}+0-"
    assert fields[5] == f"0+{NPAIRS}-"
    assert fields[6] == "DEL"
    assert int(fields[7]) == ISIZE - MEAN
    assert fields[8] == "99"
    assert fields[9] == str(NPAIRS)
    assert fields[10] == f"a.bam|{NPAIRS}"
    assert int(fields[4]) == 6000 + 1
    assert fields[11] == "NA"
    assert len(fields) == 12


def test_run_cleans_up_state():
    dancer, rdata, out = make_dancer([])
    first, second = deletion_reads()
    dancer.run(first + second)
    assert rdata.num_regions() == 2
    assert not rdata.region_exists(0)
    assert rdata.region_exists(1)
    assert rdata.persistent_graph.num_vertices() == 0
    assert rdata.read_regions == {}


def test_score_threshold_suppresses_output():
    dancer, rdata, out = make_dancer(["-y", "100"])
    first, second = deletion_reads()
    dancer.run(first + second)
    assert out.getvalue() == ""
    assert rdata.read_regions == {}


def test_per_library_column():
    dancer, _, out = make_dancer(["-a"])
    first, second = deletion_reads()
    dancer.run(first + second)
    fields = output_fields(out)
    assert fields[10] == f"lib1|{NPAIRS},NA"
    assert len(fields) == 11


def test_allele_frequency_column_added():
    dancer, _, out = make_dancer(["-a", "-h"])
    first, second = deletion_reads()
    dancer.run(first + second)
    fields = output_fields(out)
    assert len(fields) == 12


def test_low_quality_reads_are_ignored():
    dancer, rdata, out = make_dancer([])
    first, second = deletion_reads()
    for read in first + second:
        read.bdqual = 10
    dancer.run(first + second)
    assert out.getvalue() == ""
    assert rdata.num_regions() == 0


def test_wide_window_gives_single_region_sv():
    dancer, rdata, out = make_dancer([])
    dancer.set_max_read_window_size(10000)
    first, second = deletion_reads()
    dancer.run(first + second)
    fields = output_fields(out)
    assert rdata.num_regions() == 1
    assert fields[0] == fields[3]
    assert fields[6] == "DEL"
    assert fields[9] == str(NPAIRS)


def test_bed_output_to_stream():
    bed = io.StringIO()
    dancer, _, out = make_dancer([], bed_stream=bed)
    first, second = deletion_reads()
    dancer.run(first + second)
    lines = bed.getvalue().splitlines()
    assert lines[0].startswith("track name=chr1_")
    assert "BreakDancer" in lines[0]
    assert len(lines) == 1 + 2 * NPAIRS
    assert all(line.startswith("chr1\t") for line in lines[1:])


def test_bed_output_to_file(tmp_path):
    path = tmp_path / "calls.bed"
    dancer, _, _ = make_dancer(["-g", str(path)])
    first, second = deletion_reads()
    dancer.run(first + second)
    text = path.read_text()
    assert text.startswith("track name=")
    assert len(text.splitlines()) == 1 + 2 * NPAIRS


def test_copy_number_needs_read_density():
    dancer, _, _ = make_dancer([])
    first, second = deletion_reads()
    normal = FakeRead("n0", 0, 3000, ReadFlag.NORMAL_FR, abs_isize=MEAN, proper_pair=True)
    with pytest.raises(KeyError):
        dancer.run(first + [normal] + second)


def test_copy_number_reported_with_density():
    dancer, _, out = make_dancer([])
    dancer.set_read_density("a.bam", 0.01)
    first, second = deletion_reads()
    normal = FakeRead("n0", 0, 3000, ReadFlag.NORMAL_FR, abs_isize=MEAN, proper_pair=True)
    dancer.run(first + [normal] + second)
    fields = output_fields(out)
    assert fields[11] != "NA"
    assert float(fields[11]) > 0


def test_long_insert_reclassifies_rf_reads():
    dancer, _, _ = make_dancer(["-l"])
    read = FakeRead("x", 0, 100, ReadFlag.NORMAL_RF, abs_isize=1000)
    dancer.push_read(read)
    assert read.bdflag == ReadFlag.ARP_RF


def test_rr_reads_become_ff():
    dancer, _, _ = make_dancer([])
    read = FakeRead("x", 0, 100, ReadFlag.ARP_RR)
    dancer.push_read(read)
    assert read.bdflag == ReadFlag.ARP_FF


def test_prob_score_empty_is_zero():
    assert compute_prob_score(100, {}, ReadFlag.ARP_LARGE_INSERT, False, [make_library()], COVERED) == 0.0


def test_prob_score_decreases_with_more_reads():
    libs = [make_library()]
    few = compute_prob_score(100, {0: 2}, ReadFlag.ARP_LARGE_INSERT, False, libs, COVERED)
    many = compute_prob_score(100, {0: 5}, ReadFlag.ARP_LARGE_INSERT, False, libs, COVERED)
    assert many < few < 0


def test_prob_score_fisher_floor():
    libs = [make_library()]
    score = compute_prob_score(100, {0: 50}, ReadFlag.ARP_LARGE_INSERT, True, libs, COVERED)
    assert score == -99


def test_prob_score_fisher_not_below_plain():
    libs = [make_library()]
    plain = compute_prob_score(100, {0: 2}, ReadFlag.ARP_LARGE_INSERT, False, libs, COVERED)
    combined = compute_prob_score(100, {0: 2}, ReadFlag.ARP_LARGE_INSERT, True, libs, COVERED)
    assert combined >= plain
    assert combined <= 0