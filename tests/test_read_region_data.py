import io
from dataclasses import dataclass

import pytest

from svdancer.options import Options
from svdancer.read_counts import ReadCountsByLib
from svdancer.read_flags import ReadFlag, Strand
from svdancer.read_region_data import ReadRegionData


@dataclass
class FakeRead:
    query_name: str
    bdflag: ReadFlag = ReadFlag.ARP_LARGE_INSERT
    ori: Strand = Strand.FWD


def make_data(**kwargs):
    return ReadRegionData(Options(**kwargs))


def test_add_region_returns_sequential_indices():
    data = make_data()
    assert data.num_regions() == 0
    first = data.add_region(0, 100, 200, 0, [])
    second = data.add_region(0, 300, 400, 0, [])
    assert [first, second] == [0, 1]
    assert data.num_regions() == 2
    assert data.last_region_idx() == second
    assert data.region_exists(first) and data.region_exists(second)
    assert not data.region_exists(2)


def test_region_holds_coordinates():
    data = make_data()
    idx = data.add_region(2, 100, 200, 7, [])
    region = data.region(idx)
    assert (region.chr, region.start, region.end, region.normal_read_pairs) == (2, 100, 200, 7)


def test_add_region_moves_reads_when_enough():
    data = make_data()
    reads = [FakeRead("a"), FakeRead("b", ori=Strand.REV), FakeRead("c")]
    original = list(reads)
    idx = data.add_region(0, 1, 50, 0, reads)
    assert data.region(idx).reads == original
    assert reads == []
    assert data.num_reads_in_region(idx) == len(original)
    assert data.region(idx).fwd_read_count + data.region(idx).rev_read_count == len(original)
    assert data.region(idx).rev_read_count == 1


def test_add_region_keeps_reads_out_when_too_few():
    data = make_data(min_read_pair=5)
    reads = [FakeRead("a"), FakeRead("b")]
    idx = data.add_region(0, 1, 50, 0, reads)
    assert data.num_reads_in_region(idx) == 0
    assert len(reads) == 2
    assert data.read_regions["a"] == [idx]


def test_ctx_reads_do_not_count_when_chromosome_given():
    data = make_data(chr="1")
    reads = [FakeRead("a", bdflag=ReadFlag.ARP_CTX), FakeRead("b", bdflag=ReadFlag.ARP_CTX)]
    idx = data.add_region(0, 1, 50, 0, reads)
    assert data.num_reads_in_region(idx) == 0


def test_mates_in_two_regions_link_graph():
    data = make_data()
    r0 = data.add_region(0, 1, 50, 0, [FakeRead("p"), FakeRead("q")])
    r1 = data.add_region(0, 500, 550, 0, [FakeRead("p"), FakeRead("q")])
    assert data.read_regions["p"] == [r0, r1]
    weight = data.persistent_graph.get_edge_weight(r0, r1, 0)
    assert weight == data.persistent_graph.get_edge_weight(r1, r0, 0)
    assert weight == len(["p", "q"])


def test_region_of_missing_index_raises():
    data = make_data()
    with pytest.raises(LookupError):
        data.region(0)


def test_clear_region_removes_region_and_read_links():
    data = make_data()
    r0 = data.add_region(0, 1, 50, 0, [FakeRead("p"), FakeRead("only0")])
    r1 = data.add_region(0, 500, 550, 0, [FakeRead("p"), FakeRead("only1")])
    data.clear_region(r0)
    assert not data.region_exists(r0)
    assert data.region_exists(r1)
    assert data.read_regions["p"] == [r1]
    assert "only0" not in data.read_regions
    with pytest.raises(LookupError):
        data.region(r0)
    data.clear_region(r0)
    assert data.num_regions() == 2


def test_is_region_final():
    data = make_data()
    r0 = data.add_region(0, 1, 50, 0, [FakeRead("p"), FakeRead("q")])
    r1 = data.add_region(0, 500, 550, 0, [FakeRead("p"), FakeRead("q")])
    assert data.is_region_final(r0)
    assert not data.is_region_final(r1)
    r2 = data.add_region(0, 900, 950, 0, [FakeRead("x"), FakeRead("y")])
    data.add_region(0, 1900, 1950, 0, [])
    assert not data.is_region_final(r2)
    assert not data.is_region_final(99)


def test_sum_of_region_sizes_matches_regions():
    data = make_data()
    ids = [data.add_region(0, 1, 50, 0, []), data.add_region(0, 100, 120, 0, [])]
    expected = data.region(ids[0]).size() + data.region(ids[1]).size()
    assert data.sum_of_region_sizes(ids) == expected
    assert data.sum_of_region_sizes([]) == 0


def test_region_lib_read_count_records_accumulator():
    data = make_data()
    for _ in range(4):
        data.incr_normal_read_count("libA")
    idx = data.add_region(0, 1, 50, 0, [])
    assert data.region_lib_read_count(idx, "libA") == 4
    assert data.region_lib_read_count(idx, "libB") == 0
    assert data.region_lib_read_count(1000, "libA") == 0


def test_clear_region_accumulator_resets_roi_counts():
    data = make_data()
    data.incr_normal_read_count("libA")
    data.clear_region_accumulator()
    idx = data.add_region(0, 1, 50, 0, [])
    assert data.region_lib_read_count(idx, "libA") == 0


def test_accumulate_reads_between_regions():
    data = make_data()
    data.incr_normal_read_count("L")
    data.add_region(0, 1, 50, 0, [])
    data.clear_region_accumulator()
    data.incr_normal_read_count("L")
    data.add_region(0, 100, 150, 0, [])

    acc = ReadCountsByLib()
    data.accumulate_reads_between_regions(acc, 0, 2)
    assert acc.get("L") == 3

    empty = ReadCountsByLib()
    data.accumulate_reads_between_regions(empty, 1, 1)
    assert len(empty) == 0


def test_collapse_merges_counts_and_forgets_reads():
    data = make_data()
    idx = data.add_region(0, 1, 50, 0, [FakeRead("p"), FakeRead("q")])
    data.incr_normal_read_count("L")
    data.incr_normal_read_count("L")
    data.collapse_accumulated_data_into_last_region([FakeRead("p")])
    assert data.region(idx).times_collapsed == 1
    assert data.region_lib_read_count(idx, "L") == 2
    assert "p" not in data.read_regions
    assert "q" in data.read_regions


def test_collapse_without_regions_only_drops_reads():
    data = make_data()
    data.incr_normal_read_count("L")
    data.collapse_accumulated_data_into_last_region([FakeRead("z")])
    assert data.num_regions() == 0


def test_read_exists_and_erase_read():
    data = make_data()
    read = FakeRead("p")
    data.add_region(0, 1, 50, 0, [read, FakeRead("q")])
    assert data.read_exists(read)
    data.erase_read("p")
    assert not data.read_exists(read)
    data.erase_read("p")
    assert data.read_exists(FakeRead("q"))


def test_region_reads_skips_untracked_reads():
    data = make_data()
    idx = data.add_region(0, 1, 50, 0, [FakeRead("p"), FakeRead("q"), FakeRead("r")])
    data.erase_read("q")
    assert [r.query_name for r in data.region_reads(idx)] == ["p", "r"]


def test_remove_reads_in_region_if():
    data = make_data()
    idx = data.add_region(0, 1, 50, 0, [FakeRead("p"), FakeRead("q"), FakeRead("r")])
    data.erase_read("r")
    data.remove_reads_in_region_if(idx, lambda read: read.query_name == "p")
    assert [r.query_name for r in data.region(idx).reads] == ["q"]


def test_swap_reads_in_missing_region_raises():
    data = make_data()
    with pytest.raises(LookupError):
        data.swap_reads_in_region(0, [])


def test_incr_region_access_counter():
    data = make_data()
    idx = data.add_region(0, 1, 50, 0, [])
    data.incr_region_access_counter(idx)
    data.incr_region_access_counter(idx)
    data.incr_region_access_counter(42)
    assert data.region(idx).times_accessed == 2


def test_summary_reports_regions():
    data = make_data()
    data.add_region(0, 1, 50, 0, [FakeRead("readA"), FakeRead("readB")])
    r1 = data.add_region(0, 100, 150, 0, [])
    data.clear_region(r1)
    out = io.StringIO()
    data.summary(out)
    text = out.getvalue()
    assert "Total regions: 2\n" in text
    assert "Active regions: 1\n" in text
    assert "Deleted regions: 1\n" in text
    assert "\t\treadA\n" in text
    assert text.startswith("Number of tracked reads: 2\n")