# svdancer

svdancer finds structural variants in paired-end sequencing data. It works
from read pairs whose mapped separation or orientation is not what the library
should produce. It reports these kinds of event:

- deletions (`DEL`)
- insertions (`INS`)
- inversions (`INV`)
- intra-chromosomal translocations (`ITX`)
- inter-chromosomal translocations (`CTX`)

## How it works

`BreakDancer` takes a stream of already classified alignments. It drops reads
that are badly mapped, unmapped, or normally paired. The anomalous reads that
are left are grouped into regions along the genome. A region ends when the
chromosome changes, or when the gap to the next read is larger than the read
window size.

Regions that share read pairs are joined in an undirected weighted graph. Every
`buffer_size` regions, and once more at the end, the graph is walked. Each pair
of regions (or single region) linked by at least `min_read_pair` pairs becomes
a candidate variant. `SvBuilder` assembles that candidate.

Each candidate is scored as a Phred-scaled Poisson p-value, capped at 99. The
p-values can be combined across libraries with Fisher's method. Candidates
scoring above `score_threshold` are written as one tab-separated line with
these fields, in order:

1. chromosome 1
2. position 1
3. orientation counts for end 1
4. chromosome 2
5. position 2
6. orientation counts for end 2
7. type
8. size
9. score
10. number of supporting pairs
11. supporting reads per library or per BAM file
12. allele frequency, only with `print_af`
13. copy numbers, one per BAM file, only when `cn_lib` is off

Positions are 1-based. Supporting reads can also be written as BED tracks,
through `BedWriter`.

## Modules

| Module | Contents |
| --- | --- |
| `svdancer.read_flags` | `ReadFlag` and `Strand` enums, plus `flag_value` and `flag_name` |
| `svdancer.graph` | `UndirectedWeightedGraph`, the region connection graph |
| `svdancer.utility` | `merge_maps`, which merges one mapping into another with a combiner |
| `svdancer.read_counts` | `ReadCountsByLib`, per-library read counters with `+` and `-` |
| `svdancer.options` | `Options`, `parse_options`, `usage_text` and `UsageError` |
| `svdancer.region` | `BasicRegion`, a region and the reads it holds |
| `svdancer.read_region_data` | `ReadRegionData`, which tracks regions, read-to-region links, counts and the graph |
| `svdancer.sv_builder` | `SvBuilder`, which pairs reads from one or two regions into a variant |
| `svdancer.bed_writer` | `BedWriter`, which writes a BED track per variant |
| `svdancer.breakdancer` | `BreakDancer`, `LibraryParams` and `compute_prob_score` |

## Examples

Read flags carry the numeric codes used in library statistics:

```python
from svdancer.read_flags import ReadFlag, flag_name, flag_value

flag_value(ReadFlag.ARP_RR)   # 8
flag_name(ReadFlag.ARP_CTX)   # "ARP_CTX"
```

Per-library counts:

```python
from svdancer.read_counts import ReadCountsByLib

counts = ReadCountsByLib()
counts.increment("lib1")
counts.increment("lib1")
counts.get("lib1", 0)   # 2
counts.get("lib2", 0)   # 0
str(counts)             # "(lib1: 2)"
```

The region graph:

```python
from svdancer.graph import UndirectedWeightedGraph

graph = UndirectedWeightedGraph()
graph.increment_edge_weight(1, 2)
graph.get_edge_weight(2, 1, 0)   # 1
graph.num_vertices()             # 2
```

Running detection:

```python
from svdancer.breakdancer import BreakDancer, LibraryParams
from svdancer.options import parse_options
from svdancer.read_region_data import ReadRegionData

opts = parse_options(["breakdancer-max", "analysis.config"])
libraries = [LibraryParams(name="lib1", bam_file="a.bam", mean_insertsize=300.0,
                           uppercutoff=450.0, lowercutoff=150.0)]
detector = BreakDancer(opts, libraries, ReadRegionData(opts), ["chr1", "chr2"],
                       max_read_window_size=100_000_000,
                       covered_reference_length=3_000_000)
detector.set_read_density("a.bam", 0.01)
detector.run(alignments)   # writes calls to sys.stdout unless out= is given
```

Each alignment must have these attributes:

- `query_name`
- `tid`
- `pos`
- `bdflag` (writable, a `ReadFlag`)
- `lib_index`
- `bdqual`
- `either_unmapped`
- `interchrom_pair`
- `abs_isize`
- `proper_pair`
- `leftmost`
- `query_length`
- `ori` (a `Strand`)
- `has_sequence`

`LibraryParams.read_counts_by_flag` holds each library's count of reads per
flag. The score uses these counts.

## Options

`parse_options` takes a full argument vector, with the program name first, and
returns an `Options` value. It raises `UsageError` in these cases:

- an option is not recognised;
- `-R` is given together with other arguments;
- no config path is given. The error message is then the text from `usage_text`.

`-R FILE` sets `restore_file`. Parsing stops at that point.

| Option | Field | Default |
| --- | --- | --- |
| `-s` | `min_len` | 7 |
| `-c` | `cut_sd` | 3 |
| `-m` | `max_sd` | 1000000000 |
| `-q` | `min_map_qual` | 35 |
| `-r` | `min_read_pair` | 2 |
| `-x` | `seq_coverage_lim` | 1000 |
| `-b` | `buffer_size` | 100 |
| `-y` | `score_threshold` | 30 |

These flags take no value:

| Flag | Field |
| --- | --- |
| `-t` | `transchr_rearrange` |
| `-f` | `fisher` |
| `-l` | `illumina_long_insert` |
| `-a` | `cn_lib` |
| `-h` | `print_af` |

These options take a string value:

| Option | Field |
| --- | --- |
| `-o` | `chr` |
| `-d` | `prefix_fastq` |
| `-g` | `dump_bed` |
| `-C` | `cache_file` |

The `-l` flag changes the type names. With it, `ARP_RF` is reported as `DEL`;
without it, as `ITX`.

## What the package does not do

- There is no command-line program.
- svdancer does not read BAM files or analysis config files. It does not
  classify reads or compute library statistics: the caller supplies
  alignments, `LibraryParams`, target names, read densities and the covered
  reference length.
- The output header lines are not written.
- `cache_file` and `restore_file` are parsed but not used.
- `prefix_fastq` is parsed but no FASTQ files are written.
- `dump_bed` opens a BED file when no `bed_stream` is passed to `BreakDancer`.

## Requirements

- Python 3.10 or later
- SciPy, for the Poisson and chi-squared distributions