from pathlib import Path

import pytest

from rgdemux.barcodes.decoder import BarcodeDecoder
from rgdemux.barcodes.dictionary_factory import barcode_dictionary_from_rows
from rgdemux.config import ReadGroupConfig
from rgdemux.errors import MalformedReadError
from rgdemux.informatics import bam_functions
from rgdemux.informatics.bam_functions import (
    discarded_output_path,
    raw_barcodes_from_read_name,
    raw_barcodes_from_tag,
    read_group_header_entries,
    split_raw_barcodes,
)

# ---------------------------------------------------------------------------
# BAM helpers for integration tests (require pysam)
# ---------------------------------------------------------------------------
try:
    import pysam as _pysam

    HAS_PYSAM = True
except ImportError:
    _pysam = None
    HAS_PYSAM = False

requires_pysam = pytest.mark.skipif(not HAS_PYSAM, reason="pysam not installed")


def _create_unaligned_bam(bam_path, reads):
    """Write unmapped reads; *reads* are dicts with ``name`` and optional ``bc``, ``rg`` and ``flag``."""
    header = {"HD": {"VN": "1.6", "SO": "unknown"}, "RG": [{"ID": "old"}]}
    with _pysam.AlignmentFile(str(bam_path), "wb", header=header) as outf:
        for info in reads:
            a = _pysam.AlignedSegment()
            a.query_name = info["name"]
            a.query_sequence = "ACGTACGTAC"
            a.flag = info.get("flag", 4)
            a.query_qualities = _pysam.qualitystring_to_array("I" * 10)
            if "bc" in info:
                a.set_tag("BC", info["bc"], value_type="Z")
            if "rg" in info:
                a.set_tag("RG", info["rg"], value_type="Z")
            outf.write(a)


def _read_records(path):
    with _pysam.AlignmentFile(str(path), "r", check_sq=False) as fh:
        header = fh.header.to_dict()
        records = [(r.query_name, dict(r.get_tags())) for r in fh.fetch(until_eof=True)]
    return header, records


@pytest.fixture
def decoder():
    dictionary = barcode_dictionary_from_rows(
        [("s1", "lib1", ["AAAA", "CCCC"]), ("s2", "lib2", ["TTTT", "GGGG"])],
        ReadGroupConfig(run_id="run1", platform="ILLUMINA"),
    )
    return BarcodeDecoder(dictionary, max_mismatches=[1, 1])


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, []),
        ("", []),
        ("ACGT", ["ACGT"]),
        ("ACGT-TTGA", ["ACGT", "TTGA"]),
    ],
)
def test_split_raw_barcodes(value, expected):
    assert split_raw_barcodes(value) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("read1", ("read1", [])),
        ("read1#ACGT", ("read1", ["ACGT"])),
        ("read1#ACGT_TTGA/1", ("read1", ["ACGT", "TTGA"])),
        ("read1#ACGT/2", ("read1", ["ACGT"])),
    ],
)
def test_raw_barcodes_from_read_name(name, expected):
    assert raw_barcodes_from_read_name(name) == expected


def test_raw_barcodes_from_tag():
    class FakeRead:
        def __init__(self, tags):
            self.tags = tags

        def has_tag(self, tag):
            return tag in self.tags

        def get_tag(self, tag):
            return self.tags[tag]

    assert raw_barcodes_from_tag(FakeRead({"BC": "AAAA-CCCC"})) == ["AAAA", "CCCC"]
    assert raw_barcodes_from_tag(FakeRead({})) == []
    assert raw_barcodes_from_tag(FakeRead({"B2": "ACGT"}), tag="B2") == ["ACGT"]


def test_read_group_header_entries(decoder):
    entries = read_group_header_entries(decoder.dictionary)
    assert entries == [
        {"ID": "run1_s1_AAAA-CCCC", "SM": "s1", "LB": "lib1", "PL": "ILLUMINA"},
        {"ID": "run1_s2_TTTT-GGGG", "SM": "s2", "LB": "lib2", "PL": "ILLUMINA"},
    ]


@pytest.mark.parametrize(
    "output, expected",
    [
        ("out.bam", "out_discarded.bam"),
        ("results/sample.sam", "results/sample_discarded.sam"),
    ],
)
def test_discarded_output_path(output, expected):
    assert discarded_output_path(output) == Path(expected)


def test_output_header_replaces_read_groups(decoder):
    header = bam_functions._output_header({"HD": {"VN": "1.6"}, "RG": [{"ID": "old"}]}, decoder.dictionary)
    assert [rg["ID"] for rg in header["RG"]] == ["run1_s1_AAAA-CCCC", "run1_s2_TTTT-GGGG"]
    assert header["PG"][-1]["ID"] == "rgdemux"
    assert header["HD"] == {"VN": "1.6"}


@requires_pysam
class TestAssignReadGroupsInBam:
    """Streaming a BAM through the decoder."""

    def test_unassigned_reads_are_dropped(self, tmp_path, decoder):
        bam = Path(tmp_path) / "in.bam"
        _create_unaligned_bam(
            bam,
            [
                {"name": "r1", "bc": "AAAT-CCCC"},
                {"name": "r2", "bc": "TTTT-GGGG"},
                {"name": "r3"},
                {"name": "r4", "bc": "CCCC-AAAA"},
            ],
        )
        out = Path(tmp_path) / "out.bam"
        summary = bam_functions.assign_read_groups_in_bam(bam, out, decoder)

        assert summary == {
            "records": 4,
            "written": 2,
            "discarded": 2,
            "read_groups": {"run1_s1_AAAA-CCCC": 1, "run1_s2_TTTT-GGGG": 1},
        }
        header, records = _read_records(out)
        assert [rg["ID"] for rg in header["RG"]] == ["run1_s1_AAAA-CCCC", "run1_s2_TTTT-GGGG"]
        assert [(name, tags["RG"]) for name, tags in records] == [
            ("r1", "run1_s1_AAAA-CCCC"),
            ("r2", "run1_s2_TTTT-GGGG"),
        ]
        assert decoder.stats.total_records == 4
        assert decoder.stats.unknown_records == 2
        assert not discarded_output_path(out).exists()

    def test_unassigned_reads_kept_without_read_group(self, tmp_path, decoder):
        bam = Path(tmp_path) / "in.bam"
        _create_unaligned_bam(
            bam,
            [
                {"name": "r1", "bc": "AAAA-CCCC", "rg": "old"},
                {"name": "r2", "rg": "old"},
                {"name": "r3", "bc": "CCCC-AAAA"},
            ],
        )
        out = Path(tmp_path) / "out.bam"
        discarded = discarded_output_path(out)
        summary = bam_functions.assign_read_groups_in_bam(bam, out, decoder, discarded_bam=discarded)

        assert summary["written"] == 1
        assert summary["discarded"] == 2
        _, records = _read_records(out)
        assert records == [("r1", {"BC": "AAAA-CCCC", "RG": "run1_s1_AAAA-CCCC"})]

        header, discarded_records = _read_records(discarded)
        assert [rg["ID"] for rg in header["RG"]] == ["old"]
        assert discarded_records == [("r2", {}), ("r3", {"BC": "CCCC-AAAA"})]

    def test_second_mate_takes_first_mate_read_group(self, tmp_path, decoder):
        bam = Path(tmp_path) / "in.bam"
        # flags 77/141: paired, both unmapped, first/second in pair
        _create_unaligned_bam(
            bam,
            [
                {"name": "p1", "bc": "AAAA-CCCC", "flag": 77},
                {"name": "p1", "bc": "GGGG-GGGG", "flag": 141},
                {"name": "p2", "flag": 77},
                {"name": "p2", "bc": "TTTT-GGGG", "flag": 141},
            ],
        )
        out = Path(tmp_path) / "out.bam"
        summary = bam_functions.assign_read_groups_in_bam(bam, out, decoder)

        assert summary["records"] == 4
        assert summary["read_groups"] == {"run1_s1_AAAA-CCCC": 2}
        assert summary["discarded"] == 2
        _, records = _read_records(out)
        assert [(name, tags["RG"]) for name, tags in records] == [
            ("p1", "run1_s1_AAAA-CCCC"),
            ("p1", "run1_s1_AAAA-CCCC"),
        ]
        # one decode per pair
        assert decoder.stats.total_records == 2
        assert decoder.stats.records_for(0) == 1
        assert decoder.stats.unknown_records == 1

    def test_barcodes_in_name_to_sam(self, tmp_path, decoder):
        bam = Path(tmp_path) / "in.bam"
        _create_unaligned_bam(bam, [{"name": "r1#AAAA_CCCC/1"}, {"name": "r2#TTTG_GGGG/1"}])
        out = Path(tmp_path) / "out.sam"
        bam_functions.assign_read_groups_in_bam(bam, out, decoder, barcodes_in_name=True)

        assert out.read_text().startswith("@")
        _, records = _read_records(out)
        assert [name for name, _ in records] == ["r1", "r2"]
        assert records[0][1] == {"BC": "AAAA-CCCC", "RG": "run1_s1_AAAA-CCCC"}
        assert records[1][1]["RG"] == "run1_s2_TTTT-GGGG"

    def test_malformed_read_stops(self, tmp_path, decoder):
        bam = Path(tmp_path) / "in.bam"
        _create_unaligned_bam(bam, [{"name": "r1", "bc": "AAAA"}])
        with pytest.raises(MalformedReadError, match="Failing read: r1"):
            bam_functions.assign_read_groups_in_bam(bam, Path(tmp_path) / "out.bam", decoder)
