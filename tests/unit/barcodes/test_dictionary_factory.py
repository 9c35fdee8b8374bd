from pathlib import Path

import pytest

from rgdemux.barcodes.dictionary_factory import (
    barcode_dictionary_from_rows,
    load_barcode_dictionary,
    read_barcode_file,
)
from rgdemux.config import ReadGroupConfig
from rgdemux.errors import ConfigurationError


def _write(tmp_path, text, name="barcodes.txt"):
    path = Path(tmp_path) / name
    path.write_text(text)
    return path


def test_read_barcode_file(tmp_path):
    path = _write(tmp_path, "s1 lib1 ACGT TTGA\ns2\tlib2\tCCAA  GGTT\n")
    df = read_barcode_file(path)
    assert list(df.columns) == ["sample", "library", "barcode_1", "barcode_2"]
    assert df["sample"].tolist() == ["s1", "s2"]
    assert df["barcode_2"].tolist() == ["TTGA", "GGTT"]


def test_numeric_sample_names_stay_strings(tmp_path):
    path = _write(tmp_path, "1 001 ACGT\n2 002 TTGA\n")
    df = read_barcode_file(path)
    assert df["sample"].tolist() == ["1", "2"]
    assert df["library"].tolist() == ["001", "002"]


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "is empty"),
        ("s1 lib1\ns2 lib2\n", "at least 3 columns"),
        ("s1 lib1 ACGT TTGA\ns2 lib2 CCAA\n", "different number of columns"),
        ("s1 lib1 ACGT\ns2 lib2 CCAA GGTT\n", "different number of columns"),
    ],
)
def test_read_barcode_file_errors(tmp_path, text, message):
    path = _write(tmp_path, text)
    with pytest.raises(ConfigurationError, match=message):
        read_barcode_file(path)


def test_missing_barcode_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        read_barcode_file(Path(tmp_path) / "missing.txt")


def test_load_barcode_dictionary_read_groups(tmp_path):
    path = _write(tmp_path, "s1 lib1 acgt TTGA\ns2 lib2 CCAA GGTT\n")
    read_groups = ReadGroupConfig(run_id="run1", platform="illumina", platform_unit="flowcell.1")
    dictionary = load_barcode_dictionary(path, read_groups)

    assert dictionary.index_count == 2
    assert dictionary.sample_names == ["s1", "s2"]
    assert dictionary.combined_barcode_of(0) == "ACGT-TTGA"

    rg = dictionary.samples[0].read_group
    assert rg.id == "run1_s1_ACGT-TTGA"
    assert rg.sample == "s1"
    assert rg.library == "lib1"
    assert rg.platform == "ILLUMINA"
    assert rg.platform_unit == "flowcell.1"

    unknown = dictionary.unknown_read_group
    assert unknown.id == "UNKNOWN"
    assert unknown.sample == "UNKNOWN"
    assert unknown.platform == "ILLUMINA"
    assert unknown.platform_unit == "flowcell.1"


def test_rows_without_library_use_the_read_group_label():
    dictionary = barcode_dictionary_from_rows([("s1", None, ["ACGT"]), ("s2", "lib", ["TTGA"])])
    assert dictionary.samples[0].library == "s1_ACGT"
    assert dictionary.samples[0].read_group.id == "s1_ACGT"
    assert dictionary.samples[1].library == "lib"


def test_same_sample_with_two_barcodes():
    dictionary = barcode_dictionary_from_rows([("s1", "lib", ["ACGT"]), ("s1", "lib", ["TTGA"])])
    assert dictionary.number_of_samples == 2
    assert dictionary.number_of_unique_samples == 2
    assert dictionary.read_groups[1].id == "s1_TTGA"


def test_invalid_platform():
    with pytest.raises(ConfigurationError, match="Platform could be only one of"):
        barcode_dictionary_from_rows([("s1", None, ["ACGT"])], ReadGroupConfig(platform="nanopore2"))


def test_inconsistent_rows():
    with pytest.raises(ConfigurationError):
        barcode_dictionary_from_rows([("s1", None, ["ACGT", "TTGA"]), ("s2", None, ["CCAA"])])
