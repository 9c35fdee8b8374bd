"""Building barcode dictionaries from barcode files and in-memory rows."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..errors import ConfigurationError
from ..logging_utils import get_logger
from .dictionary import BarcodeDictionary, Sample, join_barcodes, normalize_barcode

if TYPE_CHECKING:
    from ..config import ReadGroupConfig

logger = get_logger(__name__)

# sample name, library (may be None), barcodes in index order
BarcodeRow = Tuple[str, Optional[str], Sequence[str]]

_MIN_COLUMNS = 3


def _read_group_config(read_groups: Optional["ReadGroupConfig"]) -> "ReadGroupConfig":
    if read_groups is not None:
        read_groups.validate()
        return read_groups
    from ..config import ReadGroupConfig

    return ReadGroupConfig()


def barcode_dictionary_from_rows(
    rows: Iterable[BarcodeRow],
    read_groups: Optional["ReadGroupConfig"] = None,
) -> BarcodeDictionary:
    """
    Build a :class:`BarcodeDictionary` from ``(sample, library, barcodes)`` rows.

    Read group ids are ``{sample}_{combined}``, prefixed by the run id when
    ``read_groups`` has one. Rows without a library use the same label.
    """
    config = _read_group_config(read_groups)
    samples: List[Sample] = []
    for name, library, barcodes in rows:
        normalized = tuple(normalize_barcode(b, name) for b in barcodes)
        read_group = config.sample_read_group(name, join_barcodes(normalized), library)
        samples.append(Sample(name, normalized, read_group, read_group.library))
    return BarcodeDictionary(samples, config.unknown_read_group())


def read_barcode_file(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a whitespace-delimited barcode file without header.

    Columns are ``sample library barcode_1 [barcode_2 ...]`` and every line
    must have the same number of columns.

    Returns
    -------
    pd.DataFrame
        Columns ``sample``, ``library``, ``barcode_1`` ... ``barcode_k``.
    """
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Barcode file not found: {p}")
    try:
        df = pd.read_csv(
            p,
            sep=r"\s+",
            header=None,
            dtype=str,
            keep_default_na=False,
            na_values=[""],
        )
    except pd.errors.EmptyDataError:
        raise ConfigurationError(f"Barcode file {p} is empty.") from None
    except pd.errors.ParserError as exc:
        raise ConfigurationError(
            f"Barcode file {p} has lines with different number of columns: {exc}"
        ) from None

    if df.shape[1] < _MIN_COLUMNS:
        raise ConfigurationError(
            f"Barcode file {p} needs at least {_MIN_COLUMNS} columns "
            f"(sample, library, barcode), found {df.shape[1]}."
        )
    incomplete = df.isna().any(axis=1)
    if incomplete.any():
        first = int(incomplete.to_numpy().nonzero()[0][0]) + 1
        raise ConfigurationError(
            f"Barcode file {p} has lines with different number of columns (line {first})."
        )

    df.columns = ["sample", "library"] + [f"barcode_{i}" for i in range(1, df.shape[1] - 1)]
    return df


def load_barcode_dictionary(
    path: Union[str, Path],
    read_groups: Optional["ReadGroupConfig"] = None,
) -> BarcodeDictionary:
    """Load a barcode file into a :class:`BarcodeDictionary`."""
    df = read_barcode_file(path)
    barcode_columns = [c for c in df.columns if c.startswith("barcode_")]
    rows = [
        (record["sample"], record["library"], [record[c] for c in barcode_columns])
        for record in df.to_dict(orient="records")
    ]
    dictionary = barcode_dictionary_from_rows(rows, read_groups)
    logger.info(
        "Loaded barcode dictionary from %s: %d samples (%d unique), %d indexes",
        path,
        dictionary.number_of_samples,
        dictionary.number_of_unique_samples,
        dictionary.index_count,
    )
    return dictionary
