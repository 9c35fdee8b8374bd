"""Writing decoder metrics as a tab-delimited report."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Union

import pandas as pd

from ..logging_utils import get_logger
from .stats import DecoderMetrics

logger = get_logger(__name__)

SECTION_PREFIX = "## "


def metrics_sections(metrics: DecoderMetrics) -> Dict[str, pd.DataFrame]:
    """Report sections in writing order, keyed by section name."""
    return {
        "DISCARDS": pd.DataFrame([metrics.discards.to_dict()]),
        "MATCHER": metrics.matcher,
        "BARCODES": metrics.barcodes,
        "MISMATCH_HISTOGRAM": metrics.mismatch_histogram,
    }


def write_metrics(metrics: DecoderMetrics, path: Union[str, Path]) -> Path:
    """
    Write every metrics table to ``path``.

    Each section starts with a ``## NAME`` line followed by a tab-delimited
    table with header; sections are separated by a blank line.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8", newline="") as fh:
        for i, (name, table) in enumerate(metrics_sections(metrics).items()):
            if i:
                fh.write("\n")
            fh.write(f"{SECTION_PREFIX}{name}\n")
            table.to_csv(fh, sep="\t", index=False, float_format="%.6g", na_rep="")
    logger.info("Wrote decoder metrics to %s", out)
    return out


def read_metrics(path: Union[str, Path]) -> Dict[str, pd.DataFrame]:
    """Read a report written by :func:`write_metrics` back into one table per section."""
    sections: Dict[str, List[str]] = {}
    current = None
    with Path(path).open("r", encoding="utf-8") as fh:
        for line in fh:
            if line.startswith(SECTION_PREFIX):
                current = line[len(SECTION_PREFIX):].strip()
                sections[current] = []
            elif line.strip() and current is not None:
                sections[current].append(line)
    return {
        name: pd.read_csv(io.StringIO("".join(lines)), sep="\t", keep_default_na=False, na_values=[""])
        for name, lines in sections.items()
    }
