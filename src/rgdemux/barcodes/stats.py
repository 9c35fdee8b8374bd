"""Decoding statistics: assignment counts, match quality and discard reasons."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

import numpy as np
import pandas as pd

from ..constants import UNKNOWN_LABEL
from ..errors import ConfigurationError
from .dictionary import BarcodeDictionary
from .filtering import DiscardReason
from .matching import BarcodeMatch
from .resolution import Assignment

_DISCARD_SLOTS: Dict[DiscardReason, int] = {reason: i for i, reason in enumerate(DiscardReason)}


class StatsSink(Protocol):
    """Receiver of the events produced while decoding reads."""

    def record_assignment(self, assignment: Assignment) -> None: ...

    def record_match_quality(self, match: BarcodeMatch) -> None: ...

    def record_discard(self, reason: DiscardReason) -> None: ...

    def export(self) -> "DecoderMetrics": ...


@dataclass(frozen=True)
class DiscardCounts:
    """Totals of per-index matches rejected by each filter."""

    no_match: int = 0
    too_many_ns: int = 0
    too_many_mismatches: int = 0
    insufficient_distance: int = 0

    @property
    def total(self) -> int:
        return self.no_match + self.too_many_ns + self.too_many_mismatches + self.insufficient_distance

    def to_dict(self) -> Dict[str, int]:
        return {
            "DISCARDED_NO_MATCH": self.no_match,
            "DISCARDED_BY_N": self.too_many_ns,
            "DISCARDED_BY_MISMATCH": self.too_many_mismatches,
            "DISCARDED_BY_DISTANCE": self.insufficient_distance,
        }


@dataclass(frozen=True)
class DecoderMetrics:
    """Read-only export of the decoding statistics.

    Attributes
    ----------
    matcher : pd.DataFrame
        One row per sample plus the unknown bucket: records and percentage.
    barcodes : pd.DataFrame
        One row per (index, candidate barcode): matches, mean mismatches, mean Ns.
    mismatch_histogram : pd.DataFrame
        Accepted matches per number of mismatches, one column per barcode.
    discards : DiscardCounts
    """

    matcher: pd.DataFrame
    barcodes: pd.DataFrame
    mismatch_histogram: pd.DataFrame
    discards: DiscardCounts


class DecoderStats:
    """
    Default :class:`StatsSink`, backed by integer-indexed numpy counters.

    Samples and barcodes are addressed by the ids assigned when the
    dictionary was built; the last record slot is the unknown bucket.
    Not thread-safe: give each worker its own instance and :meth:`merge`.
    """

    def __init__(self, dictionary: BarcodeDictionary):
        self._dictionary = dictionary
        self._records = np.zeros(dictionary.number_of_samples + 1, dtype=np.int64)
        self._matched: List[np.ndarray] = []
        self._mismatch_sum: List[np.ndarray] = []
        self._n_sum: List[np.ndarray] = []
        self._histograms: List[np.ndarray] = []
        for index in range(dictionary.index_count):
            candidates = dictionary.candidates_at(index)
            width = max(len(b) for b in candidates) + 1
            self._matched.append(np.zeros(len(candidates), dtype=np.int64))
            self._mismatch_sum.append(np.zeros(len(candidates), dtype=np.int64))
            self._n_sum.append(np.zeros(len(candidates), dtype=np.int64))
            self._histograms.append(np.zeros((len(candidates), width), dtype=np.int64))
        self._discards = np.zeros(len(_DISCARD_SLOTS), dtype=np.int64)

    @property
    def dictionary(self) -> BarcodeDictionary:
        return self._dictionary

    @property
    def unknown_slot(self) -> int:
        return self._dictionary.number_of_samples

    # ------------------------------------------------------------------
    # StatsSink
    # ------------------------------------------------------------------
    def record_assignment(self, assignment: Assignment) -> None:
        slot = self.unknown_slot if assignment.is_unknown else assignment.sample_index
        self._records[slot] += 1

    def record_match_quality(self, match: BarcodeMatch) -> None:
        barcode_id = self._dictionary.barcode_id(match.index, match.barcode)
        self._matched[match.index][barcode_id] += 1
        self._mismatch_sum[match.index][barcode_id] += match.mismatches
        self._n_sum[match.index][barcode_id] += match.number_of_ns
        self._histograms[match.index][barcode_id, match.mismatches] += 1

    def record_discard(self, reason: DiscardReason) -> None:
        self._discards[_DISCARD_SLOTS[reason]] += 1

    def export(self) -> DecoderMetrics:
        return DecoderMetrics(
            matcher=self.matcher_metrics(),
            barcodes=self.barcode_metrics(),
            mismatch_histogram=self.mismatch_histograms(),
            discards=self.discards,
        )

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------
    def records_for(self, sample_index: int) -> int:
        return int(self._records[sample_index])

    @property
    def unknown_records(self) -> int:
        return int(self._records[self.unknown_slot])

    @property
    def total_records(self) -> int:
        return int(self._records.sum())

    @property
    def discards(self) -> DiscardCounts:
        counts = {reason.value: int(self._discards[slot]) for reason, slot in _DISCARD_SLOTS.items()}
        return DiscardCounts(**counts)

    def snapshot(self) -> Dict[str, Any]:
        """Plain-python copy of every counter, for comparisons and logging."""
        return {
            "records": self._records.tolist(),
            "matched": [a.tolist() for a in self._matched],
            "mismatch_sum": [a.tolist() for a in self._mismatch_sum],
            "n_sum": [a.tolist() for a in self._n_sum],
            "histograms": [a.tolist() for a in self._histograms],
            "discards": self._discards.tolist(),
        }

    def merge(self, other: "DecoderStats") -> "DecoderStats":
        """Add the counters of ``other`` (built on the same dictionary) into this one."""
        if other._dictionary is not self._dictionary:
            raise ConfigurationError("Cannot merge statistics from different barcode dictionaries.")
        self._records += other._records
        for mine, theirs in (
            (self._matched, other._matched),
            (self._mismatch_sum, other._mismatch_sum),
            (self._n_sum, other._n_sum),
            (self._histograms, other._histograms),
        ):
            for a, b in zip(mine, theirs):
                a += b
        self._discards += other._discards
        return self

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------
    def _sequence_label(self, index: int, barcode: str) -> str:
        if self._dictionary.index_count == 1:
            return barcode
        return f"{barcode}_{index + 1}"

    def matcher_metrics(self) -> pd.DataFrame:
        """Records per combined barcode; percentages are computed on each call."""
        rows = []
        for sample_index, sample in enumerate(self._dictionary.samples):
            rows.append(
                {
                    "BARCODE": self._dictionary.combined_barcode_of(sample_index),
                    "SAMPLE": sample.name,
                    "LIBRARY": sample.library,
                    "READ_GROUP": sample.read_group.id,
                    "RECORDS": int(self._records[sample_index]),
                }
            )
        rows.append(
            {
                "BARCODE": UNKNOWN_LABEL,
                "SAMPLE": UNKNOWN_LABEL,
                "LIBRARY": None,
                "READ_GROUP": self._dictionary.unknown_read_group.id,
                "RECORDS": self.unknown_records,
            }
        )
        df = pd.DataFrame(rows)
        total = self.total_records
        df["PCT_RECORDS"] = 100.0 * df["RECORDS"] / total if total else 0.0
        return df

    def barcode_metrics(self) -> pd.DataFrame:
        frames = []
        for index in range(self._dictionary.index_count):
            candidates = self._dictionary.candidates_at(index)
            matched = self._matched[index]
            with np.errstate(divide="ignore", invalid="ignore"):
                mean_mismatch = np.where(matched > 0, self._mismatch_sum[index] / matched, 0.0)
                mean_n = np.where(matched > 0, self._n_sum[index] / matched, 0.0)
            frames.append(
                pd.DataFrame(
                    {
                        "INDEX": index + 1,
                        "SEQUENCE": [self._sequence_label(index, b) for b in candidates],
                        "MATCHED": matched,
                        "MEAN_MISMATCH": mean_mismatch,
                        "MEAN_N": mean_n,
                    }
                )
            )
        return pd.concat(frames, ignore_index=True)

    def mismatch_histograms(self) -> pd.DataFrame:
        width = max(h.shape[1] for h in self._histograms)
        columns = {}
        for index, histogram in enumerate(self._histograms):
            padded = np.zeros((histogram.shape[0], width), dtype=np.int64)
            padded[:, : histogram.shape[1]] = histogram
            for barcode_id, barcode in enumerate(self._dictionary.candidates_at(index)):
                columns[self._sequence_label(index, barcode)] = padded[barcode_id]
        df = pd.DataFrame(columns)
        df.insert(0, "MISMATCHES", np.arange(width))
        return df
