"""Barcode dictionary: the samples expected in a multiplexed run and their barcodes."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..constants import BARCODE_INDEX_DELIMITER, READ_GROUP_FIELD_TAGS, UNKNOWN_LABEL
from ..errors import ConfigurationError

_VALID_BASES = frozenset("ACGTN")


@dataclass(frozen=True)
class ReadGroup:
    """Identity record a read is tagged with once assigned to a sample."""

    id: str
    sample: Optional[str] = None
    library: Optional[str] = None
    platform: Optional[str] = None
    platform_unit: Optional[str] = None
    extra: Tuple[Tuple[str, str], ...] = ()

    def to_header_dict(self) -> Dict[str, str]:
        """Return the ``@RG`` header line as a tag -> value mapping (pysam layout)."""
        record = {}
        for attr, tag in READ_GROUP_FIELD_TAGS.items():
            value = getattr(self, attr)
            if value is not None:
                record[tag] = value
        for tag, value in self.extra:
            record[tag] = value
        return record


@dataclass(frozen=True)
class Sample:
    """One dictionary entry: a sample and its barcode for every index."""

    name: str
    barcodes: Tuple[str, ...]
    read_group: ReadGroup
    library: Optional[str] = None

    @property
    def combined_barcode(self) -> str:
        return join_barcodes(self.barcodes)


def join_barcodes(barcodes: Sequence[str]) -> str:
    """Join per-index barcodes, in index order, into a combined barcode."""
    return BARCODE_INDEX_DELIMITER.join(barcodes)


def normalize_barcode(barcode: str, sample_name: str = "") -> str:
    """Upper-case a barcode and check it only contains A, C, G, T or N."""
    if not isinstance(barcode, str) or not barcode:
        raise ConfigurationError(f"Sample '{sample_name}' has an empty or non-string barcode: {barcode!r}")
    upper = barcode.upper()
    invalid = set(upper) - _VALID_BASES
    if invalid:
        raise ConfigurationError(
            f"Barcode '{barcode}' for sample '{sample_name}' contains invalid characters: "
            f"{sorted(invalid)}. Only A, C, G, T, N are allowed."
        )
    return upper


class BarcodeDictionary:
    """
    Immutable registry of samples and their per-index barcodes.

    All lookup structures used while decoding are derived once here:

    - per index, the distinct candidate barcodes (in first-seen sample order)
    - per index, the sample-ordered barcode list
    - per index, the sample indexes carrying each barcode (frequency table)
    - per index, a stable integer id for each distinct barcode
    - the combined barcode of every sample and its read group

    Parameters
    ----------
    samples : Sequence[Sample]
        Dictionary entries in the order they should be reported.
    unknown_read_group : ReadGroup
        Read group given to reads that cannot be assigned.

    Raises
    ------
    ConfigurationError
        If there are no samples or the samples have different numbers of barcodes.
    """

    def __init__(self, samples: Sequence[Sample], unknown_read_group: ReadGroup):
        if not samples:
            raise ConfigurationError("A barcode dictionary needs at least one sample.")
        if unknown_read_group is None:
            raise ConfigurationError("A barcode dictionary needs a read group for unknown reads.")

        index_count = len(samples[0].barcodes)
        if index_count < 1:
            raise ConfigurationError(f"Sample '{samples[0].name}' has no barcodes.")

        normalized: List[Sample] = []
        for sample in samples:
            if len(sample.barcodes) != index_count:
                raise ConfigurationError(
                    f"Sample '{sample.name}' has {len(sample.barcodes)} barcodes, "
                    f"but the dictionary has {index_count} indexes."
                )
            barcodes = tuple(normalize_barcode(b, sample.name) for b in sample.barcodes)
            if barcodes != sample.barcodes:
                sample = Sample(sample.name, barcodes, sample.read_group, sample.library)
            normalized.append(sample)

        self._samples: Tuple[Sample, ...] = tuple(normalized)
        self._index_count = index_count
        self._unknown_read_group = unknown_read_group

        self._sample_barcodes: Tuple[Tuple[str, ...], ...] = tuple(
            tuple(s.barcodes[i] for s in self._samples) for i in range(index_count)
        )
        # dict.fromkeys keeps first-seen order
        self._candidates: Tuple[Tuple[str, ...], ...] = tuple(
            tuple(dict.fromkeys(column)) for column in self._sample_barcodes
        )
        self._candidate_sets: Tuple[FrozenSet[str], ...] = tuple(
            frozenset(c) for c in self._candidates
        )
        self._barcode_ids: Tuple[Mapping[str, int], ...] = tuple(
            MappingProxyType({b: i for i, b in enumerate(c)}) for c in self._candidates
        )
        self._frequencies: Tuple[Counter, ...] = tuple(
            Counter(column) for column in self._sample_barcodes
        )
        samples_by_barcode = []
        for column in self._sample_barcodes:
            by_barcode: Dict[str, List[int]] = {}
            for sample_index, barcode in enumerate(column):
                by_barcode.setdefault(barcode, []).append(sample_index)
            samples_by_barcode.append(
                MappingProxyType({b: tuple(idx) for b, idx in by_barcode.items()})
            )
        self._samples_by_barcode: Tuple[Mapping[str, Tuple[int, ...]], ...] = tuple(
            samples_by_barcode
        )

        self._combined: Tuple[str, ...] = tuple(s.combined_barcode for s in self._samples)
        # the first sample wins when two samples share a combined barcode
        combined_to_sample: Dict[str, int] = {}
        for sample_index, combined in enumerate(self._combined):
            combined_to_sample.setdefault(combined, sample_index)
        self._combined_to_sample: Mapping[str, int] = MappingProxyType(combined_to_sample)

    # ------------------------------------------------------------------
    # General accessors
    # ------------------------------------------------------------------
    @property
    def index_count(self) -> int:
        return self._index_count

    @property
    def samples(self) -> Tuple[Sample, ...]:
        return self._samples

    @property
    def number_of_samples(self) -> int:
        return len(self._samples)

    @property
    def number_of_unique_samples(self) -> int:
        return len({s.read_group for s in self._samples})

    @property
    def sample_names(self) -> List[str]:
        return [s.name for s in self._samples]

    @property
    def read_groups(self) -> List[ReadGroup]:
        return [s.read_group for s in self._samples]

    @property
    def unknown_read_group(self) -> ReadGroup:
        return self._unknown_read_group

    def __len__(self) -> int:
        return len(self._samples)

    # ------------------------------------------------------------------
    # Per-index lookups
    # ------------------------------------------------------------------
    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._index_count:
            raise IndexError(f"Index {index} out of range for {self._index_count} indexes.")

    def candidate_set(self, index: int) -> FrozenSet[str]:
        """Distinct barcodes at ``index`` (membership testing)."""
        self._check_index(index)
        return self._candidate_sets[index]

    def candidates_at(self, index: int) -> Tuple[str, ...]:
        """Distinct barcodes at ``index`` in first-seen sample order (matching order)."""
        self._check_index(index)
        return self._candidates[index]

    def sample_barcodes_at(self, index: int) -> Tuple[str, ...]:
        """Barcodes at ``index`` aligned with the sample order."""
        self._check_index(index)
        return self._sample_barcodes[index]

    def samples_with_barcode(self, barcode: str, index: int) -> Tuple[int, ...]:
        """Indexes of the samples carrying ``barcode`` at ``index``."""
        self._check_index(index)
        return self._samples_by_barcode[index].get(barcode, ())

    def is_unique_at(self, barcode: str, index: int) -> bool:
        """True if exactly one sample has ``barcode`` at ``index``."""
        self._check_index(index)
        return self._frequencies[index][barcode] == 1

    def barcode_id(self, index: int, barcode: str) -> int:
        """Stable integer id of a candidate barcode at ``index``."""
        self._check_index(index)
        try:
            return self._barcode_ids[index][barcode]
        except KeyError:
            raise KeyError(f"Barcode '{barcode}' is not a candidate at index {index}.") from None

    # ------------------------------------------------------------------
    # Combined barcodes and read groups
    # ------------------------------------------------------------------
    def barcodes_of(self, sample_index: int) -> Tuple[str, ...]:
        return self._samples[sample_index].barcodes

    def combined_barcode_of(self, sample_index: int) -> str:
        return self._combined[sample_index]

    def sample_index_for(self, combined_barcode: str) -> Optional[int]:
        return self._combined_to_sample.get(combined_barcode)

    def read_group_for(self, combined_barcode: str) -> Optional[ReadGroup]:
        """
        Read group for a combined barcode.

        The reserved ``UNKNOWN`` label returns the unknown read group; any other
        unregistered value returns ``None``.
        """
        if combined_barcode == UNKNOWN_LABEL:
            return self._unknown_read_group
        sample_index = self._combined_to_sample.get(combined_barcode)
        if sample_index is None:
            return None
        return self._samples[sample_index].read_group

    def to_dataframe(self) -> pd.DataFrame:
        """One row per sample with its read group id and per-index barcodes."""
        rows = []
        for sample, combined in zip(self._samples, self._combined):
            row = {
                "sample": sample.name,
                "library": sample.library,
                "read_group": sample.read_group.id,
                "combined_barcode": combined,
            }
            for i, barcode in enumerate(sample.barcodes):
                row[f"barcode_{i + 1}"] = barcode
            rows.append(row)
        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return (
            f"BarcodeDictionary(samples={self.number_of_samples}, "
            f"indexes={self._index_count})"
        )
