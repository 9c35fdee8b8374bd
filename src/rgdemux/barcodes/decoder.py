"""Assigning reads to samples from their raw barcodes."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from ..constants import (
    BARCODE_INDEX_DELIMITER,
    DEFAULT_MAX_MISMATCHES,
    DEFAULT_MAX_N,
    DEFAULT_MIN_DIFFERENCE_WITH_SECOND,
)
from ..errors import MalformedReadError
from ..logging_utils import get_logger
from .dictionary import BarcodeDictionary, ReadGroup
from .filtering import MatchFilter
from .matching import BarcodeMatch, best_barcode_match
from .resolution import UNKNOWN, Assignment, resolve_sample
from .stats import DecoderMetrics, DecoderStats, StatsSink

if TYPE_CHECKING:
    from ..config import DecoderConfig

logger = get_logger(__name__)


class BarcodeDecoder:
    """
    Match raw barcodes against a :class:`BarcodeDictionary` and keep statistics.

    Parameters
    ----------
    dictionary : BarcodeDictionary
        Expected samples and barcodes. Never modified.
    max_n : int, optional
        Maximum number of Ns in a matched barcode; ``None`` for no limit.
    n_as_mismatch : bool
        Count Ns as mismatches.
    max_mismatches : Sequence[int], optional
        Maximum mismatches for each index. Defaults to 0 for every index.
    min_difference_with_second : Sequence[int], optional
        Minimum difference in mismatches between the best and the second best
        barcode, for each index. Defaults to 1 for every index.
    stats : StatsSink, optional
        Where decoding events are recorded. Defaults to a new :class:`DecoderStats`.

    Raises
    ------
    ConfigurationError
        If a threshold sequence does not have one value per index.
    """

    def __init__(
        self,
        dictionary: BarcodeDictionary,
        max_n: Optional[int] = DEFAULT_MAX_N,
        n_as_mismatch: bool = True,
        max_mismatches: Optional[Sequence[int]] = None,
        min_difference_with_second: Optional[Sequence[int]] = None,
        stats: Optional[StatsSink] = None,
    ):
        self._dictionary = dictionary
        index_count = dictionary.index_count
        if max_mismatches is None:
            max_mismatches = [DEFAULT_MAX_MISMATCHES] * index_count
        if min_difference_with_second is None:
            min_difference_with_second = [DEFAULT_MIN_DIFFERENCE_WITH_SECOND] * index_count
        self._filter = MatchFilter.for_index_count(
            index_count, max_mismatches, min_difference_with_second, max_n
        )
        self._n_as_mismatch = bool(n_as_mismatch)
        self._stats: StatsSink = stats if stats is not None else DecoderStats(dictionary)

    @classmethod
    def from_config(
        cls,
        dictionary: BarcodeDictionary,
        config: "DecoderConfig",
        stats: Optional[StatsSink] = None,
    ) -> "BarcodeDecoder":
        """Build a decoder, broadcasting single thresholds to every index."""
        max_mismatches, min_difference = config.resolve_thresholds(dictionary.index_count)
        return cls(
            dictionary,
            max_n=config.max_n,
            n_as_mismatch=config.n_as_mismatch,
            max_mismatches=max_mismatches,
            min_difference_with_second=min_difference,
            stats=stats,
        )

    @property
    def dictionary(self) -> BarcodeDictionary:
        return self._dictionary

    @property
    def stats(self) -> StatsSink:
        return self._stats

    @property
    def match_filter(self) -> MatchFilter:
        return self._filter

    @property
    def n_as_mismatch(self) -> bool:
        return self._n_as_mismatch

    def match_index(self, index: int, raw_barcode: str) -> BarcodeMatch:
        """Best match of ``raw_barcode`` among the candidates of ``index``."""
        return best_barcode_match(
            index, raw_barcode, self._dictionary.candidates_at(index), self._n_as_mismatch
        )

    def _accepted_matches(self, raw_barcodes: Sequence[str]) -> List[BarcodeMatch]:
        accepted = []
        for index, raw in enumerate(raw_barcodes):
            match = self.match_index(index, raw)
            reason = self._filter.apply(match, self._stats)
            if reason is None:
                accepted.append(match)
            else:
                logger.debug("Index %d: %s discarded (%s)", index + 1, raw, reason.value)
        return accepted

    def decode(self, raw_barcodes: Sequence[str], read_name: Optional[str] = None) -> Assignment:
        """
        Assign a read to a sample and record the outcome.

        Parameters
        ----------
        raw_barcodes : Sequence[str]
            One raw barcode per index, in index order. Empty if the read has none.
        read_name : str, optional
            Only used in log and error messages.

        Returns
        -------
        Assigned or Unknown

        Raises
        ------
        MalformedReadError
            If the read has barcodes but not one per index. No statistic is updated.
        """
        if len(raw_barcodes) == 0:
            logger.warning(
                "%s read does not have raw barcodes: assigned to %s Read Group",
                read_name or "Unnamed",
                self._dictionary.unknown_read_group.id,
            )
            self._stats.record_assignment(UNKNOWN)
            return UNKNOWN

        if len(raw_barcodes) != self._dictionary.index_count:
            raise MalformedReadError(
                f"Barcode dictionary has {self._dictionary.index_count} indexes, but read "
                f"contains {len(raw_barcodes)} barcodes. Failing read: {read_name} "
                f"({BARCODE_INDEX_DELIMITER.join(raw_barcodes)})",
                read_name=read_name,
            )

        accepted = self._accepted_matches(raw_barcodes)
        assignment = resolve_sample(accepted, self._dictionary) if accepted else UNKNOWN
        self._stats.record_assignment(assignment)
        logger.debug("Raw barcodes %s assigned to %s", raw_barcodes, assignment)
        return assignment

    def read_group_of(self, assignment: Assignment) -> ReadGroup:
        if assignment.is_unknown:
            return self._dictionary.unknown_read_group
        return self._dictionary.samples[assignment.sample_index].read_group

    def assign_read_group(
        self, raw_barcodes: Sequence[str], read_name: Optional[str] = None
    ) -> ReadGroup:
        """Decode a read and return the read group it should be tagged with."""
        return self.read_group_of(self.decode(raw_barcodes, read_name))

    def best_barcode(self, *raw_barcodes: str) -> Optional[str]:
        """Combined barcode of the sample assigned to ``raw_barcodes``; None if unknown."""
        if len(raw_barcodes) != self._dictionary.index_count:
            raise MalformedReadError(
                f"Asking for {len(raw_barcodes)} barcodes, but the barcode dictionary has "
                f"{self._dictionary.index_count} indexes."
            )
        assignment = self.decode(raw_barcodes)
        if assignment.is_unknown:
            return None
        return self._dictionary.combined_barcode_of(assignment.sample_index)

    def metrics(self) -> DecoderMetrics:
        return self._stats.export()
