"""Per-index acceptance thresholds for barcode matches."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from ..errors import ConfigurationError
from .matching import BarcodeMatch

if TYPE_CHECKING:
    from .stats import StatsSink


class DiscardReason(str, Enum):
    """Why a per-index match was rejected. Checked in declaration order."""

    NO_MATCH = "no_match"
    TOO_MANY_NS = "too_many_ns"
    TOO_MANY_MISMATCHES = "too_many_mismatches"
    INSUFFICIENT_DISTANCE = "insufficient_distance"


@dataclass(frozen=True)
class MatchFilter:
    """
    Thresholds applied to every :class:`BarcodeMatch` of a read.

    ``max_mismatches`` and ``min_difference_with_second`` hold one value per
    index; ``max_n`` is shared by all indexes and ``None`` disables it.
    """

    max_mismatches: Tuple[int, ...]
    min_difference_with_second: Tuple[int, ...]
    max_n: Optional[int] = None

    @classmethod
    def for_index_count(
        cls,
        index_count: int,
        max_mismatches: Sequence[int],
        min_difference_with_second: Sequence[int],
        max_n: Optional[int] = None,
    ) -> "MatchFilter":
        """Build a filter, checking the thresholds against the number of indexes."""
        if max_mismatches is None or len(max_mismatches) != index_count:
            raise ConfigurationError(
                f"max_mismatches has {0 if max_mismatches is None else len(max_mismatches)} "
                f"values, but the dictionary has {index_count} indexes."
            )
        if min_difference_with_second is None or len(min_difference_with_second) != index_count:
            raise ConfigurationError(
                "min_difference_with_second has "
                f"{0 if min_difference_with_second is None else len(min_difference_with_second)} "
                f"values, but the dictionary has {index_count} indexes."
            )
        if max_n is not None and max_n < 0:
            raise ConfigurationError(f"max_n must be >= 0 (got {max_n}).")
        return cls(
            max_mismatches=tuple(int(v) for v in max_mismatches),
            min_difference_with_second=tuple(int(v) for v in min_difference_with_second),
            max_n=None if max_n is None else int(max_n),
        )

    def discard_reason(self, match: BarcodeMatch) -> Optional[DiscardReason]:
        """Return the first failing check for ``match``, or None if it passes."""
        if not match.is_match:
            return DiscardReason.NO_MATCH
        if self.max_n is not None and match.number_of_ns > self.max_n:
            return DiscardReason.TOO_MANY_NS
        if match.mismatches > self.max_mismatches[match.index]:
            return DiscardReason.TOO_MANY_MISMATCHES
        if not match.is_assignable(self.min_difference_with_second[match.index]):
            return DiscardReason.INSUFFICIENT_DISTANCE
        return None

    def accepts(self, match: BarcodeMatch) -> bool:
        return self.discard_reason(match) is None

    def apply(self, match: BarcodeMatch, sink: "StatsSink") -> Optional[DiscardReason]:
        """
        Filter ``match`` and record the outcome in ``sink``.

        Accepted matches update the barcode quality statistics, rejected ones
        exactly one discard counter. Returns the discard reason, or None if
        the match was accepted.
        """
        reason = self.discard_reason(match)
        if reason is None:
            sink.record_match_quality(match)
        else:
            sink.record_discard(reason)
        return reason
