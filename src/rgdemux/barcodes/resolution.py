"""Combining the accepted per-index matches of a read into one sample."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Union

from ..logging_utils import get_logger
from .dictionary import BarcodeDictionary
from .matching import BarcodeMatch

logger = get_logger(__name__)


@dataclass(frozen=True)
class Assigned:
    """The read belongs to the sample at ``sample_index`` in the dictionary."""

    sample_index: int

    @property
    def is_unknown(self) -> bool:
        return False


@dataclass(frozen=True)
class Unknown:
    """The read could not be assigned with confidence."""

    @property
    def is_unknown(self) -> bool:
        return True


UNKNOWN = Unknown()

Assignment = Union[Assigned, Unknown]


def resolve_sample(
    matches: Iterable[BarcodeMatch], dictionary: BarcodeDictionary
) -> Assignment:
    """
    Resolve the sample of a read from its accepted per-index matches.

    1. The first match (in the given order) whose barcode is unique at its
       index decides the sample immediately.
    2. Otherwise every sample sharing a matched barcode at that index gets
       one vote per match.
    3. No votes, or a tie for the most votes, gives :data:`UNKNOWN`.

    Parameters
    ----------
    matches : Iterable[BarcodeMatch]
        Matches that passed the filters, usually in index order.
    dictionary : BarcodeDictionary
        Dictionary the matches were computed against.

    Returns
    -------
    Assigned or Unknown
    """
    votes: Counter = Counter()
    for match in matches:
        if match.barcode is None:
            continue
        if dictionary.is_unique_at(match.barcode, match.index):
            (sample_index,) = dictionary.samples_with_barcode(match.barcode, match.index)
            return Assigned(sample_index)
        for sample_index in dictionary.samples_with_barcode(match.barcode, match.index):
            votes[sample_index] += 1

    if not votes:
        return UNKNOWN

    max_votes = max(votes.values())
    winners = [sample_index for sample_index, n in votes.items() if n == max_votes]
    if len(winners) != 1:
        logger.debug("Tie between samples %s with %d votes", sorted(winners), max_votes)
        return UNKNOWN
    return Assigned(winners[0])
