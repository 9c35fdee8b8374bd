"""Matching an observed barcode against the candidates of one index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..constants import N_BASES, UNKNOWN_LABEL


@dataclass(frozen=True)
class BarcodeMatch:
    """
    Best match of one observed barcode against one index's candidates.

    ``barcode`` is ``None`` when nothing matched (the unknown match); in that
    case both mismatch counts equal the observed barcode length.
    """

    index: int
    barcode: Optional[str]
    mismatches: int
    mismatches_to_second_best: int
    number_of_ns: int

    @property
    def is_match(self) -> bool:
        return self.barcode is not None

    @property
    def label(self) -> str:
        return UNKNOWN_LABEL if self.barcode is None else self.barcode

    @property
    def distance_to_second_best(self) -> int:
        return self.mismatches_to_second_best - self.mismatches

    @property
    def is_ambiguous(self) -> bool:
        """True when the second best candidate is as close as the best one."""
        return self.distance_to_second_best <= 0

    def is_assignable(self, min_difference_with_second: int) -> bool:
        """
        Whether the match is far enough from the second best.

        An exact match without Ns is assignable when no other candidate is
        also exact.
        """
        if self.mismatches == 0 and self.number_of_ns == 0 and self.mismatches_to_second_best > 0:
            return True
        return self.distance_to_second_best >= min_difference_with_second


def _is_n(base: str) -> bool:
    return base in N_BASES


def count_ns(sequence: str) -> int:
    """Number of ambiguous (N) bases in ``sequence``."""
    return sum(1 for base in sequence if _is_n(base))


def hamming_distance(observed: str, candidate: str, n_as_mismatch: bool = True) -> int:
    """
    Positional mismatches between an observed barcode and a candidate.

    Comparison is case-insensitive and stops at the end of the shorter
    sequence. If ``n_as_mismatch`` is False, positions with an N on either
    side are not counted.
    """
    distance = 0
    for obs, cand in zip(observed.upper(), candidate.upper()):
        if not n_as_mismatch and (_is_n(obs) or _is_n(cand)):
            continue
        if obs != cand:
            distance += 1
    return distance


def _disagrees_everywhere(observed: str, candidate: str) -> bool:
    # N positions carry no evidence against a candidate
    return all(
        not _is_n(obs) and not _is_n(cand) and obs != cand
        for obs, cand in zip(observed.upper(), candidate.upper())
    )


def best_barcode_match(
    index: int,
    observed: str,
    candidates: Iterable[str],
    n_as_mismatch: bool = True,
) -> BarcodeMatch:
    """
    Find the best and second best candidates for an observed barcode.

    Candidates are scanned in order and ties keep the earlier candidate. A
    candidate identical to the whole observation ends the scan; an exact
    match over a shorter comparison keeps scanning so that a second exact
    candidate shows up as the second best. When the best candidate
    differs from the observation at every compared position (Ns excluded)
    the observation is unknown.

    Parameters
    ----------
    index : int
        0-based index the observation belongs to.
    observed : str
        Raw barcode read from the sequencer.
    candidates : Iterable[str]
        Candidate barcodes for this index.
    n_as_mismatch : bool
        Count Ns as mismatches.

    Returns
    -------
    BarcodeMatch
    """
    length = len(observed)
    best_barcode: Optional[str] = None
    best = length
    second = length

    for candidate in candidates:
        current = hamming_distance(observed, candidate, n_as_mismatch)
        if best_barcode is None or current < best:
            if best_barcode is not None:
                second = best
            best = current
            best_barcode = candidate
            if current == 0 and len(candidate) == length:
                break
        elif current < second:
            second = current

    if best_barcode is not None and _disagrees_everywhere(observed, best_barcode):
        best_barcode = None
        best = second = length

    compared = observed if best_barcode is None else observed[: len(best_barcode)]
    return BarcodeMatch(
        index=index,
        barcode=best_barcode,
        mismatches=best,
        mismatches_to_second_best=second,
        number_of_ns=count_ns(compared),
    )
