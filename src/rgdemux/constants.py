from __future__ import annotations

from types import MappingProxyType
from typing import Any, Final, FrozenSet, Mapping, Optional


## Helpers ##
def _deep_freeze(obj: Any) -> Any:
    """Recursively freeze common containers. Use for constant exports."""
    if isinstance(obj, dict):
        return MappingProxyType({k: _deep_freeze(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return tuple(_deep_freeze(v) for v in obj)
    if isinstance(obj, set):
        return frozenset(_deep_freeze(v) for v in obj)
    return obj  # ints/strs/tuples (already immutable)


## Barcodes ##
# Label used for the unknown bucket in metrics tables and read group ids.
UNKNOWN_LABEL: Final[str] = "UNKNOWN"

# Delimiter between indexes in the BC tag and in combined barcodes.
BARCODE_INDEX_DELIMITER: Final[str] = "-"

# Read names carrying barcodes look like ``name#ACGT_TTGA/1``.
READ_NAME_BARCODE_DELIMITER: Final[str] = "#"
READ_NAME_BARCODE_SEPARATOR: Final[str] = "_"
READ_PAIR_SEPARATOR: Final[str] = "/"

RAW_BARCODE_TAG: Final[str] = "BC"
READ_GROUP_TAG: Final[str] = "RG"

DISCARDED_OUTPUT_SUFFIX: Final[str] = "_discarded"

N_BASES: Final[FrozenSet[str]] = frozenset("Nn")

## Decoder defaults ##
DEFAULT_MAX_MISMATCHES: Final[int] = 0
DEFAULT_MIN_DIFFERENCE_WITH_SECOND: Final[int] = 1
# None means no threshold on the number of Ns.
DEFAULT_MAX_N: Final[Optional[int]] = None

## Read groups ##
_private_platforms = [
    "CAPILLARY",
    "DNBSEQ",
    "ELEMENT",
    "HELICOS",
    "ILLUMINA",
    "IONTORRENT",
    "LS454",
    "ONT",
    "PACBIO",
    "SINGULAR",
    "SOLID",
    "ULTIMA",
]
SAM_PLATFORMS: Final[FrozenSet[str]] = frozenset(_private_platforms)

# SAM @RG tag names for the ReadGroup fields.
_private_rg_tags = {
    "id": "ID",
    "sample": "SM",
    "library": "LB",
    "platform": "PL",
    "platform_unit": "PU",
}
READ_GROUP_FIELD_TAGS: Final[Mapping[str, str]] = _deep_freeze(_private_rg_tags)
