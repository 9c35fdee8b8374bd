from __future__ import annotations

import contextlib
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from tqdm import tqdm

from ..barcodes.decoder import BarcodeDecoder
from ..barcodes.dictionary import BarcodeDictionary, ReadGroup, join_barcodes
from ..constants import (
    BARCODE_INDEX_DELIMITER,
    DISCARDED_OUTPUT_SUFFIX,
    RAW_BARCODE_TAG,
    READ_GROUP_TAG,
    READ_NAME_BARCODE_DELIMITER,
    READ_NAME_BARCODE_SEPARATOR,
    READ_PAIR_SEPARATOR,
)
from ..logging_utils import get_logger
from ..optional_imports import require

if TYPE_CHECKING:
    import pysam as pysam_types

logger = get_logger(__name__)


def _require_pysam() -> "pysam_types":
    """Return the pysam module or raise if unavailable."""
    return require("pysam", purpose="reading and writing BAM/SAM files")


# ---------------------------------------------------------------------------
# Raw barcode extraction
# ---------------------------------------------------------------------------
def split_raw_barcodes(value: Optional[str], delimiter: str = BARCODE_INDEX_DELIMITER) -> List[str]:
    """Split a combined raw barcode into one barcode per index; empty for missing values."""
    if value is None or value == "":
        return []
    return value.split(delimiter)


def raw_barcodes_from_tag(read: "pysam_types.AlignedSegment", tag: str = RAW_BARCODE_TAG) -> List[str]:
    """Raw barcodes stored in a SAM tag (``BC`` by default), indexes joined by ``-``."""
    if not read.has_tag(tag):
        return []
    return split_raw_barcodes(str(read.get_tag(tag)))


def raw_barcodes_from_read_name(read_name: str) -> Tuple[str, List[str]]:
    """
    Split an Illumina-style read name into the bare name and its raw barcodes.

    ``read1#ACGT_TTGA/1`` gives ``("read1", ["ACGT", "TTGA"])``. Names without
    ``#`` are returned unchanged with no barcodes.
    """
    name, sep, encoded = read_name.partition(READ_NAME_BARCODE_DELIMITER)
    if not sep:
        return read_name, []
    if READ_PAIR_SEPARATOR in encoded:
        encoded = encoded[: encoded.rindex(READ_PAIR_SEPARATOR)]
    return name, split_raw_barcodes(encoded, READ_NAME_BARCODE_SEPARATOR)


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------
def read_group_header_entries(dictionary: BarcodeDictionary) -> List[Dict[str, str]]:
    """``@RG`` entries for every distinct sample read group; unassigned reads carry none."""
    entries = []
    seen = set()
    for read_group in dictionary.read_groups:
        if read_group.id in seen:
            continue
        seen.add(read_group.id)
        entries.append(read_group.to_header_dict())
    return entries


def _output_header(template: Dict[str, Any], dictionary: BarcodeDictionary) -> Dict[str, Any]:
    header = {key: value for key, value in template.items() if key != "RG"}
    if template.get("RG"):
        logger.warning(
            "Input read groups %s are replaced by the barcode dictionary read groups",
            [rg.get("ID") for rg in template["RG"]],
        )
    header.setdefault("HD", {"VN": "1.6", "SO": "unknown"})
    header["RG"] = read_group_header_entries(dictionary)
    header["PG"] = [*header.get("PG", []), {"ID": "rgdemux", "PN": "rgdemux"}]
    return header


def _write_mode(path: Path) -> str:
    return "wb" if path.suffix.lower() == ".bam" else "w"


def discarded_output_path(output_bam: Union[str, Path]) -> Path:
    """Path for unassigned reads next to ``output_bam``: ``out.bam`` -> ``out_discarded.bam``."""
    output_bam = Path(output_bam)
    return output_bam.with_name(f"{output_bam.stem}{DISCARDED_OUTPUT_SUFFIX}{output_bam.suffix}")


# ---------------------------------------------------------------------------
# Read group assignment
# ---------------------------------------------------------------------------
def _raw_barcodes(read: "pysam_types.AlignedSegment", barcodes_in_name: bool, barcode_tag: str) -> List[str]:
    if not barcodes_in_name:
        return raw_barcodes_from_tag(read, barcode_tag)
    name, raw = raw_barcodes_from_read_name(read.query_name)
    read.query_name = name
    if raw:
        read.set_tag(barcode_tag, join_barcodes(raw), value_type="Z")
    return raw


def assign_read_groups_in_bam(
    input_bam: Union[str, Path],
    output_bam: Union[str, Path],
    decoder: BarcodeDecoder,
    *,
    discarded_bam: Optional[Union[str, Path]] = None,
    barcodes_in_name: bool = False,
    barcode_tag: str = RAW_BARCODE_TAG,
    progress: bool = False,
) -> Dict[str, Any]:
    """Tag every read of a BAM/SAM file with the read group of its decoded sample.

    Reads assigned to a sample go to ``output_bam``, whose header lists the
    sample read groups only. Unassigned reads lose their ``RG`` tag and are
    written to ``discarded_bam`` (with the input header) or dropped when it is
    None. For paired reads only the first mate is decoded; the second mate
    reuses its read group, so a pair counts once in the decoder statistics.

    Parameters
    ----------
    input_bam : str or Path
        Unaligned or aligned BAM/SAM file. Mates are expected to follow each
        other (interleaved); a second mate without a preceding first mate is
        decoded on its own.
    output_bam : str or Path
        Output path; written as BAM when the suffix is ``.bam`` and SAM otherwise.
    decoder : BarcodeDecoder
        Decoder holding the dictionary, thresholds and statistics.
    discarded_bam : str or Path, optional
        Output for the unassigned reads. See :func:`discarded_output_path`.
    barcodes_in_name : bool
        Take the raw barcodes from the read name (``name#BC1_BC2/1``) instead
        of ``barcode_tag``. The name is stripped of the barcodes and the raw
        barcodes are stored in ``barcode_tag``.
    barcode_tag : str
        Tag holding the raw barcodes, indexes joined by ``-``.
    progress : bool
        Show a tqdm progress bar.

    Returns
    -------
    dict
        ``records`` (input records), ``written`` (records in ``output_bam``),
        ``discarded`` (unassigned records) and ``read_groups`` (written
        records per read group id).

    Raises
    ------
    MalformedReadError
        If a read has raw barcodes but not one per index.
    """
    pysam_mod = _require_pysam()
    input_bam = Path(input_bam)
    output_bam = Path(output_bam)
    output_bam.parent.mkdir(parents=True, exist_ok=True)
    unknown_id = decoder.dictionary.unknown_read_group.id

    per_read_group: Counter = Counter()
    first_mates: Dict[str, ReadGroup] = {}
    total = discarded = 0
    with contextlib.ExitStack() as stack:
        in_bam = stack.enter_context(pysam_mod.AlignmentFile(str(input_bam), "r", check_sq=False))
        input_header = in_bam.header.to_dict()
        out_bam = stack.enter_context(
            pysam_mod.AlignmentFile(
                str(output_bam),
                _write_mode(output_bam),
                header=_output_header(input_header, decoder.dictionary),
            )
        )
        discarded_out = None
        if discarded_bam is not None:
            discarded_bam = Path(discarded_bam)
            discarded_bam.parent.mkdir(parents=True, exist_ok=True)
            discarded_out = stack.enter_context(
                pysam_mod.AlignmentFile(str(discarded_bam), _write_mode(discarded_bam), header=input_header)
            )

        reads = in_bam.fetch(until_eof=True)
        if progress:
            reads = tqdm(reads, desc="Assigning read groups", unit=" reads")
        for read in reads:
            total += 1
            raw = _raw_barcodes(read, barcodes_in_name, barcode_tag)
            if read.is_paired and read.is_read2 and read.query_name in first_mates:
                read_group = first_mates.pop(read.query_name)
            else:
                read_group = decoder.assign_read_group(raw, read.query_name)
                if read.is_paired and read.is_read1:
                    first_mates[read.query_name] = read_group

            if read_group.id == unknown_id:
                discarded += 1
                if read.has_tag(READ_GROUP_TAG):
                    read.set_tag(READ_GROUP_TAG, None)
                if discarded_out is not None:
                    discarded_out.write(read)
                continue
            read.set_tag(READ_GROUP_TAG, read_group.id, value_type="Z")
            out_bam.write(read)
            per_read_group[read_group.id] += 1

    if first_mates:
        logger.warning("%d first mates in %s have no second mate", len(first_mates), input_bam)
    logger.info(
        "Read group assignment complete for %s: %d of %d records written to %s (%d unassigned%s)",
        input_bam,
        total - discarded,
        total,
        output_bam,
        discarded,
        f", kept in {discarded_bam}" if discarded_bam is not None else "",
    )
    return {
        "records": total,
        "written": total - discarded,
        "discarded": discarded,
        "read_groups": dict(per_read_group),
    }
