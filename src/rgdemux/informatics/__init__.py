from .bam_functions import (
    assign_read_groups_in_bam,
    discarded_output_path,
    raw_barcodes_from_read_name,
    raw_barcodes_from_tag,
    read_group_header_entries,
    split_raw_barcodes,
)

__all__ = [
    "assign_read_groups_in_bam",
    "discarded_output_path",
    "raw_barcodes_from_read_name",
    "raw_barcodes_from_tag",
    "read_group_header_entries",
    "split_raw_barcodes",
]
