from .decoder import BarcodeDecoder
from .dictionary import BarcodeDictionary, ReadGroup, Sample, join_barcodes
from .dictionary_factory import barcode_dictionary_from_rows, load_barcode_dictionary, read_barcode_file
from .filtering import DiscardReason, MatchFilter
from .matching import BarcodeMatch, best_barcode_match, hamming_distance
from .metrics_io import read_metrics, write_metrics
from .resolution import UNKNOWN, Assigned, Assignment, Unknown, resolve_sample
from .stats import DecoderMetrics, DecoderStats, DiscardCounts, StatsSink

__all__ = [
    "Assigned",
    "Assignment",
    "BarcodeDecoder",
    "BarcodeDictionary",
    "BarcodeMatch",
    "DecoderMetrics",
    "DecoderStats",
    "DiscardCounts",
    "DiscardReason",
    "MatchFilter",
    "ReadGroup",
    "Sample",
    "StatsSink",
    "UNKNOWN",
    "Unknown",
    "barcode_dictionary_from_rows",
    "best_barcode_match",
    "hamming_distance",
    "join_barcodes",
    "load_barcode_dictionary",
    "read_barcode_file",
    "read_metrics",
    "resolve_sample",
    "write_metrics",
]
