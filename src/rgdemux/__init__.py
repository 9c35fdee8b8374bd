"""rgdemux"""

from importlib.metadata import version

from . import barcodes, config, informatics
from .barcodes import (
    UNKNOWN,
    Assigned,
    BarcodeDecoder,
    BarcodeDictionary,
    DecoderStats,
    ReadGroup,
    Sample,
    load_barcode_dictionary,
)
from .config import DecoderConfig, ReadGroupConfig
from .errors import ConfigurationError, MalformedReadError, RGDemuxError

package_name = "rgdemux"
__version__ = version(package_name)

__all__ = [
    "Assigned",
    "BarcodeDecoder",
    "BarcodeDictionary",
    "ConfigurationError",
    "DecoderConfig",
    "DecoderStats",
    "MalformedReadError",
    "RGDemuxError",
    "ReadGroup",
    "ReadGroupConfig",
    "Sample",
    "UNKNOWN",
    "barcodes",
    "config",
    "informatics",
    "load_barcode_dictionary",
]
