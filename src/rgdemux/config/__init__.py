from .decoder_config import DecoderConfig, ReadGroupConfig

__all__ = [
    "DecoderConfig",
    "ReadGroupConfig",
]
