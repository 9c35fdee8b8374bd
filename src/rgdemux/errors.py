"""Exceptions raised by rgdemux."""

from __future__ import annotations


class RGDemuxError(Exception):
    """Base class for rgdemux errors."""


class ConfigurationError(RGDemuxError, ValueError):
    """Invalid dictionary, thresholds or read group settings.

    Raised at construction time; never recovered internally.
    """


class MalformedReadError(RGDemuxError, ValueError):
    """A read carries raw barcodes that do not fit the dictionary."""

    def __init__(self, message: str, read_name: str | None = None):
        super().__init__(message)
        self.read_name = read_name
