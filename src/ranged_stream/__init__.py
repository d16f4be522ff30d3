"""Seekable file objects over HTTP byte-range requests."""
import logging

from .base import SeekableByteStream
from .config import DEFAULT_DISCARD_SIZE, ReaderOptions
from .errors import (
    DiscardError,
    RangedStreamError,
    ResourceChangedError,
    SeekBoundsError,
    TruncatedBodyError,
    UnsupportedResourceError,
)
from .reader import PROBE_SIZE, RangedStreamReader, open_url

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "RangedStreamReader", "open_url", "ReaderOptions", "SeekableByteStream",
    "DEFAULT_DISCARD_SIZE", "PROBE_SIZE",
    "RangedStreamError", "UnsupportedResourceError", "ResourceChangedError",
    "DiscardError", "SeekBoundsError", "TruncatedBodyError",
]
