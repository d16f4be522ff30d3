from typing import Optional


class RangedStreamError(OSError):
    """Base class for errors raised by the ranged stream reader."""


class UnsupportedResourceError(RangedStreamError):
    """The probe request showed the resource cannot be read by ranges."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResourceChangedError(RangedStreamError):
    """A ranged request after the probe did not answer 206 Partial Content."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class DiscardError(RangedStreamError):
    """Fewer bytes than expected could be skipped on the open response."""


class SeekBoundsError(RangedStreamError, ValueError):
    """Seek target lies outside [0, total_length]."""


class TruncatedBodyError(RangedStreamError):
    """The open response ended before the end of the resource."""
