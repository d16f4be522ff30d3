"""Helpers for the response headers inspected by the probe request."""
import re
from typing import Mapping, Optional

_CONTENT_RANGE = re.compile(r"^\s*bytes\s+\d+-\d+/(\d+)\s*$", re.IGNORECASE)


def status_is_acceptable(status: int) -> bool:
    return 200 <= status < 300


def supports_byte_ranges(headers: Mapping[str, str]) -> bool:
    return "bytes" in headers.get("Accept-Ranges", "").lower()


def validator_from_headers(headers: Mapping[str, str]) -> Optional[str]:
    """Return a validator usable in If-Range.

    Only a strong ETag qualifies (weak ``W/"..."`` tags are not allowed in
    If-Range), otherwise Last-Modified is used.
    """
    etag = headers.get("ETag")
    if etag and etag.startswith('"'):
        return etag
    modified = headers.get("Last-Modified")
    if modified:
        return modified
    return None


def parse_content_range(value: Optional[str]) -> Optional[int]:
    """Total length from ``bytes X-Y/TOTAL``, or None if it cannot be parsed."""
    if not value:
        return None
    m = _CONTENT_RANGE.match(value)
    if m is None:
        return None
    return int(m.group(1))
