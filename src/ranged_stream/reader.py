import dataclasses
import io
import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import DecodeError, ProtocolError, ReadTimeoutError
from urllib3.exceptions import SSLError as _SSLError
from urllib3.util.retry import Retry

from .config import ReaderOptions
from .errors import (
    DiscardError,
    ResourceChangedError,
    SeekBoundsError,
    TruncatedBodyError,
    UnsupportedResourceError,
)
from .headers import (
    parse_content_range,
    status_is_acceptable,
    supports_byte_ranges,
    validator_from_headers,
)

logger = logging.getLogger(__name__)

PROBE_SIZE = 512


class RangedStreamReader(io.RawIOBase):
    """
    Seekable, read-only stream over a remote HTTP resource:
      • one probe request at construction (length, range support, validator)
      • at most one open response body, (re)opened as `Range: bytes=N-`
      • If-Range on every later request, so a changed resource fails loudly
      • forward seeks up to `discard_size` drain the open body instead of reconnecting

    Nothing is cached: bytes are gone once read or discarded.
    Thread safety: none; use one reader per consumer or lock around it.
    """

    def __init__(
        self,
        url: str,
        options: Optional[ReaderOptions] = None,
        **overrides,
    ) -> None:
        # close() must work even if construction fails half way
        self._response: Optional[requests.Response] = None
        self._external_session = True
        self.s: Optional[requests.Session] = None

        if options is None:
            options = ReaderOptions(**overrides)
        elif overrides:
            options = dataclasses.replace(options, **overrides)
        self.options = options

        self._url = url
        self._pos = 0
        self._length = 0
        self._head = b""
        self._validator: Optional[str] = None
        self._count = 0
        self._scratch = bytearray(options.discard_size)

        # Session & retries
        self._external_session = options.session is not None
        self.s = options.session or requests.Session()
        if not self._external_session:
            adapter = HTTPAdapter(
                max_retries=Retry(
                    total=options.max_retries,
                    connect=options.max_retries,
                    read=options.max_retries,
                    backoff_factor=options.backoff,
                    status_forcelist=(500, 502, 503, 504),
                    allowed_methods=("GET",),
                    raise_on_status=False,
                )
            )
            self.s.mount("http://", adapter)
            self.s.mount("https://", adapter)

        try:
            self._probe()
        except Exception:
            self.close()
            raise

    # io.RawIOBase
    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def readinto(self, b) -> int:
        self._check_open()
        mv = memoryview(b).cast("B")
        n = min(len(mv), self._length - self._pos)
        if n <= 0:
            return 0
        if self._response is None:
            self._request()
        data = _read_body(self._response, n)
        got = len(data)
        if got == 0:
            raise TruncatedBodyError(
                f"{self._url}: response body ended at offset {self._pos}, "
                f"expected {self._length} bytes"
            )
        mv[:got] = data
        self._pos += got
        return got

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_open()
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = self._length + offset
        else:
            raise ValueError(f"invalid whence ({whence!r}, should be 0, 1 or 2)")
        if target < 0:
            raise SeekBoundsError(f"seek to {target}: before beginning of resource")
        if target > self._length:
            raise SeekBoundsError(f"seek to {target}: beyond end of resource ({self._length} bytes)")

        delta = target - self._pos
        if delta == 0:
            return self._pos
        if self._response is not None and 0 < delta <= len(self._scratch):
            logger.debug("seek %d -> %d: discarding %d bytes", self._pos, target, delta)
            self._discard(delta)
        elif target == self._length:
            # nothing left to read, `bytes=<length>-` would be unsatisfiable
            self._close_response()
            self._pos = target
        else:
            logger.debug("seek %d -> %d: reconnecting", self._pos, target)
            self._pos = target
            self._request()
        return self._pos

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._close_response()
            if not self._external_session and self.s is not None:
                self.s.close()
        finally:
            super().close()

    # random access
    def readinto_at(self, b, offset: int) -> int:
        self.seek(offset, io.SEEK_SET)
        return self.readinto(b)

    def read_at(self, offset: int, size: int = -1) -> bytes:
        self.seek(offset, io.SEEK_SET)
        return self.read(size)

    # read-only state
    @property
    def url(self) -> str:
        return self._url

    @property
    def total_length(self) -> int:
        return self._length

    @property
    def head_bytes(self) -> bytes:
        """First bytes of the resource (at most 512), fetched by the probe."""
        return self._head

    @property
    def validator(self) -> Optional[str]:
        return self._validator

    @property
    def request_count(self) -> int:
        return self._count

    @property
    def discard_size(self) -> int:
        return len(self._scratch)

    # internals
    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed reader")

    def _get(self, extra: dict) -> requests.Response:
        headers = {
            **self.options.base_headers(),
            # offsets are only meaningful for the identity encoding
            "Accept-Encoding": "identity",
            **extra,
        }
        self._count += 1
        logger.debug("GET %s Range=%s (request #%d)", self._url, extra.get("Range"), self._count)
        return self.s.get(self._url, headers=headers, stream=True, timeout=self.options.timeout)

    def _probe(self) -> None:
        r = self._get({"Range": f"bytes=0-{PROBE_SIZE - 1}"})
        try:
            self._head = _read_body(r, PROBE_SIZE)
        finally:
            r.close()

        if not status_is_acceptable(r.status_code):
            raise UnsupportedResourceError(
                f"{self._url}: unexpected response (status {r.status_code})", r.status_code
            )
        if not supports_byte_ranges(r.headers):
            raise UnsupportedResourceError(
                f"{self._url} does not support byte-ranged requests", r.status_code
            )
        validator = validator_from_headers(r.headers)
        if validator is None:
            raise UnsupportedResourceError(
                f"{self._url} did not offer a strong-enough validator for subsequent requests",
                r.status_code,
            )
        cr = r.headers.get("Content-Range")
        total = parse_content_range(cr)
        if total is None:
            raise UnsupportedResourceError(
                f"{self._url}: invalid Content-Range header {cr!r}", r.status_code
            )
        self._length = total
        self._validator = validator
        logger.debug("probed %s: %d bytes, validator %s", self._url, total, validator)

    def _request(self) -> None:
        self._close_response()
        r = self._get({"Range": f"bytes={self._pos}-", "If-Range": self._validator})
        if r.status_code != 206:
            r.close()
            raise ResourceChangedError(
                f"{self._url}: expected 206 Partial Content at offset {self._pos}, "
                f"got {r.status_code}; the resource may have changed",
                r.status_code,
            )
        total = parse_content_range(r.headers.get("Content-Range"))
        if total is not None and total != self._length:
            r.close()
            raise ResourceChangedError(
                f"{self._url}: length changed from {self._length} to {total}", r.status_code
            )
        self._response = r

    def _discard(self, delta: int) -> None:
        view = memoryview(self._scratch)[:delta]
        done = 0
        try:
            while done < delta:
                done += self.readinto(view[done:])
        except TruncatedBodyError as e:
            raise DiscardError(
                f"{self._url}: expected to discard {delta} bytes, only {done} were available"
            ) from e

    def _close_response(self) -> None:
        if self._response is not None:
            r, self._response = self._response, None
            r.close()

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        return f"<{type(self).__name__} url={self._url!r} length={self._length} pos={self._pos}>"


def _read_body(r: requests.Response, n: int) -> bytes:
    """Read up to `n` raw bytes, mapping urllib3 errors as requests' iter_content does."""
    try:
        return r.raw.read(n)
    except ProtocolError as e:
        raise requests.exceptions.ChunkedEncodingError(e) from e
    except DecodeError as e:
        raise requests.exceptions.ContentDecodingError(e) from e
    except ReadTimeoutError as e:
        raise requests.exceptions.ConnectionError(e) from e
    except _SSLError as e:
        raise requests.exceptions.SSLError(e) from e


def open_url(url: str, **options) -> RangedStreamReader:
    """Probe `url` and return a reader positioned at offset 0."""
    return RangedStreamReader(url, **options)
