import socketserver
import threading

import pytest
from werkzeug import Request, Response


class RangeResource:
    """Werkzeug handler serving `content` with Range and If-Range support."""

    def __init__(self, content: bytes, etag='"v1"', last_modified=None, accept_ranges=True):
        self.content = content
        self.etag = etag
        self.last_modified = last_modified
        self.accept_ranges = accept_ranges
        self.required_headers = {}
        self.ranges = []  # Range header of each request, in order

    def _validator(self):
        return self.etag or self.last_modified

    def __call__(self, request: Request) -> Response:
        for name, value in self.required_headers.items():
            if request.headers.get(name) != value:
                return Response(status=401)

        data = self.content
        headers = {}
        if self.accept_ranges:
            headers["Accept-Ranges"] = "bytes"
        if self.etag:
            headers["ETag"] = self.etag
        if self.last_modified:
            headers["Last-Modified"] = self.last_modified

        rng = request.headers.get("Range")
        self.ranges.append(rng)
        if_range = request.headers.get("If-Range")
        if not self.accept_ranges or rng is None:
            return Response(data, status=200, headers=headers)
        if if_range is not None and if_range != self._validator():
            return Response(data, status=200, headers=headers)

        start_s, end_s = rng[len("bytes="):].split("-")
        start = int(start_s)
        end = int(end_s) if end_s else len(data) - 1
        end = min(end, len(data) - 1)
        if start >= len(data):
            headers["Content-Range"] = f"bytes */{len(data)}"
            return Response(status=416, headers=headers)
        headers["Content-Range"] = f"bytes {start}-{end}/{len(data)}"
        return Response(data[start:end + 1], status=206, headers=headers)


@pytest.fixture
def serve(httpserver):
    """Register a RangeResource at `path` and return (url, resource)."""

    def _serve(content: bytes, path="/resource", **kwargs):
        resource = RangeResource(content, **kwargs)
        httpserver.expect_request(path).respond_with_handler(resource)
        return httpserver.url_for(path), resource

    return _serve


class ShortBodyHandler(socketserver.BaseRequestHandler):
    """Answers the 512-byte probe correctly; open-ended ranges get a 206 whose
    body stops after `sent` bytes, short of the declared Content-Length."""

    content = b"ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    sent = 3

    def handle(self):
        head = b""
        while b"\r\n\r\n" not in head:
            chunk = self.request.recv(4096)
            if not chunk:
                return
            head += chunk
        rng = ""
        for line in head.decode("latin-1").split("\r\n"):
            if line.lower().startswith("range:"):
                rng = line.split(":", 1)[1].strip()
        start_s, end_s = rng[len("bytes="):].split("-")
        start = int(start_s)
        end = min(int(end_s), len(self.content) - 1) if end_s else len(self.content) - 1
        body = self.content[start:end + 1]
        declared = len(body)
        if not end_s:
            body = body[: self.sent]
        self.request.sendall(
            b"HTTP/1.1 206 Partial Content\r\n"
            b"Accept-Ranges: bytes\r\n"
            b'ETag: "short"\r\n'
            + f"Content-Range: bytes {start}-{end}/{len(self.content)}\r\n".encode()
            + f"Content-Length: {declared}\r\n".encode()
            + b"Connection: close\r\n\r\n"
            + body
        )


@pytest.fixture
def short_body_url():
    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), ShortBodyHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/short"
    finally:
        server.shutdown()
        server.server_close()
