"""Interface shared by seekable byte streams."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class SeekableByteStream(Protocol):
    """Protocol for random-access binary streams.

    Anything implementing it can be handed to container parsers
    (``zipfile``, ``tarfile``, ...) without depending on a concrete reader.
    """

    def read(self, size: int = -1) -> bytes:
        ...

    def readinto(self, b) -> int:
        ...

    def seek(self, offset: int, whence: int = 0) -> int:
        ...

    def tell(self) -> int:
        ...

    def read_at(self, offset: int, size: int = -1) -> bytes:
        """Read `size` bytes at absolute `offset`. Moves the cursor."""
        ...

    def close(self) -> None:
        ...
