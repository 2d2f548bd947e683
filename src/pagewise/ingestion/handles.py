"""Opaque content handles and a seekable reader over their byte ranges."""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ContentHandle(Protocol):
    """Random-access view over a packaged byte stream supplied by a picker."""

    def size(self) -> int:
        """Return the total payload length in bytes."""

    def read_range(self, offset: int, length: int) -> bytes:
        """Return up to *length* bytes starting at *offset*."""


class BytesContentHandle:
    """Handle over an in-memory payload."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)

    def size(self) -> int:
        return len(self._data)

    def read_range(self, offset: int, length: int) -> bytes:
        return self._data[offset : offset + length]


class FileContentHandle:
    """Handle over a local file, reopened for every range read."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def size(self) -> int:
        return self._path.stat().st_size

    def read_range(self, offset: int, length: int) -> bytes:
        with self._path.open("rb") as handle:
            handle.seek(offset)
            return handle.read(length)


class HandleReader(io.RawIOBase):
    """Read-only, seekable file object backed by ``ContentHandle.read_range``."""

    def __init__(self, handle: ContentHandle) -> None:
        super().__init__()
        self._handle = handle
        self._size = handle.size()
        self._position = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._position

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._position + offset
        elif whence == os.SEEK_END:
            target = self._size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if target < 0:
            raise OSError("Negative seek position")
        self._position = target
        return self._position

    def readinto(self, buffer) -> int:  # type: ignore[override]
        view = memoryview(buffer).cast("B")
        if self._position >= self._size or len(view) == 0:
            return 0
        chunk = self._handle.read_range(self._position, min(len(view), self._size - self._position))
        count = len(chunk)
        view[:count] = chunk
        self._position += count
        return count
