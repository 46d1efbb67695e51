"""File-like objects for commitfs."""

from __future__ import annotations

import tempfile
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .driver import Driver

_SPOOL_MAX = 1024 * 1024


class UploadFile:
    """Writable file-like object that commits through the driver on close.

    The upload is buffered in a spooled temporary file and handed to
    :meth:`Driver.put_file` when closed.  With *preload* the current
    content is loaded first so a client can seek and overwrite part of it
    (resumed uploads).

    Attributes:
        name: Physical path reported to the FTP handler.
        written: Bytes committed by the final ``put_file`` (``None`` until closed).
    """

    def __init__(self, driver: Driver, path: str, name: str, *, append: bool = False, preload: bool = False):
        self._driver = driver
        self._path = path
        self._append = append
        self._buf = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX)
        self._closed = False
        self.name = name
        self.written: int | None = None
        if preload:
            _size, reader = driver.get_file(path, 0)
            with reader:
                while True:
                    chunk = reader.read(_SPOOL_MAX)
                    if not chunk:
                        break
                    self._buf.write(chunk)
            self._buf.seek(0)

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return False

    def writable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("I/O operation on closed file.")
        return self._buf.write(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        if self._closed:
            raise ValueError("I/O operation on closed file.")
        return self._buf.seek(offset, whence)

    def tell(self) -> int:
        if self._closed:
            raise ValueError("I/O operation on closed file.")
        return self._buf.tell()

    def truncate(self, size: int | None = None) -> int:
        if self._closed:
            raise ValueError("I/O operation on closed file.")
        return self._buf.truncate(size)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._buf.seek(0)
            self.written = self._driver.put_file(self._path, self._buf, append=self._append)
        finally:
            self._buf.close()

    def discard(self) -> None:
        """Drop the buffered upload without writing anything."""
        if not self._closed:
            self._closed = True
            self._buf.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
        else:
            self.discard()
        return False
