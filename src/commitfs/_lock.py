"""Mutation lock of a repository."""

from __future__ import annotations

import fcntl
import os
import threading

LOCK_NAME = "commitfs.lock"


class MutationLock:
    """Exclusive lock on a repository's lock file, held as a context manager.

    Threads of this process queue on one ``threading.Lock`` per lock file;
    other processes are kept out with ``flock`` on the file itself.  A
    ``MutationLock`` is not reentrant.
    """

    _thread_locks: dict[str, threading.Lock] = {}
    _guard = threading.Lock()

    def __init__(self, path: str):
        self.path = os.path.realpath(path)
        with self._guard:
            self._thread_lock = self._thread_locks.setdefault(self.path, threading.Lock())
        self._fd: int | None = None

    def __repr__(self) -> str:
        return f"MutationLock({self.path!r})"

    @property
    def held(self) -> bool:
        return self._fd is not None

    def __enter__(self):
        self._thread_lock.acquire()
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_RDWR | os.O_CLOEXEC)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
            except BaseException:
                os.close(fd)
                raise
        except BaseException:
            self._thread_lock.release()
            raise
        self._fd = fd
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
        finally:
            self._thread_lock.release()
        return False
