"""Filesystem driver over a git worktree.

Every mutating call changes the worktree, stages the affected paths and
commits, so each successful mutation adds exactly one commit.  A failed
kind check or worktree change commits nothing.  A failed stage/commit
raises :class:`~commitfs.CommitError` and leaves the worktree changed; the
change is not rolled back.

The repository is opened at the start of every call and closed before it
returns.  Mutations hold the repository's mutation lock from the kind
check through the commit.
"""

from __future__ import annotations

import io
import os
import stat
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TYPE_CHECKING, BinaryIO

from ._storage import Repository, Worktree
from .exceptions import CommitError
from .message import CommitPolicy
from .paths import base_name, join_path, normalize_path, virtual_path

if TYPE_CHECKING:
    from .perm import Perm

_COPY_CHUNK = 64 * 1024


@dataclass(frozen=True)
class FileInfo:
    """Worktree stat result merged with the mode, owner and group from :class:`Perm`.

    Attributes:
        path: Virtual path (``/a/b.txt``; ``/`` for the root).
        info: Raw ``os.stat_result`` from the worktree.
        mode: Permission bits from ``Perm``, with ``S_IFDIR`` set for directories.
        owner: Owner name from ``Perm``.
        group: Group name from ``Perm``.
    """
    path: str
    info: os.stat_result
    mode: int
    owner: str
    group: str

    @property
    def name(self) -> str:
        return base_name(self.path.lstrip("/"))

    @property
    def size(self) -> int:
        return self.info.st_size

    @property
    def mtime(self) -> float:
        return self.info.st_mtime

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.info.st_mode)


def _copy(src: BinaryIO, dst: IO[bytes]) -> int:
    """Copy *src* to *dst* in chunks and return the number of bytes copied."""
    total = 0
    while True:
        chunk = src.read(_COPY_CHUNK)
        if not chunk:
            return total
        dst.write(chunk)
        total += len(chunk)


class Driver:
    """File operations against one repository, committing every mutation.

    Paths are virtual: slash-separated, relative to the repository root
    whether or not they start with ``/``.
    """

    def __init__(self, root: str | Path, perm: Perm, policy: CommitPolicy | None = None):
        self.root = str(root)
        self.perm = perm
        self.policy = policy or CommitPolicy()
        self.session = None

    def __repr__(self) -> str:
        return f"Driver({self.root!r})"

    def init(self, session) -> None:
        """Attach the protocol session this driver serves."""
        self.session = session

    def _open(self) -> Repository:
        return Repository.open(self.root)

    def _info(self, tree: Worktree, rel: str) -> FileInfo:
        st = tree.stat(rel)
        vpath = virtual_path(rel)
        mode = self.perm.get_mode(vpath)
        if stat.S_ISDIR(st.st_mode):
            mode |= stat.S_IFDIR
        owner = self.perm.get_owner(vpath)
        group = self.perm.get_group(vpath)
        return FileInfo(vpath, st, mode, owner, group)

    def _commit(self, repo: Repository, operation: str, *paths: str) -> None:
        try:
            for rel in paths:
                repo.stage(rel)
            repo.commit(
                self.policy.format(operation, list(paths)),
                self.policy.author,
                self.policy.email,
            )
        except Exception as exc:
            raise CommitError(f"Commit after {operation} of {virtual_path(paths[0])} failed: {exc}") from exc

    # --- Read operations ---

    def change_dir(self, path: str) -> None:
        """Succeed if *path* is a directory.

        Raises:
            FileNotFoundError: If *path* does not exist.
            NotADirectoryError: If *path* is not a directory.
        """
        rel = normalize_path(path)
        with self._open() as repo:
            st = repo.worktree().stat(rel)
        if not stat.S_ISDIR(st.st_mode):
            raise NotADirectoryError(f"Not a directory: {virtual_path(rel)}")

    def stat(self, path: str) -> FileInfo:
        """Return a :class:`FileInfo` for *path*.

        Raises:
            FileNotFoundError: If *path* does not exist.
        """
        rel = normalize_path(path)
        with self._open() as repo:
            return self._info(repo.worktree(), rel)

    def iter_dir(self, path: str) -> Iterator[FileInfo]:
        """Lazily yield a :class:`FileInfo` per entry of directory *path*.

        Entries come in name order.  The repository stays open until the
        iterator is exhausted or closed.
        """
        return self._iter_dir(normalize_path(path))

    def _iter_dir(self, rel: str) -> Iterator[FileInfo]:
        with self._open() as repo:
            tree = repo.worktree()
            for name in tree.read_dir(rel):
                yield self._info(tree, join_path(rel, name))

    def list_dir(self, path: str, visit: Callable[[FileInfo], object]) -> None:
        """Call *visit* for each entry of directory *path*.

        The first exception from the worktree or from *visit* stops the
        listing and propagates.
        """
        entries = self.iter_dir(path)
        try:
            for info in entries:
                visit(info)
        finally:
            entries.close()

    def get_file(self, path: str, offset: int = 0) -> tuple[int, IO[bytes]]:
        """Open *path* for reading at *offset*.

        Returns:
            ``(size, reader)``; the caller closes *reader*.
        """
        rel = normalize_path(path)
        with self._open() as repo:
            tree = repo.worktree()
            size = tree.stat(rel).st_size
            f = tree.open(rel)
        try:
            f.seek(offset)
        except BaseException:
            f.close()
            raise
        return size, f

    # --- Write operations ---

    def make_dir(self, path: str) -> None:
        """Create directory *path* and any missing parents, then commit."""
        rel = normalize_path(path)
        with self._open() as repo, repo.lock():
            repo.worktree().mkdir_all(rel)
            self._commit(repo, "mkdir", rel)

    def delete_dir(self, path: str) -> None:
        """Remove the empty directory *path*, then commit.

        Raises:
            NotADirectoryError: If *path* is not a directory.
        """
        rel = normalize_path(path)
        with self._open() as repo, repo.lock():
            tree = repo.worktree()
            if not stat.S_ISDIR(tree.lstat(rel).st_mode):
                raise NotADirectoryError(f"Not a directory: {virtual_path(rel)}")
            tree.remove(rel)
            self._commit(repo, "rmdir", rel)

    def delete_file(self, path: str) -> None:
        """Remove the file *path*, then commit.

        Raises:
            IsADirectoryError: If *path* is a directory.
        """
        rel = normalize_path(path)
        with self._open() as repo, repo.lock():
            tree = repo.worktree()
            if stat.S_ISDIR(tree.lstat(rel).st_mode):
                raise IsADirectoryError(f"Not a file: {virtual_path(rel)}")
            tree.remove(rel)
            self._commit(repo, "delete", rel)

    def rename(self, src: str, dst: str) -> None:
        """Rename *src* to *dst*, staging both paths in one commit."""
        src_rel = normalize_path(src)
        dst_rel = normalize_path(dst)
        with self._open() as repo, repo.lock():
            repo.worktree().rename(src_rel, dst_rel)
            self._commit(repo, "rename", src_rel, dst_rel)

    def put_file(self, path: str, data: bytes | BinaryIO, append: bool = False) -> int:
        """Write *data* to *path*, then commit.

        With *append* the data is added at the end of the existing file; a
        missing file is created as if *append* were false.  Otherwise an
        existing file is replaced.

        Returns:
            Number of bytes written.

        Raises:
            IsADirectoryError: If a directory exists at *path*.
        """
        if isinstance(data, (bytes, bytearray)):
            data = io.BytesIO(data)
        rel = normalize_path(path)
        with self._open() as repo, repo.lock():
            tree = repo.worktree()
            try:
                st = tree.lstat(rel)
            except FileNotFoundError:
                exists = False
            else:
                exists = True
                if stat.S_ISDIR(st.st_mode):
                    raise IsADirectoryError(f"A directory has the same name: {virtual_path(rel)}")

            if append and exists:
                with tree.open_append(rel) as f:
                    f.seek(0, os.SEEK_END)
                    written = _copy(data, f)
                operation = "append"
            else:
                if exists:
                    tree.remove(rel)
                with tree.create(rel) as f:
                    written = _copy(data, f)
                operation = "replace" if exists else "put"

            self._commit(repo, operation, rel)
        return written


class DriverFactory:
    """Builds one :class:`Driver` per client session, all sharing a root."""

    def __init__(self, root: str | Path, perm: Perm, policy: CommitPolicy | None = None):
        self.root = str(root)
        self.perm = perm
        self.policy = policy or CommitPolicy()

    def __repr__(self) -> str:
        return f"DriverFactory({self.root!r})"

    def new_driver(self) -> Driver:
        return Driver(self.root, self.perm, self.policy)
