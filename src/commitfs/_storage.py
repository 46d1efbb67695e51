"""Versioned storage: a dulwich repository and its checked-out worktree.

:class:`Repository` wraps a non-bare dulwich ``Repo`` and exposes the
stage/commit primitives; :class:`Worktree` exposes POSIX-like file
operations on the checked-out tree.  Both take normalized root-relative
paths (see :func:`commitfs.paths.normalize_path`).
"""

from __future__ import annotations

import os
import stat
import time as _time
from pathlib import Path
from typing import IO, Iterator

from dulwich.errors import NotGitRepository
from dulwich.index import blob_from_path_and_stat, index_entry_from_stat
from dulwich.object_store import iter_tree_contents, tree_lookup_path
from dulwich.objects import Commit as _DCommit
from dulwich.repo import Repo as _DRepo

from ._lock import LOCK_NAME, MutationLock
from .paths import is_control_name, join_path


def _is_under(name: bytes, prefix: bytes) -> bool:
    """True if index path *name* is *prefix* or lies below it."""
    if not prefix:
        return True
    return name == prefix or name.startswith(prefix + b"/")


# ---------------------------------------------------------------------------
# Worktree
# ---------------------------------------------------------------------------

class Worktree:
    """File operations on the checked-out tree of a repository.

    Entries named ``.git`` (in any letter case, at any depth) are hidden
    from :meth:`read_dir` and so never staged.
    """

    def __init__(self, root: str):
        self.root = root

    def __repr__(self) -> str:
        return f"Worktree({self.root!r})"

    def _full(self, rel: str) -> str:
        if not rel:
            return self.root
        return os.path.join(self.root, *rel.split("/"))

    def stat(self, rel: str) -> os.stat_result:
        return os.stat(self._full(rel))

    def lstat(self, rel: str) -> os.stat_result:
        return os.lstat(self._full(rel))

    def exists(self, rel: str) -> bool:
        return os.path.lexists(self._full(rel))

    def read_dir(self, rel: str) -> list[str]:
        """Names of the entries of directory *rel*, sorted, without ``.git``."""
        return sorted(n for n in os.listdir(self._full(rel)) if not is_control_name(n))

    def open(self, rel: str) -> IO[bytes]:
        return open(self._full(rel), "rb")

    def create(self, rel: str) -> IO[bytes]:
        """Create (or truncate) *rel* for writing, making missing parents."""
        full = self._full(rel)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        return open(full, "wb")

    def open_append(self, rel: str) -> IO[bytes]:
        return open(self._full(rel), "a+b")

    def remove(self, rel: str) -> None:
        """Remove a file, symlink, or empty directory."""
        full = self._full(rel)
        if os.path.isdir(full) and not os.path.islink(full):
            os.rmdir(full)
        else:
            os.remove(full)

    def rename(self, src: str, dst: str) -> None:
        full_dst = self._full(dst)
        os.makedirs(os.path.dirname(full_dst), exist_ok=True)
        os.rename(self._full(src), full_dst)

    def mkdir_all(self, rel: str) -> None:
        os.makedirs(self._full(rel), exist_ok=True)

    def walk_files(self, rel: str) -> Iterator[str]:
        """Yield the non-directory paths at or below *rel*.

        Symlinks are yielded as files and never followed.  Nothing is
        yielded when *rel* does not exist.
        """
        full = self._full(rel)
        if not os.path.lexists(full):
            return
        if os.path.islink(full) or not os.path.isdir(full):
            yield rel
            return
        for name in self.read_dir(rel):
            yield from self.walk_files(join_path(rel, name))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class Repository:
    """A non-bare git repository whose worktree is served as a filesystem."""

    def __init__(self, dulwich_repo: _DRepo):
        self._repo = dulwich_repo

    def __repr__(self) -> str:
        return f"Repository({self.root!r})"

    @classmethod
    def open(cls, root: str | Path) -> Repository:
        """Open the repository whose worktree is *root*.

        Raises:
            FileNotFoundError: If *root* does not exist.
            NotGitRepository: If *root* is not a non-bare git repository.
        """
        root = str(root)
        if not os.path.isdir(root):
            raise FileNotFoundError(f"Repository not found: {root}")
        repo = _DRepo(root)
        if repo.bare:
            repo.close()
            raise NotGitRepository(f"{root} is a bare repository; a worktree is required")
        return cls(repo)

    @classmethod
    def init(cls, root: str | Path, *, branch: str = "main") -> Repository:
        """Create a repository with an empty worktree at *root*.

        No commit is made; *branch* is born by the first commit.
        """
        root = str(root)
        os.makedirs(root, exist_ok=True)
        repo = _DRepo.init(root)
        repo.refs.set_symbolic_ref(b"HEAD", f"refs/heads/{branch}".encode())
        return cls(repo)

    @property
    def root(self) -> str:
        return self._repo.path

    @property
    def control_dir(self) -> str:
        return self._repo.controldir()

    def close(self) -> None:
        self._repo.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def worktree(self) -> Worktree:
        return Worktree(self.root)

    def lock(self) -> MutationLock:
        """Lock serializing mutations of this repository (``.git/commitfs.lock``)."""
        return MutationLock(os.path.join(self.control_dir, LOCK_NAME))

    # -- stage / commit -----------------------------------------------------

    def stage(self, rel: str) -> None:
        """Record the worktree state at or below *rel* in the index.

        Equivalent to ``git add -A -- rel``: entries whose files are gone
        are dropped, files present on disk are (re)hashed.  The empty path
        stages the whole tree.
        """
        index = self._repo.open_index()
        prefix = rel.encode("utf-8")
        for name in list(index):
            if _is_under(name, prefix):
                del index[name]
        tree = self.worktree()
        for path in tree.walk_files(rel):
            fs_path = os.fsencode(tree._full(path))
            st = os.lstat(fs_path)
            if not (stat.S_ISREG(st.st_mode) or stat.S_ISLNK(st.st_mode)):
                continue
            blob = blob_from_path_and_stat(fs_path, st)
            self._repo.object_store.add_object(blob)
            index[path.encode("utf-8")] = index_entry_from_stat(st, blob.id)
        index.write()

    def commit(self, message: str, author: str, email: str) -> str:
        """Commit the index on top of ``HEAD`` and return the new commit SHA.

        A commit is created even when the tree did not change.
        """
        index = self._repo.open_index()
        tree_id = index.commit(self._repo.object_store)
        head = self.head()

        identity = f"{author} <{email}>".encode()
        c = _DCommit()
        c.tree = tree_id
        c.parents = [head.encode()] if head is not None else []
        c.author = c.committer = identity
        now = int(_time.time())
        c.author_time = c.commit_time = now
        c.author_timezone = c.commit_timezone = 0
        msg = message.encode()
        if not msg.endswith(b"\n"):
            msg += b"\n"
        c.message = msg
        c.encoding = b"UTF-8"
        self._repo.object_store.add_object(c)
        # Follows the HEAD symref, so the branch is created on first commit
        self._repo.refs[b"HEAD"] = c.id
        return c.id.decode()

    # -- inspection ---------------------------------------------------------

    def head(self) -> str | None:
        """SHA of the current commit, or ``None`` before the first commit."""
        try:
            return self._repo.refs[b"HEAD"].decode()
        except KeyError:
            return None

    def commit_count(self) -> int:
        """Number of commits on the first-parent chain from ``HEAD``."""
        count = 0
        sha = self.head()
        while sha is not None:
            count += 1
            parents = self._repo[sha.encode()].parents
            sha = parents[0].decode() if parents else None
        return count

    def head_message(self) -> str:
        """Message of the ``HEAD`` commit, without the trailing newline."""
        sha = self.head()
        if sha is None:
            raise KeyError("HEAD")
        return self._repo[sha.encode()].message.decode().rstrip("\n")

    def head_author(self) -> str:
        """``Name <email>`` of the ``HEAD`` commit's author."""
        sha = self.head()
        if sha is None:
            raise KeyError("HEAD")
        return self._repo[sha.encode()].author.decode()

    def head_paths(self) -> list[str]:
        """Sorted file paths recorded in the ``HEAD`` commit."""
        sha = self.head()
        if sha is None:
            return []
        tree_id = self._repo[sha.encode()].tree
        return sorted(
            entry.path.decode("utf-8")
            for entry in iter_tree_contents(self._repo.object_store, tree_id)
        )

    def read_head(self, rel: str) -> bytes:
        """Blob content of *rel* as recorded in the ``HEAD`` commit."""
        sha = self.head()
        if sha is None:
            raise FileNotFoundError(rel)
        tree_id = self._repo[sha.encode()].tree
        try:
            _mode, blob_id = tree_lookup_path(
                self._repo.object_store.__getitem__, tree_id, rel.encode("utf-8")
            )
        except KeyError:
            raise FileNotFoundError(rel)
        return self._repo[blob_id].data
