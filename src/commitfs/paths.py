"""Virtual path resolution.

A virtual path is slash-separated and always relative to the repository
root, with or without a leading slash.  Resolution yields the single
normalized form used both for worktree operations and for staging
(``"a/b.txt"``, or ``""`` for the root).
"""

from __future__ import annotations

import os

from .exceptions import InvalidPathError

CONTROL_DIR = ".git"


def is_control_name(name: str) -> bool:
    """True if *name* is a git control directory name in any letter case."""
    return name.lower() == CONTROL_DIR


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a virtual path to its root-relative form.

    Empty and ``.`` segments are dropped and ``..`` pops the previous
    segment.  A ``..`` that would climb above the root, or a path with a
    ``.git`` segment at any depth (compared case-insensitively), raises
    :class:`InvalidPathError`.
    """
    path = os.fspath(path)
    if os.name == "nt":
        path = path.replace("\\", "/")
    parts: list[str] = []
    for seg in path.split("/"):
        if seg in ("", "."):
            continue
        if seg == "..":
            if not parts:
                raise InvalidPathError(f"Path escapes the root: {path!r}")
            parts.pop()
            continue
        parts.append(seg)
    if any(is_control_name(seg) for seg in parts):
        raise InvalidPathError(f"Path names a control directory: {path!r}")
    return "/".join(parts)


def virtual_path(rel: str) -> str:
    """Return the client-facing form (``/a/b.txt``) of a normalized path."""
    return "/" + rel


def join_path(parent: str, name: str) -> str:
    """Join a normalized directory path and a child name."""
    return f"{parent}/{name}" if parent else name


def base_name(rel: str) -> str:
    """Last segment of a normalized path, ``/`` for the root."""
    return rel.rsplit("/", 1)[-1] if rel else "/"
