"""Per-path mode, owner and group lookup.

git records no ownership and only the executable bit, so the driver asks a
:class:`Perm` implementation for the metadata it reports.
"""

from __future__ import annotations

from typing import Protocol


class Perm(Protocol):
    """Mode/owner/group lookup keyed by virtual path (``/a/b.txt``)."""

    def get_mode(self, path: str) -> int: ...

    def get_owner(self, path: str) -> str: ...

    def get_group(self, path: str) -> str: ...


class SimplePerm:
    """The same owner, group and permission bits for every path."""

    def __init__(self, owner: str, group: str, mode: int = 0o777):
        self.owner = owner
        self.group = group
        self.mode = mode

    def __repr__(self) -> str:
        return f"SimplePerm({self.owner!r}, {self.group!r}, mode={self.mode:#o})"

    def get_mode(self, path: str) -> int:
        return self.mode

    def get_owner(self, path: str) -> str:
        return self.owner

    def get_group(self, path: str) -> str:
        return self.group
