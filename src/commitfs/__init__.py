from .driver import Driver, DriverFactory, FileInfo
from .exceptions import CommitError, InvalidPathError
from .message import CommitPolicy, format_commit_message
from .paths import normalize_path
from .perm import Perm, SimplePerm
from ._storage import Repository, Worktree

__all__ = [
    "Driver", "DriverFactory", "FileInfo",
    "CommitError", "InvalidPathError",
    "CommitPolicy", "format_commit_message",
    "normalize_path",
    "Perm", "SimplePerm",
    "Repository", "Worktree",
]
