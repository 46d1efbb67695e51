"""Exceptions for commitfs."""


class InvalidPathError(ValueError):
    """Raised when a virtual path climbs above the root or names ``.git``."""


class CommitError(Exception):
    """Raised when staging or committing fails after the worktree was changed.

    The worktree keeps the change; the next successful commit picks it up.
    The underlying error is available as ``__cause__``.
    """
