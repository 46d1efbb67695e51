"""Commit author and message policy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommitPolicy:
    """Identity and message used for every commit a driver makes.

    Attributes:
        author: Author and committer name.
        email: Author and committer email.
        message: Custom message (``None`` for auto-generated).  Supports
            placeholders ``{default}``, ``{op}`` and ``{path}``.
    """
    author: str = "commitfs"
    email: str = "commitfs@localhost"
    message: str | None = None

    def format(self, operation: str, paths: list[str]) -> str:
        return format_commit_message(operation, paths, self.message)


def format_commit_message(operation: str, paths: list[str], custom_message: str | None = None) -> str:
    """Generate the commit message for one driver operation.

    Args:
        operation: ``"put"``, ``"replace"``, ``"append"``, ``"delete"``,
            ``"rmdir"``, ``"mkdir"`` or ``"rename"``.
        paths: Affected normalized paths (source then destination for rename).
        custom_message: Overrides auto-generation; used verbatim unless it
            contains placeholders.
    """
    if custom_message:
        if "{" in custom_message:
            return custom_message.format(
                default=_auto_message(operation, paths),
                op="put" if operation == "replace" else operation,
                path=paths[0] if paths else "",
            )
        return custom_message
    return _auto_message(operation, paths)


def _auto_message(operation: str, paths: list[str]) -> str:
    path = paths[0] if paths else ""
    if operation == "put":
        return f"+ {path}"
    if operation == "replace":
        return f"~ {path}"
    if operation == "append":
        return f"~ {path} (append)"
    if operation == "delete":
        return f"- {path}"
    if operation == "rmdir":
        return f"- {path}/"
    if operation == "mkdir":
        return f"+ {path}/"
    if operation == "rename":
        return f"{paths[0]} -> {paths[1]}"
    raise ValueError(f"Unknown operation: {operation!r}")
