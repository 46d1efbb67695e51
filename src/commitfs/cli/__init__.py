"""commitfs CLI: serve a git worktree where every write is a commit."""

from ._helpers import main  # noqa: F401

# Import command modules to register Click commands with the main group.
from . import _basic, _serve  # noqa: F401
