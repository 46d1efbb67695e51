"""Repository setup commands: init."""

from __future__ import annotations

import os

import click

from .._storage import Repository
from ..paths import CONTROL_DIR
from ._helpers import _require_root, _root_option, _status, main


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@main.command()
@_root_option
@click.option("--branch", "-b", default="main", help="Initial branch name (default: main).")
@click.pass_context
def init(ctx, branch):
    """Create a git repository to serve.

    The directory is created if needed.  Files already in it stay
    untracked until a write touches them.
    """
    root = _require_root(ctx)
    if os.path.exists(os.path.join(root, CONTROL_DIR)):
        raise click.ClickException(f"Repository already exists: {root}")
    repo = Repository.init(root, branch=branch)
    repo.close()
    _status(ctx, f"Initialized {root}")
