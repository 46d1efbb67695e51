"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import click
from dulwich.errors import NotGitRepository

from .._storage import Repository


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_root(ctx, param, value):
    """Click callback: store --root value in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj["root"] = value
    return value


def _root_option(f):
    """Shared --root option decorator for all commands."""
    return click.option(
        "--root", type=click.Path(file_okay=False), envvar="COMMITFS_ROOT",
        help="Worktree of the git repository to serve (or set COMMITFS_ROOT).",
        expose_value=False, callback=_store_root, is_eager=True,
    )(f)


def _require_root(ctx) -> str:
    """Get the root from context, raising a usage error if missing or empty."""
    root = ctx.obj.get("root")
    if not root:
        raise click.UsageError(
            "Please set a root to serve with --root or COMMITFS_ROOT.", ctx=ctx
        )
    return root


def _open_repo(root: str) -> Repository:
    """Open the repository at *root*, turning failures into click errors."""
    try:
        return Repository.open(root)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc))
    except NotGitRepository:
        raise click.ClickException(
            f"Not a git repository: {root} (create one with 'commitfs init')"
        )


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--root", type=click.Path(file_okay=False), envvar="COMMITFS_ROOT",
              help="Worktree of the git repository to serve (or set COMMITFS_ROOT).",
              expose_value=False, callback=_store_root, is_eager=True)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """commitfs: a filesystem where every write is a git commit.

    Serves a git worktree over FTP.  Each upload, delete, rename, mkdir
    and rmdir is committed immediately, so the full history of the
    directory is kept.

    \b
    Quick start:
      commitfs init --root data
      commitfs serve --root data --user admin --pass secret

    Set COMMITFS_ROOT to avoid passing --root on every call.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
