"""serve: expose the repository over FTP."""

from __future__ import annotations

import click

from ..driver import DriverFactory
from ..message import CommitPolicy
from ..perm import SimplePerm
from ._helpers import _open_repo, _require_root, _root_option, _status, main


@main.command()
@_root_option
@click.option("--user", default="admin", envvar="COMMITFS_USER", show_default=True,
              help="Username for login.")
@click.option("--pass", "password", default="123456", envvar="COMMITFS_PASS", show_default=True,
              help="Password for login.")
@click.option("--host", default="localhost", envvar="COMMITFS_HOST", show_default=True,
              help="Bind address.")
@click.option("--port", "-p", default=2121, type=int, envvar="COMMITFS_PORT", show_default=True,
              help="Port to listen on (0 for OS-assigned).")
@click.option("--owner", default="user", show_default=True,
              help="Owner name reported for every file.")
@click.option("--group", default="group", show_default=True,
              help="Group name reported for every file.")
@click.option("--author", default="commitfs", envvar="COMMITFS_AUTHOR", show_default=True,
              help="Commit author name.")
@click.option("--email", default="commitfs@localhost", envvar="COMMITFS_EMAIL", show_default=True,
              help="Commit author email.")
@click.option("--message", "-m", default=None, envvar="COMMITFS_MESSAGE",
              help="Commit message (default: describes the operation). "
                   "Placeholders: {default}, {op}, {path}.")
@click.pass_context
def serve(ctx, user, password, host, port, owner, group, author, email, message):
    """Serve the repository worktree over FTP.

    Every upload, delete, rename, mkdir and rmdir becomes one commit.

    \b
    Examples:
        commitfs serve --root data
        commitfs serve --root data --user alice --pass s3cret -p 2121
        commitfs serve --root data -m "ftp: {default}"
    """
    root = _require_root(ctx)
    _open_repo(root).close()

    try:
        from ..ftp import make_server, serve as ftp_serve
    except ImportError:
        raise click.ClickException(
            "FTP support not installed. Install with: pip install commitfs[ftp]"
        )

    factory = DriverFactory(
        root,
        SimplePerm(owner, group),
        CommitPolicy(author=author, email=email, message=message),
    )
    try:
        server = make_server(factory, host=host, port=port, user=user, password=password)
    except OSError as exc:
        raise click.ClickException(f"Error starting server: {exc}")

    bound_host, bound_port = server.address[:2]
    click.echo(f"Starting ftp server on {bound_host}:{bound_port}", err=True)
    click.echo(f"Username {user}, Password {password}", err=True)
    _status(ctx, f"Committing as {author} <{email}>")

    try:
        ftp_serve(server, verbose=ctx.obj.get("verbose", False))
    except KeyboardInterrupt:
        click.echo("\nStopped.", err=True)
