"""Tests for the commitfs CLI."""

import os

import pytest
from click.testing import CliRunner

from commitfs import Repository
from commitfs.cli import main


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def root_path(tmp_path):
    """Return a path to a not-yet-created root."""
    return str(tmp_path / "data")


# ---------------------------------------------------------------------------
# TestInit
# ---------------------------------------------------------------------------

class TestInit:
    def test_creates_repository(self, runner, root_path):
        result = runner.invoke(main, ["init", "--root", root_path])
        assert result.exit_code == 0, result.output
        assert os.path.isdir(os.path.join(root_path, ".git"))
        with Repository.open(root_path) as repo:
            assert repo.head() is None

    def test_branch_option(self, runner, root_path):
        result = runner.invoke(main, ["init", "--root", root_path, "-b", "trunk"])
        assert result.exit_code == 0, result.output
        with open(os.path.join(root_path, ".git", "HEAD")) as f:
            assert f.read().strip() == "ref: refs/heads/trunk"

    def test_existing_directory_with_files(self, runner, root_path):
        os.makedirs(root_path)
        with open(os.path.join(root_path, "keep.txt"), "w") as f:
            f.write("keep")
        result = runner.invoke(main, ["init", "--root", root_path])
        assert result.exit_code == 0, result.output
        with Repository.open(root_path) as repo:
            assert repo.commit_count() == 0
        assert os.path.exists(os.path.join(root_path, "keep.txt"))

    def test_already_exists(self, runner, root_path):
        runner.invoke(main, ["init", "--root", root_path])
        result = runner.invoke(main, ["init", "--root", root_path])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_root_from_env(self, runner, root_path):
        result = runner.invoke(main, ["init"], env={"COMMITFS_ROOT": root_path})
        assert result.exit_code == 0, result.output
        assert os.path.isdir(os.path.join(root_path, ".git"))

    def test_root_on_group(self, runner, root_path):
        result = runner.invoke(main, ["--root", root_path, "init"])
        assert result.exit_code == 0, result.output

    def test_verbose_status(self, runner, root_path):
        result = runner.invoke(main, ["-v", "init", "--root", root_path])
        assert result.exit_code == 0, result.output
        assert "Initialized" in result.output


# ---------------------------------------------------------------------------
# TestServe
# ---------------------------------------------------------------------------

class TestServe:
    def test_missing_root(self, runner):
        result = runner.invoke(main, ["serve"], env={"COMMITFS_ROOT": None})
        assert result.exit_code == 2
        assert "Please set a root" in result.output

    def test_root_does_not_exist(self, runner, root_path):
        result = runner.invoke(main, ["serve", "--root", root_path])
        assert result.exit_code == 1
        assert root_path in result.output

    def test_not_a_repository(self, runner, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        result = runner.invoke(main, ["serve", "--root", str(plain)])
        assert result.exit_code == 1
        assert "Not a git repository" in result.output

    def test_starts_with_options(self, runner, root_path, monkeypatch):
        pytest.importorskip("pyftpdlib")
        from commitfs import ftp

        runner.invoke(main, ["init", "--root", root_path])
        seen = {}

        def fake_serve(server, *, verbose=False):
            seen["factory"] = server.handler.driver_factory
            seen["verbose"] = verbose
            server.close_all()

        monkeypatch.setattr(ftp, "serve", fake_serve)
        result = runner.invoke(main, [
            "-v", "serve", "--root", root_path, "--host", "127.0.0.1", "-p", "0",
            "--user", "bob", "--pass", "pw", "--owner", "bob", "--group", "ftp",
            "--author", "Bob", "--email", "bob@example.com", "-m", "ftp: {default}",
        ])
        assert result.exit_code == 0, result.output
        assert "Starting ftp server on 127.0.0.1:" in result.output
        assert "Username bob, Password pw" in result.output

        factory = seen["factory"]
        assert seen["verbose"] is True
        assert factory.root == root_path
        assert factory.perm.get_owner("/x") == "bob"
        assert factory.perm.get_group("/x") == "ftp"
        assert factory.policy.author == "Bob"
        assert factory.policy.message == "ftp: {default}"

    def test_bind_error(self, runner, root_path, monkeypatch):
        pytest.importorskip("pyftpdlib")
        from commitfs import ftp

        runner.invoke(main, ["init", "--root", root_path])

        def failing_make_server(*args, **kwargs):
            raise OSError("Address already in use")

        monkeypatch.setattr(ftp, "make_server", failing_make_server)
        result = runner.invoke(main, ["serve", "--root", root_path])
        assert result.exit_code == 1
        assert "Error starting server: Address already in use" in result.output
