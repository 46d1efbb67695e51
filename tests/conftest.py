"""Shared fixtures for commitfs tests."""

import pytest

from commitfs import Driver, Repository, SimplePerm


@pytest.fixture
def root(tmp_path):
    """Create an empty repository and return its worktree path."""
    p = tmp_path / "root"
    Repository.init(p).close()
    return str(p)


@pytest.fixture
def perm():
    return SimplePerm("alice", "staff", mode=0o755)


@pytest.fixture
def driver(root, perm):
    return Driver(root, perm)


@pytest.fixture
def repo(root):
    """Open the fixture repository for inspecting commits."""
    r = Repository.open(root)
    yield r
    r.close()


@pytest.fixture
def populated(driver):
    """Driver over a tree with hello.txt and docs/{a,b}.txt (three commits).

    Tree:
        hello.txt, docs/a.txt, docs/b.txt
    """
    driver.put_file("/hello.txt", b"hello world\n")
    driver.put_file("/docs/a.txt", b"aaa")
    driver.put_file("/docs/b.txt", b"bb")
    return driver
