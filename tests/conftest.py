"""Shared fixtures: a small source tree and an initialized repository."""

from pathlib import Path

import pytest

from mvc.repository import Repository, User
from tests.helpers import write_tree


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep ~/.mvc lookups inside the test's tmp dir."""
    home = tmp_path / "home"
    monkeypatch.setattr("mvc.config.GLOBAL_CONFIG_FILE", home / ".mvc" / "config.json")
    monkeypatch.setattr("mvc.identity.IDENTITY_FILE", home / ".mvc" / "identity")
    monkeypatch.delenv("MVC_AUTHOR_NAME", raising=False)
    monkeypatch.delenv("MVC_AUTHOR_EMAIL", raising=False)
    return home


@pytest.fixture
def source(tmp_path, monkeypatch):
    """A small tree at ./source, with the cwd moved to tmp_path.

    Traversal roots are relative to the cwd; absolute roots are excluded.
    """
    monkeypatch.chdir(tmp_path)
    write_tree(tmp_path / "source", {
        "a.txt": "hello",
        "src/main.py": "print('hi')\n",
        "src/build/out.o": "object",
        "build/artifact.bin": "binary",
        "docs/readme.md": "# docs\n",
    })
    return Path("source")


@pytest.fixture
def repo(tmp_path):
    repository = Repository(tmp_path / "repo")
    repository.init()
    return repository


@pytest.fixture
def user():
    return User(name="Ada", email="ada@example.com")
