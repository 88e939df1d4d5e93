import pytest
import base64
import json
import os
import shutil
import tempfile
from unittest.mock import MagicMock

from remarks.store import MemoryStore
from remarks.tree import Folder, Link, SyncCredentials, wrap_roots


@pytest.fixture
def sample_tree():
    """A browser-shaped tree: synthetic root, reserved roots, nested folders."""
    return [wrap_roots([
        Folder(id="1", title="Bookmarks bar", children=[
            Link(id="10", title="Python", url="https://www.python.org/"),
            Folder(id="11", title="Work", children=[
                Link(id="12", title="GitHub", url="https://github.com/"),
                Folder(id="13", title="Docs", children=[
                    Link(id="14", title="Python Docs", url="https://docs.python.org/"),
                ]),
            ]),
        ]),
        Folder(id="2", title="Other bookmarks", children=[
            Folder(id="20", title="Play", children=[
                Link(id="21", title="Chess", url="https://lichess.org/"),
            ]),
            Folder(id="22", title="Empty"),
        ]),
        Folder(id="3", title="Mobile bookmarks"),
    ])]


@pytest.fixture
def sample_tree_data():
    """The sample tree in the browser API dict shape."""
    return [{
        "id": "0",
        "title": "",
        "children": [
            {"id": "1", "title": "Bookmarks bar", "children": [
                {"id": "10", "title": "Python", "url": "https://www.python.org/"},
                {"id": "11", "title": "Work", "children": [
                    {"id": "12", "title": "GitHub", "url": "https://github.com/"},
                ]},
            ]},
            {"id": "2", "title": "Other bookmarks", "children": []},
        ],
    }]


@pytest.fixture
def memory_store():
    """An empty in-memory store with the reserved roots."""
    return MemoryStore()


@pytest.fixture
def temp_db():
    """Create a temporary database file path."""
    temp_dir = tempfile.mkdtemp(prefix="remarks_test_db_")
    db_path = os.path.join(temp_dir, "test.db")
    yield db_path
    shutil.rmtree(temp_dir)


@pytest.fixture
def db(temp_db):
    """A Database store on a temporary file."""
    from remarks.db import Database
    return Database(path=temp_db)


@pytest.fixture
def credentials():
    return SyncCredentials(user="octocat", repo="bookmarks", token="ghp_test")


@pytest.fixture
def make_response():
    """
    Factory for mocked ``requests`` responses.

    Usage:
        make_response(200, {"sha": "abc"})
        make_response(404)
    """
    def _make(status_code=200, data=None, text=""):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.json.return_value = data or {}
        response.text = text or (json.dumps(data) if data else "")
        return response
    return _make


@pytest.fixture
def contents_response(make_response):
    """Factory for a GitHub contents API response holding ``content``."""
    def _make(content, sha="sha-1"):
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        # GitHub wraps base64 content at 60 characters
        wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
        return make_response(200, {"content": wrapped, "sha": sha, "encoding": "base64"})
    return _make


@pytest.fixture
def clean_remarks_env(monkeypatch, tmp_path):
    """
    Fixture to create a clean environment without affecting real config.

    Removes REMARKS_ environment variables and sets HOME to a temp directory.
    """
    for key in list(os.environ.keys()):
        if key.startswith("REMARKS_"):
            monkeypatch.delenv(key, raising=False)

    mock_home = tmp_path / "home"
    mock_home.mkdir()
    monkeypatch.setenv("HOME", str(mock_home))
    monkeypatch.chdir(tmp_path)

    return tmp_path
