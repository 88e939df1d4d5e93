"""
Tests for remarks/sync.py sync cycle.

Uses an in-memory stand-in for the GitHub client that keeps files and
revisions in a dict, so whole cycles can run without HTTP.
"""
import base64
import json
import pytest
from unittest.mock import MagicMock, patch

from remarks.exporters import export_json
from remarks.remote import DISCOVER, GitHubClient, RemoteConflictError, RemoteError
from remarks.store import MemoryStore
from remarks.sync import (
    MODE_FIRST_SYNC, MODE_MERGE, MODE_RECOVERED,
    UnknownFolderError, list_remote_folders, run_sync, select_paths, sync_once,
)
from remarks.tree import Folder, Link, RemoteArtifact, load_tree, wrap_roots


class FakeRemote:
    """A repository held in memory with GitHub's revision semantics."""

    def __init__(self, files=None):
        self.files = {}
        self.revision = 0
        self.pushes = []
        self.fail_push = None
        for name, content in (files or {}).items():
            self._store(name, content)

    def _store(self, name, content):
        self.revision += 1
        self.files[name] = (content, f"sha-{self.revision}")
        return f"sha-{self.revision}"

    def fetch(self, filename):
        if filename not in self.files:
            return None
        content, sha = self.files[filename]
        return RemoteArtifact(path=filename, content=content, sha=sha)

    def fetch_text(self, filename):
        artifact = self.fetch(filename)
        return artifact.content if artifact else None

    def push(self, filename, content, sha=DISCOVER, message=None):
        if self.fail_push:
            error, self.fail_push = self.fail_push, None
            raise error
        current = self.files.get(filename)
        if sha is DISCOVER:
            sha = current[1] if current else None
        if current is not None and sha != current[1]:
            raise RemoteConflictError(f"Push Failed: {filename} changed on the remote (409)", 409)
        self.pushes.append((filename, sha))
        return self._store(filename, content)


@pytest.fixture
def site_store():
    store = MemoryStore()
    store.create_link("1", "Site", "https://e.example")
    return store


def remote_snapshot(*nodes):
    return export_json([wrap_roots(list(nodes))])


WORK_TREE = (Folder(id="1", title="Bookmarks bar", children=[
    Folder(id="5", title="Work", children=[
        Link(id="6", title="Wiki", url="https://wiki.example"),
    ]),
]),)


class TestFirstSync:
    """A repository without a snapshot."""

    def test_uploads_all_artifacts(self, site_store):
        remote = FakeRemote()
        messages = []
        report = run_sync(site_store, remote, report=messages.append)

        assert report.mode == MODE_FIRST_SYNC
        assert report.merge is None
        assert report.written == ["bookmarks.json", "bookmarks.html", "README.md"]
        for name in report.written:
            content = remote.files[name][0]
            assert "Site" in content
            assert "https://e.example" in content
        assert "First Sync: Uploading local bookmarks..." in messages
        assert messages[-1] == "SYNC COMPLETE!"

    def test_writes_without_precondition(self, site_store):
        remote = FakeRemote()
        run_sync(site_store, remote)
        assert [sha for _, sha in remote.pushes] == [None, None, None]

    def test_blank_snapshot_is_first_sync(self, site_store):
        remote = FakeRemote({"bookmarks.json": "  \n"})
        report = run_sync(site_store, remote)
        assert report.mode == MODE_FIRST_SYNC
        assert load_tree(remote.files["bookmarks.json"][0])[0].children[0].title == "Site"

    def test_no_merge_additions(self, site_store):
        run_sync(site_store, FakeRemote())
        assert [c.title for c in site_store.get_children("1")] == ["Site"]


class TestMergeSync:
    """A repository with a snapshot."""

    def test_selected_folder_is_merged(self, site_store):
        remote = FakeRemote({"bookmarks.json": remote_snapshot(*WORK_TREE)})
        report = run_sync(site_store, remote, allowed_paths=["Bookmarks bar###Work"])

        assert report.mode == MODE_MERGE
        assert report.merge.added == 1
        assert site_store.search_url("https://wiki.example")
        assert "https://wiki.example" in remote.files["bookmarks.html"][0]

    def test_unselected_folder_is_filtered(self, site_store):
        remote = FakeRemote({"bookmarks.json": remote_snapshot(*WORK_TREE)})
        report = run_sync(site_store, remote, allowed_paths=["Play"])

        assert report.merge.added == 0
        assert report.merge.skipped == 1
        assert site_store.search_url("https://wiki.example") == []

    def test_structural_write_uses_revision_read_at_start(self, site_store):
        remote = FakeRemote({"bookmarks.json": remote_snapshot(*WORK_TREE)})
        start_sha = remote.files["bookmarks.json"][1]
        run_sync(site_store, remote)
        assert remote.pushes[0] == ("bookmarks.json", start_sha)

    def test_second_sync_adds_nothing(self, site_store):
        remote = FakeRemote({"bookmarks.json": remote_snapshot(*WORK_TREE)})
        run_sync(site_store, remote)
        assert run_sync(site_store, remote).merge.added == 0

    def test_malformed_snapshot_is_replaced(self, site_store):
        remote = FakeRemote({"bookmarks.json": "{oops"})
        messages = []
        report = run_sync(site_store, remote, report=messages.append)

        assert report.mode == MODE_RECOVERED
        assert "Remote file invalid/corrupt. Overwriting with local data..." in messages
        assert json.loads(remote.files["bookmarks.json"][0])[0]["id"] == "0"

    def test_link_without_url_is_ignored(self, site_store):
        """One empty link does not discard the rest of the snapshot."""
        snapshot = json.dumps([{"id": "0", "title": "", "children": [
            {"id": "1", "title": "Bookmarks bar", "children": [
                {"id": "5", "title": "Blank", "url": ""},
                {"id": "6", "title": "Wiki", "url": "https://wiki.example"},
            ]},
        ]}])
        report = run_sync(site_store, FakeRemote({"bookmarks.json": snapshot}))

        assert report.mode == MODE_MERGE
        assert report.merge.added == 1
        assert site_store.search_url("https://wiki.example")


class TestUndecodableSnapshot:
    """A snapshot that is not UTF-8 text is replaced like a malformed one."""

    @pytest.fixture
    def client(self, credentials):
        return GitHubClient(credentials)

    def serve(self, make_response, content):
        def get(url, params=None, timeout=None):
            if url.endswith("/bookmarks.json"):
                return make_response(200, {"content": content, "sha": "bad-sha"})
            return make_response(404)
        return get

    @pytest.mark.parametrize("content", [
        base64.b64encode(b"\xff\xfe[not utf8").decode("ascii"),
        "abcde",
    ])
    def test_recovers_and_overwrites(self, site_store, client, make_response, content):
        messages = []
        with patch.object(client.session, "get", side_effect=self.serve(make_response, content)), \
                patch.object(client.session, "put",
                             return_value=make_response(200, {"content": {"sha": "new"}})) as put:
            report = run_sync(site_store, client, report=messages.append)

        assert report.mode == MODE_RECOVERED
        assert "Remote file invalid/corrupt. Overwriting with local data..." in messages
        structural = put.call_args_list[0]
        assert structural.args[0].endswith("/bookmarks.json")
        assert structural.kwargs["json"]["sha"] == "bad-sha"
        written = base64.b64decode(structural.kwargs["json"]["content"]).decode("utf-8")
        assert "https://e.example" in written


class TestErrors:
    """Failures propagate out of the cycle."""

    def test_fetch_error_aborts(self, site_store):
        remote = FakeRemote()
        remote.fetch = MagicMock(side_effect=RemoteError("GitHub API Error: 500", 500))
        with pytest.raises(RemoteError):
            run_sync(site_store, remote)
        assert remote.pushes == []

    def test_push_error_aborts(self, site_store):
        remote = FakeRemote()
        remote.fail_push = RemoteError("Push Failed: 500", 500)
        with pytest.raises(RemoteError):
            run_sync(site_store, remote)

    def test_conflict_not_retried_by_default(self, site_store):
        remote = FakeRemote()
        remote.fail_push = RemoteConflictError("stale", 409)
        with pytest.raises(RemoteConflictError):
            run_sync(site_store, remote)

    def test_conflict_retries_whole_cycle(self, site_store):
        remote = FakeRemote({"bookmarks.json": remote_snapshot(*WORK_TREE)})
        messages = []
        remote.fail_push = RemoteConflictError("stale", 409)

        report = run_sync(site_store, remote, report=messages.append, conflict_retries=1)

        assert report.written == ["bookmarks.json", "bookmarks.html", "README.md"]
        assert messages.count("Fetching remote bookmarks...") == 2
        assert "Remote changed during sync. Retrying..." in messages

    def test_concurrent_snapshot_change_conflicts(self, site_store):
        """A snapshot rewritten between fetch and push is not overwritten."""
        remote = FakeRemote({"bookmarks.json": remote_snapshot(*WORK_TREE)})
        original_fetch = remote.fetch

        def fetch_then_change(filename):
            artifact = original_fetch(filename)
            if filename == "bookmarks.json" and not remote.pushes:
                remote._store("bookmarks.json", remote_snapshot())
            return artifact

        remote.fetch = fetch_then_change
        with pytest.raises(RemoteConflictError):
            sync_once(site_store, remote)


class TestRemoteFolders:
    """Test list_remote_folders() and select_paths()."""

    def test_lists_folders(self):
        remote = FakeRemote({"bookmarks.json": remote_snapshot(*WORK_TREE)})
        assert list_remote_folders(remote) == [("Bookmarks bar",), ("Bookmarks bar", "Work")]

    def test_missing_snapshot(self):
        assert list_remote_folders(FakeRemote()) is None
        assert list_remote_folders(FakeRemote({"bookmarks.json": ""})) is None

    def test_malformed_snapshot(self):
        from remarks.tree import MalformedTreeError
        with pytest.raises(MalformedTreeError):
            list_remote_folders(FakeRemote({"bookmarks.json": "[1, 2]"}))

    def test_select_cascades_to_subfolders(self):
        available = [("A",), ("A", "B"), ("A", "B", "C"), ("AB",), ("D",)]
        assert select_paths(available, ["A"]) == ["A", "A###B", "A###B###C"]

    def test_select_multiple(self):
        available = [("A",), ("A", "B"), ("D",), ("D", "E")]
        assert select_paths(available, ["D###E", ("A", "B")]) == ["A###B", "D###E"]

    def test_select_nothing(self):
        assert select_paths([("A",)], []) == []

    def test_unknown_folder_rejected(self):
        available = [("Bookmarks bar",), ("Bookmarks bar", "Work")]
        with pytest.raises(UnknownFolderError) as excinfo:
            select_paths(available, ["Work"])
        assert excinfo.value.paths == ["Work"]
        assert excinfo.value.suggestions == ["Bookmarks bar###Work"]
        assert "did you mean Bookmarks bar###Work" in str(excinfo.value)

    def test_one_unknown_rejects_all(self):
        available = [("A",), ("B",)]
        with pytest.raises(UnknownFolderError, match="Unknown folder: C"):
            select_paths(available, ["A", "C"])
