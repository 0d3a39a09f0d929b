"""Tests for session store implementations."""

import json

from casebuilder.infrastructure.session.filesystem import FilesystemSessionStore
from casebuilder.infrastructure.session.memory import InMemorySessionStore


class TestInMemorySessionStore:
    def test_set_get_remove(self) -> None:
        store = InMemorySessionStore()
        store.set_item("b", "2")
        store.set_item("a", "1")
        assert store.get_item("a") == "1"
        assert store.keys() == ["a", "b"]

        store.remove_item("a")
        store.remove_item("missing")
        assert store.get_item("a") is None


class TestFilesystemSessionStore:
    def test_persists_across_instances(self, tmp_path) -> None:
        """Values written by one instance are visible to the next."""
        FilesystemSessionStore(tmp_path).set_item("active_tab", "views")
        assert FilesystemSessionStore(tmp_path).get_item("active_tab") == "views"

    def test_creates_directory(self, tmp_path) -> None:
        store = FilesystemSessionStore(tmp_path / "nested" / "dir")
        store.set_item("k", "v")
        assert store.path.exists()
        assert json.loads(store.path.read_text()) == {"k": "v"}

    def test_remove_item(self, tmp_path) -> None:
        store = FilesystemSessionStore(tmp_path)
        store.set_item("k", "v")
        store.remove_item("k")
        assert FilesystemSessionStore(tmp_path).get_item("k") is None

    def test_no_temp_file_left_behind(self, tmp_path) -> None:
        FilesystemSessionStore(tmp_path).set_item("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["session.json"]

    def test_corrupt_file_ignored(self, tmp_path, caplog) -> None:
        (tmp_path / "session.json").write_text("{oops")
        store = FilesystemSessionStore(tmp_path)
        assert store.get_item("k") is None
        assert "Ignoring unreadable session file" in caplog.text

    def test_non_object_file_ignored(self, tmp_path) -> None:
        (tmp_path / "session.json").write_text("[1, 2]")
        assert FilesystemSessionStore(tmp_path).get_item("0") is None
