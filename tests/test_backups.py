"""Tests for BackupStore."""

from pathlib import Path

import pytest

from weam_integrator.backups import BackupStore


@pytest.fixture
def store() -> BackupStore:
    return BackupStore()


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.js").write_text("original app\n")
    (tmp_path / "index.js").write_text("original index\n")
    return tmp_path


class TestCreateBackup:

    def test_copies_existing_file(self, store, tree):
        backup = store.create_backup(tree / "index.js")

        assert backup == tree / "index.js.bak"
        assert backup.read_text() == "original index\n"

    def test_missing_file_returns_none(self, store, tree):
        assert store.create_backup(tree / "nope.js") is None
        assert not (tree / "nope.js.bak").exists()

    def test_custom_suffix(self, tree):
        store = BackupStore(suffix=".orig")

        assert store.create_backup(tree / "index.js") == tree / "index.js.orig"


class TestRestore:

    def test_restore_keeps_backup(self, store, tree):
        target = tree / "src" / "app.js"
        store.create_backup(target)
        target.write_text("rewritten\n")

        assert store.restore(target) is True
        assert target.read_text() == "original app\n"
        assert (tree / "src" / "app.js.bak").exists()

    def test_restore_without_backup(self, store, tree):
        assert store.restore(tree / "index.js") is False
        assert (tree / "index.js").read_text() == "original index\n"

    def test_restore_all(self, store, tree):
        for rel in ("index.js", "src/app.js"):
            store.create_backup(tree / rel)
            (tree / rel).write_text("changed\n")

        restored = store.restore_all(tree)

        assert sorted(p.relative_to(tree).as_posix() for p in restored) == ["index.js", "src/app.js"]
        assert (tree / "index.js").read_text() == "original index\n"


class TestListing:

    def test_list_backups_sorted_and_skips_node_modules(self, store, tree):
        store.create_backup(tree / "src" / "app.js")
        store.create_backup(tree / "index.js")
        (tree / "node_modules").mkdir()
        (tree / "node_modules" / "dep.js.bak").write_text("")
        (tree / ".bak").write_text("")

        backups = store.list_backups(tree)

        assert [p.relative_to(tree).as_posix() for p in backups] == ["index.js.bak", "src/app.js.bak"]

    def test_original_path_for(self, store, tree):
        assert store.original_path_for(tree / "a.js.bak") == tree / "a.js"


def test_create_diff(store):
    diff = store.create_diff("a\nb\n", "a\nc\n", "server.js")

    assert "--- a/server.js" in diff
    assert "+++ b/server.js" in diff
    assert "-b" in diff
    assert "+c" in diff


def test_create_diff_identical(store):
    assert store.create_diff("same\n", "same\n") == ""
