"""Unit tests for the snapshot and archive store."""

import stat
from datetime import datetime

import pytest
from unittest.mock import Mock

from nftsafe.core.context import ExecutionContext
from nftsafe.core.exceptions import BackupError, EngineError
from nftsafe.services.backup import BackupStore, archive_name


FIXED_TIME = datetime(2024, 3, 9, 14, 5, 7)


@pytest.fixture
def ctx():
    return ExecutionContext(verbosity=0)


@pytest.fixture
def engine():
    mock = Mock()
    mock.list_ruleset.return_value = "table inet filter {\n}\n"
    return mock


@pytest.fixture
def store(ctx, engine, tmp_path):
    return BackupStore(ctx, engine, tmp_path / "backups", clock=lambda: FIXED_TIME)


class TestArchiveName:
    """Tests for archive entry naming."""

    def test_format(self):
        """Names follow nftables-installed-YYYY-MM-DD_HHhMMmSSs.nft."""
        assert archive_name(FIXED_TIME) == "nftables-installed-2024-03-09_14h05m07s.nft"

    def test_counter_suffix(self):
        assert archive_name(FIXED_TIME, 2) == "nftables-installed-2024-03-09_14h05m07s-2.nft"


class TestEnsureDir:
    """Tests for BackupStore.ensure_dir."""

    def test_creates_directory(self, store):
        store.ensure_dir()
        assert store.backup_dir.is_dir()

    def test_idempotent(self, store):
        """An existing directory is fine."""
        store.ensure_dir()
        store.ensure_dir()
        assert store.backup_dir.is_dir()

    def test_path_is_a_file(self, store):
        """A regular file in the way is a BackupError."""
        store.backup_dir.write_text("not a dir")
        with pytest.raises(BackupError):
            store.ensure_dir()


class TestSnapshot:
    """Tests for snapshot handling."""

    def test_snapshot_is_verbatim(self, store, engine):
        """The live ruleset is written unchanged."""
        store.ensure_dir()
        path = store.snapshot_current_ruleset()

        assert path == store.backup_dir / "nftables.conf.bak"
        assert path.read_text() == engine.list_ruleset.return_value
        assert store.has_snapshot()

    def test_snapshot_is_private(self, store):
        """The snapshot is readable by the owner only."""
        store.ensure_dir()
        path = store.snapshot_current_ruleset()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_snapshot_overwrites_stale(self, store):
        """A stale snapshot is replaced."""
        store.ensure_dir()
        store.snapshot_path.write_text("stale\n")
        store.snapshot_current_ruleset()
        assert "stale" not in store.snapshot_path.read_text()

    def test_list_failure_writes_nothing(self, store, engine):
        engine.list_ruleset.side_effect = EngineError("nope")
        store.ensure_dir()
        with pytest.raises(EngineError):
            store.snapshot_current_ruleset()
        assert not store.has_snapshot()

    def test_discard(self, store):
        store.ensure_dir()
        store.snapshot_current_ruleset()
        store.discard_snapshot()
        assert not store.has_snapshot()

    def test_discard_missing_is_ok(self, store):
        store.ensure_dir()
        store.discard_snapshot()


class TestArchive:
    """Tests for archive entries and installation."""

    def test_archive_copies_candidate(self, store, tmp_path):
        """Archive entries are byte-identical copies."""
        candidate = tmp_path / "candidate.nft"
        candidate.write_text("flush ruleset\ntable inet filter {}\n")
        store.ensure_dir()

        entry = store.archive(candidate)

        assert entry.name == "nftables-installed-2024-03-09_14h05m07s.nft"
        assert entry.read_bytes() == candidate.read_bytes()

    def test_same_second_does_not_overwrite(self, store, tmp_path):
        """Two commits in the same second produce two entries."""
        candidate = tmp_path / "candidate.nft"
        candidate.write_text("first\n")
        store.ensure_dir()
        first = store.archive(candidate)

        candidate.write_text("second\n")
        second = store.archive(candidate)

        assert first != second
        assert second.name == "nftables-installed-2024-03-09_14h05m07s-1.nft"
        assert first.read_text() == "first\n"
        assert len(store.list_archive()) == 2

    def test_list_archive_ignores_snapshot(self, store, tmp_path):
        candidate = tmp_path / "candidate.nft"
        candidate.write_text("x\n")
        store.ensure_dir()
        store.snapshot_current_ruleset()
        store.archive(candidate)

        assert [p.name for p in store.list_archive()] == [
            "nftables-installed-2024-03-09_14h05m07s.nft"
        ]

    def test_list_archive_without_dir(self, store):
        assert store.list_archive() == []

    def test_install(self, store, tmp_path):
        """Install replaces the destination contents."""
        candidate = tmp_path / "candidate.nft"
        destination = tmp_path / "nftables.conf"
        candidate.write_text("new\n")
        destination.write_text("old\n")

        store.install(candidate, destination)
        assert destination.read_text() == "new\n"

    def test_install_failure(self, store, tmp_path):
        candidate = tmp_path / "candidate.nft"
        candidate.write_text("new\n")
        with pytest.raises(BackupError):
            store.install(candidate, tmp_path / "missing-dir" / "nftables.conf")
