"""Tests for prsweep.services.backup (base branch snapshot and rollback)."""

import logging
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from prsweep.adapters.base import AuthenticationError, ForgeError
from prsweep.services.backup import (
    BACKUP_PREFIX,
    BackupError,
    backup_branch_name,
    create_backup,
    discard_backup,
    rollback,
)

NOW = datetime(2024, 3, 5, 14, 7, 9, tzinfo=UTC)


def test_backup_branch_name() -> None:
    """Name is backup/pr-<n>-<timestamp>."""
    assert backup_branch_name(42, NOW) == "backup/pr-42-20240305-140709"
    assert backup_branch_name(1).startswith(BACKUP_PREFIX + "1-")


def test_create_backup_points_at_base_sha() -> None:
    """Backup branch is created at the current base SHA."""
    adapter = MagicMock()
    adapter.get_branch_sha.return_value = "abcdef123456"
    name = create_backup(adapter, "owner/repo", "main", 42, now=NOW)

    assert name == "backup/pr-42-20240305-140709"
    adapter.get_branch_sha.assert_called_once_with("owner/repo", "main")
    adapter.create_branch.assert_called_once_with("owner/repo", name, "abcdef123456")


def test_create_backup_failure_raises() -> None:
    """Any forge error while snapshotting is a BackupError."""
    adapter = MagicMock()
    adapter.get_branch_sha.return_value = "abcdef123456"
    adapter.create_branch.side_effect = ForgeError("Reference already exists", 422)
    with pytest.raises(BackupError, match="main"):
        create_backup(adapter, "owner/repo", "main", 42, now=NOW)


def test_create_backup_missing_base_raises() -> None:
    """Unreadable base branch aborts before creating anything."""
    adapter = MagicMock()
    adapter.get_branch_sha.side_effect = ForgeError("Not found", 404)
    with pytest.raises(BackupError):
        create_backup(adapter, "owner/repo", "main", 1)
    adapter.create_branch.assert_not_called()


def test_create_backup_authentication_error_propagates() -> None:
    """A rejected token is not turned into a BackupError."""
    adapter = MagicMock()
    adapter.get_branch_sha.side_effect = AuthenticationError("Bad credentials", 401)
    with pytest.raises(AuthenticationError):
        create_backup(adapter, "owner/repo", "main", 1)
    adapter.create_branch.assert_not_called()


def test_rollback_force_updates_base() -> None:
    """Rollback moves the base ref back to the backup commit."""
    adapter = MagicMock()
    adapter.get_branch_sha.return_value = "abcdef123456"
    assert rollback(adapter, "owner/repo", "main", "backup/pr-1-x") is True
    adapter.get_branch_sha.assert_called_once_with("owner/repo", "backup/pr-1-x")
    adapter.update_branch.assert_called_once_with("owner/repo", "main", "abcdef123456", force=True)


def test_rollback_missing_backup_logs_error(caplog: pytest.LogCaptureFixture) -> None:
    """Missing backup: error logged, nothing else attempted."""
    adapter = MagicMock()
    adapter.get_branch_sha.side_effect = ForgeError("Not found", 404)
    with caplog.at_level(logging.ERROR, logger="prsweep.services.backup"):
        assert rollback(adapter, "owner/repo", "main", "backup/pr-1-x") is False
    adapter.update_branch.assert_not_called()
    assert "backup/pr-1-x" in caplog.text


def test_rollback_rejected_update() -> None:
    """A rejected ref update returns False."""
    adapter = MagicMock()
    adapter.get_branch_sha.return_value = "abcdef123456"
    adapter.update_branch.side_effect = ForgeError("protected", 422)
    assert rollback(adapter, "owner/repo", "main", "backup/pr-1-x") is False


def test_discard_backup() -> None:
    """Discard deletes the branch; failures are only logged."""
    adapter = MagicMock()
    discard_backup(adapter, "owner/repo", "backup/pr-1-x")
    adapter.delete_branch.assert_called_once_with("owner/repo", "backup/pr-1-x")

    adapter.delete_branch.side_effect = ForgeError("gone", 422)
    discard_backup(adapter, "owner/repo", "backup/pr-1-x")


def test_rollback_when_base_still_at_pushed_commit() -> None:
    """Base still at the pushed commit is reset to the backup."""
    adapter = MagicMock()
    adapter.get_branch_sha.side_effect = ["abcdef123456", "fff999aaa"]
    assert rollback(adapter, "owner/repo", "main", "backup/pr-1-x", expected_sha="fff999aaa") is True
    adapter.update_branch.assert_called_once_with("owner/repo", "main", "abcdef123456", force=True)


def test_rollback_skipped_when_base_moved(caplog: pytest.LogCaptureFixture) -> None:
    """Someone else pushed after us: base is left alone and the backup named."""
    adapter = MagicMock()
    adapter.get_branch_sha.side_effect = ["abcdef123456", "0ther5ha1234"]
    with caplog.at_level(logging.ERROR, logger="prsweep.services.backup"):
        assert rollback(adapter, "owner/repo", "main", "backup/pr-1-x", expected_sha="fff999aaa") is False
    adapter.update_branch.assert_not_called()
    assert "backup/pr-1-x" in caplog.text
    assert "0ther5ha" in caplog.text
