"""Backup and rollback of a base branch around a force-merge.

The backup is a plain branch on the forge pointing at the base branch's
commit taken right before the risky merge. It is never catalogued: after the
run it is deleted or left behind for manual recovery.
"""

import logging
from datetime import UTC, datetime

from prsweep.adapters.base import AuthenticationError, ForgeAdapter, ForgeError

LOG = logging.getLogger("prsweep.services.backup")

BACKUP_PREFIX = "backup/pr-"


class BackupError(Exception):
    """Raised when the base branch snapshot cannot be created."""

    pass


def backup_branch_name(pr_number: int, now: datetime | None = None) -> str:
    """backup/pr-<number>-<YYYYmmdd-HHMMSS> (UTC)."""
    now = now or datetime.now(UTC)
    return f"{BACKUP_PREFIX}{pr_number}-{now.strftime('%Y%m%d-%H%M%S')}"


def create_backup(
    adapter: ForgeAdapter,
    repo: str,
    base_branch: str,
    pr_number: int,
    now: datetime | None = None,
) -> str:
    """Snapshot base_branch to a new backup branch and return its name.

    Raises:
        BackupError: If the base SHA cannot be read or the branch cannot be
            created; the caller must not go on with the force-merge.
        AuthenticationError: If the credential is rejected.
    """
    name = backup_branch_name(pr_number, now)
    try:
        sha = adapter.get_branch_sha(repo, base_branch)
        adapter.create_branch(repo, name, sha)
    except AuthenticationError:
        raise
    except ForgeError as e:
        raise BackupError(f"Could not back up {repo}@{base_branch}: {e}") from e
    LOG.info("Backed up %s@%s (%s) to %s", repo, base_branch, sha[:8], name)
    return name


def rollback(
    adapter: ForgeAdapter,
    repo: str,
    base_branch: str,
    backup_branch: str,
    expected_sha: str | None = None,
) -> bool:
    """Hard-reset base_branch to the backup commit.

    With expected_sha the reset only happens while base_branch still points
    at that commit, the one this run pushed.

    A missing backup branch, a moved base or a rejected reset is logged as
    an error and False is returned; nothing else is attempted.
    """
    try:
        sha = adapter.get_branch_sha(repo, backup_branch)
    except ForgeError as e:
        LOG.error("Rollback of %s@%s impossible, backup %s missing: %s", repo, base_branch, backup_branch, e)
        return False
    if expected_sha is not None:
        try:
            current = adapter.get_branch_sha(repo, base_branch)
        except ForgeError as e:
            LOG.error("Rollback of %s@%s skipped, cannot read base: %s", repo, base_branch, e)
            return False
        if current != expected_sha:
            LOG.error(
                "Rollback of %s@%s skipped: base moved to %s after the push of %s; restore from %s by hand",
                repo,
                base_branch,
                current[:8],
                expected_sha[:8],
                backup_branch,
            )
            return False
    try:
        adapter.update_branch(repo, base_branch, sha, force=True)
    except ForgeError as e:
        LOG.error("Rollback of %s@%s to %s failed: %s", repo, base_branch, backup_branch, e)
        return False
    LOG.warning("Rolled back %s@%s to %s (%s)", repo, base_branch, backup_branch, sha[:8])
    return True


def discard_backup(adapter: ForgeAdapter, repo: str, backup_branch: str) -> None:
    """Delete a backup branch that is no longer needed."""
    try:
        adapter.delete_branch(repo, backup_branch)
    except ForgeError as e:
        LOG.warning("Could not delete backup %s in %s: %s", backup_branch, repo, e)
        return
    LOG.info("Deleted backup %s in %s", backup_branch, repo)
