"""Commits made in a working copy by the resolve and force operations."""

import logging
from pathlib import Path

from prsweep.services.git._run import _run_git


def head_sha(repo_dir: Path | None = None, log: logging.Logger | None = None) -> str:
    """Full SHA of HEAD."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    return _run_git(["rev-parse", "HEAD"], cwd=cwd, log=log)


def commit_all(
    message: str,
    name: str,
    email: str,
    repo_dir: Path | None = None,
    log: logging.Logger | None = None,
) -> str | None:
    """Stage the whole tree and commit it as name <email>.

    Returns the SHA of the new commit, or None when `git status --porcelain`
    shows nothing to commit. Commit hooks are not run.
    """
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    _run_git(["add", "-A"], cwd=cwd, log=log)
    if not _run_git(["status", "--porcelain"], cwd=cwd, log=log):
        if log:
            log.info("Nothing to commit in %s", cwd)
        return None
    _run_git(
        ["-c", f"user.name={name}", "-c", f"user.email={email}", "commit", "--no-verify", "-m", message],
        cwd=cwd,
        log=log,
    )
    sha = head_sha(repo_dir=cwd, log=log)
    if log:
        log.info("Committed %s: %s", sha[:8], message.splitlines()[0] if message else "")
    return sha
