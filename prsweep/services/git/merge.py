"""Merge without committing and inspect conflicts."""

import logging
from pathlib import Path

from prsweep.services.git._run import GitRunnerError, _run_git


def conflicted_paths(repo_dir: Path | None = None, log: logging.Logger | None = None) -> list[str]:
    """Paths with unresolved conflicts in the index."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    out = _run_git(["diff", "--name-only", "--diff-filter=U"], cwd=cwd, log=log)
    return [line.strip() for line in out.splitlines() if line.strip()]


def merge_no_commit(
    ref: str,
    repo_dir: Path | None = None,
    log: logging.Logger | None = None,
) -> bool:
    """Merge ref into HEAD with --no-commit --no-ff.

    Returns True on a clean merge and False when conflicts are left in the
    working tree. Other failures raise GitRunnerError.
    """
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    try:
        _run_git(["merge", "--no-commit", "--no-ff", ref], cwd=cwd)
    except GitRunnerError:
        paths = conflicted_paths(repo_dir=cwd, log=log)
        if not paths:
            raise
        if log:
            log.info("Merge of %s left %d conflicted file(s)", ref, len(paths))
        return False
    return True


def abort_merge(repo_dir: Path | None = None, log: logging.Logger | None = None) -> None:
    """Abort an in-progress merge."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    _run_git(["merge", "--abort"], cwd=cwd, log=log)
