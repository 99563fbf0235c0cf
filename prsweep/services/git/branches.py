"""Local branch creation in a working copy."""

import logging
from pathlib import Path

from prsweep.services.git._run import _run_git


def checkout_new_branch(
    branch_name: str,
    start_point: str,
    repo_dir: Path | None = None,
    log: logging.Logger | None = None,
) -> None:
    """Create (or reset) branch_name at start_point and check it out."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    _run_git(["checkout", "-B", branch_name, start_point], cwd=cwd, log=log)
    if log:
        log.info("Checked out %s at %s", branch_name, start_point)
