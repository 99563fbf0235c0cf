"""Clone, fetch and push against origin."""

import logging
from pathlib import Path

from prsweep.services.git._run import GitRunnerError, _run_git


def clone_repository(
    url: str,
    dest: Path,
    log: logging.Logger | None = None,
    secret: str | None = None,
) -> None:
    """Clone url into dest (dest must not exist or be empty).

    When secret is given it is masked in the raised error, so clone URLs
    with embedded tokens never reach the logs.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        _run_git(["clone", "--no-tags", url, str(dest)], cwd=dest.parent, timeout=600)
    except GitRunnerError as e:
        msg = str(e)
        if secret:
            msg = msg.replace(secret, "***")
        if log:
            log.warning("Clone into %s failed: %s", dest, msg)
        raise GitRunnerError(msg) from None
    if log:
        log.info("Cloned repository into %s", dest)


def fetch(
    refs: list[str],
    repo_dir: Path | None = None,
    log: logging.Logger | None = None,
) -> None:
    """Fetch the given branches from origin."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    _run_git(["fetch", "origin"] + list(refs), cwd=cwd, log=log, timeout=300)


def push_ref(
    remote_branch: str,
    local_ref: str = "HEAD",
    force: bool = False,
    repo_dir: Path | None = None,
    log: logging.Logger | None = None,
) -> None:
    """Push local_ref to refs/heads/<remote_branch> on origin."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    args = ["push"]
    if force:
        args.append("--force")
    args += ["origin", f"{local_ref}:refs/heads/{remote_branch}"]
    _run_git(args, cwd=cwd, log=log, timeout=300)
    if log:
        log.info("Pushed %s to origin/%s%s", local_ref, remote_branch, " (forced)" if force else "")
