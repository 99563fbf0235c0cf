"""Disposable working copies, one per pull request.

The clone is exclusively owned by the running process while one pull
request is processed and is deleted before moving on, also on failure.
"""

import logging
import re
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from prsweep.services.git import clone_repository

LOG = logging.getLogger("prsweep.services.workspace")

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


def clone_url(template: str, repo: str, token: str | None) -> str:
    """Fill the clone URL template ({token}, {repo})."""
    return template.format(token=token or "", repo=repo)


def working_copy_dir(parent: Path, repo: str, number: int) -> Path:
    """Directory for one pull request's clone: <parent>/<owner>-<name>-<number>."""
    safe = _UNSAFE_CHARS_RE.sub("-", repo.replace("/", "-")).strip("-")
    return Path(parent) / f"{safe}-{number}"


def _remove(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
    if path.exists():
        LOG.warning("Could not fully delete working copy %s", path)
    else:
        LOG.debug("Deleted working copy %s", path)


@contextmanager
def working_copy(
    repo: str,
    number: int,
    url_template: str,
    token: str | None,
    local_path: Path | None = None,
) -> Iterator[Path]:
    """Clone repo for pull request number, yield the directory, delete it.

    local_path overrides the parent directory (a temporary directory is
    used otherwise). A stale directory from an earlier run is removed
    first.
    """
    created_parent: Path | None = None
    if local_path is None:
        created_parent = Path(tempfile.mkdtemp(prefix="prsweep-"))
        parent = created_parent
    else:
        parent = Path(local_path)
    dest = working_copy_dir(parent, repo, number)
    if dest.exists():
        LOG.info("Removing stale working copy %s", dest)
        _remove(dest)
    try:
        clone_repository(clone_url(url_template, repo, token), dest, log=LOG, secret=token)
        yield dest
    finally:
        _remove(dest)
        if created_parent is not None:
            _remove(created_parent)
