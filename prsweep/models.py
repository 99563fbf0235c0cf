"""Data models for pull requests, reviews, merge outcomes and run results."""

from enum import Enum

from pydantic import BaseModel, Field


class MergeMethod(str, Enum):
    """Merge strategies accepted by the forge merge endpoint."""

    MERGE = "merge"
    SQUASH = "squash"
    REBASE = "rebase"


class Operation(str, Enum):
    """Bulk operations selectable from the command line."""

    STATUS = "status"
    MERGE = "merge"
    CLOSE = "close"
    RESOLVE = "resolve"
    FORCE = "force"


class PullRequest(BaseModel):
    """Pull request, identified by (repository, number).

    ``mergeable`` is None while the forge is still computing it.
    """

    repository: str
    number: int
    title: str = ""
    html_url: str | None = None
    state: str = "open"
    draft: bool = False
    head_ref: str = ""
    head_sha: str = ""
    head_repository: str | None = None
    base_ref: str = ""
    base_sha: str = ""
    mergeable: bool | None = None
    mergeable_state: str = "unknown"

    @property
    def key(self) -> str:
        return f"{self.repository}#{self.number}"

    @property
    def is_fork(self) -> bool:
        return bool(self.head_repository) and self.head_repository != self.repository


class PullRequestFile(BaseModel):
    """Changed file of a pull request with per-file line counts."""

    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0


class Review(BaseModel):
    """Pull request review."""

    id: int
    author: str = ""
    state: str


class MergeOutcome(BaseModel):
    """Answer of the merge endpoint."""

    merged: bool
    sha: str | None = None
    message: str = ""


class OperationResult(BaseModel):
    """One record per pull request per run (JSON audit artifact)."""

    repository: str
    number: int
    title: str = ""
    success: bool
    merge_method: MergeMethod | None = None
    url: str | None = None
    message: str = ""
    dry_run: bool = False


class PullRequestReport(BaseModel):
    """Read-only status of a pull request (status operation)."""

    repository: str
    number: int
    title: str = ""
    url: str | None = None
    mergeable: bool | None = None
    mergeable_state: str = "unknown"
    ci_state: str = "unknown"
    approvals: int = 0
    changes_requested: int = 0
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0
    base_protected: bool = False
    files: list[PullRequestFile] = Field(default_factory=list)
