"""Abstract base class for forge adapters."""

from abc import ABC, abstractmethod
from typing import List

from prsweep.models import MergeMethod, MergeOutcome, PullRequest, PullRequestFile, Review


class ForgeError(Exception):
    """Raised when a forge API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ForgeError):
    """Raised when the forge rejects the credential."""

    pass


class ForgeAdapter(ABC):
    """Abstract interface for Git hosting platforms with a pull request API."""

    @abstractmethod
    def get_authenticated_user(self) -> str:
        """Return the login of the credential owner.

        Raises:
            AuthenticationError: If the credential is rejected
        """
        ...

    @abstractmethod
    def search_open_pull_requests(self, author: str) -> List[PullRequest]:
        """List open pull requests authored by author across all
        repositories.

        Search results only carry identity fields (repository, number,
        title, url); call get_pull_request for refs and mergeability.
        """
        ...

    @abstractmethod
    def get_pull_request(self, repo: str, number: int) -> PullRequest:
        """Fetch pull request details (refs, SHAs, mergeable flag/state)."""
        ...

    @abstractmethod
    def list_pull_request_files(self, repo: str, number: int) -> List[PullRequestFile]:
        """List changed files with per-file addition/deletion counts."""
        ...

    @abstractmethod
    def list_reviews(self, repo: str, number: int) -> List[Review]:
        """List reviews on a pull request."""
        ...

    @abstractmethod
    def merge_pull_request(
        self,
        repo: str,
        number: int,
        method: MergeMethod,
        sha: str | None = None,
    ) -> MergeOutcome:
        """Merge a pull request.

        A merge rejected by the forge (conflicts, failing checks, missing
        approvals) returns a non-merged outcome instead of raising.
        """
        ...

    @abstractmethod
    def close_pull_request(self, repo: str, number: int) -> None:
        """Close a pull request without merging."""
        ...

    def get_combined_status(self, repo: str, sha: str) -> str:
        """Aggregate CI state of a commit. Override if needed."""
        return "unknown"

    def is_branch_protected(self, repo: str, branch: str) -> bool:
        """Whether branch has protection rules. Override if needed."""
        return False

    def get_branch_sha(self, repo: str, branch: str) -> str:
        """Commit SHA a branch points to. Override if needed."""
        raise NotImplementedError("get_branch_sha")

    def create_branch(self, repo: str, branch_name: str, sha: str) -> None:
        """Create a branch at sha. Override if needed."""
        raise NotImplementedError("create_branch")

    def update_branch(self, repo: str, branch_name: str, sha: str, force: bool = False) -> None:
        """Move a branch to sha. Override if needed."""
        raise NotImplementedError("update_branch")

    def delete_branch(self, repo: str, branch_name: str) -> None:
        """Delete a branch. Override if needed."""
        raise NotImplementedError("delete_branch")
