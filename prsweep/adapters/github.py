"""GitHub API adapter."""

import logging
from typing import Any, Dict, List

import requests

from prsweep.adapters.base import AuthenticationError, ForgeAdapter, ForgeError
from prsweep.models import MergeMethod, MergeOutcome, PullRequest, PullRequestFile, Review

LOG = logging.getLogger("prsweep.adapters.github")

# Items per page for list and search endpoints (GitHub maximum)
PAGE_SIZE = 100
# Search API only serves the first 1000 results
MAX_SEARCH_PAGES = 10


def _repo_from_api_url(url: str) -> str:
    """owner/name from https://api.github.com/repos/owner/name."""
    marker = "/repos/"
    idx = url.find(marker)
    if idx < 0:
        return ""
    return url[idx + len(marker) :].strip("/")


def _pr_from_search_item(data: Dict[str, Any]) -> PullRequest:
    return PullRequest(
        repository=_repo_from_api_url(data.get("repository_url") or ""),
        number=data["number"],
        title=data.get("title") or "",
        html_url=data.get("html_url"),
        state=data.get("state", "open"),
        draft=bool(data.get("draft", False)),
    )


def _pr_from_api(repo: str, data: Dict[str, Any]) -> PullRequest:
    head = data.get("head") or {}
    base = data.get("base") or {}
    head_repo = head.get("repo") or {}
    return PullRequest(
        repository=repo,
        number=data["number"],
        title=data.get("title") or "",
        html_url=data.get("html_url"),
        state=data.get("state", "open"),
        draft=bool(data.get("draft", False)),
        head_ref=head.get("ref", ""),
        head_sha=head.get("sha", ""),
        head_repository=head_repo.get("full_name"),
        base_ref=base.get("ref", ""),
        base_sha=base.get("sha", ""),
        mergeable=data.get("mergeable"),
        mergeable_state=data.get("mergeable_state") or "unknown",
    )


class GitHubAdapter(ForgeAdapter):
    """GitHub API implementation of ForgeAdapter."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str = "https://api.github.com",
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs: object) -> requests.Response:
        url = f"{self.api_url}{path}"
        LOG.debug("%s %s", method, path)
        try:
            resp = self._session.request(method, url, timeout=30, **kwargs)
        except requests.RequestException as e:
            raise ForgeError(f"GitHub API request failed: {method} {path}: {e}") from e
        if resp.status_code >= 400:
            msg = resp.text
            try:
                data = resp.json()
                if "message" in data:
                    msg = data["message"]
            except Exception:
                pass
            if resp.status_code == 401:
                raise AuthenticationError(f"Authentication failed: {msg}", status_code=401)
            if resp.status_code == 404:
                raise ForgeError(f"Not found: {path}", status_code=404)
            raise ForgeError(f"GitHub API error {resp.status_code}: {msg}", status_code=resp.status_code)
        return resp

    def _paginate(
        self,
        path: str,
        params: Dict[str, Any] | None = None,
        items_key: str | None = None,
        max_pages: int | None = None,
    ) -> List[Dict[str, Any]]:
        """Fetch pages of PAGE_SIZE until a page comes back short.

        items_key selects the list inside an object response (search
        endpoints wrap results in {"items": [...]}).
        """
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            query = {**(params or {}), "per_page": PAGE_SIZE, "page": page}
            data = self._request("GET", path, params=query).json()
            batch = (data or {}).get(items_key, []) if items_key else (data or [])
            items.extend(batch)
            if len(batch) < PAGE_SIZE:
                break
            if max_pages is not None and page >= max_pages:
                LOG.warning("Stopped paging %s after %s pages", path, page)
                break
            page += 1
        return items

    def get_authenticated_user(self) -> str:
        """Return login of the token owner (GET /user)."""
        data = self._request("GET", "/user").json()
        login = data.get("login")
        if not login:
            raise AuthenticationError("Could not resolve authenticated user")
        return login

    def search_open_pull_requests(self, author: str) -> List[PullRequest]:
        """Search open pull requests by author, 100 per page."""
        query = f"is:pr is:open author:{author}"
        items = self._paginate(
            "/search/issues",
            params={"q": query, "sort": "created", "order": "asc"},
            items_key="items",
            max_pages=MAX_SEARCH_PAGES,
        )
        return [_pr_from_search_item(d) for d in items]

    def get_pull_request(self, repo: str, number: int) -> PullRequest:
        """Fetch a pull request by number."""
        resp = self._request("GET", f"/repos/{repo}/pulls/{number}")
        return _pr_from_api(repo, resp.json())

    def list_pull_request_files(self, repo: str, number: int) -> List[PullRequestFile]:
        """List changed files of a pull request."""
        items = self._paginate(f"/repos/{repo}/pulls/{number}/files")
        return [
            PullRequestFile(
                filename=d["filename"],
                status=d.get("status", "modified"),
                additions=d.get("additions", 0),
                deletions=d.get("deletions", 0),
                changes=d.get("changes", 0),
            )
            for d in items
        ]

    def list_reviews(self, repo: str, number: int) -> List[Review]:
        """List reviews on a pull request in submission order."""
        items = self._paginate(f"/repos/{repo}/pulls/{number}/reviews")
        return [
            Review(
                id=d["id"],
                author=(d.get("user") or {}).get("login", ""),
                state=d.get("state", ""),
            )
            for d in items
        ]

    def merge_pull_request(
        self,
        repo: str,
        number: int,
        method: MergeMethod,
        sha: str | None = None,
    ) -> MergeOutcome:
        """Merge a pull request (PUT /pulls/{n}/merge).

        405 (not mergeable) and 409 (head moved) are returned as a
        non-merged outcome.
        """
        payload: Dict[str, Any] = {"merge_method": MergeMethod(method).value}
        if sha:
            payload["sha"] = sha
        try:
            resp = self._request("PUT", f"/repos/{repo}/pulls/{number}/merge", json=payload)
        except AuthenticationError:
            raise
        except ForgeError as e:
            if e.status_code in (405, 409):
                return MergeOutcome(merged=False, message=str(e))
            raise
        data = resp.json() or {}
        return MergeOutcome(
            merged=bool(data.get("merged", False)),
            sha=data.get("sha"),
            message=data.get("message", ""),
        )

    def close_pull_request(self, repo: str, number: int) -> None:
        """Close a pull request (PATCH state=closed)."""
        self._request("PATCH", f"/repos/{repo}/pulls/{number}", json={"state": "closed"})

    def get_combined_status(self, repo: str, sha: str) -> str:
        """Combined commit status: success, pending, failure or error."""
        resp = self._request("GET", f"/repos/{repo}/commits/{sha}/status")
        return resp.json().get("state", "unknown")

    def is_branch_protected(self, repo: str, branch: str) -> bool:
        """Whether the branch endpoint reports protection rules."""
        resp = self._request("GET", f"/repos/{repo}/branches/{branch}")
        return bool(resp.json().get("protected", False))

    def get_branch_sha(self, repo: str, branch: str) -> str:
        """Return the commit SHA of refs/heads/<branch>."""
        resp = self._request("GET", f"/repos/{repo}/git/ref/heads/{branch}")
        sha = (resp.json().get("object") or {}).get("sha")
        if not sha:
            raise ForgeError(f"Could not get SHA of branch {branch}")
        return sha

    def create_branch(self, repo: str, branch_name: str, sha: str) -> None:
        """Create refs/heads/<branch_name> at sha."""
        self._request("POST", f"/repos/{repo}/git/refs", json={"ref": f"refs/heads/{branch_name}", "sha": sha})

    def update_branch(self, repo: str, branch_name: str, sha: str, force: bool = False) -> None:
        """Move refs/heads/<branch_name> to sha (force allows non fast-forward)."""
        self._request(
            "PATCH",
            f"/repos/{repo}/git/refs/heads/{branch_name}",
            json={"sha": sha, "force": force},
        )

    def delete_branch(self, repo: str, branch_name: str) -> None:
        """Delete refs/heads/<branch_name>."""
        self._request("DELETE", f"/repos/{repo}/git/refs/heads/{branch_name}")
