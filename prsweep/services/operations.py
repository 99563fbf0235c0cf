"""Bulk operations over the open pull requests of one author.

Every operation runs the same procedure: resolve the acting identity, page
through the open pull requests, apply the operation to each one in turn,
pause between pull requests, record a result and save the JSON summary.
Processing is strictly sequential; configuration is passed in once.
"""

import logging
import time
from pathlib import Path
from typing import Callable

from prsweep.adapters.base import AuthenticationError, ForgeAdapter, ForgeError
from prsweep.config import AppConfig
from prsweep.models import (
    MergeMethod,
    MergeOutcome,
    Operation,
    OperationResult,
    PullRequest,
    PullRequestReport,
)
from prsweep.services.backup import BackupError, create_backup, discard_backup, rollback
from prsweep.services.git import (
    GitRunnerError,
    abort_merge,
    checkout_new_branch,
    commit_all,
    conflicted_paths,
    fetch,
    head_sha,
    merge_no_commit,
    push_ref,
)
from prsweep.services.ladder import LEVELS, DeletionLadder, apply_level_to_file
from prsweep.services.resolver import resolve_file
from prsweep.services.results import ResultLog
from prsweep.services.workspace import working_copy

LOG = logging.getLogger("prsweep.operations")

# Exact answer required before closing pull requests
CONFIRM_TOKEN = "CLOSE"

# Local branch used while resolving conflicts in a working copy
WORK_BRANCH = "prsweep-work"

_REVIEW_VERDICTS = ("APPROVED", "CHANGES_REQUESTED", "DISMISSED")


def _pr_ref(number: int) -> str:
    return f"origin/pr-{number}"


def count_review_verdicts(reviews: list) -> tuple[int, int]:
    """(approvals, changes requested) counting each reviewer's latest verdict."""
    latest: dict[str, str] = {}
    for review in reviews:
        if review.state in _REVIEW_VERDICTS:
            latest[review.author] = review.state
    approvals = sum(1 for s in latest.values() if s == "APPROVED")
    changes = sum(1 for s in latest.values() if s == "CHANGES_REQUESTED")
    return approvals, changes


class BulkRunner:
    """Runs one operation over all open pull requests of the author.

    Args:
        adapter: Forge API adapter.
        config: Loaded configuration (CLI overrides already applied).
        token: Credential for cloning; defaults to config.token_resolved.
    """

    def __init__(
        self,
        adapter: ForgeAdapter,
        config: AppConfig,
        token: str | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.adapter = adapter
        self.config = config
        self.settings = config.run
        self.token = token if token is not None else config.token_resolved
        self._log = log or LOG

    def run(self, operation: Operation, confirmation: str | None = None) -> ResultLog:
        """Run operation and save its results.

        Closing requires confirmation == CONFIRM_TOKEN; anything else
        returns an empty log without touching the forge.

        Raises:
            AuthenticationError: If the credential is rejected.
        """
        operation = Operation(operation)
        results = ResultLog(operation)
        if operation is Operation.CLOSE and confirmation != CONFIRM_TOKEN:
            self._log.warning("Close not confirmed (expected %r); no pull request was touched", CONFIRM_TOKEN)
            return results

        login = self.adapter.get_authenticated_user()
        author = self.config.forge.author or login
        self._log.info(
            "Authenticated as %s; operation=%s author=%s dry_run=%s",
            login,
            operation.value,
            author,
            self.settings.dry_run,
        )

        try:
            prs = self.adapter.search_open_pull_requests(author)
        except AuthenticationError:
            raise
        except ForgeError as e:
            self._log.error("Search for open pull requests failed: %s", e)
            prs = []
        self._log.info("Found %d open pull request(s)", len(prs))

        handler = self._handler(operation)
        try:
            for index, pr in enumerate(prs, start=1):
                self._log.info("[%d/%d] %s %s", index, len(prs), pr.key, pr.title)
                record = self._process(operation, handler, pr)
                if record is not None:
                    results.add(record)
                self._pause()
        finally:
            # Partial runs (interrupt, fatal error) still leave their audit file
            results.save(self.settings.output_dir)
        self._log.info(results.summary())
        return results

    def _handler(self, operation: Operation) -> Callable[[PullRequest], OperationResult | PullRequestReport]:
        return {
            Operation.STATUS: self.status,
            Operation.MERGE: self.merge,
            Operation.CLOSE: self.close,
            Operation.RESOLVE: self.resolve,
            Operation.FORCE: self.force,
        }[operation]

    def _process(
        self,
        operation: Operation,
        handler: Callable[[PullRequest], OperationResult | PullRequestReport],
        pr: PullRequest,
    ) -> OperationResult | PullRequestReport | None:
        try:
            return handler(pr)
        except AuthenticationError:
            raise
        except ForgeError as e:
            self._log.warning("%s: API call failed: %s", pr.key, e)
            if operation is Operation.STATUS:
                return None
            return self._failed(pr, f"API error: {e}")
        except GitRunnerError as e:
            self._log.error("%s: git failed: %s", pr.key, e)
            return self._failed(pr, f"git error: {e}")

    def _pause(self) -> None:
        if self.settings.request_delay_seconds > 0:
            time.sleep(self.settings.request_delay_seconds)

    def _result(
        self,
        pr: PullRequest,
        success: bool,
        message: str = "",
        method: MergeMethod | None = None,
        dry_run: bool = False,
    ) -> OperationResult:
        return OperationResult(
            repository=pr.repository,
            number=pr.number,
            title=pr.title,
            success=success,
            merge_method=method,
            url=pr.html_url,
            message=message,
            dry_run=dry_run,
        )

    def _failed(self, pr: PullRequest, message: str) -> OperationResult:
        return self._result(pr, success=False, message=message)

    def _dry_run(self, pr: PullRequest, message: str, method: MergeMethod | None = None) -> OperationResult:
        self._log.info("%s: dry run, would %s", pr.key, message)
        return self._result(pr, success=False, message=f"dry run: would {message}", method=method, dry_run=True)

    def refresh(self, pr: PullRequest) -> PullRequest:
        """Fetch details, re-fetching while the forge still computes
        mergeability."""
        detail = self.adapter.get_pull_request(pr.repository, pr.number)
        attempts = 0
        while detail.mergeable is None and attempts < self.settings.mergeable_retries:
            attempts += 1
            self._log.debug("%s: mergeable not computed yet, retry %d", pr.key, attempts)
            self._pause()
            detail = self.adapter.get_pull_request(pr.repository, pr.number)
        return detail

    def _merge_once(self, pr: PullRequest, method: MergeMethod, sha: str | None = None) -> MergeOutcome:
        outcome = self.adapter.merge_pull_request(pr.repository, pr.number, method, sha=sha)
        if outcome.merged:
            self._log.info("%s: merged (%s)", pr.key, method.value)
        else:
            self._log.warning("%s: not merged with %s: %s", pr.key, method.value, outcome.message)
        return outcome

    # status

    def status(self, pr: PullRequest) -> PullRequestReport:
        """Read-only report: mergeability, CI, reviews, diff size, base
        protection."""
        detail = self.refresh(pr)
        files = self.adapter.list_pull_request_files(pr.repository, pr.number)
        approvals, changes = count_review_verdicts(self.adapter.list_reviews(pr.repository, pr.number))
        ci_state = self.adapter.get_combined_status(pr.repository, detail.head_sha) if detail.head_sha else "unknown"
        protected = self.adapter.is_branch_protected(pr.repository, detail.base_ref) if detail.base_ref else False
        report = PullRequestReport(
            repository=detail.repository,
            number=detail.number,
            title=detail.title,
            url=detail.html_url,
            mergeable=detail.mergeable,
            mergeable_state=detail.mergeable_state,
            ci_state=ci_state,
            approvals=approvals,
            changes_requested=changes,
            changed_files=len(files),
            additions=sum(f.additions for f in files),
            deletions=sum(f.deletions for f in files),
            base_protected=protected,
            files=files,
        )
        self._log.info(
            "%s: mergeable=%s state=%s ci=%s approvals=%d +%d/-%d",
            pr.key,
            report.mergeable,
            report.mergeable_state,
            report.ci_state,
            report.approvals,
            report.additions,
            report.deletions,
        )
        return report

    # merge

    def merge(self, pr: PullRequest) -> OperationResult:
        """Merge once with the configured method; fall back to force only
        when enabled."""
        method = self.settings.merge_method
        detail = self.refresh(pr)
        if self.settings.dry_run:
            return self._dry_run(detail, f"merge with {method.value}", method)
        outcome = self._merge_once(detail, method, sha=detail.head_sha or None)
        if outcome.merged:
            return self._result(detail, success=True, message=outcome.message, method=method)
        if not self.settings.force:
            return self._result(detail, success=False, message=outcome.message or "not merged", method=method)
        self._log.info("%s: falling back to force-merge", pr.key)
        return self._force_detail(detail)

    # close

    def close(self, pr: PullRequest) -> OperationResult:
        """Close without merging."""
        if self.settings.dry_run:
            return self._dry_run(pr, "close")
        self.adapter.close_pull_request(pr.repository, pr.number)
        self._log.info("%s: closed", pr.key)
        return self._result(pr, success=True, message="closed")

    # resolve

    def resolve(self, pr: PullRequest) -> OperationResult:
        """Resolve conflicts locally and retry, escalating through the
        deletion ladder."""
        method = self.settings.merge_method
        detail = self.refresh(pr)
        if self.settings.dry_run:
            return self._dry_run(detail, f"resolve conflicts and merge with {method.value}", method)
        outcome = self._merge_once(detail, method, sha=detail.head_sha or None)
        if outcome.merged:
            return self._result(detail, success=True, message=outcome.message, method=method)
        if detail.is_fork:
            return self._failed(detail, f"head branch lives in fork {detail.head_repository}; cannot push fixes")

        files = self.adapter.list_pull_request_files(detail.repository, detail.number)
        changed = [f.filename for f in files if f.status != "removed"]
        with working_copy(
            detail.repository,
            detail.number,
            self.config.forge.clone_url,
            self.token,
            self.settings.local_path,
        ) as repo_dir:
            sha = self._merge_pr_locally(
                detail, repo_dir, f"Resolve conflicts with {detail.base_ref} (#{detail.number})"
            )
            push_ref(detail.head_ref, repo_dir=repo_dir, log=self._log)
            self._pause()
            if self._merge_once(detail, method).merged:
                return self._result(
                    detail,
                    success=True,
                    message=f"merged after conflict resolution ({sha[:8]})",
                    method=method,
                )

            def attempt(level: int) -> bool:
                removed = sum(apply_level_to_file(repo_dir / name, level) for name in changed)
                if not removed:
                    self._log.info("%s: level %d removed nothing", detail.key, level)
                    return False
                commit = commit_all(
                    f"Remove {LEVELS[level - 1].name} (level {level}) for #{detail.number}",
                    self.config.git.name,
                    self.config.git.email,
                    repo_dir=repo_dir,
                    log=self._log,
                )
                self._log.info("%s: level %d removed %d line(s) in %s", detail.key, level, removed, commit)
                push_ref(detail.head_ref, repo_dir=repo_dir, log=self._log)
                self._pause()
                return self._merge_once(detail, method).merged

            ladder = DeletionLadder(self.settings.max_iterations, log=self._log).run(attempt)
        if ladder.success:
            return self._result(
                detail,
                success=True,
                message=f"merged after deletion level {ladder.final_level}",
                method=method,
            )
        return self._failed(
            detail,
            f"deletion ladder exhausted after {ladder.iterations} iteration(s) at level {ladder.final_level}; "
            f"branch {detail.head_ref} left modified",
        )

    def _merge_pr_locally(self, pr: PullRequest, repo_dir: Path, message: str, strict: bool = False) -> str:
        """Check out base, merge the pull request head without committing,
        strip conflict markers (keeping the pull request side) and commit.

        With strict, files whose markers could not be stripped abort the
        merge instead of being committed.

        Returns:
            SHA of the checked out work branch after the commit.
        """
        fetch([f"pull/{pr.number}/head:refs/remotes/{_pr_ref(pr.number)}"], repo_dir=repo_dir, log=self._log)
        checkout_new_branch(WORK_BRANCH, f"origin/{pr.base_ref}", repo_dir=repo_dir, log=self._log)
        if not merge_no_commit(_pr_ref(pr.number), repo_dir=repo_dir, log=self._log):
            leftovers = []
            for path in conflicted_paths(repo_dir=repo_dir, log=self._log):
                if not resolve_file(repo_dir / path):
                    leftovers.append(path)
            if leftovers and strict:
                abort_merge(repo_dir=repo_dir, log=self._log)
                raise GitRunnerError(f"unresolved conflicts in {', '.join(leftovers)}")
        sha = commit_all(message, self.config.git.name, self.config.git.email, repo_dir=repo_dir, log=self._log)
        return sha or head_sha(repo_dir=repo_dir, log=self._log)

    # force

    def force(self, pr: PullRequest) -> OperationResult:
        """Force-merge with backup of the base branch and rollback on
        failure."""
        return self._force_detail(self.refresh(pr))

    def _force_detail(self, pr: PullRequest) -> OperationResult:
        """Back up base, try every merge method, then merge locally onto base.

        Rollback only runs once this run has pushed onto base, and only while
        base still points at the pushed commit.
        """
        if self.settings.dry_run:
            return self._dry_run(pr, f"back up {pr.base_ref} and force-merge")
        try:
            if self.adapter.is_branch_protected(pr.repository, pr.base_ref):
                self._log.warning("%s: base branch %s is protected; force-merge may be rejected", pr.key, pr.base_ref)
        except AuthenticationError:
            raise
        except ForgeError as e:
            self._log.debug("%s: could not read protection of %s: %s", pr.key, pr.base_ref, e)

        try:
            backup = create_backup(self.adapter, pr.repository, pr.base_ref, pr.number)
        except BackupError as e:
            self._log.error("%s: %s; force-merge aborted", pr.key, e)
            return self._failed(pr, f"backup failed: {e}")

        succeeded = False
        pushed: str | None = None
        try:
            record = self._merge_via_api(pr)
            if record is None:
                self._log.info("%s: all merge methods rejected; merging locally onto %s", pr.key, pr.base_ref)
                with working_copy(
                    pr.repository,
                    pr.number,
                    self.config.forge.clone_url,
                    self.token,
                    self.settings.local_path,
                ) as repo_dir:
                    sha = self._merge_pr_locally(pr, repo_dir, f"Force-merge #{pr.number}: {pr.title}", strict=True)
                    push_ref(pr.base_ref, repo_dir=repo_dir, log=self._log)
                    pushed = sha
                record = self._result(pr, success=True, message=f"force-merged locally onto {pr.base_ref} at {sha[:8]}")
            succeeded = record.success
        except AuthenticationError:
            raise
        except (ForgeError, GitRunnerError) as e:
            self._log.error("%s: force-merge failed: %s", pr.key, e)
            record = self._failed(pr, f"force-merge failed: {e}")
        finally:
            if succeeded:
                if not self.settings.keep_backups:
                    discard_backup(self.adapter, pr.repository, backup)
            elif pushed is None:
                self._log.info("%s: %s was not changed; keeping %s", pr.key, pr.base_ref, backup)
            elif rollback(self.adapter, pr.repository, pr.base_ref, backup, expected_sha=pushed):
                self._log.warning("%s: base branch restored from %s", pr.key, backup)
        if not succeeded:
            record.message = f"{record.message}; backup {backup}"
        return record

    def _merge_via_api(self, pr: PullRequest) -> OperationResult | None:
        """First merge method the forge accepts, or None if all are rejected."""
        for method in self.settings.force_methods:
            if self._merge_once(pr, method).merged:
                return self._result(pr, success=True, message="merged via API", method=method)
            self._pause()
        return None
