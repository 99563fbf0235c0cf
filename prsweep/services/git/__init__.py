"""Git operations: clone, branches, merges, commits, push."""

from prsweep.services.git._run import GitRunnerError
from prsweep.services.git.branches import checkout_new_branch
from prsweep.services.git.commits import commit_all, head_sha
from prsweep.services.git.merge import abort_merge, conflicted_paths, merge_no_commit
from prsweep.services.git.remote import clone_repository, fetch, push_ref

__all__ = [
    "GitRunnerError",
    "abort_merge",
    "checkout_new_branch",
    "clone_repository",
    "commit_all",
    "conflicted_paths",
    "fetch",
    "head_sha",
    "merge_no_commit",
    "push_ref",
]
