"""Forge adapters."""

from prsweep.adapters.base import AuthenticationError, ForgeAdapter, ForgeError
from prsweep.adapters.github import GitHubAdapter

__all__ = ["AuthenticationError", "ForgeAdapter", "ForgeError", "GitHubAdapter"]
