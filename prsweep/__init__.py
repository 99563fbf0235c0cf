"""prsweep: bulk operations over your open pull requests."""

__version__ = "0.1.0"
