"""Heuristic removal of three-way merge conflict markers.

Every hunk

    <<<<<<< ours
    current side (dropped)
    ||||||| base            (diff3 only, dropped)
    =======
    incoming side (kept)
    >>>>>>> theirs

is replaced by its incoming side. This is text substitution only: nothing
checks that the result still parses in the file's language, and nested or
unbalanced markers give whatever the pattern happens to match.
"""

import logging
import re
from pathlib import Path

LOG = logging.getLogger("prsweep.services.resolver")

MARKERS = ("<<<<<<<", "=======", ">>>>>>>")

_CONFLICT_RE = re.compile(
    r"^<<<<<<<(?:[ \t][^\n]*)?\r?\n"
    r".*?"
    r"^=======[ \t]*\r?\n"
    r"(?P<incoming>.*?)"
    r"^>>>>>>>(?:[ \t][^\n]*)?(?:\r?\n|\Z)",
    re.MULTILINE | re.DOTALL,
)
_BLANK_RUN_RE = re.compile(r"(\r?\n)(?:[ \t]*\r?\n){2,}")


def has_conflict_markers(text: str) -> bool:
    """True if text contains a line starting with a conflict marker."""
    return any(re.search(rf"^{re.escape(m)}", text, re.MULTILINE) for m in MARKERS)


def resolve_conflict_markers(text: str) -> tuple[str, int]:
    """Keep the incoming side of every conflict hunk.

    Blank-line runs are collapsed to a single blank line once at least one
    hunk was removed. Text without hunks is returned unchanged.

    Returns:
        (resolved text, number of hunks removed)
    """
    resolved, count = _CONFLICT_RE.subn(lambda m: m.group("incoming"), text)
    if count == 0:
        return text, 0
    resolved = _BLANK_RUN_RE.sub(r"\1\1", resolved)
    return resolved, count


def resolve_file(path: Path) -> int:
    """Rewrite path in place with conflicts resolved.

    Line endings are preserved. Files that are not UTF-8 text are skipped.

    Returns:
        Number of hunks removed (0 if the file was left untouched).
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
    except UnicodeDecodeError:
        LOG.warning("Skipping non-text file %s", path)
        return 0
    resolved, count = resolve_conflict_markers(text)
    if count:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(resolved)
        LOG.info("Resolved %d conflict(s) in %s", count, path.name)
    elif has_conflict_markers(text):
        LOG.warning("Unbalanced conflict markers left in %s", path.name)
    return count
