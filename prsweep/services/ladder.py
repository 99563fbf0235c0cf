"""Escalating deletion ladder.

When a merge keeps failing, lines matching an expanding set of suspicious
patterns are deleted from the pull request's files and the merge is retried.
Levels are cumulative: level n applies the patterns of levels 1..n. The
deletion is purely pattern based and can remove code that never conflicted;
an exhausted ladder leaves the branch as it is.
"""

import logging
import re
from pathlib import Path
from typing import Callable, List, Pattern, Tuple

from pydantic import BaseModel, Field

LOG = logging.getLogger("prsweep.services.ladder")


class DeletionLevel:
    """One rung of the ladder: a name and the line patterns it adds."""

    def __init__(self, level: int, name: str, patterns: Tuple[Pattern[str], ...]) -> None:
        self.level = level
        self.name = name
        self.patterns = patterns


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


LEVELS: Tuple[DeletionLevel, ...] = (
    DeletionLevel(
        1,
        "conflict markers",
        _compile(r"^(?:<<<<<<<|\|\|\|\|\|\|\||=======|>>>>>>>)(?:[ \t].*)?$"),
    ),
    DeletionLevel(
        2,
        "debugger statements",
        _compile(
            r"^\s*debugger;?\s*$",
            r"^\s*(?:import pdb;\s*)?pdb\.set_trace\(\)\s*$",
            r"^\s*breakpoint\(\)\s*$",
            r"^\s*binding\.pry\s*$",
        ),
    ),
    DeletionLevel(
        3,
        "debug prints",
        _compile(
            r"^\s*console\.(?:log|debug)\(.*\);?\s*$",
            r"""^\s*print\(\s*f?["'](?:DEBUG|debug)\b.*\)\s*$""",
            r"^\s*(?:System\.out\.println|fmt\.Println|println!?)\(.*\);?\s*$",
        ),
    ),
    DeletionLevel(
        4,
        "version control artifacts",
        _compile(
            r"^diff --git .*$",
            r"^index [0-9a-f]{7,}\.\.[0-9a-f]{7,}.*$",
            r"^(?:---|\+\+\+) [ab]/.*$",
            r"^@@ -\d+(?:,\d+)? \+\d+(?:,\d+)? @@.*$",
        ),
    ),
    DeletionLevel(
        5,
        "disabled tests",
        _compile(
            r"^\s*@(?:pytest\.mark\.skip|unittest\.skip|Disabled|Ignore)\b.*$",
            r"^\s*(?:it|test|describe)\.skip\(.*$",
            r"^\s*x(?:it|describe|test)\(.*$",
        ),
    ),
    DeletionLevel(
        6,
        "todo comments",
        _compile(r"^\s*(?:#|//|/?\*|--)\s*(?:TODO|FIXME|XXX|HACK)\b.*$"),
    ),
    DeletionLevel(
        7,
        "logging calls",
        _compile(
            r"^\s*console\.\w+\(.*\);?\s*$",
            r"^\s*(?:self\.)?(?:log|logger|LOG|LOGGER|logging)\.(?:debug|trace)\(.*\);?\s*$",
        ),
    ),
    DeletionLevel(
        8,
        "empty blocks",
        _compile(r"^\s*\{\s*\}\s*;?\s*$", r"^\s*pass\s*$"),
    ),
    DeletionLevel(
        9,
        "comments",
        _compile(r"^\s*#(?!!).*$", r"^\s*//.*$"),
    ),
    DeletionLevel(
        10,
        "blank lines",
        _compile(r"^\s*$"),
    ),
)

MAX_LEVEL = len(LEVELS)


def patterns_for_level(level: int) -> List[Pattern[str]]:
    """All patterns active at level (cumulative)."""
    if level < 1 or level > MAX_LEVEL:
        raise ValueError(f"Deletion level must be 1..{MAX_LEVEL}, got {level}")
    patterns: List[Pattern[str]] = []
    for rung in LEVELS[:level]:
        patterns.extend(rung.patterns)
    return patterns


def apply_level(text: str, level: int) -> tuple[str, int]:
    """Delete every line matching a pattern active at level.

    Returns:
        (remaining text, number of deleted lines)
    """
    patterns = patterns_for_level(level)
    kept: List[str] = []
    removed = 0
    for line in text.splitlines(keepends=True):
        bare = line.rstrip("\r\n")
        if any(p.match(bare) for p in patterns):
            removed += 1
            continue
        kept.append(line)
    return "".join(kept), removed


def apply_level_to_file(path: Path, level: int) -> int:
    """Apply level to a file in place; returns deleted line count.

    Missing and non-text files are skipped.
    """
    path = Path(path)
    if not path.is_file():
        return 0
    try:
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
    except UnicodeDecodeError:
        LOG.debug("Skipping non-text file %s", path)
        return 0
    remaining, removed = apply_level(text, level)
    if removed:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(remaining)
    return removed


def level_for_iteration(iteration: int) -> int:
    """Level used at a 1-based iteration; stays at the top once reached."""
    return min(max(iteration, 1), MAX_LEVEL)


class LadderResult(BaseModel):
    """Outcome of a ladder run."""

    success: bool
    levels: List[int] = Field(default_factory=list)

    @property
    def iterations(self) -> int:
        return len(self.levels)

    @property
    def final_level(self) -> int | None:
        return self.levels[-1] if self.levels else None


class DeletionLadder:
    """Escalates deletion level per iteration until attempt succeeds.

    attempt(level) applies the level and retries the merge; it returns
    True when the merge went through.
    """

    def __init__(self, max_iterations: int = 10, log: logging.Logger | None = None) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        self.max_iterations = max_iterations
        self._log = log or LOG

    def run(self, attempt: Callable[[int], bool]) -> LadderResult:
        result = LadderResult(success=False)
        for iteration in range(1, self.max_iterations + 1):
            level = level_for_iteration(iteration)
            result.levels.append(level)
            self._log.info(
                "Deletion ladder iteration %d/%d: level %d (%s)",
                iteration,
                self.max_iterations,
                level,
                LEVELS[level - 1].name,
            )
            if attempt(level):
                result.success = True
                return result
        self._log.warning("Deletion ladder exhausted after %d iteration(s)", self.max_iterations)
        return result
