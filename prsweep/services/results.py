"""Per-run result records and their JSON summary file.

The file is a human-facing audit artifact: a JSON array written once at
the end of a run and never read back.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import List

from prsweep.models import Operation, OperationResult, PullRequestReport

LOG = logging.getLogger("prsweep.services.results")


def results_file_path(output_dir: Path, operation: Operation, now: datetime | None = None) -> Path:
    """<output_dir>/<operation>-results-<YYYYmmdd-HHMMSS>.json."""
    now = now or datetime.now(UTC)
    op = Operation(operation).value
    return Path(output_dir) / f"{op}-results-{now.strftime('%Y%m%d-%H%M%S')}.json"


class ResultLog:
    """Accumulates one record per pull request for a single operation."""

    def __init__(self, operation: Operation) -> None:
        self.operation = Operation(operation)
        self.records: List[OperationResult | PullRequestReport] = []

    def add(self, record: OperationResult | PullRequestReport) -> None:
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)

    @staticmethod
    def _succeeded(record: OperationResult | PullRequestReport) -> bool:
        if isinstance(record, PullRequestReport):
            return record.mergeable is True
        return record.success

    def tally(self) -> dict[str, int]:
        """Counts: total, succeeded, failed, dry_run.

        For status reports "succeeded" means mergeable.
        """
        dry = [r for r in self.records if getattr(r, "dry_run", False)]
        live = [r for r in self.records if not getattr(r, "dry_run", False)]
        succeeded = sum(1 for r in live if self._succeeded(r))
        return {
            "total": len(self.records),
            "succeeded": succeeded,
            "failed": len(live) - succeeded,
            "dry_run": len(dry),
        }

    def has_failures(self) -> bool:
        """True if a live operation failed.

        Status reports describe pull requests and never count as failures,
        even when a pull request is not mergeable.
        """
        if self.operation is Operation.STATUS:
            return False
        return self.tally()["failed"] > 0

    def summary(self) -> str:
        t = self.tally()
        line = f"{self.operation.value}: {t['total']} pull request(s), {t['succeeded']} succeeded, {t['failed']} failed"
        if t["dry_run"]:
            line += f", {t['dry_run']} dry run"
        return line

    def save(self, output_dir: Path, now: datetime | None = None) -> Path:
        """Write records as a JSON array; creates output_dir if needed."""
        path = results_file_path(output_dir, self.operation, now)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump(mode="json") for r in self.records]
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        LOG.info("Saved %d result(s) to %s", len(self.records), path)
        return path
