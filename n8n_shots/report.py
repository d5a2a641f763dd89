"""Run report: counters and per-workflow outcomes of a screenshot run."""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass(frozen=True)
class ScreenshotRecord:
    workflow: str
    category: str
    filename: str
    url: str


@dataclass(frozen=True)
class ErrorRecord:
    workflow: str
    error: str


@dataclass(frozen=True)
class ItemOutcome:
    """Result of processing one workflow."""

    workflow: str
    status: str
    screenshot: Optional[ScreenshotRecord] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, record: ScreenshotRecord) -> "ItemOutcome":
        return cls(workflow=record.workflow, status=SUCCEEDED, screenshot=record)

    @classmethod
    def failed(cls, workflow: str, error: str) -> "ItemOutcome":
        return cls(workflow=workflow, status=FAILED, error=error)

    @classmethod
    def skipped(cls, workflow: str) -> "ItemOutcome":
        return cls(workflow=workflow, status=SKIPPED)


@dataclass
class RunReport:
    """Aggregate of a run, owned and updated by the pipeline only.

    ``succeeded + failed + skipped == processed <= total`` holds after
    every ``record`` call.
    """

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    screenshots: List[ScreenshotRecord] = field(default_factory=list)
    errors: List[ErrorRecord] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.skipped

    @property
    def remaining(self) -> int:
        return self.total - self.processed

    def record(self, outcome: ItemOutcome) -> "RunReport":
        """Fold one item outcome into the counters."""
        if self.processed >= self.total:
            raise ValueError(f"All {self.total} workflows are already recorded")

        if outcome.status == SUCCEEDED:
            self.succeeded += 1
            if outcome.screenshot is not None:
                self.screenshots.append(outcome.screenshot)
        elif outcome.status == FAILED:
            self.failed += 1
            self.errors.append(ErrorRecord(workflow=outcome.workflow, error=outcome.error or "Unknown error"))
        elif outcome.status == SKIPPED:
            self.skipped += 1
        else:
            raise ValueError(f"Unknown outcome status: {outcome.status}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "stats": {
                "total": self.total,
                "succeeded": self.succeeded,
                "failed": self.failed,
                "skipped": self.skipped,
            },
            "screenshots": [asdict(s) for s in self.screenshots],
            "errors": [asdict(e) for e in self.errors],
        }

    def write(self, path: Path) -> Path:
        """Write the report as JSON, creating parent folders."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug(f"Report written to: {path}")
        return path
