"""JSON report of a sync run.

Every executed item becomes one report entry. Reports are written as
sync-report-YYYYmmdd-HHMMSS.json and only the most recent ones are kept.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.storyblok_client.models import Story

from .errors import FilesystemError

logger = logging.getLogger(__name__)

REPORT_PREFIX = "sync-report-"
KEEP_REPORTS = 10


@dataclass
class ReportEntry:
    """Result of a single synced item.

    Attributes:
        slug: Full slug of the source item
        status: "success", "warning" or "failure"
        operation: "create", "update" or "skip"
        error: Error text for failures
        warning: Warning text for warnings
        duration_ms: Wall time of the item
        source_story: Source story (failures and warnings only)
        target_story: Resulting target story
        rate_limit_429: Retries caused by throttling while syncing the item
    """
    slug: str
    status: str
    operation: str = ""
    error: str = ""
    warning: str = ""
    duration_ms: int = 0
    source_story: Optional[Dict[str, Any]] = None
    target_story: Optional[Dict[str, Any]] = None
    rate_limit_429: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v not in (None, "", 0) or k in ('slug', 'status')}


@dataclass
class ReportSummary:
    total: int = 0
    success: int = 0
    warning: int = 0
    failure: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0


def _story_dict(story: Optional[Story]) -> Optional[Dict[str, Any]]:
    return story.to_dict() if story is not None else None


class SyncReport:
    """Collects entries of one run and writes them as JSON.

    Example:
        >>> report = SyncReport("Source", "Target")
        >>> report.add_success("app/home", "create", 120, target_story)
        >>> report.save("./reports")
    """

    def __init__(self, source_space: str = "", target_space: str = ""):
        self.source_space = source_space
        self.target_space = target_space
        self.start_time = datetime.now()
        self._start = time.monotonic()
        self.end_time: Optional[datetime] = None
        self.duration_ms = 0
        self.entries: List[ReportEntry] = []
        self.summary = ReportSummary()

    def add_success(self, slug: str, operation: str, duration_ms: int,
                    target_story: Optional[Story] = None, rate_limit_429: int = 0) -> None:
        self.entries.append(ReportEntry(
            slug=slug,
            status="success",
            operation=operation,
            duration_ms=duration_ms,
            target_story=_story_dict(target_story),
            rate_limit_429=rate_limit_429,
        ))

    def add_warning(self, slug: str, operation: str, warning: str, duration_ms: int,
                    source_story: Optional[Story] = None, target_story: Optional[Story] = None,
                    rate_limit_429: int = 0) -> None:
        self.entries.append(ReportEntry(
            slug=slug,
            status="warning",
            operation=operation,
            warning=warning,
            duration_ms=duration_ms,
            source_story=_story_dict(source_story),
            target_story=_story_dict(target_story),
            rate_limit_429=rate_limit_429,
        ))

    def add_error(self, slug: str, operation: str, error: str, duration_ms: int,
                  source_story: Optional[Story] = None, rate_limit_429: int = 0) -> None:
        self.entries.append(ReportEntry(
            slug=slug,
            status="failure",
            operation=operation,
            error=error,
            duration_ms=duration_ms,
            source_story=_story_dict(source_story),
            rate_limit_429=rate_limit_429,
        ))

    def finalize(self) -> ReportSummary:
        """Stamp the end time and recompute the summary."""
        self.end_time = datetime.now()
        self.duration_ms = int((time.monotonic() - self._start) * 1000)
        self.summary = self._calculate_summary()
        return self.summary

    def _calculate_summary(self) -> ReportSummary:
        summary = ReportSummary()
        for entry in self.entries:
            summary.total += 1
            if entry.status == "success":
                summary.success += 1
            elif entry.status == "warning":
                summary.warning += 1
            elif entry.status == "failure":
                summary.failure += 1

            if entry.operation == "create":
                summary.created += 1
            elif entry.operation == "update":
                summary.updated += 1
            elif entry.operation == "skip":
                summary.skipped += 1
        return summary

    def display_summary(self) -> str:
        summary = self._calculate_summary()
        return f"{summary.success} succeeded, {summary.warning} warnings, {summary.failure} failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'total_duration_ms': self.duration_ms,
            'source_space': self.source_space,
            'target_space': self.target_space,
            'entries': [entry.to_dict() for entry in self.entries],
            'summary': asdict(self.summary),
        }

    def save(self, directory: str = ".") -> Optional[Path]:
        """Write the report to directory and prune old reports.

        Empty reports are not written.

        Returns:
            Path of the written file, or None for an empty report

        Raises:
            FilesystemError: If the report cannot be written
        """
        self.finalize()
        if not self.entries:
            return None

        report_dir = Path(directory)
        try:
            report_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(str(report_dir), 'create_directory', str(e))

        self._cleanup_old_reports(report_dir, keep=KEEP_REPORTS - 1)

        filename = f"{REPORT_PREFIX}{self.start_time.strftime('%Y%m%d-%H%M%S')}.json"
        path = report_dir / filename
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise FilesystemError(str(path), 'write', str(e))

        logger.info(f"Sync report written to {path}")
        return path

    def _cleanup_old_reports(self, report_dir: Path, keep: int) -> None:
        """Remove the oldest reports so at most keep remain (names sort by time)."""
        files = sorted(report_dir.glob(f"{REPORT_PREFIX}*.json"))
        if len(files) <= keep:
            return
        to_remove = files[:len(files) - keep]
        for file in to_remove:
            try:
                file.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove old report file {file}: {e}")
        logger.info(f"Cleaned up {len(to_remove)} old report files")
