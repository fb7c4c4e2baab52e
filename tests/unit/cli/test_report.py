"""Unit tests for cli.report module."""

import json

from src.cli.report import KEEP_REPORTS, REPORT_PREFIX, SyncReport
from src.storyblok_client.models import Story


class TestEntries:
    """Test cases for adding entries and the summary."""

    def test_summary_counts_status_and_operation(self):
        """finalize() counts entries by status and by operation."""
        # Arrange
        report = SyncReport("Source (1)", "Target (2)")
        report.add_success("app", "create", 10, Story(id=5, full_slug="app"))
        report.add_success("app/home", "update", 12)
        report.add_warning("app/de", "create", "failed to update UUID", 8)
        report.add_error("app/broken", "create", "422 Unprocessable Entity", 30,
                         Story(id=9, full_slug="app/broken"), rate_limit_429=2)

        # Act
        summary = report.finalize()

        # Assert
        assert (summary.total, summary.success, summary.warning, summary.failure) == (4, 2, 1, 1)
        assert (summary.created, summary.updated, summary.skipped) == (3, 1, 0)
        assert report.display_summary() == "2 succeeded, 1 warnings, 1 failed"

    def test_entry_dict_omits_empty_fields(self):
        report = SyncReport()
        report.add_success("app", "create", 0)

        entry = report.to_dict()['entries'][0]

        assert entry == {'slug': "app", 'status': "success", 'operation': "create"}

    def test_failure_entry_carries_source_story(self):
        report = SyncReport()
        report.add_error("app", "update", "boom", 3, Story(id=9, full_slug="app"), rate_limit_429=1)

        entry = report.to_dict()['entries'][0]

        assert entry['error'] == "boom"
        assert entry['source_story']['id'] == 9
        assert entry['rate_limit_429'] == 1


class TestSave:
    """Test cases for SyncReport.save()."""

    def test_report_is_written_as_json(self, tmp_path):
        """The file name carries the start time and the content the entries."""
        # Arrange
        report = SyncReport("Source (1)", "Target (2)")
        report.add_success("app", "create", 10)

        # Act
        path = report.save(str(tmp_path / "reports"))

        # Assert
        assert path.name.startswith(REPORT_PREFIX)
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
        assert data['source_space'] == "Source (1)"
        assert data['summary']['created'] == 1
        assert data['end_time'] is not None

    def test_empty_report_is_not_written(self, tmp_path):
        assert SyncReport().save(str(tmp_path)) is None
        assert list(tmp_path.iterdir()) == []

    def test_only_newest_reports_are_kept(self, tmp_path):
        """Older reports are pruned so at most KEEP_REPORTS remain."""
        for i in range(12):
            (tmp_path / f"{REPORT_PREFIX}20200101-0000{i:02d}.json").write_text("{}")
        report = SyncReport()
        report.add_success("app", "create", 1)

        path = report.save(str(tmp_path))

        remaining = sorted(p.name for p in tmp_path.glob(f"{REPORT_PREFIX}*.json"))
        assert len(remaining) == KEEP_REPORTS
        assert path.name in remaining
        assert f"{REPORT_PREFIX}20200101-000000.json" not in remaining
