"""Observability port for the sync engine.

Engine components report progress through a SyncObserver instead of calling
logging directly, so callers can route events to logs, a report or a UI, and
tests can capture them. The default implementation writes to the module
logger.
"""

import logging
from typing import Any, List, Optional, Tuple

from src.storyblok_client.models import Story

logger = logging.getLogger(__name__)


class SyncObserver:
    """Receives sync events; the base class logs them.

    Subclass and override the hooks you care about.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def item_started(self, index: int, story: Story) -> None:
        self._log.info(
            f"Starting sync for item {index}: {story.full_slug} (folder: {story.is_folder})"
        )

    def item_succeeded(self, operation: str, story: Story, duration_ms: int,
                       target: Optional[Story] = None) -> None:
        target_id = target.id if target is not None else 0
        self._log.info(f"✓ {operation} {story.full_slug} -> {target_id} ({duration_ms}ms)")

    def item_warning(self, operation: str, story: Story, warning: str) -> None:
        self._log.warning(f"⚠ {operation} {story.full_slug}: {warning}")

    def item_failed(self, operation: str, story: Story, error: BaseException) -> None:
        self._log.error(f"✗ {operation} {story.full_slug}: {error}")

    def folder_created(self, folder: Story) -> None:
        self._log.info(f"Created missing folder {folder.full_slug} (id {folder.id})")

    def ancestor_repair(self, parent_path: str, created: int,
                        error: Optional[BaseException]) -> None:
        if error is not None:
            self._log.warning(
                f"Folder repair for {parent_path} stopped after {created} folder(s): {error}"
            )
        else:
            self._log.info(f"Folder repair for {parent_path} created {created} folder(s)")

    def debug(self, message: str) -> None:
        self._log.debug(message)


class RecordingObserver(SyncObserver):
    """Observer that keeps every event in memory.

    Example:
        >>> observer = RecordingObserver()
        >>> observer.folder_created(Story(id=7, full_slug="app"))
        >>> observer.events[0][0]
        'folder_created'
    """

    def __init__(self):
        super().__init__()
        self.events: List[Tuple[str, Any]] = []

    def item_started(self, index, story):
        self.events.append(('item_started', (index, story.full_slug)))

    def item_succeeded(self, operation, story, duration_ms, target=None):
        self.events.append(('item_succeeded', (operation, story.full_slug)))

    def item_warning(self, operation, story, warning):
        self.events.append(('item_warning', (operation, story.full_slug, warning)))

    def item_failed(self, operation, story, error):
        self.events.append(('item_failed', (operation, story.full_slug, str(error))))

    def folder_created(self, folder):
        self.events.append(('folder_created', folder.full_slug))

    def ancestor_repair(self, parent_path, created, error):
        self.events.append(('ancestor_repair', (parent_path, created, error)))

    def debug(self, message):
        self.events.append(('debug', message))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]
