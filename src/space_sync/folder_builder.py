"""Materialization of missing ancestor folders in the target space.

Given a full slug, FolderPathBuilder walks its ancestors from the root down
and creates every folder that is missing in the target, copying the source
folder's raw record so unmodeled fields survive. Parents are always created
before their children and an existing folder is never created twice.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from src.storyblok_client.models import Story

from .call_context import CallContext
from .errors import NotAFolderError, SourceFolderNotFoundError
from .observer import SyncObserver
from .payloads import strip_system_fields, to_translated_slug_attributes
from .rate_limiter import SpaceRateLimiter
from .slug_utils import get_folder_paths

logger = logging.getLogger(__name__)

# Seconds allowed for each lookup/prepare/create step
DEFAULT_STEP_TIMEOUT = 15.0


class FolderPathBuilder:
    """Ensures the full chain of ancestor folders exists in the target.

    Args:
        api: Management API client
        source_space_id: Space the folders are copied from
        target_space_id: Space the folders are created in
        limiter: Shared rate limiter (a private one is created if omitted)
        observer: Observability port
        target_index: Shared target-by-path index; created folders are added

    Example:
        >>> builder = FolderPathBuilder(api, 1, 2)
        >>> created, error = builder.ensure_folder_path("app/de/page")
        >>> [f.full_slug for f in created]
        ['app', 'app/de']
    """

    def __init__(
        self,
        api: Any,
        source_space_id: int,
        target_space_id: int,
        limiter: Optional[SpaceRateLimiter] = None,
        observer: Optional[SyncObserver] = None,
        target_index: Optional[Dict[str, Story]] = None,
        step_timeout: float = DEFAULT_STEP_TIMEOUT,
    ):
        self.api = api
        self.source_space_id = source_space_id
        self.target_space_id = target_space_id
        self.limiter = limiter or SpaceRateLimiter()
        self.observer = observer or SyncObserver()
        self.target_index = target_index
        self.step_timeout = step_timeout

    def check_existing_folder(self, ctx: CallContext, path: str) -> Optional[Story]:
        """Look up path in the target; returns the first match or None."""
        existing = self.limiter.call_read(
            ctx, self.target_space_id, self.api.get_stories_by_slug, self.target_space_id, path
        )
        return existing[0] if existing else None

    def prepare_source_folder(self, ctx: CallContext, path: str, parent_id: Optional[int]) -> Dict[str, Any]:
        """Load the source folder at path as a create-ready raw payload.

        Args:
            ctx: Call context
            path: Full slug of the folder
            parent_id: Target id of the already resolved parent (None at root)

        Returns:
            Raw payload without id and timestamps, with parent_id set and
            translated slugs converted to id-less attributes

        Raises:
            SourceFolderNotFoundError: If the source has nothing at path
            NotAFolderError: If path is a story in the source
        """
        matches = self.limiter.call_read(
            ctx, self.source_space_id, self.api.get_stories_by_slug, self.source_space_id, path
        )
        if not matches:
            raise SourceFolderNotFoundError(path)
        source = matches[0]
        if not source.is_folder:
            raise NotAFolderError(path)

        raw = self.limiter.call_read(
            ctx, self.source_space_id, self.api.get_story_raw, self.source_space_id, source.id
        )
        strip_system_fields(raw)
        raw['parent_id'] = parent_id or 0
        to_translated_slug_attributes(raw)
        return raw

    def create_folder(self, ctx: CallContext, raw: Dict[str, Any]) -> Story:
        """Create a folder (never published) and reconcile its uuid.

        A failed uuid update is logged as a warning and does not fail the
        folder creation.
        """
        created = self.limiter.call_write(
            ctx, self.target_space_id, self.api.create_story_raw, self.target_space_id, raw, False
        )
        wanted_uuid = raw.get('uuid') or ""
        if wanted_uuid and wanted_uuid != created.uuid:
            try:
                self.limiter.call_write(
                    ctx, self.target_space_id, self.api.update_story_uuid,
                    self.target_space_id, created.id, wanted_uuid,
                )
                created.uuid = wanted_uuid
            except Exception as e:
                logger.warning(f"UUID update failed for folder {created.full_slug}: {e}")
        return created

    def ensure_folder_path(
        self,
        full_slug: str,
        ctx: Optional[CallContext] = None,
    ) -> Tuple[List[Story], Optional[Exception]]:
        """Create every missing ancestor folder of full_slug.

        The leaf itself is never created. Each step gets its own timeout.
        There is no rollback: folders created before an error stay in place,
        they are valid on their own.

        Args:
            full_slug: Path whose ancestors must exist
            ctx: Optional outer context; cancelling it stops the walk

        Returns:
            (created folders in creation order, first error or None)
        """
        created: List[Story] = []
        parent_id: Optional[int] = None

        for path in get_folder_paths(full_slug):
            try:
                if ctx is not None:
                    ctx.check()
                existing = self.check_existing_folder(CallContext.with_timeout(self.step_timeout), path)
            except Exception as e:
                return created, e
            if existing is not None:
                parent_id = existing.id
                continue

            try:
                raw = self.prepare_source_folder(
                    CallContext.with_timeout(self.step_timeout), path, parent_id
                )
                folder = self.create_folder(CallContext.with_timeout(self.step_timeout), raw)
            except Exception as e:
                return created, e

            created.append(folder)
            parent_id = folder.id
            if self.target_index is not None:
                self.target_index[folder.full_slug or path] = folder
            self.observer.folder_created(folder)

        return created, None
