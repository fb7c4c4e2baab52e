"""Create-or-update of single stories and folders in the target space.

Each item goes through the same steps: resolve the existing target node,
resolve the target parent, build the payload, push it and reconcile the
uuid. Pushes use the raw source record when the client supports it, so
fields the typed model does not know survive the copy.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Tuple

from src.storyblok_client.errors import is_unprocessable
from src.storyblok_client.models import Story
from src.storyblok_client.retry_logic import retry_counters_scope

from .call_context import CallContext
from .content_cache import ContentCache
from .folder_builder import FolderPathBuilder
from .models import Operation, SyncItemResult
from .observer import SyncObserver
from .payloads import strip_system_fields, to_translated_slug_attributes, typed_payload
from .preflight import process_translated_slugs
from .rate_limiter import SpaceRateLimiter
from .slug_utils import parent_slug

logger = logging.getLogger(__name__)

# Wall-clock budget of one detailed item sync
ITEM_TIMEOUT = 30.0

PushFn = Callable[[Dict[str, Any]], Story]


class StorySyncer:
    """Synchronizes stories and folders from the source into the target space.

    The target index maps full slugs to target stories. It is owned by the
    caller and shared by reference: the syncer reads it to avoid lookups and
    appends every node it creates or updates. Entries are never removed
    during a run.

    Args:
        api: Management API client
        source_space_id: Space to read from
        target_space_id: Space to write to
        target_index: Shared full_slug -> target Story index
        limiter: Shared rate limiter
        observer: Observability port
        content_cache: Content resolver for the typed fallback path

    Example:
        >>> syncer = StorySyncer(api, 1, 2, target_index)
        >>> result, error = syncer.sync_story_detailed(story, publish=True)
        >>> result.operation
        <Operation.CREATE: 'create'>
    """

    def __init__(
        self,
        api: Any,
        source_space_id: int,
        target_space_id: int,
        target_index: Optional[Dict[str, Story]] = None,
        limiter: Optional[SpaceRateLimiter] = None,
        observer: Optional[SyncObserver] = None,
        content_cache: Optional[ContentCache] = None,
    ):
        self.api = api
        self.source_space_id = source_space_id
        self.target_space_id = target_space_id
        self.target_index = target_index if target_index is not None else {}
        self.limiter = limiter or SpaceRateLimiter()
        self.observer = observer or SyncObserver()
        self.content_cache = content_cache or ContentCache(
            api, source_space_id, limiter=self.limiter
        )
        self.supports_raw = getattr(api, 'supports_raw_payloads', False) is True
        self.folder_builder = FolderPathBuilder(
            api,
            source_space_id,
            target_space_id,
            limiter=self.limiter,
            observer=self.observer,
            target_index=self.target_index,
        )

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    def sync_story(self, ctx: CallContext, story: Story, publish: bool) -> SyncItemResult:
        """Create or update a story in the target.

        Args:
            ctx: Call context for rate limiter waits
            story: Source story (possibly renamed by a fork)
            publish: Publish the target story after writing

        Returns:
            SyncItemResult with operation, target story and uuid warning

        Raises:
            StoryblokError: On any push failure other than a repaired 422
        """
        result = SyncItemResult(operation=Operation.CREATE)
        self._sync_story(ctx, story, publish, result)
        return result

    def _sync_story(self, ctx: CallContext, story: Story, publish: bool, result: SyncItemResult) -> None:
        self.observer.debug(f"Syncing story: {story.full_slug}")

        existing = self.target_index.get(story.full_slug)
        if existing is None:
            existing = self._lookup_target(ctx, story.full_slug)
        if existing is not None:
            result.operation = Operation.UPDATE

        prepared = self._resolve_parent_from_index(story)
        prepared = process_translated_slugs(prepared, [existing] if existing is not None else [])
        if self.supports_raw:
            raw = self.limiter.call_read(
                ctx, self.source_space_id, self.api.get_story_raw, self.source_space_id, story.id
            )
            payload = self._raw_payload(raw, prepared, existing)
        else:
            prepared = self.content_cache.ensure_content(ctx, prepared)
            payload = typed_payload(prepared)

        if existing is None:
            self.observer.debug(f"Push create story {story.full_slug} (payload omitted)")
            pushed = self._push_with_folder_repair(
                ctx, self._create_fn(ctx, publish), payload, story.full_slug
            )
        else:
            self.observer.debug(f"Push update story {story.full_slug} (payload omitted)")
            pushed = self._push_with_folder_repair(
                ctx, self._update_fn(ctx, existing.id, publish), payload, story.full_slug
            )

        result.warning = self._reconcile_uuid(ctx, pushed, prepared.uuid)
        result.target_story = pushed
        self._record(story.full_slug, pushed)

    def _raw_payload(self, raw: Dict[str, Any], prepared: Story, existing: Optional[Story]) -> Dict[str, Any]:
        """Turn the raw source record into a create or update payload."""
        strip_system_fields(raw)
        raw['parent_id'] = prepared.parent_id or 0

        if existing is None:
            # Name and path come from the typed story so forks keep their new slug
            if prepared.slug:
                raw['slug'] = prepared.slug
            if prepared.full_slug:
                raw['full_slug'] = prepared.full_slug
            if prepared.name:
                raw['name'] = prepared.name
            raw.pop('uuid', None)
            to_translated_slug_attributes(raw, new_slug=prepared.slug or None)
        else:
            keep_ids = {
                ts.lang: ts.id for ts in prepared.translated_slugs_attributes if ts.id is not None
            }
            to_translated_slug_attributes(raw, keep_ids=keep_ids)
        return raw

    def _resolve_parent_from_index(self, story: Story) -> Story:
        """Set parent_id from the target index (None when absent or at root)."""
        parent = parent_slug(story.full_slug)
        target_parent = self.target_index.get(parent) if parent else None
        return replace(story, parent_id=target_parent.id if target_parent is not None else None)

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def sync_folder(self, ctx: CallContext, folder: Story, publish: bool) -> SyncItemResult:
        """Create or update a folder in the target.

        Unlike stories, existence and parent are resolved by remote lookup
        because folders usually run before the target index is warm. New
        folders are never published.

        Args:
            ctx: Call context for rate limiter waits
            folder: Source folder (possibly renamed by a fork)
            publish: Publish flag for updates of existing folders

        Returns:
            SyncItemResult with operation, target folder and uuid warning
        """
        result = SyncItemResult(operation=Operation.CREATE)
        self._sync_folder(ctx, folder, publish, result)
        return result

    def _sync_folder(self, ctx: CallContext, folder: Story, publish: bool, result: SyncItemResult) -> None:
        self.observer.debug(f"Syncing folder: {folder.full_slug}")

        try:
            prepared = self.content_cache.ensure_content(ctx, folder)
        except Exception as e:
            self.observer.debug(f"Content of folder {folder.full_slug} unavailable, using empty content: {e}")
            prepared = replace(folder, content=folder.content or {})

        existing = self._lookup_target(ctx, folder.full_slug)
        if existing is not None:
            result.operation = Operation.UPDATE

        parent_path = parent_slug(folder.full_slug)
        parent = self._lookup_target(ctx, parent_path) if parent_path else None
        prepared = replace(prepared, parent_id=parent.id if parent is not None else None)
        prepared = process_translated_slugs(prepared, [existing] if existing is not None else [])

        if existing is not None:
            payload = typed_payload(prepared, is_folder=True)
            pushed = self._push_with_folder_repair(
                ctx, self._update_fn(ctx, existing.id, publish), payload, folder.full_slug
            )
        else:
            if self.supports_raw:
                raw = self.limiter.call_read(
                    ctx, self.source_space_id, self.api.get_story_raw, self.source_space_id, folder.id
                )
                payload = self._raw_payload(raw, prepared, None)
                payload['is_folder'] = True
            else:
                payload = typed_payload(prepared, is_folder=True)
            self.observer.debug(f"Push create folder {folder.full_slug} (payload omitted)")
            pushed = self._push_with_folder_repair(
                ctx, self._create_fn(ctx, False), payload, folder.full_slug
            )

        result.warning = self._reconcile_uuid(ctx, pushed, prepared.uuid)
        result.target_story = pushed
        self._record(folder.full_slug, pushed)

    # ------------------------------------------------------------------
    # Detailed variants
    # ------------------------------------------------------------------

    def sync_story_detailed(self, story: Story, publish: bool) -> Tuple[SyncItemResult, Optional[Exception]]:
        """Sync a story under its own deadline and collect retry counters.

        Returns:
            (result, error). The result carries the operation and retry
            counters even when error is set.
        """
        return self._run_detailed(self._sync_story, story, publish)

    def sync_folder_detailed(self, folder: Story, publish: bool) -> Tuple[SyncItemResult, Optional[Exception]]:
        """Folder counterpart of sync_story_detailed."""
        return self._run_detailed(self._sync_folder, folder, publish)

    def _run_detailed(
        self,
        sync_fn: Callable[[CallContext, Story, bool, SyncItemResult], None],
        story: Story,
        publish: bool,
    ) -> Tuple[SyncItemResult, Optional[Exception]]:
        ctx = CallContext.with_timeout(ITEM_TIMEOUT)
        result = SyncItemResult(operation=Operation.CREATE)
        error: Optional[Exception] = None
        with retry_counters_scope() as counters:
            try:
                sync_fn(ctx, story, publish, result)
            except Exception as e:
                error = e
        result.retry_total = counters.total
        result.retry_429 = counters.status_429
        result.retry_5xx = counters.status_5xx
        result.retry_net = counters.net
        return result, error

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _lookup_target(self, ctx: CallContext, full_slug: str) -> Optional[Story]:
        matches = self.limiter.call_read(
            ctx, self.target_space_id, self.api.get_stories_by_slug, self.target_space_id, full_slug
        )
        return matches[0] if matches else None

    def _create_fn(self, ctx: CallContext, publish: bool) -> PushFn:
        def _create(payload: Dict[str, Any]) -> Story:
            return self.limiter.call_write(
                ctx, self.target_space_id, self.api.create_story_raw,
                self.target_space_id, payload, publish,
            )
        return _create

    def _update_fn(self, ctx: CallContext, story_id: int, publish: bool) -> PushFn:
        def _update(payload: Dict[str, Any]) -> Story:
            return self.limiter.call_write(
                ctx, self.target_space_id, self.api.update_story_raw,
                self.target_space_id, story_id, payload, publish,
            )
        return _update

    def _push_with_folder_repair(
        self,
        ctx: CallContext,
        push: PushFn,
        payload: Dict[str, Any],
        full_slug: str,
    ) -> Story:
        """Push payload; on a 422 repair the ancestor chain of full_slug and retry once.

        A 422 from the Management API almost always means the parent folder
        does not exist. The folder chain is materialized, the parent id is
        looked up again and the push is retried exactly once. Errors of the
        retry, and any other error, propagate unchanged.
        """
        parent_path = parent_slug(full_slug)
        try:
            return push(payload)
        except Exception as e:
            if not is_unprocessable(e):
                raise
            self.observer.debug(f"Push rejected as unprocessable, repairing folders for '{parent_path}': {e}")

        if parent_path:
            created, error = self.folder_builder.ensure_folder_path(full_slug, ctx)
            self.observer.ancestor_repair(parent_path, len(created), error)
            try:
                parent = self._lookup_target(ctx, parent_path)
            except Exception as e:
                self.observer.debug(f"Parent lookup for {parent_path} after repair failed: {e}")
                parent = None
            if parent is not None:
                payload['parent_id'] = parent.id

        return push(payload)

    def _reconcile_uuid(self, ctx: CallContext, pushed: Story, source_uuid: str) -> str:
        """Give the target node the source uuid; returns a warning on failure."""
        if not source_uuid or pushed.uuid == source_uuid:
            return ""
        try:
            self.limiter.call_write(
                ctx, self.target_space_id, self.api.update_story_uuid,
                self.target_space_id, pushed.id, source_uuid,
            )
        except Exception as e:
            return f"failed to update UUID for {pushed.full_slug or pushed.id}: {e}"
        pushed.uuid = source_uuid
        return ""

    def _record(self, full_slug: str, pushed: Story) -> None:
        self.target_index[pushed.full_slug or full_slug] = pushed
