"""Bulk prefetch of source content through the Content Delivery API.

Hydration runs before the main sync pass and fills a HydrationCache so that
most ensure_content() calls are answered without a Management API request.
Work is spread over a bounded thread pool; failures of single stories are
logged and counted as misses, never raised.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from src.storyblok_client.models import Story

from .call_context import CallContext
from .content_cache import HydrationCache
from .models import HydrationProgress, HydrationStats, PreflightItem
from .slug_utils import slug_depth

logger = logging.getLogger(__name__)

# Default worker counts
DEFAULT_WORKERS = 10
DEFAULT_BATCH_WORKERS = 4

# Page size for prefix walks
WALK_PAGE_SIZE = 100

TOKEN_PREVIEW = "preview"
TOKEN_PUBLIC = "public"

ProgressFn = Optional[Callable[[HydrationProgress], None]]


class _Counter:
    """Thread-safe accumulator for HydrationStats."""

    def __init__(self, stats: HydrationStats, progress: ProgressFn):
        self.stats = stats
        self._progress = progress
        self._lock = threading.Lock()

    def draft(self) -> None:
        with self._lock:
            self.stats.drafts += 1
        if self._progress:
            self._progress(HydrationProgress(incr_drafts=1))

    def published(self) -> None:
        with self._lock:
            self.stats.published += 1
        if self._progress:
            self._progress(HydrationProgress(incr_published=1))

    def miss(self) -> None:
        with self._lock:
            self.stats.misses += 1


def _content_of(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    return raw.get('content')


def _at_source_path(item: PreflightItem) -> Story:
    """Return the item's story addressed by its source full slug.

    Forked items carry a new slug that does not exist in the source space
    yet; their content is read from where the story lives today.
    """
    if item.source_path == item.story.full_slug:
        return item.story
    return replace(item.story, full_slug=item.source_path)


def _fetch_variant(cda: Any, space_id: int, story: Story, version: str) -> Optional[Dict[str, Any]]:
    try:
        return _content_of(cda.get_story_raw_by_slug(space_id, story.full_slug, version))
    except Exception as e:
        logger.debug(f"Hydration of {story.full_slug} ({version}) failed: {e}")
        return None


def _hydrate_story(
    ctx: Optional[CallContext],
    cda: Any,
    space_id: int,
    story: Story,
    token_kind: str,
    cache: HydrationCache,
    counter: _Counter,
    count_misses: bool,
) -> None:
    if ctx is not None and ctx.done:
        return

    if token_kind == TOKEN_PREVIEW:
        content = _fetch_variant(cda, space_id, story, "draft")
        if content is not None:
            cache.put_draft(story.id, content)
            counter.draft()
        if story.published:
            content = _fetch_variant(cda, space_id, story, "published")
            if content is not None:
                cache.put_published(story.id, content)
                counter.published()
    elif token_kind == TOKEN_PUBLIC and story.published:
        content = _fetch_variant(cda, space_id, story, "published")
        if content is not None:
            cache.put_published(story.id, content)
            counter.published()

    if count_misses:
        variants = cache.get(story.id)
        if variants is None or variants.empty:
            counter.miss()


def _run_per_story(
    ctx: Optional[CallContext],
    cda: Any,
    space_id: int,
    stories: List[Story],
    token_kind: str,
    workers: int,
    cache: HydrationCache,
    counter: _Counter,
    count_misses: bool,
) -> None:
    if not stories:
        return
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = {
            executor.submit(
                _hydrate_story, ctx, cda, space_id, story, token_kind, cache, counter, count_misses
            ): story
            for story in stories
        }
        for future in as_completed(futures):
            story = futures[future]
            try:
                future.result()
            except Exception as e:
                logger.error(f"Hydration worker failed for {story.full_slug}: {e}")


def hydrate(
    ctx: Optional[CallContext],
    cda: Any,
    source_space_id: int,
    items: Iterable[PreflightItem],
    token_kind: str,
    cache: HydrationCache,
    workers: int = DEFAULT_WORKERS,
    progress: ProgressFn = None,
) -> HydrationStats:
    """Prefetch content variants of the non-folder items.

    With a preview token the draft is always fetched, plus the published
    version for published stories. With a public token only published
    stories are fetched, and only their published version.

    Args:
        ctx: Cancellation context; workers stop picking up work once done
        cda: Client providing get_story_raw_by_slug(space_id, slug, version)
        source_space_id: Source space id
        items: Preflight items (folders are ignored; forked items are read
            from their source full slug)
        token_kind: "preview" or "public"
        cache: Cache to fill
        workers: Thread pool size (non-positive means default)
        progress: Optional callback for progress events

    Returns:
        HydrationStats for the pass

    Example:
        >>> stats = hydrate(ctx, cda, 1, items, "preview", HydrationCache())
        >>> stats.misses
        0
    """
    stories = [_at_source_path(it) for it in items if not it.story.is_folder]
    stats = HydrationStats(total=len(stories))
    if progress:
        progress(HydrationProgress(total=len(stories)))
    counter = _Counter(stats, progress)
    _run_per_story(
        ctx, cda, source_space_id, stories, token_kind,
        workers if workers > 0 else DEFAULT_WORKERS, cache, counter, count_misses=True,
    )
    logger.info(
        f"Hydration done: {stats.total} stories, {stats.drafts} drafts, "
        f"{stats.published} published, {stats.misses} misses"
    )
    return stats


def top_most_fully_selected_folders(
    candidates: Iterable[Story],
    selected_slugs: Set[str],
    all_source: Iterable[Story],
) -> List[Story]:
    """Find selected folders whose whole story subtree is selected.

    Folders nested inside another qualifying folder are dropped so each
    subtree is walked once.

    Returns:
        Qualifying folders, shallowest first
    """
    source_stories = [s for s in all_source if not s.is_folder]
    full: List[Story] = []
    for folder in candidates:
        prefix = folder.full_slug + "/"
        if all(
            s.full_slug in selected_slugs
            for s in source_stories
            if s.full_slug.startswith(prefix)
        ):
            full.append(folder)

    full.sort(key=lambda f: (slug_depth(f.full_slug), f.full_slug))
    kept: List[Story] = []
    for folder in full:
        if not any(folder.full_slug.startswith(k.full_slug + "/") for k in kept):
            kept.append(folder)
    return kept


def hydrate_batched(
    ctx: Optional[CallContext],
    cda: Any,
    source_space_id: int,
    items: Iterable[PreflightItem],
    all_source: List[Story],
    token_kind: str,
    cache: HydrationCache,
    batch_workers: int = DEFAULT_BATCH_WORKERS,
    slug_workers: int = DEFAULT_WORKERS,
    progress: ProgressFn = None,
) -> HydrationStats:
    """Hydrate a selection, walking whole folders where possible.

    Fully selected folders are fetched with paginated starts_with listings
    (one request per 100 stories instead of one per story). Selected stories
    outside those folders are hydrated one by one.

    Forked items are hydrated from their source full slugs and cached under
    their (unchanged) story ids. Misses are counted once over the whole
    selection at the end, by story id.

    Returns:
        HydrationStats for the pass
    """
    items = [it for it in items if not it.skip and it.selected]
    source_by_slug = {s.full_slug: s for s in all_source}
    # Source inventory entries carry the source publish state, which forks reset
    selected = {
        it.source_path: source_by_slug.get(it.source_path) or _at_source_path(it)
        for it in items if not it.story.is_folder
    }
    selected_slugs = set(selected)
    folder_candidates = [_at_source_path(it) for it in items if it.story.is_folder]

    roots = top_most_fully_selected_folders(folder_candidates, selected_slugs, all_source)
    covered = {
        slug for slug in selected_slugs
        if any(slug.startswith(root.full_slug + "/") for root in roots)
    }
    per_slug = [story for slug, story in selected.items() if slug not in covered]

    progress_total = len(selected_slugs)
    if token_kind == TOKEN_PUBLIC:
        progress_total = sum(1 for story in selected.values() if story.published)

    stats = HydrationStats(total=len(selected_slugs))
    if progress:
        progress(HydrationProgress(total=progress_total))
    counter = _Counter(stats, progress)

    def _walk(root: Story) -> None:
        versions = ["draft", "published"] if token_kind == TOKEN_PREVIEW else ["published"]
        for version in versions:
            if ctx is not None and ctx.done:
                return

            def _store(raw: Dict[str, Any], version: str = version) -> None:
                story_id = raw.get('id') or 0
                content = raw.get('content')
                if raw.get('is_folder') or not story_id or content is None:
                    return
                if version == "draft":
                    cache.put_draft(story_id, content)
                    counter.draft()
                else:
                    cache.put_published(story_id, content)
                    counter.published()

            try:
                cda.walk_stories_by_prefix(root.full_slug, version, WALK_PAGE_SIZE, _store)
            except Exception as e:
                logger.warning(f"Prefix walk of {root.full_slug} ({version}) failed: {e}")

    if roots:
        logger.info(f"Hydrating {len(roots)} folder subtree(s) by prefix")
        with ThreadPoolExecutor(max_workers=max(1, batch_workers)) as executor:
            futures = {executor.submit(_walk, root): root for root in roots}
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    logger.error(f"Prefix walk worker failed for {futures[future].full_slug}: {e}")

    _run_per_story(
        ctx, cda, source_space_id, per_slug, token_kind,
        slug_workers if slug_workers > 0 else DEFAULT_WORKERS, cache, counter, count_misses=False,
    )

    for story in selected.values():
        variants = cache.get(story.id)
        if variants is None or variants.empty:
            counter.miss()

    logger.info(
        f"Batched hydration done: {stats.total} stories, {stats.drafts} drafts, "
        f"{stats.published} published, {stats.misses} misses"
    )
    return stats
