"""Two-tier content caching for source stories.

HydrationCache is filled in bulk by the hydrator before the main pass and
holds draft/published variants per story id. ContentCache answers
ensure_content() calls during the pass: it prefers a hydrated variant, then
its own bounded on-demand cache, and only then fetches from the API.
"""

import copy
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from src.storyblok_client.models import Story

from .call_context import CallContext
from .rate_limiter import SpaceRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_CACHE_SIZE = 500
DEFAULT_HYDRATION_CACHE_SIZE = 1000


@dataclass
class ContentVariants:
    """Cached content payloads of one story.

    Attributes:
        draft: Draft content (None if not cached)
        published: Published content (None if not cached)
    """
    draft: Optional[Dict[str, Any]] = None
    published: Optional[Dict[str, Any]] = None

    @property
    def empty(self) -> bool:
        return self.draft is None and self.published is None


class HydrationCache:
    """Thread-safe, bounded store of prefetched content variants.

    When full, the entries inserted first are evicted first. Updating an
    existing entry does not change its position.

    Example:
        >>> cache = HydrationCache(max_entries=2)
        >>> cache.put_draft(1, {"component": "page"})
        >>> cache.get(1).draft
        {'component': 'page'}
    """

    def __init__(self, max_entries: int = DEFAULT_HYDRATION_CACHE_SIZE):
        self.max_entries = max_entries if max_entries > 0 else DEFAULT_HYDRATION_CACHE_SIZE
        self._lock = threading.Lock()
        self._items: 'OrderedDict[int, ContentVariants]' = OrderedDict()

    def put_draft(self, story_id: int, content: Dict[str, Any]) -> None:
        with self._lock:
            entry = self._items.get(story_id)
            if entry is None:
                self._items[story_id] = ContentVariants(draft=content)
                self._evict_if_needed()
            else:
                entry.draft = content

    def put_published(self, story_id: int, content: Dict[str, Any]) -> None:
        with self._lock:
            entry = self._items.get(story_id)
            if entry is None:
                self._items[story_id] = ContentVariants(published=content)
                self._evict_if_needed()
            else:
                entry.published = content

    def get(self, story_id: int) -> Optional[ContentVariants]:
        """Return a copy of the cached variants, or None."""
        with self._lock:
            entry = self._items.get(story_id)
            if entry is None:
                return None
            return ContentVariants(draft=entry.draft, published=entry.published)

    def keys(self):
        with self._lock:
            return list(self._items.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def _evict_if_needed(self) -> None:
        while len(self._items) > self.max_entries:
            self._items.popitem(last=False)


class ContentCache:
    """Resolves story content, consulting caches before the API.

    The on-demand tier is a true LRU: hits move an entry to the most recent
    position and eviction removes the least recently used entries.

    Args:
        api: Client providing get_story_with_content(space_id, story_id)
        space_id: Source space id
        max_size: Capacity of the on-demand tier
        hydration: Optional bulk-prefetched variants
        limiter: Optional rate limiter; remote fetches count as reads of space_id

    Example:
        >>> cache = ContentCache(api, source_space_id)
        >>> story = cache.ensure_content(ctx, story)
        >>> story.content is not None
        True
    """

    def __init__(
        self,
        api: Any,
        space_id: int,
        max_size: int = DEFAULT_CONTENT_CACHE_SIZE,
        hydration: Optional[HydrationCache] = None,
        limiter: Optional[SpaceRateLimiter] = None,
    ):
        self._api = api
        self._space_id = space_id
        self.max_size = max_size if max_size > 0 else DEFAULT_CONTENT_CACHE_SIZE
        self._hydration = hydration
        self._limiter = limiter
        self._lock = threading.Lock()
        self._cache: 'OrderedDict[int, Dict[str, Any]]' = OrderedDict()
        self.hit_count = 0

    def set_hydration_cache(self, hydration: Optional[HydrationCache]) -> None:
        self._hydration = hydration

    def ensure_content(self, ctx: Optional[CallContext], story: Story) -> Story:
        """Return story with its content loaded.

        Lookup order: content already present, hydrated draft, hydrated
        published, on-demand cache, remote fetch. An empty remote payload
        becomes {} so callers always get a dict.

        Args:
            ctx: Call context checked before a remote fetch and used for
                limiter waits
            story: Story to complete

        Returns:
            A copy of story with content set (the same object if already loaded)

        Raises:
            Errors from the API fetch (the caller decides whether they are fatal)
        """
        if story.content is not None:
            return story

        if self._hydration is not None:
            variants = self._hydration.get(story.id)
            if variants is not None:
                content = variants.draft if variants.draft is not None else variants.published
                if content is not None:
                    self._add(story.id, content)
                    return replace(story, content=copy.deepcopy(content))

        with self._lock:
            cached = self._cache.get(story.id)
            if cached is not None:
                self._cache.move_to_end(story.id)
                self.hit_count += 1
                return replace(story, content=copy.deepcopy(cached))

        if ctx is not None:
            ctx.check()
        if self._limiter is not None:
            full = self._limiter.call_read(
                ctx, self._space_id, self._api.get_story_with_content, self._space_id, story.id
            )
        else:
            full = self._api.get_story_with_content(self._space_id, story.id)
        content = full.content if full.content else {}
        self._add(story.id, content)
        return replace(story, content=copy.deepcopy(content))

    def _add(self, story_id: int, content: Dict[str, Any]) -> None:
        with self._lock:
            if story_id in self._cache:
                self._cache.move_to_end(story_id)
                self._cache[story_id] = content
                return
            if len(self._cache) >= self.max_size:
                remove_count = len(self._cache) - self.max_size + 1
                for _ in range(remove_count):
                    self._cache.popitem(last=False)
            self._cache[story_id] = content

    def cache_stats(self) -> Tuple[int, int, int]:
        """Return (size, max_size, hit_count)."""
        with self._lock:
            return len(self._cache), self.max_size, self.hit_count

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self.hit_count = 0
        logger.debug("Content cache cleared")
