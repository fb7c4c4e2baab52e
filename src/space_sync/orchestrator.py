"""Run-level coordination of a space-to-space sync.

SyncOrchestrator owns everything that lives for one run: the target-by-path
index, the content caches, the rate limiter and the StorySyncer built on top
of them. Callers (the CLI) build a plan, optionally hydrate, then execute the
plan item by item.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from src.storyblok_client.cda_client import CDAClient
from src.storyblok_client.models import Space, Story

from .call_context import CallContext
from .content_cache import ContentCache, HydrationCache
from .hydration import DEFAULT_BATCH_WORKERS, DEFAULT_WORKERS, ProgressFn, hydrate_batched
from .models import (
    HydrationStats,
    ItemOutcome,
    ItemState,
    Operation,
    PreflightItem,
    RunStatus,
    SyncPlanStep,
)
from .observer import SyncObserver
from .preflight import PreflightPlanner
from .rate_limiter import SpaceRateLimiter
from .story_syncer import StorySyncer
from .token_resolver import resolve_cda_token

logger = logging.getLogger(__name__)

# Plan level of spaces in development mode (publishing is not available)
DEV_MODE_PLAN_LEVEL = 999


class SyncOrchestrator:
    """Plans and executes the sync of selected stories for one run.

    Items run sequentially in plan order, which guarantees that every
    folder is synced before its children. Each item gets its own deadline,
    so a stuck item cannot stall the run.

    Args:
        api: Management API client
        source_space: Source space
        target_space: Target space (its plan level decides publishing)
        target_index: Shared full_slug -> target Story index (created if omitted)
        observer: Observability port
        limiter: Shared rate limiter
        hydration_cache: Bulk prefetch cache (created if omitted)
        cda_factory: Builds a delivery client from a token
        publish: Set False to never publish, whatever the source state

    Example:
        >>> orchestrator = SyncOrchestrator(api, source, target)
        >>> items = orchestrator.plan_items(source_stories, target_stories, selection)
        >>> outcomes = orchestrator.run(CallContext(), items)
    """

    def __init__(
        self,
        api: Any,
        source_space: Space,
        target_space: Space,
        target_index: Optional[Dict[str, Story]] = None,
        observer: Optional[SyncObserver] = None,
        limiter: Optional[SpaceRateLimiter] = None,
        hydration_cache: Optional[HydrationCache] = None,
        cda_factory: Callable[[str], Any] = CDAClient,
        publish: bool = True,
    ):
        self.api = api
        self.source_space = source_space
        self.target_space = target_space
        self.target_index: Dict[str, Story] = target_index if target_index is not None else {}
        self.observer = observer or SyncObserver()
        self.limiter = limiter or SpaceRateLimiter()
        self.hydration_cache = hydration_cache or HydrationCache()
        self._cda_factory = cda_factory
        self.publish = publish
        self.content_cache = ContentCache(
            api, source_space.id, hydration=self.hydration_cache, limiter=self.limiter
        )
        self.syncer = StorySyncer(
            api,
            source_space.id,
            target_space.id,
            target_index=self.target_index,
            limiter=self.limiter,
            observer=self.observer,
            content_cache=self.content_cache,
        )

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan_items(
        self,
        source_stories: List[Story],
        target_stories: List[Story],
        selection: Iterable[PreflightItem],
    ) -> List[PreflightItem]:
        """Classify a selection against the target and optimize it.

        Target stories are added to the target index (existing entries are
        kept). Items whose full slug exists in the target become updates
        and are flagged as collisions; all others become creates.

        Returns:
            Ordered preflight items, skip items excluded
        """
        for story in target_stories:
            self.target_index.setdefault(story.full_slug, story)

        target_slugs = {s.full_slug for s in target_stories}
        items = list(selection)
        for item in items:
            if item.skip:
                continue
            item.collision = item.story.full_slug in target_slugs
            item.state = ItemState.UPDATE if item.collision else ItemState.CREATE

        planner = PreflightPlanner(source_stories, target_stories)
        return planner.optimize_preflight(items)

    def build_plan(
        self,
        source_stories: List[Story],
        target_stories: List[Story],
        selection: Iterable[PreflightItem],
    ) -> List[SyncPlanStep]:
        """Build the ordered plan steps for a selection.

        Returns:
            One step per item to execute, folders first
        """
        steps: List[SyncPlanStep] = []
        for item in self.plan_items(source_stories, target_stories, selection):
            existing = self.target_index.get(item.story.full_slug)
            if existing is not None:
                steps.append(SyncPlanStep(
                    story=item.story, action=Operation.UPDATE,
                    target_id=existing.id, name=item.story.name,
                ))
            else:
                steps.append(SyncPlanStep(story=item.story, action=Operation.CREATE, name=item.story.name))
        return steps

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def should_publish(self) -> bool:
        """False when publishing is disabled or the target runs in development mode."""
        if not self.publish:
            return False
        if self.target_space is not None and self.target_space.plan_level == DEV_MODE_PLAN_LEVEL:
            return False
        return True

    def run_item(self, ctx: Optional[CallContext], index: int, item: PreflightItem) -> ItemOutcome:
        """Execute one preflight item.

        The item runs under its own deadline; ctx is only checked before
        starting, so cancelling the run never interrupts an item halfway.

        Returns:
            ItemOutcome (cancelled=True when ctx was already done)
        """
        if ctx is not None and ctx.done:
            return ItemOutcome(index=index, cancelled=True)

        story = item.story
        self.observer.item_started(index, story)
        item.run = RunStatus.RUNNING
        publish = self.should_publish() and story.published

        start = time.monotonic()
        if story.is_folder:
            result, error = self.syncer.sync_folder_detailed(story, publish)
        else:
            result, error = self.syncer.sync_story_detailed(story, publish)
        duration_ms = int((time.monotonic() - start) * 1000)

        operation = result.operation.value
        if error is not None:
            item.run = RunStatus.FAILED
            self.observer.item_failed(operation, story, error)
        else:
            item.run = RunStatus.SUCCESS
            if result.warning:
                self.observer.item_warning(operation, story, result.warning)
            else:
                self.observer.item_succeeded(operation, story, duration_ms, result.target_story)

        return ItemOutcome(index=index, result=result, error=error, duration_ms=duration_ms)

    def run(
        self,
        ctx: Optional[CallContext],
        items: List[PreflightItem],
        on_outcome: Optional[Callable[[PreflightItem, ItemOutcome], None]] = None,
    ) -> List[ItemOutcome]:
        """Execute items sequentially in plan order.

        Items that are skipped stay untouched. Once ctx is done the remaining
        items are reported as cancelled.
        """
        outcomes: List[ItemOutcome] = []
        for index, item in enumerate(items):
            if item.skip or item.state == ItemState.SKIP:
                continue
            outcome = self.run_item(ctx, index, item)
            outcomes.append(outcome)
            if on_outcome:
                on_outcome(item, outcome)
        return outcomes

    # ------------------------------------------------------------------
    # Hydration and caches
    # ------------------------------------------------------------------

    def hydrate(
        self,
        ctx: Optional[CallContext],
        items: List[PreflightItem],
        all_source: List[Story],
        batch_workers: int = DEFAULT_BATCH_WORKERS,
        slug_workers: int = DEFAULT_WORKERS,
        progress: ProgressFn = None,
    ) -> HydrationStats:
        """Prefetch source content for items through the delivery API.

        Skipped (with a log line) when the source space has no usable
        delivery token.
        """
        token = resolve_cda_token(ctx, self.api, self.source_space.id)
        if not token.available:
            logger.info(f"No delivery token for space {self.source_space.id}, skipping hydration")
            return HydrationStats()

        logger.info(f"Hydrating with {token.kind} token")
        cda = self._cda_factory(token.selected)
        stats = hydrate_batched(
            ctx, cda, self.source_space.id, items, all_source, token.kind,
            self.hydration_cache, batch_workers=batch_workers,
            slug_workers=slug_workers, progress=progress,
        )
        self.content_cache.set_hydration_cache(self.hydration_cache)
        return stats

    def cache_stats(self) -> Dict[str, int]:
        size, max_size, hits = self.content_cache.cache_stats()
        return {
            'content_size': size,
            'content_max': max_size,
            'content_hits': hits,
            'hydrated': len(self.hydration_cache),
        }

    def clear_caches(self) -> None:
        self.content_cache.clear_cache()
        self.hydration_cache.clear()
