"""Preflight planning: turns a raw selection into an ordered execution plan.

Planning is a pure function of the source inventory, the target inventory
and the selection; it issues no API calls and can be tested offline.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Sequence

from src.storyblok_client.models import Story, TranslatedSlug

from .models import ItemState, PreflightItem, RunStatus
from .slug_utils import get_folder_paths, slug_depth

logger = logging.getLogger(__name__)


class PreflightPlanner:
    """Builds dependency-complete, topologically ordered preflight lists.

    Example:
        >>> planner = PreflightPlanner(source_stories, target_stories)
        >>> plan = planner.optimize_preflight([PreflightItem(story=page)])
        >>> [it.story.full_slug for it in plan]
        ['app', 'app/de', 'app/de/page']
    """

    def __init__(self, source_stories: Sequence[Story], target_stories: Sequence[Story]):
        self.source_stories = list(source_stories)
        self.target_stories = list(target_stories)

    def optimize_preflight(self, items: List[PreflightItem]) -> List[PreflightItem]:
        """Deduplicate, complete and order a selection.

        1. Items are deduplicated by full slug; the first occurrence wins and
           later duplicates are marked skip.
        2. Ancestor folders missing in the target but present in the source
           are added as create items.
        3. The result is sorted: folders before stories, shallower before
           deeper, then by full slug. An item's ancestors therefore always
           run before it.

        Running the planner on its own output returns the same list.

        Args:
            items: Selected items (duplicates are marked skip in place)

        Returns:
            Ordered list of items to execute, all with run status pending
        """
        logger.debug(f"Optimizing preflight with {len(items)} items")

        seen: Dict[str, PreflightItem] = {}
        for item in items:
            if item.skip:
                continue
            if item.story.full_slug in seen:
                item.skip = True
                item.state = ItemState.SKIP
                continue
            seen[item.story.full_slug] = item

        optimized: List[PreflightItem] = []
        for item in items:
            if item.skip:
                continue
            item.run = RunStatus.PENDING
            optimized.append(item)

        missing_folders = self.find_missing_folder_paths(optimized)
        present = {item.story.full_slug for item in optimized}
        added = 0
        for folder in missing_folders:
            if folder.full_slug in present:
                continue
            optimized.append(PreflightItem(
                story=folder,
                state=ItemState.CREATE,
                run=RunStatus.PENDING,
                selected=True,
            ))
            present.add(folder.full_slug)
            added += 1
            logger.debug(f"Auto-added missing folder to preflight: {folder.full_slug}")

        optimized.sort(key=_plan_order)

        logger.info(
            f"Optimized to {len(optimized)} items ({added} missing folders auto-added), "
            f"sync order: folders first, then stories"
        )
        return optimized

    def find_missing_folder_paths(self, items: Iterable[PreflightItem]) -> List[Story]:
        """Return source folders that are ancestors of items but absent in the target."""
        target_folders = self.build_target_folder_map()

        missing_paths = set()
        for item in items:
            for path in get_folder_paths(item.story.full_slug):
                if path not in target_folders:
                    missing_paths.add(path)

        source_by_slug = {s.full_slug: s for s in self.source_stories}
        missing: List[Story] = []
        for path in sorted(missing_paths):
            folder = source_by_slug.get(path)
            if folder is not None and folder.is_folder:
                missing.append(folder)
        return missing

    def build_target_folder_map(self) -> Dict[str, Story]:
        return {s.full_slug: s for s in self.target_stories if s.is_folder}


def _plan_order(item: PreflightItem):
    return (not item.story.is_folder, slug_depth(item.story.full_slug), item.story.full_slug)


def process_translated_slugs(source: Story, existing: Sequence[Story]) -> Story:
    """Move localized path variants into write form for the target.

    Variant ids from the source never leak into the target. When the story
    already exists in the target, the ids of its variants are reused by
    matching language code so updates modify instead of duplicating them.

    Args:
        source: Source story
        existing: Matching target stories (only the first is considered)

    Returns:
        Copy of source with translated_slugs_attributes set and
        translated_slugs cleared (source unchanged if it has no variants)
    """
    if not source.translated_slugs:
        return source

    existing_ids: Dict[str, int] = {}
    if existing:
        for ts in existing[0].translated_slugs:
            if ts.id is not None and ts.lang not in existing_ids:
                existing_ids[ts.lang] = ts.id

    attributes = [
        TranslatedSlug(lang=ts.lang, name=ts.name, path=ts.path, id=existing_ids.get(ts.lang))
        for ts in source.translated_slugs
    ]
    return replace(source, translated_slugs=[], translated_slugs_attributes=attributes)


def item_type(story: Story) -> str:
    return "folder" if story.is_folder else "story"
