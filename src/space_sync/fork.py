"""Copy-as-new planning: rename a story or a folder subtree before syncing.

A fork syncs a source node under a new slug instead of updating the node that
already exists in the target. Forked items lose their source identity (uuid,
published flag, translated slug ids) so they are always created fresh. They
keep the source story id and remember their source full slug, which is where
their content is read from.
"""

import copy
import logging
from typing import Dict, Iterable, List, Set

from src.storyblok_client.models import Story

from .models import ItemState, PreflightItem, RunStatus
from .slug_utils import (
    ensure_unique_slug_in_folder,
    normalize_slug,
    parent_slug,
    replace_last_segment,
    slug_depth,
)

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (copy)"


class _SlugOccupancy:
    """Tracks which leaf slugs are taken under each parent path.

    Seeded from the target inventory; every slug handed out is claimed so
    two forked siblings never receive the same slug.
    """

    def __init__(self, existing: Iterable[Story]):
        self._taken: Dict[str, Set[str]] = {}
        for story in existing:
            leaf = story.full_slug.rsplit('/', 1)[-1]
            self._taken.setdefault(parent_slug(story.full_slug), set()).add(leaf)

    def claim(self, parent: str, desired: str) -> str:
        taken = self._taken.setdefault(parent, set())
        prefix = f"{parent}/" if parent else ""
        unique = ensure_unique_slug_in_folder(
            parent, desired, [Story(full_slug=prefix + leaf) for leaf in taken]
        )
        taken.add(unique)
        return unique


def _with_suffix(name: str) -> str:
    if not name or name.endswith(COPY_SUFFIX):
        return name
    return name + COPY_SUFFIX


def _rename(story: Story, parent: str, leaf: str, append_suffix: bool) -> Story:
    forked = copy.deepcopy(story)
    forked.slug = leaf
    forked.full_slug = f"{parent}/{leaf}" if parent else leaf
    forked.published = False
    forked.uuid = ""
    forked.translated_slugs_attributes = []
    for variant in forked.translated_slugs:
        if variant.path:
            variant.path = replace_last_segment(variant.path, leaf)
        variant.id = None
    if append_suffix:
        forked.name = _with_suffix(forked.name)
    return forked


def fork_subtree(
    item: PreflightItem,
    new_slug: str,
    source_stories: Iterable[Story],
    existing_target: Iterable[Story],
    append_copy_suffix: bool = False,
    append_child_copy_suffix: bool = False,
) -> List[PreflightItem]:
    """Plan a copy of item (and, for folders, its subtree) under a new slug.

    The new slug is normalized and made unique under the item's parent. For
    a folder, every descendant found in the source inventory is rebased under
    the new root path, keeping its relative position. Descendant slugs are
    normalized and made unique under their new parents as well.

    Args:
        item: Root item to fork
        new_slug: Requested slug for the root
        source_stories: Source inventory (descendants are taken from it)
        existing_target: Target inventory used for uniqueness checks
        append_copy_suffix: Append " (copy)" to the root name and to
            descendant folder names
        append_child_copy_suffix: Append " (copy)" to descendant story names

    Returns:
        New create-state items, root first, ready for optimize_preflight

    Example:
        >>> items = fork_subtree(PreflightItem(story=home), "home-copy", source, target)
        >>> items[0].story.full_slug
        'home-copy'
    """
    old_root = item.story.full_slug
    parent = parent_slug(old_root)
    occupancy = _SlugOccupancy(existing_target)

    root_leaf = occupancy.claim(parent, normalize_slug(new_slug))
    root = _rename(item.story, parent, root_leaf, append_copy_suffix)
    forked: List[PreflightItem] = [_as_create_item(root, old_root)]
    logger.info(f"Forking {old_root} as {root.full_slug}")

    if not item.story.is_folder:
        return forked

    # Parents before children so every descendant finds its new parent path
    descendants = sorted(
        (s for s in source_stories if s.full_slug.startswith(old_root + "/")),
        key=lambda s: (slug_depth(s.full_slug), s.full_slug),
    )
    new_paths: Dict[str, str] = {old_root: root.full_slug}
    for story in descendants:
        old_parent = parent_slug(story.full_slug)
        new_parent = new_paths.get(old_parent)
        if new_parent is None:
            logger.warning(f"Skipping {story.full_slug}: parent {old_parent} is not part of the fork")
            continue
        leaf = occupancy.claim(new_parent, normalize_slug(story.slug or story.full_slug.rsplit('/', 1)[-1]))
        append = append_copy_suffix if story.is_folder else append_child_copy_suffix
        renamed = _rename(story, new_parent, leaf, append)
        new_paths[story.full_slug] = renamed.full_slug
        forked.append(_as_create_item(renamed, story.full_slug))

    logger.debug(f"Fork of {old_root} covers {len(forked)} item(s)")
    return forked


def _as_create_item(story: Story, source_full_slug: str) -> PreflightItem:
    return PreflightItem(
        story=story,
        source_full_slug=source_full_slug,
        state=ItemState.CREATE,
        run=RunStatus.PENDING,
        selected=True,
        collision=False,
    )
