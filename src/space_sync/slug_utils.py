"""Slug and path helpers.

All functions are pure. Full slugs are slash-joined paths such as
"app/de/page"; a slug is a single path segment.
"""

import re
from typing import Iterable, List

from src.storyblok_client.models import Story

_TRANSLITERATIONS = {
    'Ä': 'Ae', 'Ö': 'Oe', 'Ü': 'Ue',
    'ä': 'ae', 'ö': 'oe', 'ü': 'ue',
    'ß': 'ss',
}
_TRANSLITERATION_TABLE = str.maketrans(_TRANSLITERATIONS)
_NON_ALNUM = re.compile(r'[^a-z0-9]+')

# Suffix attempts before falling back to "-x"
MAX_UNIQUE_SUFFIX = 9999


def normalize_slug(value: str) -> str:
    """Turn arbitrary text into a path-safe slug segment.

    German umlauts and ß are transliterated, everything is lowercased and
    runs of other characters collapse into single dashes.

    Args:
        value: Input text

    Returns:
        Normalized slug ("copy" when nothing usable remains)

    Example:
        >>> normalize_slug("äöü ß")
        'aeoeue-ss'
        >>> normalize_slug("")
        'copy'
    """
    if not value:
        return "copy"
    slug = value.translate(_TRANSLITERATION_TABLE).lower()
    slug = _NON_ALNUM.sub('-', slug).strip('-')
    return slug or "copy"


def parent_slug(full_slug: str) -> str:
    """Return the parent path of a full slug ("" at root)."""
    idx = full_slug.rfind('/')
    if idx == -1:
        return ""
    return full_slug[:idx]


def slug_depth(full_slug: str) -> int:
    return full_slug.count('/')


def get_folder_paths(full_slug: str) -> List[str]:
    """List the ancestor paths of a full slug, shallowest first.

    Example:
        >>> get_folder_paths("app/de/page")
        ['app', 'app/de']
    """
    parts = full_slug.split('/')
    return ['/'.join(parts[:i]) for i in range(1, len(parts))]


def ensure_unique_slug_in_folder(parent: str, new_slug: str, existing: Iterable[Story]) -> str:
    """Make new_slug unique among the direct children of parent.

    Only direct children count; deeper descendants never cause a collision.
    Collisions are resolved by appending -1, -2, ... and finally -x.

    Args:
        parent: Parent full slug ("" for root)
        new_slug: Desired slug segment
        existing: Stories already present in the target

    Returns:
        A slug not occupied under parent

    Example:
        >>> ensure_unique_slug_in_folder("parent", "article-copy",
        ...     [Story(full_slug="parent/article-copy")])
        'article-copy-1'
    """
    prefix = f"{parent}/" if parent else ""
    occupied = set()
    for story in existing:
        if not story.full_slug.startswith(prefix):
            continue
        if '/' in story.full_slug[len(prefix):]:
            continue
        occupied.add(story.full_slug)

    if prefix + new_slug not in occupied:
        return new_slug
    for i in range(1, MAX_UNIQUE_SUFFIX + 1):
        candidate = f"{new_slug}-{i}"
        if prefix + candidate not in occupied:
            return candidate
    return f"{new_slug}-x"


def replace_last_segment(path: str, new_slug: str) -> str:
    parts = path.split('/')
    parts[-1] = new_slug
    return '/'.join(parts)


def sort_stories_by_full_slug(stories: Iterable[Story]) -> List[Story]:
    return sorted(stories, key=lambda s: s.full_slug)
