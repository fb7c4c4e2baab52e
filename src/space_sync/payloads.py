"""Helpers that turn source story records into target write payloads."""

from typing import Any, Dict, List, Optional

from src.storyblok_client.models import Story

from .slug_utils import replace_last_segment

# Fields owned by the API; never copied between spaces
SYSTEM_FIELDS = ('id', 'created_at', 'updated_at')


def strip_system_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Remove id and timestamps from a raw record in place."""
    for key in SYSTEM_FIELDS:
        raw.pop(key, None)
    return raw


def to_translated_slug_attributes(
    raw: Dict[str, Any],
    new_slug: Optional[str] = None,
    keep_ids: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    """Convert raw translated_slugs into write-form translated_slugs_attributes.

    Source variant ids are dropped. keep_ids maps language codes to ids of
    variants that already exist in the target; those ids are reused so an
    update modifies the variants instead of adding new ones. When new_slug
    is given, the trailing segment of every non-empty variant path is
    replaced with it.

    Modifies raw in place and returns it.
    """
    variants = raw.get('translated_slugs')
    if not isinstance(variants, list) or not variants:
        return raw

    attributes: List[Dict[str, Any]] = []
    for variant in variants:
        if not isinstance(variant, dict):
            continue
        attr = {k: v for k, v in variant.items() if k != 'id'}
        if keep_ids and attr.get('lang') in keep_ids:
            attr['id'] = keep_ids[attr['lang']]
        path = attr.get('path')
        if new_slug and isinstance(path, str) and path:
            attr['path'] = replace_last_segment(path, new_slug)
        attributes.append(attr)

    raw['translated_slugs_attributes'] = attributes
    del raw['translated_slugs']
    return raw


def typed_payload(story: Story, is_folder: Optional[bool] = None) -> Dict[str, Any]:
    """Build the payload for clients without raw support (known fields only)."""
    payload: Dict[str, Any] = {
        'uuid': story.uuid,
        'name': story.name,
        'slug': story.slug,
        'full_slug': story.full_slug,
        'content': story.content if story.content is not None else {},
        'is_folder': story.is_folder if is_folder is None else is_folder,
        'parent_id': story.parent_id or 0,
    }
    if story.translated_slugs_attributes:
        payload['translated_slugs_attributes'] = [
            ts.to_dict() for ts in story.translated_slugs_attributes
        ]
    return payload
