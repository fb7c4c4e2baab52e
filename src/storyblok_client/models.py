"""Data models for Storyblok API payloads.

Stories are exchanged with the Management API as JSON objects. The typed
models here cover the fields the sync engine reasons about; everything else
travels untouched in raw payload dicts.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class TranslatedSlug:
    """A localized path variant of a story.

    Attributes:
        lang: Language code (e.g., "de")
        name: Localized display name
        path: Localized full path
        id: Variant id in its space (None for new variants)
    """
    lang: str
    name: str = ""
    path: str = ""
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TranslatedSlug':
        return cls(
            lang=data.get('lang') or "",
            name=data.get('name') or "",
            path=data.get('path') or "",
            id=data.get('id'),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {'lang': self.lang, 'name': self.name, 'path': self.path}
        if self.id is not None:
            out['id'] = self.id
        return out


@dataclass
class Story:
    """A node of the content tree: folder or story.

    Attributes:
        id: Space-local id (0 until created)
        uuid: Cross-space identity
        name: Display name
        slug: Last path segment
        full_slug: Slash-joined path from the root
        parent_id: Id of the parent folder (None at root)
        is_folder: True for folders
        published: True if the story has a published version
        content: Content payload (None when not loaded yet)
        translated_slugs: Localized path variants as read from the API
        translated_slugs_attributes: Variants in write form
        created_at: Creation timestamp (system-owned)
        updated_at: Update timestamp (system-owned)
        tag_list: Tags
        position: Sort position within the parent

    Example:
        >>> story = Story.from_dict({"id": 1, "full_slug": "app/de", "is_folder": True})
        >>> story.parent_id is None
        True
    """
    id: int = 0
    uuid: str = ""
    name: str = ""
    slug: str = ""
    full_slug: str = ""
    parent_id: Optional[int] = None
    is_folder: bool = False
    published: bool = False
    content: Optional[Dict[str, Any]] = None
    translated_slugs: List[TranslatedSlug] = field(default_factory=list)
    translated_slugs_attributes: List[TranslatedSlug] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    tag_list: List[str] = field(default_factory=list)
    position: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Story':
        """Build a Story from a Management or Delivery API JSON object."""
        parent_id = data.get('parent_id')
        if parent_id is None:
            parent_id = data.get('folder_id')
        return cls(
            id=data.get('id') or 0,
            uuid=data.get('uuid') or "",
            name=data.get('name') or "",
            slug=data.get('slug') or "",
            full_slug=data.get('full_slug') or "",
            parent_id=parent_id or None,
            is_folder=bool(data.get('is_folder', False)),
            published=bool(data.get('published', False)),
            content=data.get('content'),
            translated_slugs=[
                TranslatedSlug.from_dict(ts) for ts in data.get('translated_slugs') or []
            ],
            translated_slugs_attributes=[
                TranslatedSlug.from_dict(ts) for ts in data.get('translated_slugs_attributes') or []
            ],
            created_at=data.get('created_at') or "",
            updated_at=data.get('updated_at') or "",
            tag_list=list(data.get('tag_list') or []),
            position=data.get('position') or 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the Management API shape (parent_id 0 at root)."""
        out: Dict[str, Any] = {
            'id': self.id,
            'uuid': self.uuid,
            'name': self.name,
            'slug': self.slug,
            'full_slug': self.full_slug,
            'parent_id': self.parent_id or 0,
            'is_folder': self.is_folder,
            'published': self.published,
            'tag_list': list(self.tag_list),
            'position': self.position,
        }
        if self.content is not None:
            out['content'] = self.content
        if self.translated_slugs:
            out['translated_slugs'] = [ts.to_dict() for ts in self.translated_slugs]
        if self.translated_slugs_attributes:
            out['translated_slugs_attributes'] = [
                ts.to_dict() for ts in self.translated_slugs_attributes
            ]
        if self.created_at:
            out['created_at'] = self.created_at
        if self.updated_at:
            out['updated_at'] = self.updated_at
        return out


@dataclass
class Space:
    """A Storyblok space.

    Attributes:
        id: Space id
        name: Space name
        plan_level: Subscription plan level (999 marks development spaces)
    """
    id: int
    name: str = ""
    plan_level: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Space':
        return cls(
            id=data.get('id') or 0,
            name=data.get('name') or "",
            plan_level=data.get('plan_level') or 0,
        )


@dataclass
class APIKey:
    """A space API key usable against the Content Delivery API.

    Attributes:
        id: Key id
        access: "private" (preview) or "public"
        token: The token itself
        name: Optional label
    """
    id: int = 0
    access: str = ""
    token: str = ""
    name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'APIKey':
        return cls(
            id=data.get('id') or 0,
            access=data.get('access') or "",
            token=data.get('token') or "",
            name=data.get('name') or "",
        )
