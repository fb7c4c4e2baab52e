"""Unit tests for storyblok_client.models module."""

from src.storyblok_client.models import APIKey, Space, Story, TranslatedSlug


class TestStory:
    """Test cases for Story serialization."""

    def test_from_dict_maps_fields(self):
        """All modeled fields are read from a Management API record."""
        story = Story.from_dict({
            'id': 3,
            'uuid': 'u-3',
            'name': 'Page',
            'slug': 'page',
            'full_slug': 'app/page',
            'parent_id': 2,
            'is_folder': False,
            'published': True,
            'content': {'component': 'page'},
            'translated_slugs': [{'lang': 'de', 'name': 'Seite', 'path': 'app/seite', 'id': 11}],
            'tag_list': ['a'],
            'position': 4,
        })

        assert story.id == 3
        assert story.parent_id == 2
        assert story.published is True
        assert story.translated_slugs == [TranslatedSlug(lang='de', name='Seite', path='app/seite', id=11)]
        assert story.tag_list == ['a']

    def test_root_parent_is_none(self):
        """parent_id 0 means root and becomes None."""
        assert Story.from_dict({'parent_id': 0}).parent_id is None

    def test_folder_id_fallback(self):
        """Delivery API records carry folder_id instead of parent_id."""
        assert Story.from_dict({'folder_id': 8}).parent_id == 8

    def test_missing_fields_get_defaults(self):
        """An empty record yields a blank story."""
        story = Story.from_dict({})

        assert story.id == 0
        assert story.content is None
        assert story.translated_slugs == []

    def test_to_dict_writes_root_parent_as_zero(self):
        """Serialization uses parent_id 0 at root and omits empty optionals."""
        out = Story(id=1, full_slug='app', is_folder=True).to_dict()

        assert out['parent_id'] == 0
        assert 'content' not in out
        assert 'translated_slugs' not in out

    def test_to_dict_omits_variant_id_when_unknown(self):
        """Variants without id serialize without the key."""
        story = Story(translated_slugs_attributes=[TranslatedSlug(lang='de', path='x')])

        out = story.to_dict()

        assert out['translated_slugs_attributes'] == [{'lang': 'de', 'name': '', 'path': 'x'}]


class TestSpaceAndKeys:
    """Test cases for Space and APIKey."""

    def test_space_from_dict(self):
        space = Space.from_dict({'id': 5, 'name': 'Prod', 'plan_level': 999})
        assert space == Space(id=5, name='Prod', plan_level=999)

    def test_api_key_from_dict(self):
        key = APIKey.from_dict({'id': 1, 'access': 'public', 'token': 't'})
        assert key.access == 'public'
        assert key.token == 't'
