"""Unit tests for space_sync.payloads module."""

from src.space_sync.payloads import (
    strip_system_fields,
    to_translated_slug_attributes,
    typed_payload,
)
from src.storyblok_client.models import Story, TranslatedSlug


class TestStripSystemFields:
    """Test cases for strip_system_fields()."""

    def test_removes_id_and_timestamps_only(self):
        """Everything except id and the timestamps is kept."""
        # Arrange
        raw = {
            'id': 1, 'created_at': 'x', 'updated_at': 'y',
            'uuid': 'u', 'name': 'Home', 'custom': {'a': 1},
        }

        # Act
        result = strip_system_fields(raw)

        # Assert
        assert result is raw
        assert raw == {'uuid': 'u', 'name': 'Home', 'custom': {'a': 1}}

    def test_missing_fields_are_ignored(self):
        assert strip_system_fields({'name': 'a'}) == {'name': 'a'}


class TestTranslatedSlugAttributes:
    """Test cases for to_translated_slug_attributes()."""

    def test_source_ids_are_dropped(self):
        """Variant ids of the source never reach the payload."""
        # Arrange
        raw = {'translated_slugs': [{'lang': 'de', 'path': 'app/seite', 'id': 5}]}

        # Act
        to_translated_slug_attributes(raw)

        # Assert
        assert 'translated_slugs' not in raw
        assert raw['translated_slugs_attributes'] == [{'lang': 'de', 'path': 'app/seite'}]

    def test_target_ids_are_reused_by_language(self):
        """keep_ids maps languages to existing target variant ids."""
        raw = {'translated_slugs': [
            {'lang': 'de', 'path': 'seite', 'id': 5},
            {'lang': 'fr', 'path': 'page', 'id': 6},
        ]}

        to_translated_slug_attributes(raw, keep_ids={'de': 500})

        assert raw['translated_slugs_attributes'] == [
            {'lang': 'de', 'path': 'seite', 'id': 500},
            {'lang': 'fr', 'path': 'page'},
        ]

    def test_new_slug_replaces_last_segment(self):
        """Forks rewrite the trailing segment of every non-empty path."""
        raw = {'translated_slugs': [
            {'lang': 'de', 'path': 'app/seite'},
            {'lang': 'fr', 'path': ''},
        ]}

        to_translated_slug_attributes(raw, new_slug="kopie")

        assert raw['translated_slugs_attributes'] == [
            {'lang': 'de', 'path': 'app/kopie'},
            {'lang': 'fr', 'path': ''},
        ]

    def test_without_variants_raw_is_untouched(self):
        """No variants means no attributes key."""
        raw = {'name': 'x', 'translated_slugs': []}

        to_translated_slug_attributes(raw)

        assert raw == {'name': 'x', 'translated_slugs': []}

    def test_non_dict_variants_are_skipped(self):
        raw = {'translated_slugs': ['bogus', {'lang': 'de', 'path': 'a'}]}

        to_translated_slug_attributes(raw)

        assert raw['translated_slugs_attributes'] == [{'lang': 'de', 'path': 'a'}]


class TestTypedPayload:
    """Test cases for typed_payload()."""

    def test_known_fields_only(self):
        """The payload carries the typed fields and a zero root parent."""
        # Arrange
        story = Story(id=7, uuid="u-1", name="Home", slug="home", full_slug="home",
                      content={'component': 'page'})

        # Act
        payload = typed_payload(story)

        # Assert
        assert payload == {
            'uuid': "u-1",
            'name': "Home",
            'slug': "home",
            'full_slug': "home",
            'content': {'component': 'page'},
            'is_folder': False,
            'parent_id': 0,
        }

    def test_missing_content_becomes_empty_dict(self):
        payload = typed_payload(Story(slug="a", full_slug="a"))

        assert payload['content'] == {}

    def test_folder_flag_override_and_variants(self):
        """is_folder can be forced and write-form variants are included."""
        story = Story(
            slug="app", full_slug="app", parent_id=3,
            translated_slugs_attributes=[TranslatedSlug(lang="de", path="anwendung", id=11)],
        )

        payload = typed_payload(story, is_folder=True)

        assert payload['is_folder'] is True
        assert payload['parent_id'] == 3
        assert payload['translated_slugs_attributes'][0]['lang'] == "de"
        assert payload['translated_slugs_attributes'][0]['id'] == 11
