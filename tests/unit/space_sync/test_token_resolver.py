"""Unit tests for space_sync.token_resolver module."""

from unittest.mock import Mock

from src.space_sync.call_context import CallContext
from src.space_sync.token_resolver import resolve_cda_token
from src.storyblok_client.models import APIKey


class TestResolveCdaToken:
    """Test cases for resolve_cda_token()."""

    def test_prefers_preview_token(self):
        """A private key wins over a public one."""
        api = Mock()
        api.list_space_api_keys.return_value = [
            APIKey(access="public", token="pub"),
            APIKey(access="private", token="prev"),
        ]

        info = resolve_cda_token(None, api, 1)

        assert info.selected == "prev"
        assert info.kind == "preview"
        assert info.public == "pub"
        assert info.available is True

    def test_falls_back_to_public(self):
        """Only a public key means public hydration."""
        api = Mock()
        api.list_space_api_keys.return_value = [APIKey(access="PUBLIC", token="pub")]

        info = resolve_cda_token(None, api, 1)

        assert info.selected == "pub"
        assert info.kind == "public"

    def test_first_key_of_each_kind_wins(self):
        """Later keys of the same access level are ignored."""
        api = Mock()
        api.list_space_api_keys.return_value = [
            APIKey(access="private", token="first"),
            APIKey(access="private", token="second"),
        ]

        assert resolve_cda_token(None, api, 1).preview == "first"

    def test_no_keys_is_unavailable(self):
        api = Mock()
        api.list_space_api_keys.return_value = [APIKey(access="theme", token="t")]

        info = resolve_cda_token(None, api, 1)

        assert info.available is False
        assert info.selected == ""

    def test_listing_failure_is_unavailable(self):
        """A failing key listing is not an error."""
        api = Mock()
        api.list_space_api_keys.side_effect = RuntimeError("403")

        assert resolve_cda_token(None, api, 1).available is False

    def test_done_context_skips_listing(self):
        ctx = CallContext()
        ctx.cancel()
        api = Mock()

        assert resolve_cda_token(ctx, api, 1).available is False
        api.list_space_api_keys.assert_not_called()
