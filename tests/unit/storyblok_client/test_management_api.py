"""Unit tests for storyblok_client.api_wrapper.ManagementAPI."""

import pytest
from unittest.mock import MagicMock, Mock, patch
from requests.exceptions import ConnectionError

from src.storyblok_client.api_wrapper import ManagementAPI, _parse_retry_after
from src.storyblok_client.auth import Credentials
from src.storyblok_client.errors import (
    APIAccessError,
    APIUnreachableError,
    InvalidCredentialsError,
    RateLimitError,
    StoryNotFoundError,
    UnprocessableEntityError,
)


def _response(status_code=200, payload=None, text="", headers=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = text
    response.headers = headers or {}
    return response


@pytest.fixture
def session():
    mock_session = MagicMock()
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def api(session):
    authenticator = Mock()
    authenticator.get_credentials.return_value = Credentials(
        token="secret-token", api_url="https://mapi.example.com/v1/"
    )
    return ManagementAPI(authenticator, session=session)


class TestSession:
    """Test cases for lazy session setup."""

    def test_authorization_header_is_set(self, api, session):
        """The token is sent as the Authorization header."""
        session.request.return_value = _response(payload={'space': {'id': 1, 'name': 'S'}})

        api.get_space(1)

        assert session.headers['Authorization'] == "secret-token"

    def test_base_url_is_trimmed(self, api, session):
        """Trailing slashes of the base URL are removed."""
        session.request.return_value = _response(payload={'space': {'id': 1}})

        api.get_space(1)

        method, url = session.request.call_args[0]
        assert method == 'GET'
        assert url == "https://mapi.example.com/v1/spaces/1"

    def test_advertises_raw_payloads(self, api):
        """Raw payload support is a class attribute."""
        assert ManagementAPI.supports_raw_payloads is True
        assert api.supports_raw_payloads is True


class TestValidation:
    """Test cases for id validation."""

    @pytest.mark.parametrize("bad_id", [0, -1, "12", None, True])
    def test_rejects_invalid_space_id(self, api, bad_id):
        """Non-positive or non-int ids are refused before any request."""
        with pytest.raises(ValueError):
            api.get_story_raw(bad_id, 1)


class TestReads:
    """Test cases for read calls."""

    def test_get_stories_by_slug(self, api, session):
        """with_slug lookup returns typed stories."""
        session.request.return_value = _response(payload={
            'stories': [{'id': 5, 'full_slug': 'app/de', 'is_folder': True, 'parent_id': 0}]
        })

        stories = api.get_stories_by_slug(1, "app/de")

        assert len(stories) == 1
        assert stories[0].id == 5
        assert stories[0].is_folder is True
        assert stories[0].parent_id is None
        assert session.request.call_args[1]['params'] == {'with_slug': 'app/de'}

    def test_get_stories_by_slug_404_is_empty(self, api, session):
        """A 404 on lookup means no match."""
        session.request.return_value = _response(status_code=404)

        assert api.get_stories_by_slug(1, "missing") == []

    def test_get_story_raw_returns_dict(self, api, session):
        """Raw reads return every field untouched."""
        session.request.return_value = _response(payload={
            'story': {'id': 7, 'content': {'component': 'page'}, 'custom_field': 'x'}
        })

        raw = api.get_story_raw(1, 7)

        assert raw['custom_field'] == 'x'

    def test_get_story_raw_404(self, api, session):
        """A missing story raises StoryNotFoundError."""
        session.request.return_value = _response(status_code=404)

        with pytest.raises(StoryNotFoundError) as exc_info:
            api.get_story_raw(1, 7)

        assert exc_info.value.story_ref == "7"

    def test_list_stories_paginates(self, api, session):
        """Pages are fetched until a short page arrives."""
        session.request.side_effect = [
            _response(payload={'stories': [{'id': 1}, {'id': 2}]}),
            _response(payload={'stories': [{'id': 3}]}),
        ]

        stories = api.list_stories(1, per_page=2)

        assert [s.id for s in stories] == [1, 2, 3]
        pages = [c[1]['params']['page'] for c in session.request.call_args_list]
        assert pages == [1, 2]

    def test_list_space_api_keys(self, api, session):
        """API keys are returned typed."""
        session.request.return_value = _response(payload={
            'api_keys': [{'id': 1, 'access': 'private', 'token': 'tok'}]
        })

        keys = api.list_space_api_keys(1)

        assert keys[0].access == 'private'
        assert keys[0].token == 'tok'


class TestWrites:
    """Test cases for write calls."""

    def test_create_story_raw_with_publish(self, api, session):
        """publish=True adds publish=1 to the body."""
        session.request.return_value = _response(payload={'story': {'id': 9, 'full_slug': 'app'}})

        story = api.create_story_raw(1, {'full_slug': 'app', 'name': 'App'}, publish=True)

        assert story.id == 9
        body = session.request.call_args[1]['json']
        assert body == {'story': {'full_slug': 'app', 'name': 'App'}, 'publish': 1}

    def test_update_story_raw_forces_update(self, api, session):
        """Updates send force_update and no publish flag by default."""
        session.request.return_value = _response(payload={'story': {'id': 9}})

        api.update_story_raw(1, 9, {'name': 'App'})

        method, url = session.request.call_args[0]
        assert method == 'PUT'
        assert url.endswith("/spaces/1/stories/9")
        assert session.request.call_args[1]['json'] == {'story': {'name': 'App'}, 'force_update': 1}

    def test_update_story_uuid(self, api, session):
        """The uuid is sent as a partial story."""
        session.request.return_value = _response(payload={'story': {'id': 9}})

        api.update_story_uuid(1, 9, "abc")

        assert session.request.call_args[1]['json']['story'] == {'uuid': 'abc'}

    def test_422_raises_unprocessable(self, api, session):
        """A 422 becomes UnprocessableEntityError and is not retried."""
        session.request.return_value = _response(status_code=422, text='{"parent_id":["not found"]}')

        with pytest.raises(UnprocessableEntityError):
            api.create_story_raw(1, {'full_slug': 'a/b'})
        assert session.request.call_count == 1


class TestErrorTranslation:
    """Test cases for HTTP error translation."""

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, api, session, status):
        """401 and 403 become InvalidCredentialsError."""
        session.request.return_value = _response(status_code=status)

        with pytest.raises(InvalidCredentialsError):
            api.get_space(1)

    @patch('src.storyblok_client.retry_logic.time.sleep')
    def test_429_retried_then_raised(self, mock_sleep, api, session, monkeypatch):
        """Persistent 429 raises RateLimitError after retries."""
        monkeypatch.setenv('SB_MA_RETRY_MAX', '2')
        session.request.return_value = _response(status_code=429, headers={'Retry-After': '1'})

        with pytest.raises(RateLimitError):
            api.get_space(1)
        assert session.request.call_count == 3

    @patch('src.storyblok_client.retry_logic.time.sleep')
    def test_network_error_becomes_unreachable(self, mock_sleep, api, session, monkeypatch):
        """Connection failures surface as APIUnreachableError."""
        monkeypatch.setenv('SB_MA_RETRY_MAX', '0')
        session.request.side_effect = ConnectionError("reset")

        with pytest.raises(APIUnreachableError):
            api.get_space(1)

    def test_other_status_becomes_access_error(self, api, session):
        """A 400 becomes APIAccessError with the status code."""
        session.request.return_value = _response(status_code=400, text="bad")

        with pytest.raises(APIAccessError) as exc_info:
            api.get_space(1)

        assert exc_info.value.status_code == 400

    def test_token_is_redacted_in_error_detail(self, api, session):
        """Error details never leak the token."""
        session.request.return_value = _response(status_code=400, text="echo secret-token")

        with pytest.raises(APIAccessError) as exc_info:
            api.get_space(1)

        assert "secret-token" not in str(exc_info.value)


class TestSanitizeCredentials:
    """Test cases for _sanitize_credentials()."""

    def test_masks_authorization_header(self, api):
        """Authorization headers are masked."""
        assert api._sanitize_credentials("Authorization: abc123") == "Authorization: ***REDACTED***"

    def test_masks_token_query_parameter(self, api):
        """token= query parameters are masked."""
        result = api._sanitize_credentials("GET /v2/cdn/stories?token=abc123&version=draft")
        assert "abc123" not in result


class TestParseRetryAfter:
    """Test cases for _parse_retry_after()."""

    def test_seconds(self):
        assert _parse_retry_after("3") == 3.0

    def test_empty(self):
        assert _parse_retry_after(None) is None
        assert _parse_retry_after("") is None

    def test_garbage(self):
        assert _parse_retry_after("soon") is None

    def test_past_date(self):
        assert _parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") is None
