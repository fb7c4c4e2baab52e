"""Unit tests for storyblok_client.errors module."""

from src.storyblok_client.errors import (
    APIAccessError,
    InvalidCredentialsError,
    RateLimitError,
    StoryNotFoundError,
    StoryblokError,
    SyncError,
    UnprocessableEntityError,
    is_rate_limited,
    is_unprocessable,
)


class TestExceptionHierarchy:
    """Test cases for the exception hierarchy."""

    def test_all_errors_derive_from_sync_error(self):
        """Every Storyblok error can be caught as SyncError."""
        errors = [
            InvalidCredentialsError("https://mapi"),
            StoryNotFoundError("42"),
            APIAccessError("boom"),
            RateLimitError("list"),
            UnprocessableEntityError("create"),
        ]
        for error in errors:
            assert isinstance(error, StoryblokError)
            assert isinstance(error, SyncError)

    def test_invalid_credentials_message_includes_reason(self):
        """InvalidCredentialsError carries endpoint and reason."""
        error = InvalidCredentialsError("https://mapi", reason="HTTP 401")

        assert "https://mapi" in str(error)
        assert "HTTP 401" in str(error)
        assert error.reason == "HTTP 401"

    def test_rate_limit_error_has_status_429(self):
        """RateLimitError is an APIAccessError with status 429."""
        error = RateLimitError("get_story_raw(1)")

        assert isinstance(error, APIAccessError)
        assert error.status_code == 429

    def test_unprocessable_includes_detail(self):
        """UnprocessableEntityError appends the response detail."""
        error = UnprocessableEntityError("create_story_raw(app/page)", "parent missing")

        assert error.status_code == 422
        assert "parent missing" in str(error)


class TestIsRateLimited:
    """Test cases for is_rate_limited()."""

    def test_none_is_not_rate_limited(self):
        """None is accepted and is not a throttle."""
        assert is_rate_limited(None) is False

    def test_detects_status_code(self):
        """status_code 429 marks a throttle."""
        assert is_rate_limited(APIAccessError("x", status_code=429)) is True

    def test_detects_message_phrases(self):
        """Throttle phrases in the message are recognized."""
        assert is_rate_limited(Exception("HTTP 429")) is True
        assert is_rate_limited(Exception("Rate limit exceeded")) is True
        assert is_rate_limited(Exception("Too Many Requests")) is True

    def test_other_errors_are_not_rate_limited(self):
        """Unrelated errors are not throttles."""
        assert is_rate_limited(APIAccessError("bad request", status_code=400)) is False


class TestIsUnprocessable:
    """Test cases for is_unprocessable()."""

    def test_none_is_not_unprocessable(self):
        """None is accepted."""
        assert is_unprocessable(None) is False

    def test_detects_status_code(self):
        """status_code 422 marks an unprocessable error."""
        assert is_unprocessable(UnprocessableEntityError("create")) is True

    def test_detects_message(self):
        """'422' or 'unprocessable' in the message is enough."""
        assert is_unprocessable(Exception("got 422 from server")) is True
        assert is_unprocessable(Exception("Unprocessable Entity")) is True

    def test_other_errors_are_not_unprocessable(self):
        """A 500 is not unprocessable."""
        assert is_unprocessable(APIAccessError("server error", status_code=500)) is False
