"""API wrapper for the Storyblok Management API (v1).

This module wraps a requests Session and provides error translation from
HTTP failures to our typed exception hierarchy. It integrates with the retry
logic for throttling and transient failures.
"""

import logging
import re
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from requests.exceptions import Timeout, ConnectTimeout, ReadTimeout, ConnectionError

from .auth import Authenticator
from .errors import (
    InvalidCredentialsError,
    StoryNotFoundError,
    APIUnreachableError,
    APIAccessError,
    RateLimitError,
    UnprocessableEntityError,
)
from .models import APIKey, Space, Story
from .retry_logic import retry_on_rate_limit

logger = logging.getLogger(__name__)

# Seconds before a single HTTP request is abandoned
REQUEST_TIMEOUT = 30

# Largest page size the Management API accepts
MAX_PER_PAGE = 100


class ManagementAPI:
    """Thin wrapper over the Storyblok Management API with error translation.

    This class:
    1. Handles authentication using the Authenticator
    2. Translates HTTP errors to typed exceptions
    3. Integrates retry logic for 429/5xx and network failures
    4. Exposes raw-payload calls so unmodeled story fields survive a copy

    Raw payload support is advertised through the supports_raw_payloads
    class attribute, which sync code reads once instead of probing methods.

    Example:
        >>> api = ManagementAPI(Authenticator())
        >>> stories = api.get_stories_by_slug(12345, "app/de")
    """

    supports_raw_payloads = True

    def __init__(self, authenticator: Authenticator, session: Optional[requests.Session] = None):
        """Initialize the API wrapper.

        Args:
            authenticator: Authenticator instance for loading credentials
            session: Optional pre-configured session (mainly for tests)
        """
        self._authenticator = authenticator
        self._session = session
        self._base_url: Optional[str] = None
        self._token: Optional[str] = None

    def _get_session(self) -> requests.Session:
        """Get or create the HTTP session.

        The session is created lazily on first use so that credentials are
        only validated when the API is actually needed.

        Returns:
            requests.Session with the Authorization header set

        Raises:
            InvalidCredentialsError: If credentials are missing
        """
        if self._base_url is None:
            creds = self._authenticator.get_credentials()
            self._base_url = creds.api_url.rstrip('/')
            self._token = creds.token
            if self._session is None:
                self._session = requests.Session()
            self._session.headers.update({
                'Authorization': creds.token,
                'Content-Type': 'application/json',
            })
        return self._session  # type: ignore[return-value]

    def _validate_id(self, name: str, value: int) -> None:
        """Reject ids that are not positive integers.

        Ids are interpolated into URL paths, so anything else is refused.

        Raises:
            ValueError: If value is not a positive integer
        """
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"Invalid {name}: '{value}'. Expected a positive integer.")

    def _sanitize_credentials(self, text: str) -> str:
        """Sanitize error messages to prevent token leakage.

        Args:
            text: The error message or log text to sanitize

        Returns:
            str: Sanitized text with credentials masked

        Example:
            >>> api._sanitize_credentials("Authorization: abc123")
            'Authorization: ***REDACTED***'
        """
        if not text:
            return text

        sanitized = text

        if self._token:
            sanitized = sanitized.replace(self._token, '***REDACTED***')

        sanitized = re.sub(
            r'Authorization:\s*[^\n\r]+',
            'Authorization: ***REDACTED***',
            sanitized,
            flags=re.IGNORECASE
        )

        # token=... query parameters (CDA URLs carry the token this way)
        sanitized = re.sub(
            r'(token)=([^"\'\s&]+)',
            r'\1=***REDACTED***',
            sanitized,
            flags=re.IGNORECASE
        )

        sanitized = re.sub(
            r'(access_?token|token)["\']?\s*:\s*["\']?([^"\'\s&,}]+)',
            r'\1: ***REDACTED***',
            sanitized,
            flags=re.IGNORECASE
        )

        return sanitized

    def _endpoint(self) -> str:
        return self._base_url or "https://mapi.storyblok.com/v1"

    def _translate_error(self, exception: Exception, operation: str) -> Exception:
        """Translate transport exceptions to typed Storyblok exceptions.

        Args:
            exception: The original exception from requests
            operation: Description of the operation that failed (for logging)

        Returns:
            Exception: Translated exception (one of our typed exceptions)
        """
        if isinstance(exception, (Timeout, ConnectTimeout, ReadTimeout, ConnectionError)):
            return APIUnreachableError(endpoint=self._endpoint())

        if isinstance(exception, (InvalidCredentialsError, APIAccessError, StoryNotFoundError)):
            return exception

        safe_error_msg = self._sanitize_credentials(str(exception))
        logger.error(f"API operation failed: {operation} - {safe_error_msg}")
        return APIAccessError(f"Storyblok API failure during {operation}")

    def _error_from_response(self, response: requests.Response, operation: str) -> Exception:
        """Map a non-success HTTP response to a typed exception.

        Args:
            response: The failed response
            operation: Description of the operation (e.g., "get_story_raw(1, 2)")

        Returns:
            Exception: The typed exception to raise
        """
        status = response.status_code
        detail = self._sanitize_credentials((response.text or '')[:300])

        if status in (401, 403):
            return InvalidCredentialsError(endpoint=self._endpoint(), reason=f"HTTP {status}")
        if status == 404:
            ref = "unknown"
            match = re.search(r'\(([^)]+)\)', operation)
            if match:
                ref = match.group(1)
            return StoryNotFoundError(story_ref=ref)
        if status == 422:
            return UnprocessableEntityError(operation, detail or None)

        if status == 429:
            error: APIAccessError = RateLimitError(operation)
        else:
            error = APIAccessError(
                f"Storyblok API failure during {operation} (HTTP {status}): {detail}",
                status_code=status,
            )
        error.retry_after = _parse_retry_after(response.headers.get('Retry-After'))  # type: ignore[attr-defined]
        return error

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """Issue one request with retry and error translation.

        Returns:
            The successful response

        Raises:
            InvalidCredentialsError, StoryNotFoundError, UnprocessableEntityError,
            RateLimitError, APIUnreachableError, APIAccessError
        """
        def _fetch():
            try:
                session = self._get_session()
                response = session.request(
                    method,
                    f"{self._base_url}{path}",
                    params=params,
                    json=payload,
                    timeout=REQUEST_TIMEOUT,
                )
            except Exception as e:
                raise self._translate_error(e, operation) from e
            if response.status_code >= 400:
                raise self._error_from_response(response, operation)
            return response

        logger.debug(f"{method} {path} ({operation})")
        return retry_on_rate_limit(_fetch)

    def get_stories_by_slug(self, space_id: int, slug: str) -> List[Story]:
        """Look up stories whose full_slug equals slug.

        Args:
            space_id: The space to search
            slug: Exact full slug

        Returns:
            Matching stories (empty list if none)

        Raises:
            InvalidCredentialsError: If credentials are invalid
            APIUnreachableError: If API is unreachable
            APIAccessError: If API access fails after retries
        """
        self._validate_id('space_id', space_id)
        try:
            response = self._request(
                'GET',
                f"/spaces/{space_id}/stories",
                f"get_stories_by_slug({slug})",
                params={'with_slug': slug},
            )
        except StoryNotFoundError:
            return []
        return [Story.from_dict(s) for s in response.json().get('stories') or []]

    def get_story_with_content(self, space_id: int, story_id: int) -> Story:
        """Fetch a story including its content payload.

        Raises:
            StoryNotFoundError: If the story doesn't exist
        """
        return Story.from_dict(self.get_story_raw(space_id, story_id))

    def get_story_raw(self, space_id: int, story_id: int) -> Dict[str, Any]:
        """Fetch the complete, untyped story record.

        Args:
            space_id: The space id
            story_id: The story id

        Returns:
            Dict with every field the API returns

        Raises:
            StoryNotFoundError: If the story doesn't exist
            APIAccessError: If API access fails after retries
        """
        self._validate_id('space_id', space_id)
        self._validate_id('story_id', story_id)
        response = self._request(
            'GET',
            f"/spaces/{space_id}/stories/{story_id}",
            f"get_story_raw({story_id})",
        )
        return response.json().get('story') or {}

    def create_story_raw(self, space_id: int, raw: Dict[str, Any], publish: bool = False) -> Story:
        """Create a story from a raw payload.

        Args:
            space_id: Target space id
            raw: Story payload (any fields the API accepts)
            publish: Publish immediately after creation

        Returns:
            The created story

        Raises:
            UnprocessableEntityError: If the API rejects the payload (422)
            APIAccessError: If API access fails after retries
        """
        self._validate_id('space_id', space_id)
        body: Dict[str, Any] = {'story': raw}
        if publish:
            body['publish'] = 1
        response = self._request(
            'POST',
            f"/spaces/{space_id}/stories",
            f"create_story_raw({raw.get('full_slug', '')})",
            payload=body,
        )
        return Story.from_dict(response.json().get('story') or {})

    def update_story_raw(
        self,
        space_id: int,
        story_id: int,
        raw: Dict[str, Any],
        publish: bool = False,
    ) -> Story:
        """Overwrite an existing story with a raw payload.

        Args:
            space_id: Target space id
            story_id: Id of the story to update
            raw: Story payload
            publish: Publish after the update

        Returns:
            The updated story

        Raises:
            UnprocessableEntityError: If the API rejects the payload (422)
            StoryNotFoundError: If the story doesn't exist
            APIAccessError: If API access fails after retries
        """
        self._validate_id('space_id', space_id)
        self._validate_id('story_id', story_id)
        body: Dict[str, Any] = {'story': raw, 'force_update': 1}
        if publish:
            body['publish'] = 1
        response = self._request(
            'PUT',
            f"/spaces/{space_id}/stories/{story_id}",
            f"update_story_raw({story_id})",
            payload=body,
        )
        return Story.from_dict(response.json().get('story') or {})

    def update_story_uuid(self, space_id: int, story_id: int, uuid: str) -> None:
        """Set the uuid of an existing story."""
        self._validate_id('space_id', space_id)
        self._validate_id('story_id', story_id)
        self._request(
            'PUT',
            f"/spaces/{space_id}/stories/{story_id}",
            f"update_story_uuid({story_id})",
            payload={'story': {'uuid': uuid}, 'force_update': 1},
        )

    def list_space_api_keys(self, space_id: int) -> List[APIKey]:
        """List the delivery API keys of a space."""
        self._validate_id('space_id', space_id)
        response = self._request(
            'GET',
            f"/spaces/{space_id}/api_keys",
            f"list_space_api_keys({space_id})",
        )
        return [APIKey.from_dict(k) for k in response.json().get('api_keys') or []]

    def list_stories(self, space_id: int, per_page: int = MAX_PER_PAGE) -> List[Story]:
        """List every story and folder of a space (without content).

        Pages through the listing until a short page is returned.

        Args:
            space_id: The space id
            per_page: Page size (clamped to 1..100)

        Returns:
            All stories of the space
        """
        self._validate_id('space_id', space_id)
        per_page = min(max(per_page, 1), MAX_PER_PAGE)
        stories: List[Story] = []
        page = 1
        while True:
            response = self._request(
                'GET',
                f"/spaces/{space_id}/stories",
                f"list_stories({space_id}, page {page})",
                params={'per_page': per_page, 'page': page},
            )
            batch = response.json().get('stories') or []
            stories.extend(Story.from_dict(s) for s in batch)
            if len(batch) < per_page:
                break
            page += 1
        logger.info(f"Listed {len(stories)} stories in space {space_id}")
        return stories

    def get_space(self, space_id: int) -> Space:
        """Fetch space metadata (name, plan level)."""
        self._validate_id('space_id', space_id)
        response = self._request('GET', f"/spaces/{space_id}", f"get_space({space_id})")
        return Space.from_dict(response.json().get('space') or {'id': space_id})


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header (delta seconds or HTTP date) into seconds."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    delta = (when - datetime.now(timezone.utc)).total_seconds()
    return delta if delta > 0 else None
