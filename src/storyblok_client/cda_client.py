"""Client for the Storyblok Content Delivery API (v2).

The delivery API is used for bulk prefetching of content variants (draft or
published) ahead of a sync run. It authenticates with a space API key passed
as the ``token`` query parameter.
"""

import logging
from typing import Any, Callable, Dict, Optional

import requests

from .errors import APIAccessError, APIUnreachableError, InvalidCredentialsError, StoryNotFoundError
from .retry_logic import retry_on_rate_limit

logger = logging.getLogger(__name__)

CDA_BASE_URL = "https://api.storyblok.com/v2/cdn"

# Seconds before a single HTTP request is abandoned
REQUEST_TIMEOUT = 30


class CDAClient:
    """Content Delivery API client.

    Example:
        >>> cda = CDAClient(token="preview-token")
        >>> story = cda.get_story_raw_by_slug(12345, "app/de/page", "draft")
        >>> story["content"]["component"]
        'page'
    """

    def __init__(
        self,
        token: str,
        base_url: str = CDA_BASE_URL,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            token: Space API key (preview or public)
            base_url: Delivery API base URL
            session: Optional pre-configured session (mainly for tests)
        """
        self._token = token
        self._base_url = base_url.rstrip('/')
        self._session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, Any], operation: str) -> Dict[str, Any]:
        if not self._token:
            raise InvalidCredentialsError(endpoint=self._base_url, reason="delivery token is empty")

        query = dict(params)
        query['token'] = self._token

        def _fetch():
            try:
                response = self._session.get(
                    f"{self._base_url}{path}", params=query, timeout=REQUEST_TIMEOUT
                )
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                raise APIUnreachableError(endpoint=self._base_url) from e
            if response.status_code == 404:
                raise StoryNotFoundError(story_ref=operation)
            if response.status_code in (401, 403):
                raise InvalidCredentialsError(endpoint=self._base_url, reason=f"HTTP {response.status_code}")
            if response.status_code != 200:
                raise APIAccessError(
                    f"{operation} status {response.status_code}",
                    status_code=response.status_code,
                )
            return response.json()

        return retry_on_rate_limit(_fetch)

    def get_story_raw_by_slug(
        self,
        space_id: int,
        slug: str,
        version: str = "published",
        language: str = "",
    ) -> Dict[str, Any]:
        """Fetch one story by full slug.

        Args:
            space_id: Source space id (informational; the token selects the space)
            slug: Full slug of the story
            version: "draft" or "published"
            language: Optional language code

        Returns:
            The raw story object

        Raises:
            StoryNotFoundError: If no story exists for the slug/version
            APIAccessError: On other non-200 responses
        """
        params: Dict[str, Any] = {'version': version or "published", 'cv': 0}
        if language:
            params['language'] = language
        logger.debug(f"CDA fetch {slug} ({params['version']}) for space {space_id}")
        payload = self._get(f"/stories/{slug}", params, "cda.story.get")
        return payload.get('story') or {}

    def walk_stories_by_prefix(
        self,
        starts_with: str,
        version: str,
        per_page: int,
        fn: Callable[[Dict[str, Any]], None],
        language: str = "",
    ) -> int:
        """Call fn for every story under a slug prefix, across all pages.

        Args:
            starts_with: Full slug prefix
            version: "draft" or "published"
            per_page: Page size (clamped to 1..100)
            fn: Callback receiving each raw story; exceptions abort the walk
            language: Optional language code

        Returns:
            Number of stories visited
        """
        if per_page <= 0 or per_page > 100:
            per_page = 100
        visited = 0
        page = 1
        while True:
            params: Dict[str, Any] = {
                'version': version or "published",
                'starts_with': starts_with,
                'per_page': per_page,
                'page': page,
            }
            if language:
                params['language'] = language
            payload = self._get("/stories", params, "cda.stories.list")
            stories = payload.get('stories') or []
            for story in stories:
                fn(story)
                visited += 1
            if len(stories) < per_page:
                break
            page += 1
        return visited
