"""Authentication module for loading Storyblok credentials.

This module handles loading the Storyblok management token and the default
source/target space ids from environment variables using python-dotenv.
"""

import os
from typing import NamedTuple, Optional

from dotenv import load_dotenv

from .errors import InvalidCredentialsError

MANAGEMENT_API_URL = "https://mapi.storyblok.com/v1"


class Credentials(NamedTuple):
    """Storyblok API credentials and default spaces."""
    token: str
    source_space_id: Optional[int] = None
    target_space_id: Optional[int] = None
    api_url: str = MANAGEMENT_API_URL


class Authenticator:
    """Loads and validates Storyblok credentials from environment variables.

    Credentials are loaded from a .env file using python-dotenv and are never
    logged.

    Required environment variables:
        SB_TOKEN: Storyblok personal access (management) token

    Optional environment variables:
        SOURCE_SPACE_ID: Default source space id
        TARGET_SPACE_ID: Default target space id
        SB_MA_URL: Override for the management API base URL

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
        >>> print(f"Syncing {creds.source_space_id} -> {creds.target_space_id}")
    """

    def __init__(self):
        """Initialize the authenticator by loading environment variables from .env file."""
        load_dotenv()

    def get_credentials(self) -> Credentials:
        """Get Storyblok credentials from environment variables.

        Returns:
            Credentials: token, optional space ids and API base URL

        Raises:
            InvalidCredentialsError: If SB_TOKEN is missing or a space id is not numeric
        """
        api_url = os.getenv('SB_MA_URL') or MANAGEMENT_API_URL
        token = (os.getenv('SB_TOKEN') or '').strip()
        if not token:
            raise InvalidCredentialsError(endpoint=api_url, reason="SB_TOKEN is not set")

        return Credentials(
            token=token,
            source_space_id=self._parse_space_id('SOURCE_SPACE_ID', api_url),
            target_space_id=self._parse_space_id('TARGET_SPACE_ID', api_url),
            api_url=api_url,
        )

    @staticmethod
    def _parse_space_id(name: str, api_url: str) -> Optional[int]:
        value = (os.getenv(name) or '').strip()
        if not value:
            return None
        if not value.isdigit():
            raise InvalidCredentialsError(
                endpoint=api_url,
                reason=f"{name} must be numeric, got '{value}'"
            )
        return int(value)
