"""Typed exception hierarchy for Storyblok-related errors.

This module defines all custom exceptions used by the Storyblok client library.
All exceptions inherit from StoryblokError base class for easy catching and
include descriptive messages with context to help with debugging.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all storyblok-space-sync errors.

    Use this to catch any application-level error from the sync tool.
    """
    pass


class StoryblokError(SyncError):
    """Base exception for all Storyblok API errors."""
    pass


class InvalidCredentialsError(StoryblokError):
    """Raised when the API token is missing, invalid or lacks access."""

    def __init__(self, endpoint: str, reason: Optional[str] = None):
        message = f"API token is invalid (endpoint: {endpoint})"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.endpoint = endpoint
        self.reason = reason


class StoryNotFoundError(StoryblokError):
    """Raised when a requested story does not exist."""

    def __init__(self, story_ref: str):
        super().__init__(f"Story {story_ref} not found")
        self.story_ref = story_ref


class APIUnreachableError(StoryblokError):
    """Raised when the Storyblok API is not available or unreachable."""

    def __init__(self, endpoint: str):
        super().__init__(f"API is not available at {endpoint}")
        self.endpoint = endpoint


class APIAccessError(StoryblokError):
    """Raised when an API call fails with a non-success status."""

    def __init__(self, message: str = "Storyblok API failure", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(APIAccessError):
    """Raised when the API keeps answering 429 after all transport retries."""

    def __init__(self, operation: str):
        super().__init__(f"429 Too Many Requests during {operation}", status_code=429)
        self.operation = operation


class UnprocessableEntityError(APIAccessError):
    """Raised on 422 responses, typically a missing parent folder."""

    def __init__(self, operation: str, detail: Optional[str] = None):
        message = f"422 Unprocessable Entity during {operation}"
        if detail:
            message += f": {detail}"
        super().__init__(message, status_code=422)
        self.operation = operation
        self.detail = detail


def is_rate_limited(exception: Optional[BaseException]) -> bool:
    """Check whether an error signals throttling.

    Args:
        exception: The error to inspect (None is allowed)

    Returns:
        True for 429 status codes or rate limit phrases in the message
    """
    if exception is None:
        return False
    if getattr(exception, 'status_code', None) == 429:
        return True
    error_msg = str(exception).lower()
    return '429' in error_msg or 'rate limit' in error_msg or 'too many requests' in error_msg


def is_unprocessable(exception: Optional[BaseException]) -> bool:
    """Check whether an error is of the "unprocessable" class (422).

    Args:
        exception: The error to inspect (None is allowed)

    Returns:
        True for 422 status codes or "unprocessable" in the message
    """
    if exception is None:
        return False
    if getattr(exception, 'status_code', None) == 422:
        return True
    error_msg = str(exception)
    return '422' in error_msg or 'unprocessable' in error_msg.lower()
