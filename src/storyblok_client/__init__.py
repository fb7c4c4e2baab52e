"""Storyblok client library for space-to-space sync.

This package provides Python abstractions over the Storyblok Management API
and Content Delivery API, with typed errors and transport-level retries.
"""

from .errors import (
    SyncError,
    StoryblokError,
    InvalidCredentialsError,
    StoryNotFoundError,
    APIUnreachableError,
    APIAccessError,
    RateLimitError,
    UnprocessableEntityError,
    is_rate_limited,
    is_unprocessable,
)
from .models import APIKey, Space, Story, TranslatedSlug

__all__ = [
    "SyncError",
    "StoryblokError",
    "InvalidCredentialsError",
    "StoryNotFoundError",
    "APIUnreachableError",
    "APIAccessError",
    "RateLimitError",
    "UnprocessableEntityError",
    "is_rate_limited",
    "is_unprocessable",
    "APIKey",
    "Space",
    "Story",
    "TranslatedSlug",
]
