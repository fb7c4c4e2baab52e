"""Test helper modules for Storyblok sync testing.

This package provides in-memory API doubles for unit tests:
- fake_storyblok: FakeManagementAPI and FakeCDAClient
"""

from .fake_storyblok import FakeCDAClient, FakeManagementAPI

__all__ = [
    'FakeCDAClient',
    'FakeManagementAPI',
]
