"""Root pytest configuration for all tests."""

import logging

import pytest


# Suppress urllib3 connection-pool chatter when tests exercise real sessions.
logging.getLogger("urllib3").setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """Keep transport backoff short so retry tests do not sleep for real."""
    monkeypatch.setenv("SB_MA_RETRY_BASE_MS", "1")
    monkeypatch.setenv("SB_MA_RETRY_CAP_MS", "2")
