"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any application import so settings
pick the in-memory store and a fake provider key.
"""

import os
from unittest.mock import Mock

import pytest

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["STORE_BACKEND"] = "memory"
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from imagegen_api.adapters.store.in_memory import InMemoryKeyValueStore  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Controllable UNIX-time source; advance with ``clock.return_value += n``."""
    return Mock(return_value=1_000_000.0)


@pytest.fixture
def store(clock: Mock) -> InMemoryKeyValueStore:
    """Fresh in-memory store driven by the shared test clock."""
    return InMemoryKeyValueStore(clock=clock)
