"""Pytest configuration and fixtures."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from fakes import FakeWordPressClient, InMemoryStore
from plugins.registry import reset_registry


@pytest.fixture(autouse=True)
def clean_registry():
    """Keep the global probe registry isolated between tests."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def mock_pool():
    """Create a mock asyncpg pool."""
    pool = AsyncMock()
    pool.acquire = MagicMock()
    return pool


@pytest.fixture
def mock_connection():
    """Create a mock asyncpg connection."""
    conn = AsyncMock()
    return conn


@pytest.fixture
def sample_site():
    """Sample remote site row for testing."""
    return {
        "id": 1,
        "name": "Main blog",
        "base_url": "https://blog.example.com",
        "username": "admin",
        "credential_ref": None,
        "translation_plugin": "POLYLANG",
        "plugin_version": "3.5.2",
        "plugin_settings": {"languageParameter": "lang"},
        "supported_languages": ["en", "fr"],
        "sync_status": "idle",
        "last_sync_error": None,
        "total_found": 0,
        "total_synced": 0,
        "sync_started_at": None,
        "last_sync_at": None,
    }


@pytest.fixture
def store():
    """In-memory content store."""
    return InMemoryStore()


@pytest.fixture
def wp_client():
    """Fake WordPress client with no routes (every path answers 404)."""
    return FakeWordPressClient()
