"""Unit tests for db.py - Database manager."""

import json
import pytest
from unittest.mock import AsyncMock, patch
from contextlib import asynccontextmanager

import asyncpg

from db import DatabaseManager, DuplicateSiteError


def attach(db_manager, conn):
    """Make db_manager.pool.acquire() yield conn."""

    @asynccontextmanager
    async def mock_acquire():
        yield conn

    db_manager.pool = AsyncMock()
    db_manager.pool.acquire = mock_acquire
    return conn


class MockRecord:
    """Dict-like stand-in for asyncpg.Record."""

    def __init__(self, data):
        self._data = data

    def __iter__(self):
        return iter(self._data.items())

    def keys(self):
        return self._data.keys()

    def get(self, key, default=None):
        return self._data.get(key, default)

    def __getitem__(self, key):
        return self._data[key]


@pytest.fixture
def db_manager():
    """Create a database manager for testing."""
    return DatabaseManager(
        host="localhost",
        port=5432,
        database="testdb",
        user="testuser",
        password="testpass",
    )


class TestDatabaseManager:
    """Tests for DatabaseManager class."""

    def test_init(self):
        """Test database manager initialization."""
        db = DatabaseManager(
            host="localhost",
            port=5432,
            database="testdb",
            user="testuser",
            password="testpass",
            min_pool_size=3,
            max_pool_size=10,
        )
        assert db.host == "localhost"
        assert db.database == "testdb"
        assert db.min_pool_size == 3
        assert db.max_pool_size == 10
        assert db.pool is None

    def test_ensure_connected_raises_when_not_connected(self, db_manager):
        """Test _ensure_connected raises when pool is None."""
        with pytest.raises(RuntimeError) as exc_info:
            db_manager._ensure_connected()
        assert "Database not connected" in str(exc_info.value)

    def test_parse_site_row(self, db_manager):
        """Test JSON columns returned as text are decoded."""
        record = MockRecord(
            {
                "id": 1,
                "name": "Main blog",
                "plugin_settings": '{"languageParameter": "lang"}',
                "supported_languages": '["en", "fr"]',
            }
        )

        result = db_manager._parse_site_row(record)

        assert result["plugin_settings"] == {"languageParameter": "lang"}
        assert result["supported_languages"] == ["en", "fr"]

    def test_parse_site_row_empty_json_fields(self, db_manager):
        """Test missing JSON columns default to empty values."""
        record = MockRecord(
            {"id": 1, "plugin_settings": None, "supported_languages": None}
        )

        result = db_manager._parse_site_row(record)

        assert result["plugin_settings"] == {}
        assert result["supported_languages"] == []


@pytest.mark.asyncio
class TestConnection:
    async def test_connect(self, db_manager):
        """Test database connection."""
        with patch("db.asyncpg.create_pool", new_callable=AsyncMock) as mock_create:
            mock_pool = AsyncMock()
            mock_create.return_value = mock_pool

            await db_manager.connect()

            mock_create.assert_called_once_with(
                host="localhost",
                port=5432,
                database="testdb",
                user="testuser",
                password="testpass",
                min_size=5,
                max_size=20,
                command_timeout=60,
            )
            assert db_manager.pool is mock_pool

    async def test_close(self, db_manager):
        """Test database connection close."""
        db_manager.pool = AsyncMock()

        await db_manager.close()

        db_manager.pool.close.assert_called_once()

    async def test_close_when_not_connected(self, db_manager):
        """Test close when not connected does nothing."""
        await db_manager.close()

    async def test_initialize_schema(self, db_manager):
        db_manager.pool = AsyncMock()

        with patch("db.run_migrations", new_callable=AsyncMock) as mock_run:
            await db_manager.initialize_schema()

        mock_run.assert_called_once_with(db_manager.pool)


@pytest.mark.asyncio
class TestSiteMethods:
    """Tests for remote site persistence."""

    async def test_create_site(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchval = AsyncMock(return_value=7)

        site_id = await db_manager.create_site(
            "Main blog", "https://blog.example.com", "admin"
        )

        assert site_id == 7
        args = conn.fetchval.call_args[0]
        assert "INSERT INTO remote_sites" in args[0]
        assert args[1:] == ("Main blog", "https://blog.example.com", "admin", None)

    async def test_create_duplicate_site(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchval = AsyncMock(
            side_effect=asyncpg.UniqueViolationError("duplicate key")
        )

        with pytest.raises(DuplicateSiteError) as exc_info:
            await db_manager.create_site(
                "Main blog", "https://blog.example.com", "admin"
            )

        assert "already exists" in exc_info.value.message

    async def test_get_site(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchrow = AsyncMock(
            return_value=MockRecord(
                {
                    "id": 1,
                    "plugin_settings": {},
                    "supported_languages": '["ar"]',
                }
            )
        )

        site = await db_manager.get_site(1)

        assert site["supported_languages"] == ["ar"]

    async def test_get_site_not_found(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchrow = AsyncMock(return_value=None)

        assert await db_manager.get_site(99) is None

    async def test_list_sites_with_filter(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetch = AsyncMock(return_value=[])

        await db_manager.list_sites(sync_status="failed", limit=10)

        query, *params = conn.fetch.call_args[0]
        assert "sync_status = $1" in query
        assert "LIMIT $2" in query
        assert params == ["failed", 10]

    async def test_delete_site(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.execute = AsyncMock(return_value="DELETE 1")

        assert await db_manager.delete_site(1) is True

    async def test_delete_missing_site(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.execute = AsyncMock(return_value="DELETE 0")

        assert await db_manager.delete_site(1) is False

    async def test_update_site_plugin_serializes_json(self, db_manager):
        conn = attach(db_manager, AsyncMock())

        await db_manager.update_site_plugin(
            1, "WPML", "4.6", ["en", "ar"], {"defaultLanguage": "en"}
        )

        args = conn.execute.call_args[0]
        assert args[1:] == (
            1,
            "WPML",
            "4.6",
            json.dumps(["en", "ar"]),
            json.dumps({"defaultLanguage": "en"}),
        )

    async def test_begin_site_sync_claimed(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchval = AsyncMock(return_value=1)

        assert await db_manager.begin_site_sync(1, 3600) is True

        query, site_id, stale_after = conn.fetchval.call_args[0]
        assert "sync_status != 'syncing'" in query
        assert "RETURNING id" in query
        assert (site_id, stale_after) == (1, 3600)

    async def test_begin_site_sync_already_running(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchval = AsyncMock(return_value=None)

        assert await db_manager.begin_site_sync(1, 3600) is False

    async def test_complete_site_sync(self, db_manager):
        conn = attach(db_manager, AsyncMock())

        await db_manager.complete_site_sync(1, "partial", 5, 4, "Post 3: boom")

        args = conn.execute.call_args[0]
        assert "last_sync_at = NOW()" in args[0]
        assert args[1:] == (1, "partial", 5, 4, "Post 3: boom")


@pytest.mark.asyncio
class TestContentMethods:
    """Tests for article and translation persistence."""

    async def test_find_translation_by_remote_post(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchrow = AsyncMock(return_value={"id": 3, "article_id": 2})

        result = await db_manager.find_translation_by_remote_post(1, 42)

        assert result == {"id": 3, "article_id": 2}
        assert conn.fetchrow.call_args[0][1:] == (1, 42)

    async def test_find_article_by_remote_post_none(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchrow = AsyncMock(return_value=None)

        assert await db_manager.find_article_by_remote_post(1, 42) is None

    async def test_ensure_default_template(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchval = AsyncMock(return_value=5)

        assert await db_manager.ensure_default_template() == 5
        assert "ON CONFLICT (slug)" in conn.fetchval.call_args[0][0]

    async def test_create_article(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchval = AsyncMock(return_value=11)

        article_id = await db_manager.create_article(
            title="Hello",
            content="<p>Hi</p>",
            excerpt=None,
            source_language="EN",
            status="PUBLISHED",
            template_id=5,
            owner_id=2,
        )

        assert article_id == 11
        assert conn.fetchval.call_args[0][1:] == (
            "Hello",
            "<p>Hi</p>",
            None,
            "EN",
            "PUBLISHED",
            2,
            5,
            None,
        )

    async def test_create_translation_conflict_returns_none(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.fetchval = AsyncMock(return_value=None)

        translation_id = await db_manager.create_translation(
            article_id=11,
            language="EN",
            title="Hello",
            content="<p>Hi</p>",
            excerpt=None,
            slug="hello",
            status="PUBLISHED",
            site_id=1,
            remote_post_id=42,
            remote_url="https://blog.example.com/hello/",
        )

        assert translation_id is None
        assert "ON CONFLICT DO NOTHING" in conn.fetchval.call_args[0][0]

    async def test_update_translation_only_touches_synced_rows(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.execute = AsyncMock(return_value="UPDATE 1")

        updated = await db_manager.update_translation(
            3, "Hello", "<p>Hi</p>", None, "hello", "https://blog.example.com/"
        )

        assert updated is True
        assert "AND synced_from_remote" in conn.execute.call_args[0][0]

    async def test_update_translation_reports_no_matching_row(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.execute = AsyncMock(return_value="UPDATE 0")

        updated = await db_manager.update_translation(
            3, "Hello", "<p>Hi</p>", None, "hello", "https://blog.example.com/"
        )

        assert updated is False

    async def test_delete_article(self, db_manager):
        conn = attach(db_manager, AsyncMock())
        conn.execute = AsyncMock(return_value="DELETE 1")

        assert await db_manager.delete_article(11) is True
