"""
Database Manager - PostgreSQL schema and operations.

Stores remote WordPress sites with their detected plugin and sync status,
and the articles and translations reconciled from them.
"""

import asyncpg
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from migrate import run_migrations

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_SLUG = "default"
DEFAULT_TEMPLATE_NAME = "Default"


class DuplicateSiteError(Exception):
    """Raised when a site with the same base URL is already registered."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DatabaseManager:
    """Manages PostgreSQL database operations for the sync service."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        min_pool_size: int = 5,
        max_pool_size: int = 20,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Establish connection pool to PostgreSQL."""
        self.pool = await asyncpg.create_pool(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
            min_size=self.min_pool_size,
            max_size=self.max_pool_size,
            command_timeout=60,  # Query timeout
        )
        logger.info(
            f"Connected to PostgreSQL (pool: {self.min_pool_size}-{self.max_pool_size})"
        )

    async def close(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            logger.info("Closed PostgreSQL connection")

    def _ensure_connected(self) -> None:
        """Ensure the database connection pool is established."""
        if self.pool is None:
            raise RuntimeError(
                "Database not connected. Call connect() before performing operations."
            )

    async def initialize_schema(self) -> None:
        """Apply database migrations to bring schema up to date."""
        self._ensure_connected()
        await run_migrations(self.pool)
        logger.info("Database schema initialized")

    # ==================== Remote Site Methods ====================

    async def create_site(
        self,
        name: str,
        base_url: str,
        username: str,
        credential_ref: Optional[str] = None,
    ) -> int:
        """
        Register a remote WordPress site.

        Args:
            name: Display name
            base_url: Site URL without /wp-json
            username: WordPress username used for Basic auth
            credential_ref: Opaque reference to the stored application password

        Raises:
            DuplicateSiteError: If base_url is already registered
        """
        async with self.pool.acquire() as conn:
            try:
                site_id = await conn.fetchval(
                    """
                    INSERT INTO remote_sites (name, base_url, username, credential_ref)
                    VALUES ($1, $2, $3, $4)
                    RETURNING id
                    """,
                    name,
                    base_url,
                    username,
                    credential_ref,
                )
            except asyncpg.UniqueViolationError as e:
                raise DuplicateSiteError(
                    f"Site with URL {base_url} already exists"
                ) from e

            logger.info(f"Created remote site {name} ({base_url}) with ID {site_id}")
            return site_id

    async def get_site(self, site_id: int) -> Optional[Dict[str, Any]]:
        """Get a remote site by ID."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM remote_sites WHERE id = $1",
                site_id,
            )
            if not row:
                return None
            return self._parse_site_row(row)

    async def list_sites(
        self, sync_status: Optional[str] = None, limit: int = 100
    ) -> List[Dict[str, Any]]:
        """List remote sites with an optional sync status filter."""
        async with self.pool.acquire() as conn:
            query = "SELECT * FROM remote_sites WHERE 1=1"
            params = []
            param_count = 0

            if sync_status:
                param_count += 1
                query += f" AND sync_status = ${param_count}"
                params.append(sync_status)

            param_count += 1
            query += f" ORDER BY name LIMIT ${param_count}"
            params.append(limit)

            rows = await conn.fetch(query, *params)
            return [self._parse_site_row(row) for row in rows]

    async def delete_site(self, site_id: int) -> bool:
        """
        Delete a remote site.

        Synced translations keep their content; their site reference is
        cleared by the foreign key.

        Returns:
            True if a site was deleted
        """
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM remote_sites WHERE id = $1",
                site_id,
            )
            deleted = result == "DELETE 1"
            if deleted:
                logger.info(f"Deleted remote site {site_id}")
            return deleted

    async def update_site_plugin(
        self,
        site_id: int,
        plugin: str,
        version: Optional[str],
        supported_languages: List[str],
        settings: Dict[str, Any],
    ) -> None:
        """Record the detected translation plugin of a site."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE remote_sites
                SET translation_plugin = $2,
                    plugin_version = $3,
                    supported_languages = $4,
                    plugin_settings = $5,
                    updated_at = NOW()
                WHERE id = $1
                """,
                site_id,
                plugin,
                version,
                json.dumps(supported_languages),
                json.dumps(settings),
            )
            logger.info(f"Recorded plugin {plugin} for site {site_id}")

    async def begin_site_sync(self, site_id: int, stale_after: int) -> bool:
        """
        Atomically mark a site as syncing.

        The update only applies when the site is not already syncing, or
        when its running sync started more than stale_after seconds ago.

        Args:
            site_id: Site ID
            stale_after: Age in seconds after which a SYNCING state is stale

        Returns:
            True if this caller now owns the sync, False if another sync
            is still running
        """
        async with self.pool.acquire() as conn:
            claimed = await conn.fetchval(
                """
                UPDATE remote_sites
                SET sync_status = 'syncing',
                    last_sync_error = NULL,
                    sync_started_at = NOW(),
                    updated_at = NOW()
                WHERE id = $1
                  AND (sync_status != 'syncing'
                       OR sync_started_at IS NULL
                       OR sync_started_at < NOW() - ($2 * INTERVAL '1 second'))
                RETURNING id
                """,
                site_id,
                stale_after,
            )
            return claimed is not None

    async def complete_site_sync(
        self,
        site_id: int,
        status: str,
        total_found: int,
        total_synced: int,
        error: Optional[str] = None,
    ) -> None:
        """Store the outcome of a finished sync."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE remote_sites
                SET sync_status = $2,
                    total_found = $3,
                    total_synced = $4,
                    last_sync_error = $5,
                    last_sync_at = NOW(),
                    updated_at = NOW()
                WHERE id = $1
                """,
                site_id,
                status,
                total_found,
                total_synced,
                error,
            )

    # ==================== Content Methods ====================

    async def find_translation_by_remote_post(
        self, site_id: int, remote_post_id: int
    ) -> Optional[Dict[str, Any]]:
        """Find the translation synced from a given remote post."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT * FROM translations
                WHERE site_id = $1 AND remote_post_id = $2
                """,
                site_id,
                remote_post_id,
            )
            return dict(row) if row else None

    async def find_article_by_remote_post(
        self, site_id: int, remote_post_id: int
    ) -> Optional[Dict[str, Any]]:
        """Find an article that already has a translation of a remote post."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT a.* FROM articles a
                JOIN translations t ON t.article_id = a.id
                WHERE t.site_id = $1 AND t.remote_post_id = $2
                LIMIT 1
                """,
                site_id,
                remote_post_id,
            )
            return dict(row) if row else None

    async def ensure_default_template(self) -> int:
        """Get the default template ID, creating the template if missing."""
        async with self.pool.acquire() as conn:
            template_id = await conn.fetchval(
                """
                INSERT INTO templates (slug, name)
                VALUES ($1, $2)
                ON CONFLICT (slug) DO UPDATE SET slug = EXCLUDED.slug
                RETURNING id
                """,
                DEFAULT_TEMPLATE_SLUG,
                DEFAULT_TEMPLATE_NAME,
            )
            return template_id

    async def create_article(
        self,
        title: str,
        content: str,
        excerpt: Optional[str],
        source_language: str,
        status: str,
        template_id: int,
        owner_id: Optional[int] = None,
        published_at: Optional[datetime] = None,
    ) -> int:
        """Create an article and return its ID."""
        async with self.pool.acquire() as conn:
            article_id = await conn.fetchval(
                """
                INSERT INTO articles
                    (title, content, excerpt, source_language, status,
                     owner_id, template_id, published_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                RETURNING id
                """,
                title,
                content,
                excerpt,
                source_language,
                status,
                owner_id,
                template_id,
                published_at,
            )
            logger.debug(f"Created article {article_id} ({source_language})")
            return article_id

    async def delete_article(self, article_id: int) -> bool:
        """Delete an article (its translations cascade)."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM articles WHERE id = $1",
                article_id,
            )
            return result == "DELETE 1"

    async def create_translation(
        self,
        article_id: int,
        language: str,
        title: str,
        content: str,
        excerpt: Optional[str],
        slug: Optional[str],
        status: str,
        site_id: int,
        remote_post_id: int,
        remote_url: Optional[str],
        published_at: Optional[datetime] = None,
    ) -> Optional[int]:
        """
        Create a sync-derived translation.

        Returns:
            The new translation ID, or None if a translation for the same
            (site, remote post) or (article, language) already exists
        """
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                """
                INSERT INTO translations
                    (article_id, language, title, content, excerpt, slug, status,
                     site_id, remote_post_id, remote_url, synced_from_remote,
                     synced_at, published_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, TRUE, NOW(), $11)
                ON CONFLICT DO NOTHING
                RETURNING id
                """,
                article_id,
                language,
                title,
                content,
                excerpt,
                slug,
                status,
                site_id,
                remote_post_id,
                remote_url,
                published_at,
            )

    async def update_translation(
        self,
        translation_id: int,
        title: str,
        content: str,
        excerpt: Optional[str],
        slug: Optional[str],
        remote_url: Optional[str],
        published_at: Optional[datetime] = None,
    ) -> bool:
        """
        Overwrite a sync-derived translation with fresh remote content.

        Returns:
            True if the row was updated, False if it does not exist or was
            not created by a sync
        """
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE translations
                SET title = $2,
                    content = $3,
                    excerpt = $4,
                    slug = $5,
                    remote_url = $6,
                    published_at = $7,
                    synced_from_remote = TRUE,
                    synced_at = NOW(),
                    updated_at = NOW()
                WHERE id = $1 AND synced_from_remote
                """,
                translation_id,
                title,
                content,
                excerpt,
                slug,
                remote_url,
                published_at,
            )
            return result == "UPDATE 1"

    def _parse_site_row(self, row: asyncpg.Record) -> Dict[str, Any]:
        """
        Parse a site row from the database, converting JSON fields.

        Args:
            row: An asyncpg.Record from a database query

        Returns:
            A dictionary with the site data, with JSON fields parsed
        """
        result = dict(row)
        result["plugin_settings"] = (
            json.loads(result["plugin_settings"])
            if isinstance(result.get("plugin_settings"), str)
            else result.get("plugin_settings") or {}
        )
        result["supported_languages"] = (
            json.loads(result["supported_languages"])
            if isinstance(result.get("supported_languages"), str)
            else result.get("supported_languages") or []
        )
        return result
