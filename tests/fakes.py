"""In-memory stand-ins for the database and a WordPress site."""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from db import DuplicateSiteError
from wordpress import WordPressClient, WordPressResponse


def response(
    status: int = 200,
    data: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> WordPressResponse:
    """Build a WordPressResponse with lowercased headers."""
    return WordPressResponse(
        status=status,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        data=data,
    )


def make_post(
    post_id: int,
    title: str = None,
    lang: Optional[str] = None,
    status: str = "publish",
    **extra: Any,
) -> Dict[str, Any]:
    """Build a /wp/v2/posts item."""
    post = {
        "id": post_id,
        "title": {"rendered": title or f"Post {post_id}"},
        "content": {"rendered": f"<p>Content of post {post_id}</p>"},
        "excerpt": {"rendered": f"Excerpt {post_id}"},
        "slug": f"post-{post_id}",
        "link": f"https://blog.example.com/post-{post_id}/",
        "status": status,
        "date_gmt": "2024-03-01T10:00:00",
    }
    if lang is not None:
        post["lang"] = lang
    post.update(extra)
    return post


Route = Union[WordPressResponse, Callable[[Dict[str, Any]], WordPressResponse]]


class FakeWordPressClient(WordPressClient):
    """
    WordPressClient answering from a route table instead of the network.

    A route is either a WordPressResponse or a callable taking the query
    params; callables may raise to simulate transport errors. Unknown
    paths answer 404.
    """

    def __init__(
        self,
        routes: Optional[Dict[str, Route]] = None,
        base_url: str = "https://blog.example.com",
    ):
        super().__init__(base_url, "admin", "app-password")
        self.routes = routes or {}
        self.calls: List[tuple] = []

    async def get(self, path, params=None):
        params = dict(params or {})
        self.calls.append((path, params))
        route = self.routes.get(path)
        if route is None:
            result = response(404, {"code": "rest_no_route"})
        elif callable(route):
            result = route(params)
        else:
            result = route
        self.responses_received += 1
        return result


class InMemoryStore:
    """Implements the DatabaseManager methods used by the sync path."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.sites: Dict[int, Dict[str, Any]] = {}
        self.templates: Dict[str, int] = {}
        self.articles: Dict[int, Dict[str, Any]] = {}
        self.translations: Dict[int, Dict[str, Any]] = {}

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # Sites

    async def create_site(self, name, base_url, username, credential_ref=None):
        if any(s["base_url"] == base_url for s in self.sites.values()):
            raise DuplicateSiteError(f"Site with URL {base_url} already exists")
        site_id = next(self._ids)
        now = self._now()
        self.sites[site_id] = {
            "id": site_id,
            "name": name,
            "base_url": base_url,
            "username": username,
            "credential_ref": credential_ref,
            "translation_plugin": "NONE",
            "plugin_version": None,
            "plugin_settings": {},
            "supported_languages": [],
            "sync_status": "idle",
            "last_sync_error": None,
            "total_found": 0,
            "total_synced": 0,
            "sync_started_at": None,
            "last_sync_at": None,
            "created_at": now,
            "updated_at": now,
        }
        return site_id

    def add_site(self, **fields) -> Dict[str, Any]:
        """Synchronous helper for tests: insert a site and return its row."""
        site_id = next(self._ids)
        now = self._now()
        site = {
            "id": site_id,
            "name": "Main blog",
            "base_url": f"https://site{site_id}.example.com",
            "username": "admin",
            "credential_ref": None,
            "translation_plugin": "NONE",
            "plugin_version": None,
            "plugin_settings": {},
            "supported_languages": [],
            "sync_status": "idle",
            "last_sync_error": None,
            "total_found": 0,
            "total_synced": 0,
            "sync_started_at": None,
            "last_sync_at": None,
            "created_at": now,
            "updated_at": now,
        }
        site.update(fields)
        self.sites[site_id] = site
        return dict(site)

    async def get_site(self, site_id):
        site = self.sites.get(site_id)
        return dict(site) if site else None

    async def list_sites(self, sync_status=None, limit=100):
        sites = [
            dict(s)
            for s in self.sites.values()
            if sync_status is None or s["sync_status"] == sync_status
        ]
        return sorted(sites, key=lambda s: s["name"])[:limit]

    async def delete_site(self, site_id):
        return self.sites.pop(site_id, None) is not None

    async def update_site_plugin(
        self, site_id, plugin, version, supported_languages, settings
    ):
        self.sites[site_id].update(
            translation_plugin=plugin,
            plugin_version=version,
            supported_languages=list(supported_languages),
            plugin_settings=dict(settings),
        )

    async def begin_site_sync(self, site_id, stale_after):
        site = self.sites.get(site_id)
        if site is None:
            return False
        started = site["sync_started_at"]
        if (
            site["sync_status"] == "syncing"
            and started is not None
            and started >= self._now() - timedelta(seconds=stale_after)
        ):
            return False
        site.update(
            sync_status="syncing", last_sync_error=None, sync_started_at=self._now()
        )
        return True

    async def complete_site_sync(
        self, site_id, status, total_found, total_synced, error=None
    ):
        self.sites[site_id].update(
            sync_status=status,
            total_found=total_found,
            total_synced=total_synced,
            last_sync_error=error,
            last_sync_at=self._now(),
        )

    # Content

    async def find_translation_by_remote_post(self, site_id, remote_post_id):
        for translation in self.translations.values():
            if (
                translation["site_id"] == site_id
                and translation["remote_post_id"] == remote_post_id
            ):
                return dict(translation)
        return None

    async def find_article_by_remote_post(self, site_id, remote_post_id):
        translation = await self.find_translation_by_remote_post(
            site_id, remote_post_id
        )
        if translation is None:
            return None
        return dict(self.articles[translation["article_id"]])

    async def ensure_default_template(self):
        if "default" not in self.templates:
            self.templates["default"] = next(self._ids)
        return self.templates["default"]

    async def create_article(
        self,
        title,
        content,
        excerpt,
        source_language,
        status,
        template_id,
        owner_id=None,
        published_at=None,
    ):
        article_id = next(self._ids)
        self.articles[article_id] = {
            "id": article_id,
            "title": title,
            "content": content,
            "excerpt": excerpt,
            "source_language": source_language,
            "status": status,
            "template_id": template_id,
            "owner_id": owner_id,
            "published_at": published_at,
        }
        return article_id

    async def delete_article(self, article_id):
        if self.articles.pop(article_id, None) is None:
            return False
        for translation_id in [
            t["id"] for t in self.translations.values() if t["article_id"] == article_id
        ]:
            del self.translations[translation_id]
        return True

    async def create_translation(
        self,
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
        published_at=None,
    ):
        for t in self.translations.values():
            if (t["article_id"], t["language"]) == (article_id, language):
                return None
            if (t["site_id"], t["remote_post_id"]) == (site_id, remote_post_id):
                return None
        translation_id = next(self._ids)
        self.translations[translation_id] = {
            "id": translation_id,
            "article_id": article_id,
            "language": language,
            "title": title,
            "content": content,
            "excerpt": excerpt,
            "slug": slug,
            "status": status,
            "site_id": site_id,
            "remote_post_id": remote_post_id,
            "remote_url": remote_url,
            "synced_from_remote": True,
            "synced_at": self._now(),
            "published_at": published_at,
        }
        return translation_id

    async def update_translation(
        self,
        translation_id,
        title,
        content,
        excerpt,
        slug,
        remote_url,
        published_at=None,
    ):
        translation = self.translations.get(translation_id)
        if translation is None or not translation["synced_from_remote"]:
            return False
        translation.update(
            title=title,
            content=content,
            excerpt=excerpt,
            slug=slug,
            remote_url=remote_url,
            published_at=published_at,
            synced_at=self._now(),
        )
        return True
