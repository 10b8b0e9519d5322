"""
WordPress REST client.

Thin async wrapper over the WordPress REST API (``/wp-json``) using HTTP
Basic auth with an application password. Every request carries a bounded
timeout. Also defines RemotePost, the transient view of a remote post.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from validation import validate_post_list, validate_remote_post

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
USER_AGENT = "wp-translation-sync/1.0"


class WordPressError(Exception):
    """Base error for WordPress REST calls."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class WordPressConnectionError(WordPressError):
    """Raised when the site cannot be reached or the request times out."""


class WordPressHTTPError(WordPressError):
    """Raised when the site answers with a non-2xx status."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(message)


class WordPressResponseError(WordPressError):
    """Raised when a response body does not have the expected shape."""


@dataclass
class WordPressResponse:
    """Status, lowercased headers and decoded body of one REST call."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


@dataclass
class PostPage:
    """One page of /wp/v2/posts results."""

    posts: List[Dict[str, Any]]
    page: int
    total_pages: Optional[int] = None


def _rendered(value: Any) -> str:
    """Flatten a WordPress rendered field ({"rendered": ...}) to a string."""
    if value is None:
        return ""
    if isinstance(value, dict):
        return value.get("rendered") or ""
    return str(value)


def _parse_wp_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a WordPress ISO-8601 timestamp, assuming UTC when naive."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class RemotePost:
    """A post as exposed by a remote WordPress site. Never persisted as-is."""

    id: int
    title: str
    content: str
    excerpt: Optional[str] = None
    slug: Optional[str] = None
    link: Optional[str] = None
    language: Optional[str] = None
    status: str = "draft"
    date: Optional[datetime] = None
    modified: Optional[datetime] = None

    @property
    def is_published(self) -> bool:
        return self.status == "publish"

    @classmethod
    def from_api(
        cls, payload: Any, fallback_language: Optional[str] = None
    ) -> "RemotePost":
        """
        Build a RemotePost from a /wp/v2/posts item.

        Args:
            payload: Decoded JSON for one post
            fallback_language: Raw tag to use when the post carries none
                (typically the language filter the post was fetched with)

        Raises:
            WordPressResponseError: If the payload is malformed
        """
        is_valid, error = validate_remote_post(payload)
        if not is_valid:
            raise WordPressResponseError(f"Malformed post: {error}")

        language = (
            payload.get("lang")
            or payload.get("language")
            or payload.get("locale")
            or fallback_language
        )
        excerpt = _rendered(payload.get("excerpt")) or None

        return cls(
            id=payload["id"],
            title=_rendered(payload.get("title")),
            content=_rendered(payload.get("content")),
            excerpt=excerpt,
            slug=payload.get("slug"),
            link=payload.get("link"),
            language=language,
            status=payload.get("status") or "draft",
            date=_parse_wp_datetime(payload.get("date_gmt") or payload.get("date")),
            modified=_parse_wp_datetime(
                payload.get("modified_gmt") or payload.get("modified")
            ),
        )


class WordPressClient:
    """
    Async client for one WordPress site's REST API.

    A fresh aiohttp session is opened per request, so a client can be
    shared freely and needs no explicit close.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        app_password: str,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_root = f"{self.base_url}/wp-json"
        self.username = username
        self._app_password = app_password
        self.timeout = timeout
        # Number of HTTP responses (any status) received so far
        self.responses_received = 0

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for WordPress REST requests."""
        return {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _url(self, path: str) -> str:
        return f"{self.api_root}/{path.lstrip('/')}"

    async def get(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> WordPressResponse:
        """
        Issue an authenticated GET against the REST API.

        Non-2xx statuses are returned, not raised, so callers can inspect
        them. A body that is not JSON leaves ``data`` as None.

        Args:
            path: Route below /wp-json (e.g. '/wp/v2/posts')
            params: Query string parameters

        Returns:
            WordPressResponse with lowercased header names

        Raises:
            WordPressConnectionError: On connection failure or timeout
        """
        url = self._url(path)
        query = {k: str(v) for k, v in (params or {}).items()}
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        auth = aiohttp.BasicAuth(self.username, self._app_password)

        try:
            async with aiohttp.ClientSession(timeout=timeout, auth=auth) as session:
                async with session.get(
                    url, params=query, headers=self._get_headers()
                ) as response:
                    status = response.status
                    headers = {k.lower(): v for k, v in response.headers.items()}
                    text = await response.text()
        except asyncio.TimeoutError as e:
            raise WordPressConnectionError(
                f"GET {url} timed out after {self.timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise WordPressConnectionError(f"GET {url} failed: {e}") from e

        self.responses_received += 1

        data = None
        if text:
            try:
                data = json.loads(text)
            except ValueError:
                logger.debug(f"Non-JSON response from {url} (HTTP {status})")

        logger.debug(f"GET {url} {query} -> {status}")
        return WordPressResponse(status=status, headers=headers, data=data, text=text)

    async def get_posts(
        self,
        language: Optional[str] = None,
        language_parameter: Optional[str] = None,
        page: int = 1,
        per_page: int = 100,
    ) -> PostPage:
        """
        Fetch one page of posts, newest first.

        Args:
            language: Raw language tag to filter by
            language_parameter: Plugin-specific query parameter carrying the
                language ('wpml_language', 'lang', 'trp-language'); no
                filter is sent when None
            page: 1-based page number
            per_page: Page size

        Returns:
            PostPage with the raw post dicts in provider order

        Raises:
            WordPressConnectionError: On connection failure or timeout
            WordPressHTTPError: On a non-2xx response
            WordPressResponseError: If the body is not a post list
        """
        params: Dict[str, Any] = {
            "page": page,
            "per_page": per_page,
            "orderby": "date",
            "order": "desc",
        }
        if language and language_parameter:
            params[language_parameter] = language

        response = await self.get("/wp/v2/posts", params)
        if not response.ok:
            raise WordPressHTTPError(
                response.status,
                f"Fetching posts failed with HTTP {response.status}",
            )

        is_valid, error = validate_post_list(response.data)
        if not is_valid:
            raise WordPressResponseError(f"Malformed post list: {error}")

        total_pages: Optional[int] = None
        raw_total = response.header("x-wp-totalpages")
        if raw_total:
            try:
                total_pages = int(raw_total)
            except ValueError:
                logger.debug(f"Ignoring bad X-WP-TotalPages header: {raw_total!r}")

        return PostPage(posts=response.data, page=page, total_pages=total_pages)

    async def test_connection(self) -> Dict[str, Any]:
        """
        Check credentials against /wp/v2/users/me.

        Returns:
            Dict with the authenticated user's role and capabilities

        Raises:
            WordPressConnectionError: On connection failure or timeout
            WordPressHTTPError: If the site rejects the request
        """
        response = await self.get("/wp/v2/users/me", {"context": "edit"})
        if not response.ok:
            raise WordPressHTTPError(
                response.status,
                f"Connection test failed with HTTP {response.status}",
            )

        user = response.data if isinstance(response.data, dict) else {}
        roles = user.get("roles") or []
        logger.info(f"WordPress connection successful: {self.base_url}")
        return {
            "url": self.base_url,
            "username": self.username,
            "user_role": roles[0] if roles else "unknown",
            "capabilities": user.get("capabilities") or {},
        }
