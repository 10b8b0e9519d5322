"""
Sync Orchestrator - Drives one sync attempt for one remote site.

For each requested language the orchestrator fetches the site's posts
(paged, newest first), normalizes each post's language and hands it to
the ReconciliationEngine. Errors are isolated per post and per language;
once a site is marked SYNCING its final status is always written.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from config import SyncConfig
from detector import PluginDetector
from languages import LanguageCodeNormalizer
from plugins.base import PluginInfo, language_parameter
from reconciler import ReconcileOutcome, ReconciliationEngine, SyncMode
from status import SyncStatus, SyncStatusTracker
from wordpress import RemotePost, WordPressClient, WordPressResponseError

logger = logging.getLogger(__name__)


class SiteNotFoundError(Exception):
    """Raised when the requested site does not exist."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CredentialsRequiredError(Exception):
    """Raised when no application password was supplied."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass
class SyncResult:
    """Aggregated outcome of one sync run."""

    found: int = 0
    synced: int = 0
    skipped: int = 0
    created: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)
    status: Optional[SyncStatus] = None

    def record(self, outcome: ReconcileOutcome) -> None:
        """Count one reconciliation outcome. FAILED is counted via errors."""
        if outcome == ReconcileOutcome.CREATED:
            self.created += 1
            self.synced += 1
        elif outcome == ReconcileOutcome.UPDATED:
            self.updated += 1
            self.synced += 1
        elif outcome == ReconcileOutcome.SKIPPED:
            self.skipped += 1

    @property
    def message(self) -> str:
        return (
            f"Sync completed: {self.synced} articles synced, "
            f"{self.skipped} skipped"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": self.found,
            "synced": self.synced,
            "skipped": self.skipped,
            "created": self.created,
            "updated": self.updated,
            "errors": list(self.errors),
            "status": self.status.value if self.status else None,
            "message": self.message,
        }


ClientFactory = Callable[..., WordPressClient]


class SyncOrchestrator:
    """Runs syncs, plugin detection and connection tests for stored sites."""

    def __init__(
        self,
        db: Any,
        config: Optional[SyncConfig] = None,
        engine: Optional[ReconciliationEngine] = None,
        tracker: Optional[SyncStatusTracker] = None,
        normalizer: Optional[LanguageCodeNormalizer] = None,
        detector: Optional[PluginDetector] = None,
        client_factory: ClientFactory = WordPressClient,
    ):
        self.db = db
        self.config = config or SyncConfig()
        self.engine = engine or ReconciliationEngine(
            db, default_owner_id=self.config.default_owner_id
        )
        self.tracker = tracker or SyncStatusTracker(
            db,
            max_reported_errors=self.config.max_reported_errors,
            stale_after=self.config.stale_sync_after,
        )
        self.normalizer = normalizer or LanguageCodeNormalizer()
        self.detector = detector or PluginDetector()
        self.client_factory = client_factory

    async def _load_site(self, site_id: int, app_password: Optional[str]):
        site = await self.db.get_site(site_id)
        if not site:
            raise SiteNotFoundError(f"WordPress site {site_id} not found")
        if not app_password:
            raise CredentialsRequiredError("Application password is required")
        client = self.client_factory(
            site["base_url"],
            site["username"],
            app_password,
            timeout=self.config.request_timeout,
        )
        return site, client

    async def sync_site(
        self,
        site_id: int,
        app_password: Optional[str],
        mode: Union[SyncMode, str] = SyncMode.INCREMENTAL,
        languages: Optional[Sequence[str]] = None,
        owner_id: Optional[int] = None,
    ) -> SyncResult:
        """
        Sync a stored site.

        Raises:
            SiteNotFoundError: If the site does not exist
            CredentialsRequiredError: If no application password was given
            SyncInProgressError: If the site is already being synced
        """
        site, client = await self._load_site(site_id, app_password)
        return await self.sync(site, client, mode, languages, owner_id)

    async def sync(
        self,
        site: Dict[str, Any],
        client: WordPressClient,
        mode: Union[SyncMode, str] = SyncMode.INCREMENTAL,
        languages: Optional[Sequence[str]] = None,
        owner_id: Optional[int] = None,
    ) -> SyncResult:
        """
        Sync posts of a site into the local store.

        Args:
            site: Site row
            client: Client for the site
            mode: 'full' overwrites previously synced posts, 'incremental'
                skips them
            languages: Raw language tags to sync (defaults to the languages
                detected on the site). Without a plugin language filter only
                the first one is fetched, as the fallback language.
            owner_id: Owner of newly created articles

        Returns:
            SyncResult whose status is SUCCESS, PARTIAL or FAILED

        Raises:
            SyncInProgressError: If the site is already being synced
            asyncio.CancelledError: Re-raised after the site is marked FAILED
        """
        mode = SyncMode(mode)
        to_sync = list(languages or site.get("supported_languages") or [])
        parameter = language_parameter(site.get("translation_plugin"))
        if parameter is None and len(to_sync) > 1:
            # Every language would fetch the same unfiltered post list
            logger.info(
                f"Site {site['id']} has no language filter; fetching posts once "
                f"with fallback language {to_sync[0]}"
            )
            to_sync = to_sync[:1]

        await self.tracker.begin(site)
        result = SyncResult()

        if not to_sync:
            logger.warning(
                f"Site {site['id']} has no languages to sync; "
                "run plugin detection or pass languages explicitly"
            )

        try:
            for language in to_sync:
                await self._sync_language(
                    site, client, language, parameter, mode, owner_id, result
                )
        except asyncio.CancelledError:
            result.errors.append("Sync cancelled")
            result.status = await self.tracker.complete(site, result, failed=True)
            raise
        except Exception as e:
            logger.exception(f"Sync of site {site['id']} aborted: {e}")
            result.errors.append(f"Sync failed: {e}")
            result.status = await self.tracker.complete(site, result, failed=True)
            return result

        result.status = await self.tracker.complete(site, result)
        return result

    async def _sync_language(
        self,
        site: Dict[str, Any],
        client: WordPressClient,
        language: str,
        parameter: Optional[str],
        mode: SyncMode,
        owner_id: Optional[int],
        result: SyncResult,
    ) -> None:
        logger.info(f"Syncing language {language} for site {site['id']}")
        per_page = self.config.posts_per_page

        for page_number in range(1, self.config.max_pages + 1):
            try:
                page = await client.get_posts(
                    language=language,
                    language_parameter=parameter,
                    page=page_number,
                    per_page=per_page,
                )
            except Exception as e:
                reason = getattr(e, "message", None) or str(e) or type(e).__name__
                logger.error(
                    f"Fetching {language} posts from site {site['id']} failed: "
                    f"{reason}"
                )
                result.errors.append(f"Language {language}: {reason}")
                return

            for raw_post in page.posts:
                await self._sync_post(site, raw_post, language, mode, owner_id, result)

            if len(page.posts) < per_page:
                break
            if page.total_pages is not None and page_number >= page.total_pages:
                break

    async def _sync_post(
        self,
        site: Dict[str, Any],
        raw_post: Any,
        language: str,
        mode: SyncMode,
        owner_id: Optional[int],
        result: SyncResult,
    ) -> None:
        result.found += 1
        post_id = raw_post.get("id", "?") if isinstance(raw_post, dict) else "?"

        try:
            post = RemotePost.from_api(raw_post, fallback_language=language)
        except WordPressResponseError as e:
            logger.error(f"Malformed post {post_id} from site {site['id']}: {e}")
            result.errors.append(f"Post {post_id}: {e.message}")
            return

        canonical = self.normalizer.normalize(post.language)
        if canonical is None:
            logger.error(f"Post {post.id} has unknown language: {post.language}")
            result.errors.append(
                f"Post {post.id}: Unknown language code: {post.language}"
            )
            return

        outcome = await self.engine.reconcile(post, canonical, site, mode, owner_id)
        if outcome.outcome == ReconcileOutcome.FAILED:
            result.errors.append(f"Post {post.id}: {outcome.reason}")
            return
        result.record(outcome.outcome)

    async def detect_plugin(
        self, site_id: int, app_password: Optional[str]
    ) -> PluginInfo:
        """
        Detect and record the translation plugin of a stored site.

        Raises:
            SiteNotFoundError: If the site does not exist
            CredentialsRequiredError: If no application password was given
            SiteUnreachableError: If the site never responded
        """
        site, client = await self._load_site(site_id, app_password)
        info = await self.detector.detect(client)
        await self.detector.record(self.db, site["id"], info)
        return info

    async def test_connection(
        self, site_id: int, app_password: Optional[str]
    ) -> Dict[str, Any]:
        """Check the stored site's credentials against /wp/v2/users/me."""
        site, client = await self._load_site(site_id, app_password)
        return await client.test_connection()
