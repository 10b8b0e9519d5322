"""
Reconciliation Engine - Merges remote posts into local articles.

One remote post in one canonical language is reconciled at a time. The
(site, remote post id) pair identifies a post across runs, so running the
same reconciliation twice never creates a second translation.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from languages import Language
from wordpress import RemotePost

logger = logging.getLogger(__name__)


class SyncMode(Enum):
    """How a sync treats posts that were synced before."""

    FULL = "full"  # overwrite existing translations
    INCREMENTAL = "incremental"  # leave existing translations alone


class ReconcileOutcome(Enum):
    """Outcome of reconciling one remote post."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ArticleStatus(Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class TranslationStatus(Enum):
    PENDING = "PENDING"
    TRANSLATING = "TRANSLATING"
    TRANSLATED = "TRANSLATED"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"


@dataclass
class ReconcileResult:
    """Result of reconciling one remote post."""

    outcome: ReconcileOutcome
    reason: Optional[str] = None
    article_id: Optional[int] = None
    translation_id: Optional[int] = None

    @classmethod
    def failed(cls, reason: str) -> "ReconcileResult":
        return cls(outcome=ReconcileOutcome.FAILED, reason=reason)


class ReconciliationEngine:
    """Idempotently merges remote posts into the local content store."""

    def __init__(self, db: Any, default_owner_id: Optional[int] = None):
        self.db = db
        self.default_owner_id = default_owner_id
        self._template_id: Optional[int] = None

    async def _default_template_id(self) -> int:
        if self._template_id is None:
            self._template_id = await self.db.ensure_default_template()
        return self._template_id

    async def reconcile(
        self,
        post: RemotePost,
        language: Language,
        site: Dict[str, Any],
        mode: SyncMode,
        owner_id: Optional[int] = None,
    ) -> ReconcileResult:
        """
        Merge one remote post into the local store.

        Never raises: any error is returned as a FAILED result.

        Args:
            post: The remote post
            language: Canonical language of the post
            site: Site the post came from
            mode: FULL overwrites a previously synced translation,
                INCREMENTAL skips it
            owner_id: Owner of newly created articles (falls back to the
                configured default)
        """
        try:
            return await self._reconcile(post, language, site, mode, owner_id)
        except Exception as e:
            logger.error(
                f"Reconciliation of post {post.id} from site {site['id']} "
                f"failed: {e}"
            )
            return ReconcileResult.failed(str(e) or type(e).__name__)

    async def _reconcile(
        self,
        post: RemotePost,
        language: Language,
        site: Dict[str, Any],
        mode: SyncMode,
        owner_id: Optional[int],
    ) -> ReconcileResult:
        site_id = site["id"]
        published_at = post.date if post.is_published else None

        existing = await self.db.find_translation_by_remote_post(site_id, post.id)
        if existing:
            if mode == SyncMode.INCREMENTAL:
                return ReconcileResult(
                    outcome=ReconcileOutcome.SKIPPED,
                    reason="already synced",
                    article_id=existing["article_id"],
                    translation_id=existing["id"],
                )

            updated = await self.db.update_translation(
                existing["id"],
                title=post.title,
                content=post.content,
                excerpt=post.excerpt,
                slug=post.slug,
                remote_url=post.link,
                published_at=published_at,
            )
            if not updated:
                return ReconcileResult(
                    outcome=ReconcileOutcome.SKIPPED,
                    reason="translation is not sync-derived",
                    article_id=existing["article_id"],
                    translation_id=existing["id"],
                )
            logger.debug(f"Updated translation {existing['id']} from post {post.id}")
            return ReconcileResult(
                outcome=ReconcileOutcome.UPDATED,
                article_id=existing["article_id"],
                translation_id=existing["id"],
            )

        # Another sync may have stored this post since the lookup above
        article = await self.db.find_article_by_remote_post(site_id, post.id)
        if article:
            return ReconcileResult(
                outcome=ReconcileOutcome.SKIPPED,
                reason="synced concurrently",
                article_id=article["id"],
            )

        article_id = await self.db.create_article(
            title=post.title,
            content=post.content,
            excerpt=post.excerpt,
            source_language=language.value,
            status=(
                ArticleStatus.PUBLISHED.value
                if post.is_published
                else ArticleStatus.DRAFT.value
            ),
            template_id=await self._default_template_id(),
            owner_id=owner_id if owner_id is not None else self.default_owner_id,
            published_at=published_at,
        )

        try:
            translation_id = await self.db.create_translation(
                article_id=article_id,
                language=language.value,
                title=post.title,
                content=post.content,
                excerpt=post.excerpt,
                slug=post.slug,
                status=(
                    TranslationStatus.PUBLISHED.value
                    if post.is_published
                    else TranslationStatus.TRANSLATED.value
                ),
                site_id=site_id,
                remote_post_id=post.id,
                remote_url=post.link,
                published_at=published_at,
            )
        except Exception:
            # Never leave an article without its translation
            await self.db.delete_article(article_id)
            raise

        if translation_id is None:
            # Lost the race on the unique key; drop the orphan article
            await self.db.delete_article(article_id)
            return ReconcileResult(
                outcome=ReconcileOutcome.SKIPPED, reason="synced concurrently"
            )

        logger.debug(
            f"Created article {article_id} / translation {translation_id} "
            f"from post {post.id}"
        )
        return ReconcileResult(
            outcome=ReconcileOutcome.CREATED,
            article_id=article_id,
            translation_id=translation_id,
        )
