"""
Sync status tracking for remote sites.

The tracker is the only writer of a site's sync status, counters and last
error. Status moves IDLE -> SYNCING -> {SUCCESS, PARTIAL, FAILED} and from
any finished state back to SYNCING.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """Sync state of a remote site."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


TERMINAL_STATUSES = {SyncStatus.SUCCESS, SyncStatus.PARTIAL, SyncStatus.FAILED}

TRANSITIONS = {
    SyncStatus.IDLE: {SyncStatus.SYNCING},
    SyncStatus.SYNCING: TERMINAL_STATUSES,
    SyncStatus.SUCCESS: {SyncStatus.SYNCING},
    SyncStatus.PARTIAL: {SyncStatus.SYNCING},
    SyncStatus.FAILED: {SyncStatus.SYNCING},
}


class SyncInProgressError(Exception):
    """Raised when a site already has a running sync."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def is_valid_transition(current: SyncStatus, new: SyncStatus) -> bool:
    """Check whether a site may move from one sync status to another."""
    return new in TRANSITIONS.get(current, set())


class SyncStatusTracker:
    """Owns a remote site's sync status, counters and error text."""

    def __init__(
        self, db: Any, max_reported_errors: int = 20, stale_after: int = 3600
    ):
        self.db = db
        self.max_reported_errors = max_reported_errors
        self.stale_after = stale_after

    async def begin(self, site: Dict[str, Any]) -> None:
        """
        Mark a site as SYNCING and clear its previous error.

        Raises:
            SyncInProgressError: If another sync of the site is running and
                has not gone stale
        """
        claimed = await self.db.begin_site_sync(site["id"], self.stale_after)
        if not claimed:
            raise SyncInProgressError(
                f"Sync already in progress for site {site['id']}"
            )
        logger.info(f"Sync started for site {site['id']} ({site['base_url']})")

    async def complete(
        self, site: Dict[str, Any], result: Any, failed: bool = False
    ) -> SyncStatus:
        """
        Store the final status, counters and error summary of a sync.

        Args:
            site: Site being synced
            result: SyncResult of the run
            failed: Force FAILED (an unrecoverable error ended the run)

        Returns:
            The status that was stored
        """
        status = self.determine_status(result, failed)
        await self.db.complete_site_sync(
            site["id"],
            status=status.value,
            total_found=result.found,
            total_synced=result.synced,
            error=self.summarize_errors(result.errors),
        )
        logger.info(
            f"Sync finished for site {site['id']}: {status.value} "
            f"(found {result.found}, synced {result.synced}, "
            f"errors {len(result.errors)})"
        )
        return status

    @staticmethod
    def determine_status(result: Any, failed: bool = False) -> SyncStatus:
        if failed:
            return SyncStatus.FAILED
        if not result.errors:
            return SyncStatus.SUCCESS
        if result.synced > 0:
            return SyncStatus.PARTIAL
        return SyncStatus.FAILED

    def summarize_errors(self, errors: List[str]) -> Optional[str]:
        """Join errors with '; ', keeping at most max_reported_errors."""
        if not errors:
            return None
        shown = errors[: self.max_reported_errors]
        summary = "; ".join(shown)
        hidden = len(errors) - len(shown)
        if hidden > 0:
            summary += f" (+{hidden} more)"
        return summary
