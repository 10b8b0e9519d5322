"""
Translation plugin detection.

There is no canonical way to ask a WordPress site which multilingual
plugin it runs, so the detector runs an ordered list of probes against the
site's REST API. The first probe that recognises its plugin wins; a site
where nothing answers is reported as running no plugin.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from plugins.base import PluginInfo
from plugins.probes.base import ProbePlugin
from plugins.registry import PluginRegistry, get_registry, register_builtin_plugins
from wordpress import DEFAULT_TIMEOUT, WordPressClient, WordPressConnectionError

logger = logging.getLogger(__name__)


class SiteUnreachableError(Exception):
    """Raised when a site never answered the first detection request."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PluginDetector:
    """
    Runs probe plugins in priority order against one site.

    Detection is read-only: probes only issue GET requests.
    """

    def __init__(
        self,
        probes: Optional[List[ProbePlugin]] = None,
        registry: Optional[PluginRegistry] = None,
        enabled: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the detector.

        Args:
            probes: Explicit probe list, in priority order. Takes precedence
                over the registry.
            registry: Registry to take probes from (defaults to the global one)
            enabled: Probe names to keep when reading from the registry
        """
        self._probes = probes
        self._registry = registry
        self._enabled = list(enabled) if enabled else None

    @property
    def probes(self) -> List[ProbePlugin]:
        if self._probes is not None:
            return self._probes
        registry = self._registry or get_registry()
        return registry.get_probe_plugins(self._enabled)

    async def detect(self, client: WordPressClient) -> PluginInfo:
        """
        Identify the translation plugin active on a site.

        Args:
            client: Authenticated client for the site

        Returns:
            PluginInfo for the first probe that answered, or PluginInfo.none()

        Raises:
            SiteUnreachableError: If the first probe's request got no
                response at all
        """
        for index, probe in enumerate(self.probes):
            try:
                info = await probe.probe(client)
            except WordPressConnectionError as e:
                if index == 0 and client.responses_received == 0:
                    raise SiteUnreachableError(
                        f"Site {client.base_url} is unreachable: {e.message}"
                    ) from e
                logger.debug(f"Probe {probe.name} failed on {client.base_url}: {e}")
                continue
            except Exception as e:
                logger.debug(f"Probe {probe.name} failed on {client.base_url}: {e}")
                continue

            if info is not None:
                logger.info(
                    f"Detected {info.plugin.value} on {client.base_url} "
                    f"(probe: {probe.name}, version: {info.version or 'unknown'})"
                )
                return info

            logger.debug(f"Probe {probe.name} found nothing on {client.base_url}")

        logger.info(f"No translation plugin detected on {client.base_url}")
        return PluginInfo.none()

    async def record(self, db: Any, site_id: int, info: PluginInfo) -> None:
        """Persist a detection result on the site."""
        await db.update_site_plugin(
            site_id,
            plugin=info.plugin.value,
            version=info.version,
            supported_languages=info.supported_languages,
            settings=info.settings,
        )

    async def detect_site(
        self,
        db: Any,
        site: Dict[str, Any],
        app_password: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> PluginInfo:
        """
        Detect the plugin of a stored site and record the result.

        Args:
            db: DatabaseManager
            site: Site row as returned by the database
            app_password: Plaintext application password
            timeout: Per-request timeout in seconds
        """
        client = WordPressClient(
            site["base_url"], site["username"], app_password, timeout=timeout
        )
        info = await self.detect(client)
        await self.record(db, site["id"], info)
        return info


async def detect_plugin(
    site_url: str,
    username: str,
    app_password: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> PluginInfo:
    """
    Detect the translation plugin of a WordPress site.

    Uses the probes of the global registry, registering the built-in
    probes first if nothing has been registered yet.

    Args:
        site_url: Site base URL (without /wp-json)
        username: WordPress username
        app_password: Application password
        timeout: Per-request timeout in seconds

    Returns:
        PluginInfo (plugin NONE when nothing was recognised)

    Raises:
        SiteUnreachableError: If the site never responded
    """
    if not get_registry().list_probe_plugins():
        register_builtin_plugins()

    client = WordPressClient(site_url, username, app_password, timeout=timeout)
    return await PluginDetector().detect(client)
