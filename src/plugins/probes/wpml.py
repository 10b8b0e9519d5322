"""
WPML Probe - Detects WPML Multilingual CMS via /wpml/v1/languages.
"""

import logging
from typing import Any, Optional

from plugins.base import PluginInfo, TranslationPlugin
from plugins.probes.base import ProbePlugin

logger = logging.getLogger(__name__)


class WPMLProbe(ProbePlugin):
    """WPML exposes its language list under its own REST namespace."""

    @property
    def name(self) -> str:
        return "wpml"

    @property
    def plugin(self) -> TranslationPlugin:
        return TranslationPlugin.WPML

    async def probe(self, client: Any) -> Optional[PluginInfo]:
        response = await client.get("/wpml/v1/languages")
        if not response.ok or not response.data:
            return None

        entries = response.data if isinstance(response.data, list) else []
        languages = [
            entry.get("code") or entry.get("locale")
            for entry in entries
            if isinstance(entry, dict)
        ]
        default = next(
            (
                entry.get("code")
                for entry in entries
                if isinstance(entry, dict) and entry.get("default")
            ),
            None,
        )

        logger.info(f"WPML detected on {client.base_url}: {languages}")
        return self.build_info(
            version=response.header("x-wpml-version"),
            supported_languages=languages,
            settings={"defaultLanguage": default, "languages": response.data},
        )
