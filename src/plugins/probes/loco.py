"""
Loco Translate Probe - Detects Loco Translate via /loco/v1/locales.

Loco Translate translates themes and plugins rather than content, so a
site using it has no per-language post filter.
"""

import logging
from typing import Any, Optional

from plugins.base import PluginInfo, TranslationPlugin
from plugins.probes.base import ProbePlugin

logger = logging.getLogger(__name__)


class LocoTranslateProbe(ProbePlugin):
    """Probe for the Loco Translate plugin."""

    @property
    def name(self) -> str:
        return "loco_translate"

    @property
    def plugin(self) -> TranslationPlugin:
        return TranslationPlugin.LOCO_TRANSLATE

    async def probe(self, client: Any) -> Optional[PluginInfo]:
        response = await client.get("/loco/v1/locales")
        if not response.ok or not response.data:
            return None

        entries = response.data if isinstance(response.data, list) else []
        languages = [
            entry.get("code") for entry in entries if isinstance(entry, dict)
        ]

        logger.info(f"Loco Translate detected on {client.base_url}: {languages}")
        return self.build_info(
            version=response.header("x-loco-version"),
            supported_languages=languages,
            settings={"note": "Loco Translate is for theme/plugin translation"},
        )
