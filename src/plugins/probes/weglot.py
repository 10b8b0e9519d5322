"""
Weglot Probe - Detects Weglot via /weglot/v1/languages.
"""

import logging
from typing import Any, List, Optional

from plugins.base import PluginInfo, TranslationPlugin
from plugins.probes.base import ProbePlugin

logger = logging.getLogger(__name__)

# Keys seen on dict entries of the languages list
LANGUAGE_KEYS = ("language_to", "code", "language")


def _language_codes(entries: Any) -> List[str]:
    if not isinstance(entries, list):
        return []

    codes = []
    for entry in entries:
        code = entry
        if isinstance(entry, dict):
            code = next((entry[key] for key in LANGUAGE_KEYS if entry.get(key)), None)
        if isinstance(code, str) and code:
            codes.append(code)
    return codes


class WeglotProbe(ProbePlugin):
    """Probe for the Weglot plugin."""

    @property
    def name(self) -> str:
        return "weglot"

    @property
    def plugin(self) -> TranslationPlugin:
        return TranslationPlugin.WEGLOT

    async def probe(self, client: Any) -> Optional[PluginInfo]:
        response = await client.get("/weglot/v1/languages")
        if not response.ok or not isinstance(response.data, dict):
            return None

        data = response.data
        languages = _language_codes(data.get("languages"))

        logger.info(f"Weglot detected on {client.base_url}: {languages}")
        return self.build_info(
            version=response.header("x-weglot-version"),
            supported_languages=languages,
            settings={
                # Never echo the key itself
                "apiKey": "***" if data.get("api_key") else None,
                "originalLanguage": data.get("original_language"),
            },
        )
