"""
TranslatePress Probe - Detects TranslatePress via its trp-language parameter.
"""

import logging
from typing import Any, Optional

from plugins.base import PluginInfo, TranslationPlugin
from plugins.probes.base import ProbePlugin

logger = logging.getLogger(__name__)

# TranslatePress does not publish its language list over REST; used when
# the site does not send X-TranslatePress-Languages.
FALLBACK_LANGUAGES = ["en_US", "ar", "fr_FR", "es_ES"]


class TranslatePressProbe(ProbePlugin):
    """Probe for the TranslatePress plugin."""

    @property
    def name(self) -> str:
        return "translatepress"

    @property
    def plugin(self) -> TranslationPlugin:
        return TranslationPlugin.TRANSLATEPRESS

    async def probe(self, client: Any) -> Optional[PluginInfo]:
        response = await client.get(
            "/wp/v2/posts", {"per_page": 1, "trp-language": "en_US"}
        )
        version = response.header("x-translatepress-version")
        if not version:
            return None

        raw_languages = response.header("x-translatepress-languages")
        if raw_languages:
            languages = [lang.strip() for lang in raw_languages.split(",")]
        else:
            languages = list(FALLBACK_LANGUAGES)

        logger.info(f"TranslatePress detected on {client.base_url}: {languages}")
        return self.build_info(version=version, supported_languages=languages)
