"""
qTranslate-XT Probe - Detects qTranslate-XT via its 'lang' parameter.

Several plugins accept 'lang', so only the X-qTranslate-Version header
counts as a positive signal. This probe runs last.
"""

import logging
from typing import Any, Optional

from plugins.base import PluginInfo, TranslationPlugin
from plugins.probes.base import ProbePlugin, extract_languages_from_posts

logger = logging.getLogger(__name__)


class QTranslateXTProbe(ProbePlugin):
    """Probe for the qTranslate-XT plugin."""

    @property
    def name(self) -> str:
        return "qtranslate_xt"

    @property
    def plugin(self) -> TranslationPlugin:
        return TranslationPlugin.QTRANSLATE_XT

    async def probe(self, client: Any) -> Optional[PluginInfo]:
        response = await client.get("/wp/v2/posts", {"per_page": 1, "lang": "en"})
        version = response.header("x-qtranslate-version")
        if not version:
            return None

        languages = extract_languages_from_posts(response.data)

        logger.info(f"qTranslate-XT detected on {client.base_url}: {languages}")
        return self.build_info(version=version, supported_languages=languages)
