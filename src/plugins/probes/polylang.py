"""
Polylang Probe - Detects Polylang through several REST surfaces.

Polylang has no single reliable marker, so four methods are tried in
order:

1. the installed plugins list (/wp/v2/plugins, needs admin credentials);
2. the 'language' taxonomy in /wp/v2/taxonomies;
3. the X-Polylang-Version header on /wp/v2/posts?lang=all;
4. the Polylang REST API (/pll/v1/languages).
"""

import logging
from typing import Any, Dict, List, Optional

from plugins.base import PluginInfo, TranslationPlugin
from plugins.probes.base import ProbePlugin, extract_languages_from_posts
from wordpress import WordPressError

logger = logging.getLogger(__name__)


def _is_polylang_entry(entry: Dict[str, Any]) -> bool:
    return (
        "polylang" in str(entry.get("plugin", "")).lower()
        or "polylang" in str(entry.get("name", "")).lower()
        or entry.get("textdomain") == "polylang"
    )


def _language_slugs(entries: List[Any]) -> List[str]:
    slugs = []
    for entry in entries:
        if isinstance(entry, dict):
            slug = entry.get("slug") or entry.get("locale")
            if slug:
                slugs.append(str(slug))
    return slugs


class PolylangProbe(ProbePlugin):
    """Probe for the Polylang plugin."""

    @property
    def name(self) -> str:
        return "polylang"

    @property
    def plugin(self) -> TranslationPlugin:
        return TranslationPlugin.POLYLANG

    async def probe(self, client: Any) -> Optional[PluginInfo]:
        methods = (
            ("plugins-api", self._check_plugins_list),
            ("taxonomies", self._check_taxonomies),
            ("posts-api", self._check_posts_header),
            ("polylang-api", self._check_polylang_api),
        )

        for method_name, method in methods:
            try:
                found, version = await method(client)
            except WordPressError as e:
                logger.debug(f"Polylang {method_name} check failed: {e}")
                continue

            if found:
                languages = await self.get_languages(client)
                logger.info(
                    f"Polylang detected on {client.base_url} via {method_name}: "
                    f"{languages}"
                )
                return self.build_info(
                    version=version,
                    supported_languages=languages,
                    settings={"detectionMethod": method_name},
                )

        logger.debug(f"Polylang not detected on {client.base_url}")
        return None

    async def _check_plugins_list(self, client: Any):
        response = await client.get("/wp/v2/plugins")
        if not response.ok or not isinstance(response.data, list):
            return False, None

        for entry in response.data:
            if isinstance(entry, dict) and _is_polylang_entry(entry):
                if entry.get("status") == "active":
                    return True, entry.get("version")
        return False, None

    async def _check_taxonomies(self, client: Any):
        response = await client.get("/wp/v2/taxonomies")
        data = response.data
        if response.ok and isinstance(data, dict):
            if "language" in data or "term_language" in data:
                return True, None
        return False, None

    async def _check_posts_header(self, client: Any):
        response = await client.get("/wp/v2/posts", {"per_page": 1, "lang": "all"})
        version = response.header("x-polylang-version")
        return bool(version), version

    async def _check_polylang_api(self, client: Any):
        response = await client.get("/pll/v1/languages")
        if response.ok and isinstance(response.data, list):
            return True, response.header("x-polylang-version")
        return False, None

    async def get_languages(self, client: Any) -> List[str]:
        """
        Get the language slugs configured in Polylang.

        Each source is tried in turn and a failing one is skipped: the
        Polylang REST API, the /wp/v2/languages route, the 'language'
        taxonomy terms, then the languages found on recent posts.
        """
        sources = (
            ("/pll/v1/languages", None),
            ("/wp/v2/languages", None),
            ("/wp/v2/language", {"per_page": 100}),
        )
        for path, params in sources:
            try:
                response = await client.get(path, params)
            except WordPressError as e:
                logger.debug(f"Polylang languages from {path} failed: {e}")
                continue
            if response.ok and isinstance(response.data, list):
                languages = _language_slugs(response.data)
                if languages:
                    return languages

        try:
            response = await client.get("/wp/v2/posts", {"per_page": 10, "lang": "all"})
        except WordPressError as e:
            logger.debug(f"Polylang languages from posts failed: {e}")
            return []
        if not response.ok:
            return []
        return extract_languages_from_posts(response.data)
