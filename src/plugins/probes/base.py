"""
Probe Plugin Base - Abstract interface for translation plugin probes.

There is no canonical discovery endpoint for WordPress multilingual
plugins. Each probe knows how to recognise one plugin from its REST
surface. Probes are independent strategies run in priority order by the
PluginDetector; the first one that answers wins.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from plugins.base import PluginInfo, TranslationPlugin, language_parameter


class ProbePlugin(ABC):
    """
    Abstract base class for plugin probes.

    A probe issues one or more read-only GETs through the client it is
    given and returns PluginInfo on a positive signal, or None. Probes may
    raise on network or parse failures; the detector isolates them.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this probe (e.g., 'wpml')."""
        pass

    @property
    @abstractmethod
    def plugin(self) -> TranslationPlugin:
        """The translation plugin this probe recognises."""
        pass

    @property
    def version(self) -> str:
        """Probe version string."""
        return "1.0.0"

    @property
    def language_parameter(self) -> Optional[str]:
        """Query parameter used to filter posts by language, if any."""
        return language_parameter(self.plugin)

    @abstractmethod
    async def probe(self, client: Any) -> Optional[PluginInfo]:
        """
        Look for this plugin on a site.

        Args:
            client: WordPressClient for the site

        Returns:
            PluginInfo if the plugin was recognised, otherwise None
        """
        pass

    def build_info(
        self,
        version: Optional[str],
        supported_languages: List[str],
        settings: Optional[Dict[str, Any]] = None,
    ) -> PluginInfo:
        """Build a PluginInfo for this probe's plugin."""
        merged = dict(settings or {})
        if self.language_parameter:
            merged.setdefault("languageParameter", self.language_parameter)
        return PluginInfo(
            plugin=self.plugin,
            version=version,
            supported_languages=[lang for lang in supported_languages if lang],
            settings=merged,
        )


def extract_languages_from_posts(posts: Any) -> List[str]:
    """
    Collect raw language tags mentioned by a list of posts.

    Looks at 'lang', 'language' and 'locale' fields and at a
    'language=' query in the first wp:term link.
    """
    if not isinstance(posts, list):
        return []

    languages: List[str] = []
    for post in posts:
        if not isinstance(post, dict):
            continue
        for key in ("lang", "language", "locale"):
            value = post.get(key)
            if isinstance(value, str) and value and value not in languages:
                languages.append(value)

        terms = (post.get("_links") or {}).get("wp:term") or []
        href = terms[0].get("href", "") if terms and isinstance(terms[0], dict) else ""
        if "language=" in href:
            value = href.split("language=", 1)[1].split("&", 1)[0]
            if value and value not in languages:
                languages.append(value)

    return languages
