"""
Core plugin types and dataclasses.

This module contains shared types used across the probe plugin system.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class TranslationPlugin(Enum):
    """WordPress multilingual plugins that can be detected."""

    NONE = "NONE"
    WPML = "WPML"
    POLYLANG = "POLYLANG"
    TRANSLATEPRESS = "TRANSLATEPRESS"
    WEGLOT = "WEGLOT"
    LOCO_TRANSLATE = "LOCO_TRANSLATE"
    QTRANSLATE_XT = "QTRANSLATE_XT"


# Query parameter each plugin reads to filter /wp/v2/posts by language.
# Plugins missing here do not filter content by language.
LANGUAGE_PARAMETERS: Dict[TranslationPlugin, str] = {
    TranslationPlugin.WPML: "wpml_language",
    TranslationPlugin.POLYLANG: "lang",
    TranslationPlugin.TRANSLATEPRESS: "trp-language",
    TranslationPlugin.WEGLOT: "lang",
    TranslationPlugin.QTRANSLATE_XT: "lang",
}


def language_parameter(plugin: Any) -> Optional[str]:
    """
    Get the language filter parameter for a detected plugin.

    Args:
        plugin: TranslationPlugin or its string value (as stored on a site)

    Returns:
        The query parameter name, or None when the plugin has no filter
    """
    if plugin is None:
        return None
    try:
        plugin = TranslationPlugin(plugin)
    except ValueError:
        logger.warning(f"Unknown translation plugin: {plugin}")
        return None
    return LANGUAGE_PARAMETERS.get(plugin)


@dataclass
class PluginInfo:
    """Result of plugin detection."""

    plugin: TranslationPlugin = TranslationPlugin.NONE
    version: Optional[str] = None
    supported_languages: List[str] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def none(cls) -> "PluginInfo":
        """The 'no plugin detected' outcome."""
        return cls()

    @property
    def detected(self) -> bool:
        return self.plugin != TranslationPlugin.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plugin": self.plugin.value,
            "version": self.version,
            "supported_languages": list(self.supported_languages),
            "settings": dict(self.settings),
        }
