"""
Plugin system for WordPress translation sync.

This package provides the probe architecture used to detect which
multilingual plugin a remote WordPress site runs.
"""

from plugins.base import PluginInfo, TranslationPlugin, language_parameter
from plugins.probes.base import ProbePlugin
from plugins.registry import PluginRegistry, get_registry

__all__ = [
    "PluginInfo",
    "TranslationPlugin",
    "language_parameter",
    "ProbePlugin",
    "PluginRegistry",
    "get_registry",
]
