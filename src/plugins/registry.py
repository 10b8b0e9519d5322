"""
Plugin Registry - Discovery and registration of probe plugins.

This module provides the central registry for translation plugin probes,
handling discovery, registration, and ordering.
"""

from importlib.metadata import entry_points
from typing import Dict, List, Optional, Sequence, Type

from plugins.base import logger
from plugins.probes.base import ProbePlugin

ENTRY_POINT_GROUP = "wpsync.probes"


class PluginRegistry:
    """
    Central registry for probe plugins.

    Registration order is detection priority: probes registered first run
    first.
    """

    def __init__(self):
        # Registered probe classes (not instantiated), in priority order
        self._probe_plugins: Dict[str, Type[ProbePlugin]] = {}

        # Cached plugin metadata to avoid repeated instantiation
        self._probe_plugin_info: Dict[str, Dict[str, str]] = {}

        # Probes are stateless, so one instance each is shared
        self._probe_instances: Dict[str, ProbePlugin] = {}

    def register_probe_plugin(self, plugin_class: Type[ProbePlugin]) -> None:
        """
        Register a probe plugin class.

        Re-registering a name replaces the class but keeps its original
        position in the priority order.

        Args:
            plugin_class: The ProbePlugin subclass to register
        """
        temp_instance = plugin_class()
        name = temp_instance.name

        if name in self._probe_plugins:
            logger.warning(f"Overwriting existing probe plugin: {name}")

        self._probe_plugins[name] = plugin_class
        self._probe_plugin_info[name] = {
            "name": name,
            "version": temp_instance.version,
            "plugin": temp_instance.plugin.value,
        }
        self._probe_instances[name] = temp_instance
        logger.info(f"Registered probe plugin: {name} v{temp_instance.version}")

    def get_probe_plugins(
        self, enabled: Optional[Sequence[str]] = None
    ) -> List[ProbePlugin]:
        """
        Get probe instances in priority order.

        Args:
            enabled: Optional list of probe names to keep. Empty or None
                keeps all registered probes.

        Returns:
            List of ProbePlugin instances
        """
        names = list(self._probe_plugins.keys())
        if enabled:
            unknown = [name for name in enabled if name not in self._probe_plugins]
            if unknown:
                logger.warning(f"Ignoring unknown probe plugins: {', '.join(unknown)}")
            names = [name for name in names if name in enabled]
        return [self._probe_instances[name] for name in names]

    def list_probe_plugins(self) -> List[str]:
        """List all registered probe plugin names, in priority order."""
        return list(self._probe_plugins.keys())

    def has_probe_plugin(self, name: str) -> bool:
        """Check if a probe plugin is registered."""
        return name in self._probe_plugins

    def get_probe_plugin_info(self, name: str) -> Optional[Dict[str, str]]:
        """
        Get information about a registered probe plugin.

        Args:
            name: The probe name

        Returns:
            Dictionary with 'name', 'version' and 'plugin', or None if not found
        """
        return self._probe_plugin_info.get(name)


# Global registry instance
_registry: Optional[PluginRegistry] = None


def get_registry() -> PluginRegistry:
    """Get the global plugin registry singleton."""
    global _registry
    if _registry is None:
        _registry = PluginRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (mainly for testing)."""
    global _registry
    _registry = None


def register_builtin_plugins() -> None:
    """
    Register the built-in probes and discover third-party probes via
    entry points.

    Built-in probes are registered first so that discovered probes run
    after them.
    """
    registry = get_registry()

    from plugins.probes import BUILTIN_PROBES

    for probe_class in BUILTIN_PROBES:
        registry.register_probe_plugin(probe_class)

    discovered = entry_points(group=ENTRY_POINT_GROUP)
    for ep in discovered:
        try:
            probe_class = ep.load()
            registry.register_probe_plugin(probe_class)
        except Exception as e:
            logger.warning(f"Could not load probe plugin {ep.name}: {e}")
