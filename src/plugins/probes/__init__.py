"""Built-in translation plugin probes, in detection priority order."""

from plugins.probes.base import ProbePlugin
from plugins.probes.loco import LocoTranslateProbe
from plugins.probes.polylang import PolylangProbe
from plugins.probes.qtranslate import QTranslateXTProbe
from plugins.probes.translatepress import TranslatePressProbe
from plugins.probes.weglot import WeglotProbe
from plugins.probes.wpml import WPMLProbe

# Order matters: several plugins accept the same query parameters.
BUILTIN_PROBES = [
    WPMLProbe,
    PolylangProbe,
    TranslatePressProbe,
    WeglotProbe,
    LocoTranslateProbe,
    QTranslateXTProbe,
]

__all__ = [
    "ProbePlugin",
    "WPMLProbe",
    "PolylangProbe",
    "TranslatePressProbe",
    "WeglotProbe",
    "LocoTranslateProbe",
    "QTranslateXTProbe",
    "BUILTIN_PROBES",
]
