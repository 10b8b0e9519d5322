"""
Language code normalization.

Remote WordPress sites name languages inconsistently ("AR", "ar_SA",
"ar-sa", "en_US", "EN", "english"). Everything is mapped onto the four
canonical languages the content store understands, or rejected.
"""

import logging
from enum import Enum
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class Language(Enum):
    """Canonical content languages."""

    AR = "AR"
    EN = "EN"
    FR = "FR"
    ES = "ES"


# Raw tags known to be emitted by the supported plugins, per language.
DOCUMENTED_ALIASES: Dict[Language, Tuple[str, ...]] = {
    Language.AR: (
        "ar",
        "AR",
        "ar_AR",
        "ar_SA",
        "ar-sa",
        "ar_EG",
        "ar-eg",
        "ar_AE",
        "ar_MA",
        "arabic",
    ),
    Language.EN: (
        "en",
        "EN",
        "en_US",
        "en-us",
        "en_GB",
        "en-gb",
        "en_AU",
        "en_CA",
        "english",
    ),
    Language.FR: (
        "fr",
        "FR",
        "fr_FR",
        "fr-fr",
        "fr_CA",
        "fr_BE",
        "fr_CH",
        "french",
    ),
    Language.ES: (
        "es",
        "ES",
        "es_ES",
        "es-es",
        "es_MX",
        "es_AR",
        "es_CO",
        "spanish",
    ),
}

ALIASES: Dict[str, Language] = {
    alias.strip().lower(): language
    for language, aliases in DOCUMENTED_ALIASES.items()
    for alias in aliases
}

PRIMARY_CODES: Dict[str, Language] = {
    language.value.lower(): language for language in Language
}


class LanguageCodeNormalizer:
    """
    Maps arbitrary remote language tags onto a canonical Language.

    Lookup order:
    1. exact alias match on the trimmed, lowercased tag;
    2. the first two characters against the primary ISO 639-1 codes;
    3. the uppercased tag against the canonical codes.
    """

    def __init__(
        self,
        aliases: Optional[Dict[str, Language]] = None,
        primary_codes: Optional[Dict[str, Language]] = None,
    ):
        self.aliases = aliases if aliases is not None else ALIASES
        self.primary_codes = (
            primary_codes if primary_codes is not None else PRIMARY_CODES
        )

    def normalize(self, raw: Optional[str]) -> Optional[Language]:
        """
        Normalize a raw language tag.

        Args:
            raw: Language tag as reported by the remote site

        Returns:
            The canonical Language, or None if the tag is not recognized
        """
        if not raw or not isinstance(raw, str):
            return None

        cleaned = raw.strip().lower()
        if not cleaned:
            return None

        language = self.aliases.get(cleaned)
        if language is not None:
            return language

        language = self.primary_codes.get(cleaned[:2])
        if language is not None:
            return language

        upper = raw.strip().upper()
        for candidate in Language:
            if candidate.value == upper:
                return candidate

        logger.debug(f"Unrecognized language code: {raw!r}")
        return None


_default_normalizer = LanguageCodeNormalizer()


def normalize(raw: Optional[str]) -> Optional[Language]:
    """Normalize a raw language tag with the default tables."""
    return _default_normalizer.normalize(raw)
