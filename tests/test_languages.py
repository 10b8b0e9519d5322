"""Unit tests for languages.py - Language code normalization."""

import pytest

from languages import (
    DOCUMENTED_ALIASES,
    Language,
    LanguageCodeNormalizer,
    normalize,
)


class TestLanguage:
    def test_canonical_codes(self):
        assert [lang.value for lang in Language] == ["AR", "EN", "FR", "ES"]


class TestNormalize:
    """Tests for the three-tier lookup."""

    @pytest.mark.parametrize(
        "language,alias",
        [
            (language, alias)
            for language, aliases in DOCUMENTED_ALIASES.items()
            for alias in aliases
        ],
    )
    def test_every_documented_alias(self, language, alias):
        assert normalize(alias) == language

    def test_examples_from_remote_sites(self):
        assert normalize("AR") == Language.AR
        assert normalize("ar_SA") == Language.AR
        assert normalize("ar-sa") == Language.AR
        assert normalize("en_US") == Language.EN
        assert normalize("EN") == Language.EN

    def test_unknown_code_is_rejected(self):
        assert normalize("xx-unknown") is None

    def test_primary_code_fallback(self):
        """Regional variants missing from the alias table use the first two chars."""
        assert normalize("fr_LU") == Language.FR
        assert normalize("es-419") == Language.ES

    def test_whitespace_is_trimmed(self):
        assert normalize("  en_GB ") == Language.EN

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_input(self, raw):
        assert normalize(raw) is None

    def test_non_string_input(self):
        assert normalize(42) is None

    def test_unsupported_language(self):
        assert normalize("de_DE") is None
        assert normalize("zh") is None


class TestLanguageCodeNormalizer:
    def test_custom_alias_table(self):
        normalizer = LanguageCodeNormalizer(aliases={"anglais": Language.EN})
        assert normalizer.normalize("Anglais") == Language.EN

    def test_uppercase_canonical_fallback(self):
        """With empty tables only the canonical codes themselves match."""
        normalizer = LanguageCodeNormalizer(aliases={}, primary_codes={})
        assert normalizer.normalize("fr") == Language.FR
        assert normalizer.normalize("fr_FR") is None
