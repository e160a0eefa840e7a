"""Tests for the wine name normalizer."""

import pytest

from wine_value.enrichment.normalizer import (
    NameNormalizer,
    build_api_wine_name,
    build_search_name,
    normalize_wine_name,
)


@pytest.fixture
def normalizer() -> NameNormalizer:
    return NameNormalizer()


class TestAbbreviations:
    """Tests for abbreviation expansion."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Ch. Margaux", "Chateau Margaux"),
            ("Cht Palmer", "Chateau Palmer"),
            ("CH. LATOUR", "Chateau LATOUR"),
            ("Dom. Leflaive", "Domaine Leflaive"),
            ("St. Emilion", "Saint Emilion"),
            ("St-Julien", "Saint-Julien"),
            ("Mt. Eden", "Mount Eden"),
            ("Cab. Sauv.", "Cabernet Sauvignon"),
            ("Ridge Lytton Springs Vyd", "Ridge Lytton Springs Vineyard"),
        ],
    )
    def test_expansions(self, normalizer: NameNormalizer, raw: str, expected: str) -> None:
        """Test known abbreviations expand."""
        assert normalizer.normalize(raw) == expected

    def test_dom_without_dot_is_kept(self, normalizer: NameNormalizer) -> None:
        """Test that Dom Perignon is not turned into a Domaine."""
        assert normalizer.normalize("Dom Perignon") == "Dom Perignon"

    def test_abbreviation_inside_word_is_kept(self, normalizer: NameNormalizer) -> None:
        """Test that patterns only match whole words."""
        assert normalizer.normalize("Chave Hermitage") == "Chave Hermitage"
        assert normalizer.normalize("Stag's Leap") == "Stag's Leap"


class TestInitials:
    """Tests for producer initials."""

    def test_plain_initials(self, normalizer: NameNormalizer) -> None:
        """Test initials without dots."""
        assert normalizer.normalize("PY Colin-Morey") == "Pierre-Yves Colin-Morey"

    def test_dotted_initials(self, normalizer: NameNormalizer) -> None:
        """Test initials with dots."""
        assert normalizer.normalize("J.L. Chave") == "Jean-Louis Chave"

    def test_initials_inside_word_are_kept(self, normalizer: NameNormalizer) -> None:
        """Test that a word starting with the letters is not expanded."""
        assert normalizer.normalize("Fleurie") == "Fleurie"


class TestVintages:
    """Tests for shorthand vintage conversion."""

    def test_recent_vintage(self, normalizer: NameNormalizer) -> None:
        """Test '18 becomes 2018."""
        assert normalizer.normalize("Opus One '18") == "Opus One 2018"

    def test_old_vintage(self, normalizer: NameNormalizer) -> None:
        """Test '85 becomes 1985."""
        assert normalizer.normalize("Latour '85") == "Latour 1985"

    def test_pivot(self) -> None:
        """Test the 50-year pivot."""
        assert NameNormalizer.expand_vintage_year("50") == "2050"
        assert NameNormalizer.expand_vintage_year("51") == "1951"

    def test_typographic_apostrophe(self, normalizer: NameNormalizer) -> None:
        """Test the right single quotation mark is accepted."""
        assert normalizer.normalize("Sassicaia ’16") == "Sassicaia 2016"


class TestNormalize:
    """Tests for the full normalization."""

    def test_whitespace(self, normalizer: NameNormalizer) -> None:
        """Test whitespace is collapsed."""
        assert normalizer.normalize("  Ridge   Monte\tBello ") == "Ridge Monte Bello"

    def test_unmatched_input_unchanged(self, normalizer: NameNormalizer) -> None:
        """Test input without abbreviations comes back as-is."""
        assert normalizer.normalize("Opus One") == "Opus One"

    def test_empty(self, normalizer: NameNormalizer) -> None:
        """Test empty and None input."""
        assert normalizer.normalize("") == ""
        assert normalizer.normalize(None) == ""

    @pytest.mark.parametrize(
        "raw",
        ["Ch. Margaux '15", "St-Julien", "J.L. Chave Hermitage", "Dom Perignon", "Cab. Sauv. Vyd"],
    )
    def test_idempotent(self, normalizer: NameNormalizer, raw: str) -> None:
        """Test normalizing twice equals normalizing once."""
        once = normalizer.normalize(raw)
        assert normalizer.normalize(once) == once

    def test_module_wrapper(self) -> None:
        """Test the module-level helper uses the default normalizer."""
        assert normalize_wine_name("Ch. Margaux") == "Chateau Margaux"


class TestSearchName:
    """Tests for search and API name building."""

    def test_producer_prefixed(self) -> None:
        """Test the producer is placed before the wine name."""
        assert build_search_name("Monte Bello", "Ridge") == "Ridge Monte Bello"

    def test_producer_not_repeated(self) -> None:
        """Test a producer already in the name is not duplicated."""
        assert (
            build_search_name("Chateau Margaux Pavillon Rouge", "Ch. Margaux")
            == "Chateau Margaux Pavillon Rouge"
        )

    def test_no_producer(self) -> None:
        """Test a missing producer leaves the normalized name."""
        assert build_search_name("Opus One", "") == "Opus One"
        assert build_search_name("Opus One", None) == "Opus One"

    def test_api_name(self) -> None:
        """Test the API name uses '+' for spaces."""
        assert build_api_wine_name("Monte Bello", "Ridge") == "Ridge+Monte+Bello"
