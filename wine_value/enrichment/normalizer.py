"""
Name Normalizer Module
======================

Turns wine and producer names as printed on restaurant lists into
search-friendly strings used by every lookup source and by the cache key.
"""

from __future__ import annotations

import re


class NameNormalizer:
    """
    Canonicalizes raw wine/producer strings.

    Handles:
    - Abbreviation expansion (e.g., "Ch." -> "Chateau", "Dom." -> "Domaine")
    - Producer initials (e.g., "J.L" -> "Jean-Louis")
    - Vintage shorthand with a 50-year pivot ("'18" -> "2018", "'85" -> "1985")
    - Whitespace collapsing

    Every rule's output is outside the rule's own input pattern, so
    normalizing twice gives the same result as normalizing once.
    """

    # Abbreviations: (pattern, replacement), matched case-insensitively on word boundaries.
    # "Dom" without a dot is left alone (Dom Perignon).
    ABBREVIATIONS: list[tuple[str, str]] = [
        (r"\bcht?\b\.?", "Chateau"),
        (r"\bdom\.", "Domaine"),
        (r"\bst\b\.?", "Saint"),
        (r"\bste\b\.?", "Sainte"),
        (r"\bmt\.", "Mount"),
        (r"\bmme\b\.?", "Madame"),
        (r"\bcab\.", "Cabernet"),
        (r"\bsauv\.", "Sauvignon"),
        (r"\bchard\.", "Chardonnay"),
        (r"\bries\.", "Riesling"),
        (r"\bpnt?\.", "Pinot"),
        (r"\bgrn?\.", "Grand"),
        (r"\bvyd\b\.?", "Vineyard"),
        (r"\bvly\b\.?", "Valley"),
    ]

    # Producer initials commonly printed in Burgundy and Rhone lists
    INITIALS: dict[str, str] = {
        "py": "Pierre-Yves",
        "jl": "Jean-Louis",
        "jm": "Jean-Marc",
        "jp": "Jean-Pierre",
        "jf": "Jean-François",
        "jb": "Jean-Baptiste",
        "jc": "Jean-Claude",
        "fl": "François-Louis",
    }

    VINTAGE_SHORTHAND = re.compile(r"['’](\d{2})\b")
    WHITESPACE = re.compile(r"\s+")

    def __init__(self) -> None:
        # The trailing group keeps hyphenation intact: "St-Julien" -> "Saint-Julien"
        self._abbreviations = [
            (re.compile(pattern + r"(?P<sep>\s*-|\s*)", re.IGNORECASE), replacement)
            for pattern, replacement in self.ABBREVIATIONS
        ]
        # "JL", "J.L", "J.L.", "J. L." as a standalone token
        self._initials = [
            (
                re.compile(
                    rf"(?<![\w.\-]){first}(?:\.\s?)?{second}(?:\.|\b)",
                    re.IGNORECASE,
                ),
                replacement,
            )
            for (first, second), replacement in self.INITIALS.items()
        ]

    def collapse_whitespace(self, text: str) -> str:
        """Collapse runs of whitespace to single spaces and strip the ends."""
        return self.WHITESPACE.sub(" ", text).strip()

    def expand_abbreviations(self, text: str) -> str:
        """Expand known abbreviations and producer initials."""
        for pattern, replacement in self._initials:
            text = pattern.sub(replacement, text)
        for pattern, replacement in self._abbreviations:
            text = pattern.sub(
                lambda m, word=replacement: word + ("-" if m.group("sep").endswith("-") else " "),
                text,
            )
        return text

    @staticmethod
    def expand_vintage_year(two_digits: str) -> str:
        """Expand a two-digit vintage: above 50 is 1900s, otherwise 2000s."""
        year = int(two_digits)
        return f"19{two_digits}" if year > 50 else f"20{two_digits}"

    def normalize_vintages(self, text: str) -> str:
        """Replace shorthand vintages ('18, ’85) with four-digit years."""
        return self.VINTAGE_SHORTHAND.sub(
            lambda m: self.expand_vintage_year(m.group(1)), text
        )

    def normalize(self, raw: str | None) -> str:
        """
        Normalize a raw wine or producer name.

        Args:
            raw: Name as printed on the list

        Returns:
            Canonical name; the input (whitespace-collapsed) if no rule matched
        """
        if not raw:
            return ""
        text = self.expand_abbreviations(raw)
        text = self.normalize_vintages(text)
        return self.collapse_whitespace(text)

    def build_search_name(self, name: str, producer: str | None = None) -> str:
        """
        Build a search-friendly name: expanded producer + rest of the wine name.

        The producer is stripped from the wine name first, so a list entry
        like "Chateau Margaux Pavillon Rouge" with producer "Ch. Margaux"
        becomes "Chateau Margaux Pavillon Rouge" rather than repeating it.

        Args:
            name: Wine name as printed
            producer: Producer name, if known

        Returns:
            Search string
        """
        normalized_name = self.normalize(name)
        normalized_producer = self.normalize(producer)
        if not normalized_producer:
            return normalized_name

        remainder = re.sub(
            re.escape(normalized_producer), "", normalized_name, count=1, flags=re.IGNORECASE
        )
        return self.collapse_whitespace(f"{normalized_producer} {remainder}")

    def build_api_wine_name(self, name: str, producer: str | None = None) -> str:
        """Format a search name for the price API (spaces become '+')."""
        return self.build_search_name(name, producer).replace(" ", "+")


_default_normalizer = NameNormalizer()


def normalize_wine_name(raw: str | None) -> str:
    """Normalize a wine or producer name with the default normalizer."""
    return _default_normalizer.normalize(raw)


def build_search_name(name: str, producer: str | None = None) -> str:
    """Build a search name with the default normalizer."""
    return _default_normalizer.build_search_name(name, producer)


def build_api_wine_name(name: str, producer: str | None = None) -> str:
    """Build a price-API wine name with the default normalizer."""
    return _default_normalizer.build_api_wine_name(name, producer)
