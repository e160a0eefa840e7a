"""Export service for enriched wine lists (CSV)."""

import csv
import io
from typing import Any

from wine_value.core.schema import Session, WineValueResult

CSV_HEADERS = [
    "Wine Name",
    "Producer",
    "Vintage",
    "Region",
    "Grape",
    "Menu Price",
    "Retail Avg Price",
    "Markup %",
    "Critic Score",
    "Community Score",
    "Value Score",
    "Lookup Status",
    "Provenance",
    "Price Source URL",
    "Community Source URL",
]


def _cell(value: Any) -> Any:
    """Blank for missing values, plain numbers for whole floats."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def wine_to_row(wine: WineValueResult) -> list[Any]:
    """Flatten one wine into a CSV row in header order."""
    return [
        wine.name,
        wine.producer,
        wine.vintage if wine.vintage is not None else "NV",
        wine.region,
        wine.grape_variety,
        _cell(wine.menu_price),
        _cell(wine.retail_price_avg),
        _cell(wine.markup_percent),
        _cell(wine.critic_score),
        _cell(wine.community_score),
        _cell(wine.value_score),
        wine.lookup_status.value,
        wine.data_provenance.value,
        wine.verification_links.price_source_url or "",
        wine.verification_links.community_source_url or "",
    ]


class ExportService:
    """Service for exporting a session's wines."""

    def export_session_csv(self, session: Session) -> str:
        """
        Export a session's wines as CSV.

        Args:
            session: The session snapshot to export.

        Returns:
            CSV string with a header row and one row per wine.
        """
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_HEADERS)
        for wine in session.wines:
            writer.writerow(wine_to_row(wine))
        return output.getvalue()

    @staticmethod
    def export_filename(session: Session) -> str:
        """Download filename for a session export."""
        return f"wine-list-{session.id[:8]}.csv"
