"""Tests for export service functionality."""

import csv
import io

from wine_value.core.enums import DataProvenance
from wine_value.core.schema import Session, VerificationLinks, WineValueResult
from wine_value.services.export_service import CSV_HEADERS, ExportService, wine_to_row


def _enriched_wine() -> WineValueResult:
    return WineValueResult(
        name="Chateau Margaux",
        producer="Chateau Margaux",
        vintage=2015,
        region="Margaux",
        grape_variety="Cabernet Sauvignon",
        menu_price=450,
        retail_price_avg=300,
        critic_score=96,
        community_score=92.5,
        verification_links=VerificationLinks(
            price_source_url="https://www.wine-searcher.com/find/chateau+margaux/2015/uk",
            community_source_url="https://www.cellartracker.com/list.html?szSearch=Chateau+Margaux+2015",
        ),
        data_provenance=DataProvenance.MIXED,
        lookup_status="found",
    )


class TestWineToRow:
    """Tests for wine_to_row."""

    def test_enriched_wine(self) -> None:
        """Test every column of an enriched wine."""
        row = wine_to_row(_enriched_wine())

        assert len(row) == len(CSV_HEADERS)
        assert row[:6] == [
            "Chateau Margaux",
            "Chateau Margaux",
            2015,
            "Margaux",
            "Cabernet Sauvignon",
            450,
        ]
        assert row[6:11] == [300, 50, 96, 92.5, 63]
        assert row[11:13] == ["found", "mixed"]
        assert row[13].startswith("https://www.wine-searcher.com/")

    def test_unenriched_non_vintage(self) -> None:
        """Test missing values are blank and NV is written for no vintage."""
        row = wine_to_row(WineValueResult(name="Krug Grande Cuvee", menu_price=220.5))

        assert row[2] == "NV"
        assert row[5] == 220.5
        assert row[6:11] == ["", "", "", "", ""]
        assert row[11:] == ["pending", "none", "", ""]


class TestExportService:
    """Tests for ExportService."""

    def test_export_session_csv(self) -> None:
        """Test the CSV has a header row and one row per wine."""
        session = Session(
            currency="GBP",
            wines=[_enriched_wine(), WineValueResult(name="Krug Grande Cuvee", menu_price=220)],
        )

        content = ExportService().export_session_csv(session)
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == CSV_HEADERS
        assert len(rows) == 3
        assert rows[1][0] == "Chateau Margaux"
        assert rows[1][10] == "63"
        assert rows[2][2] == "NV"

    def test_empty_session(self) -> None:
        """Test a session without wines exports only the header."""
        content = ExportService().export_session_csv(Session())
        assert list(csv.reader(io.StringIO(content))) == [CSV_HEADERS]

    def test_commas_and_quotes_escaped(self) -> None:
        """Test names containing commas and quotes survive the round trip."""
        wine = WineValueResult(name='Bollinger "La Grande Annee", Brut', menu_price=300)
        content = ExportService().export_session_csv(Session(wines=[wine]))
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[1][0] == 'Bollinger "La Grande Annee", Brut'

    def test_export_filename(self) -> None:
        """Test the download filename uses the session id prefix."""
        session = Session(id="0123456789abcdef")
        assert ExportService.export_filename(session) == "wine-list-01234567.csv"
