"""
Unit tests for CSV/Excel record imports.
"""
import io

import openpyxl
import pytest

from carbonledger.core.errors import InvalidInput
from carbonledger.import_data.records import (
    EMISSION,
    VALUE_CHAIN,
    RecordImporter,
    normalize_header,
)


def _xlsx(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class TestHeaderMapping:
    """Tests for synonym-based column mapping."""

    @pytest.mark.unit
    def test_normalize_header(self):
        assert normalize_header(" Mine ID ") == "mineid"
        assert normalize_header("Activity_Type") == "activitytype"
        assert normalize_header(None) == ""

    @pytest.mark.unit
    def test_emission_synonyms(self):
        importer = RecordImporter(EMISSION)

        mapped = importer.map_row({
            "Mine ID": "site-1",
            "Emission Source": "diesel",
            "Qty": "40",
            "UoM": "L",
            "Period": "2024-01-01",
            "Notes": "ignored",
        })

        assert mapped == {
            "site_id": "site-1",
            "activity_type": "diesel",
            "amount": "40",
            "unit": "L",
            "date": "2024-01-01",
        }

    @pytest.mark.unit
    def test_value_chain_synonyms(self):
        importer = RecordImporter(VALUE_CHAIN)

        mapped = importer.map_row({
            "Unit ID": "site-1",
            "Category": "Freight",
            "Sub-Category": "Rail",
            "Supplier": "Indian Railways",
            "Value": 1200,
            "Units": "ton-km",
        })

        assert mapped["site_id"] == "site-1"
        assert mapped["sub_category"] == "Rail"
        assert mapped["vendor_name"] == "Indian Railways"
        assert mapped["amount"] == 1200

    @pytest.mark.unit
    def test_first_matching_column_wins(self):
        mapped = RecordImporter(EMISSION).map_row({"Quantity": "5", "Amount": "7"})
        assert mapped["amount"] == "5"

    @pytest.mark.unit
    def test_bare_id_column_is_not_a_site_reference(self):
        mapped = RecordImporter(EMISSION).map_row({"id": "row-17", "activity": "diesel"})
        assert "site_id" not in mapped

    @pytest.mark.unit
    def test_default_site_fills_blank_reference_only(self):
        importer = RecordImporter(EMISSION, default_site_id="fallback")

        assert importer.map_row({"activity": "diesel"})["site_id"] == "fallback"
        assert importer.map_row({"Site ID": "  ", "activity": "diesel"})["site_id"] == "fallback"
        assert importer.map_row({"Site ID": "explicit"})["site_id"] == "explicit"

    @pytest.mark.unit
    def test_no_default_site_leaves_reference_missing(self):
        mapped = RecordImporter(EMISSION).map_row({"activity": "diesel"})
        assert "site_id" not in mapped

    @pytest.mark.unit
    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            RecordImporter("scope4")


class TestFileParsing:
    """Tests for CSV and Excel parsing."""

    @pytest.mark.unit
    def test_parse_csv(self):
        content = (
            "Site ID,Activity Type,Amount,Unit,Date\n"
            "site-1,diesel_combustion,500,L,2024-01-15\n"
            ",,,,\n"
            "site-2,grid_electricity,\"1,200\",kWh,2024-01-16\n"
        ).encode("utf-8")

        entries = RecordImporter(EMISSION).parse_file("january.csv", content)

        assert len(entries) == 2
        assert entries[1]["amount"] == "1,200"
        assert entries[1]["site_id"] == "site-2"

    @pytest.mark.unit
    def test_parse_csv_with_bom(self):
        content = "\ufeffSite ID,Amount\nsite-1,5\n".encode("utf-8")

        entries = RecordImporter(EMISSION).parse_file("bom.csv", content)

        assert entries == [{"site_id": "site-1", "amount": "5"}]

    @pytest.mark.unit
    def test_parse_csv_latin1_fallback(self):
        content = "Site ID,Supplier,Amount\nsite-1,Société Générale,9\n".encode("latin-1")

        entries = RecordImporter(VALUE_CHAIN).parse_file("vendors.CSV", content)

        assert entries[0]["vendor_name"] == "Société Générale"

    @pytest.mark.unit
    def test_negative_amount_is_passed_through(self):
        content = b"Site ID,Amount\nsite-1,-40\n"

        entries = RecordImporter(EMISSION).parse_file("neg.csv", content)

        assert entries[0]["amount"] == "-40"

    @pytest.mark.unit
    def test_parse_excel(self):
        content = _xlsx([
            ["Mine ID", "Activity", "Quantity", "Unit", "Date"],
            ["site-1", "explosives_anfo", 2000, "kg", "2024-02-01"],
            [None, None, None, None, None],
            ["site-1", "diesel", 350.5, "L", "2024-02-02"],
        ])

        entries = RecordImporter(EMISSION).parse_file("february.xlsx", content)

        assert len(entries) == 2
        assert entries[0]["amount"] == 2000
        assert entries[1]["activity_type"] == "diesel"

    @pytest.mark.unit
    def test_corrupt_excel(self):
        with pytest.raises(InvalidInput) as exc_info:
            RecordImporter(EMISSION).parse_file("broken.xlsx", b"not a zip file")
        assert exc_info.value.field == "file"

    @pytest.mark.unit
    def test_unsupported_extension(self):
        with pytest.raises(InvalidInput) as exc_info:
            RecordImporter(EMISSION).parse_file("data.json", b"{}")
        assert exc_info.value.field == "file"

    @pytest.mark.unit
    def test_header_only_file_is_rejected(self):
        with pytest.raises(InvalidInput):
            RecordImporter(EMISSION).parse_file("empty.csv", b"Site ID,Amount\n")
