"""
Unit tests for single-record ingestion.
"""
from datetime import date, datetime

import pytest

from carbonledger.core.errors import InvalidInput, ReferenceNotFound
from carbonledger.core.models import EmissionRecord, Scope, ValueChainRecord
from carbonledger.services.ingestion_service import (
    IngestionService,
    parse_amount,
    parse_record_date,
)


class TestParsing:
    """Tests for amount and date parsing helpers."""

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [(0, 0.0), (12, 12.0), ("1,250.5", 1250.5), (" 7 ", 7.0)])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "abc", True, float("nan"), float("inf"), "-inf", [], {}])
    def test_parse_amount_rejects_malformed(self, raw):
        with pytest.raises(InvalidInput) as exc_info:
            parse_amount(raw)
        assert exc_info.value.field == "amount"

    @pytest.mark.unit
    def test_parse_amount_rejects_negative(self):
        with pytest.raises(InvalidInput) as exc_info:
            parse_amount("-40")
        assert "negative" in exc_info.value.message

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2024-03-15", date(2024, 3, 15)),
            ("2024-03-15T08:30:00Z", date(2024, 3, 15)),
            ("03/15/2024", date(2024, 3, 15)),
            ("15/03/2024", date(2024, 3, 15)),
            ("2024/03/15", date(2024, 3, 15)),
            ("15-03-2024", date(2024, 3, 15)),
            (datetime(2024, 3, 15, 10, 0), date(2024, 3, 15)),
            (date(2024, 3, 15), date(2024, 3, 15)),
        ],
    )
    def test_parse_record_date(self, raw, expected):
        assert parse_record_date(raw) == expected

    @pytest.mark.unit
    def test_missing_date_defaults_to_today(self):
        assert parse_record_date(None) == date.today()
        assert parse_record_date("  ") == date.today()

    @pytest.mark.unit
    def test_unparseable_date(self):
        with pytest.raises(InvalidInput) as exc_info:
            parse_record_date("last tuesday")
        assert exc_info.value.field == "date"


class TestIngestionService:
    """Tests for IngestionService single-record paths."""

    @pytest.fixture
    def service(self, test_db):
        return IngestionService(test_db)

    @pytest.mark.unit
    def test_ingest_grid_electricity_uses_site_context(self, service, sample_site):
        record = service.ingest_emission({
            "site_id": sample_site.id,
            "activity_type": "grid_electricity",
            "amount": 1000,
            "unit": "kWh",
            "date": "2024-01-31",
        })

        assert record.id is not None
        assert record.created_at is not None
        assert record.scope == Scope.SCOPE2
        assert record.co2e_tons == pytest.approx(0.7488)
        assert record.date == date(2024, 1, 31)
        assert record.amount == 1000

    @pytest.mark.unit
    def test_ingest_diesel_is_scope1(self, service, sample_site):
        record = service.ingest_emission({
            "site_id": sample_site.id,
            "activity_type": "diesel_combustion",
            "amount": "500",
            "unit": "L",
        })

        assert record.scope == Scope.SCOPE1
        assert record.co2e_tons == pytest.approx(1.34)
        assert record.date == date.today()

    @pytest.mark.unit
    def test_unknown_site_is_rejected(self, service, test_db):
        with pytest.raises(ReferenceNotFound) as exc_info:
            service.ingest_emission({
                "site_id": "does-not-exist",
                "activity_type": "diesel",
                "amount": 1,
                "unit": "L",
            })

        assert exc_info.value.entity == "Site"
        assert test_db.query(EmissionRecord).count() == 0

    @pytest.mark.unit
    def test_missing_site_is_rejected(self, service):
        with pytest.raises(InvalidInput) as exc_info:
            service.ingest_emission({"activity_type": "diesel", "amount": 1, "unit": "L"})
        assert exc_info.value.field == "site_id"

    @pytest.mark.unit
    @pytest.mark.parametrize("field", ["activity_type", "unit"])
    def test_required_text_fields(self, service, sample_site, field):
        entry = {
            "site_id": sample_site.id,
            "activity_type": "diesel",
            "amount": 1,
            "unit": "L",
        }
        entry[field] = "  "

        with pytest.raises(InvalidInput) as exc_info:
            service.ingest_emission(entry)
        assert exc_info.value.field == field

    @pytest.mark.unit
    def test_negative_amount_is_rejected_not_coerced(self, service, sample_site, test_db):
        with pytest.raises(InvalidInput):
            service.ingest_emission({
                "site_id": sample_site.id,
                "activity_type": "diesel",
                "amount": -25,
                "unit": "L",
            })
        assert test_db.query(EmissionRecord).count() == 0

    @pytest.mark.unit
    def test_amount_that_overflows_co2e_is_rejected(self, service, sample_site, test_db):
        with pytest.raises(InvalidInput) as exc_info:
            service.ingest_emission({
                "site_id": sample_site.id,
                "activity_type": "diesel",
                "amount": "1e308",
                "unit": "L",
            })
        assert exc_info.value.field == "amount"
        assert test_db.query(EmissionRecord).count() == 0

    @pytest.mark.unit
    def test_ingest_value_chain(self, service, sample_site):
        record = service.ingest_value_chain({
            "site_id": sample_site.id,
            "category": "Freight",
            "vendor_name": "Blue Dart Logistics",
            "amount": 20000,
            "unit": "ton-km",
        })

        assert isinstance(record, ValueChainRecord)
        assert record.scope == Scope.SCOPE3
        # no grid/climate adjustment even on a Tropical site
        assert record.co2e_tons == pytest.approx(2.4)
        assert record.vendor_name == "Blue Dart Logistics"
        assert record.sub_category is None

    @pytest.mark.unit
    def test_value_chain_requires_category(self, service, sample_site):
        with pytest.raises(InvalidInput) as exc_info:
            service.ingest_value_chain({"site_id": sample_site.id, "amount": 1, "unit": "kg"})
        assert exc_info.value.field == "category"

    @pytest.mark.unit
    def test_list_emissions_newest_first(self, service, sample_site):
        for day in ("2024-01-01", "2024-03-01", "2024-02-01"):
            service.ingest_emission({
                "site_id": sample_site.id,
                "activity_type": "diesel",
                "amount": 1,
                "unit": "L",
                "date": day,
            })

        dates = [r.date for r in service.list_emissions(site_id=sample_site.id)]
        assert dates == [date(2024, 3, 1), date(2024, 2, 1), date(2024, 1, 1)]
        assert service.list_emissions(site_id="other") == []
