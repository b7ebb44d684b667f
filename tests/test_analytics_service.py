"""
Unit tests for Analytics Service.
"""
from datetime import date

import pytest

from carbonledger.core.models import EmissionRecord, Scope, Site
from carbonledger.services.analytics_service import (
    AnalyticsService,
    PaletteConfig,
    activity_label,
    generated_hue,
    hsl_color,
    normalize_activity,
    percentage,
    scope_label,
)


class TestHelpers:
    """Tests for label, colour and percentage helpers."""

    @pytest.mark.unit
    def test_normalize_activity(self):
        assert normalize_activity("  Grid Electricity ") == "grid_electricity"
        assert normalize_activity("DIESEL_combustion") == "diesel_combustion"

    @pytest.mark.unit
    def test_activity_label(self):
        assert activity_label("grid_electricity") == "Grid Electricity"
        assert activity_label("explosives_anfo") == "Explosives Anfo"
        assert activity_label("") == "Unknown"

    @pytest.mark.unit
    def test_scope_label(self):
        assert scope_label("scope1") == "Scope 1"
        assert scope_label("scope3") == "Scope 3"
        assert scope_label("other") == "other"

    @pytest.mark.unit
    def test_generated_hue(self):
        assert [generated_hue(i, 3) for i in range(3)] == [0, 120, 240]
        assert generated_hue(0, 0) == 0
        assert hsl_color(generated_hue(1, 7)) == "hsl(51.42857142857143, 70%, 60%)"
        assert hsl_color(generated_hue(2, 4)) == "hsl(180, 70%, 60%)"

    @pytest.mark.unit
    def test_percentage_guards_zero_total(self):
        assert percentage(5, 0) == 0.0
        assert percentage(1, 4) == 25.0


class TestAnalyticsService:
    """Tests for AnalyticsService rollups."""

    @pytest.fixture
    def analytics(self, test_db):
        return AnalyticsService(test_db)

    @pytest.mark.unit
    def test_empty_breakdown(self, analytics):
        result = analytics.get_detailed_breakdown()

        assert result["total"] == 0
        assert result["record_count"] == 0
        for rollup in ("by_activity", "by_scope", "by_site", "by_region", "by_grid", "monthly_trend"):
            assert result[rollup] == []

    @pytest.mark.unit
    def test_by_activity(self, analytics, sample_records):
        items = analytics.get_detailed_breakdown()["by_activity"]

        assert [i["key"] for i in items] == [
            "diesel_combustion",
            "explosives_anfo",
            "grid_electricity",
            "ore_transport",
        ]
        by_key = {i["key"]: i for i in items}
        assert by_key["diesel_combustion"]["color"] == "#f59e0b"
        assert by_key["explosives_anfo"]["color"] == "#ef4444"
        assert by_key["grid_electricity"]["color"] == "#3b82f6"
        assert by_key["ore_transport"]["color"] == "hsl(270, 70%, 60%)"
        assert by_key["ore_transport"]["label"] == "Ore Transport"
        assert by_key["grid_electricity"]["value"] == pytest.approx(4.452)

    @pytest.mark.unit
    def test_activity_groups_merge_case_variants(self, analytics, test_db, sample_site):
        for activity in ("Diesel Combustion", "diesel_combustion", " DIESEL combustion"):
            test_db.add(EmissionRecord(
                site_id=sample_site.id, activity_type=activity, scope=Scope.SCOPE1,
                date=date(2024, 5, 1), amount=1, unit="L", co2e_tons=1.0,
            ))
        test_db.commit()

        items = analytics.get_detailed_breakdown()["by_activity"]

        assert len(items) == 1
        assert items[0]["value"] == pytest.approx(3.0)
        assert items[0]["percentage"] == pytest.approx(100.0)

    @pytest.mark.unit
    def test_by_scope(self, analytics, sample_records):
        items = analytics.get_detailed_breakdown()["by_scope"]

        assert [(i["key"], i["label"], i["color"]) for i in items] == [
            ("scope1", "Scope 1", "#10b981"),
            ("scope2", "Scope 2", "#6366f1"),
        ]
        assert items[0]["value"] == pytest.approx(5.26)

    @pytest.mark.unit
    def test_by_site_descending(self, analytics, sample_records):
        items = analytics.get_detailed_breakdown()["by_site"]

        assert [i["label"] for i in items] == [
            "Korba Coal Field",
            "Margherita Colliery",
            "Jharia Mines",
        ]
        assert items[0]["value"] == pytest.approx(7.132)

    @pytest.mark.unit
    def test_by_grid(self, analytics, sample_records):
        items = analytics.get_detailed_breakdown()["by_grid"]

        assert items[0]["label"] == "Western Grid"
        assert items[0]["color"] == "#8b5cf6"
        assert [i["key"] for i in items] == ["Western", "North-Eastern", "Eastern"]

    @pytest.mark.unit
    def test_null_region_is_unknown(self, analytics, test_db):
        site = Site(name="Unmapped Quarry")
        test_db.add(site)
        test_db.commit()
        test_db.add(EmissionRecord(
            site_id=site.id, activity_type="diesel", scope=Scope.SCOPE1,
            date=date(2024, 1, 1), amount=1, unit="L", co2e_tons=0.00268,
        ))
        test_db.commit()

        result = analytics.get_detailed_breakdown()

        assert result["by_region"][0]["label"] == "Unknown"
        assert result["by_grid"][0]["label"] == "Unknown"
        assert result["by_grid"][0]["color"] == "#94a3b8"

    @pytest.mark.unit
    def test_monthly_trend_ordered_by_first_date(self, analytics, sample_records):
        items = analytics.get_detailed_breakdown()["monthly_trend"]

        assert [i["label"] for i in items] == ["Dec", "Jan", "Feb"]
        assert items[1]["value"] == pytest.approx(4.88)

    @pytest.mark.unit
    def test_percentages_sum_to_100(self, analytics, sample_records):
        result = analytics.get_detailed_breakdown(include_value_chain=True)

        for rollup in ("by_activity", "by_scope", "by_site", "by_region", "by_grid", "monthly_trend"):
            assert sum(i["percentage"] for i in result[rollup]) == pytest.approx(100.0)

    @pytest.mark.unit
    def test_percentages_zero_when_total_zero(self, analytics, test_db, sample_site):
        test_db.add(EmissionRecord(
            site_id=sample_site.id, activity_type="diesel", scope=Scope.SCOPE1,
            date=date(2024, 1, 1), amount=0, unit="L", co2e_tons=0.0,
        ))
        test_db.commit()

        result = analytics.get_detailed_breakdown()

        assert result["by_activity"][0]["percentage"] == 0.0
        assert result["by_scope"][0]["percentage"] == 0.0

    @pytest.mark.unit
    def test_include_value_chain(self, analytics, sample_records):
        result = analytics.get_detailed_breakdown(include_value_chain=True)

        assert result["total"] == pytest.approx(13.212)
        scopes = {i["key"]: i for i in result["by_scope"]}
        assert scopes["scope3"]["color"] == "#a855f7"
        assert scopes["scope3"]["value"] == pytest.approx(3.5)
        assert result["by_activity"][-1]["key"] == "purchased_goods"

    @pytest.mark.unit
    def test_site_filter(self, analytics, sample_sites, sample_records):
        result = analytics.get_detailed_breakdown(site_id=sample_sites[0].id)

        assert result["total"] == pytest.approx(7.132)
        assert [i["label"] for i in result["by_site"]] == ["Korba Coal Field"]

    @pytest.mark.unit
    def test_injected_palette(self, test_db, sample_records):
        palette = PaletteConfig(activity={"ore_transport": "#000000"})
        items = AnalyticsService(test_db, palette=palette).get_detailed_breakdown()["by_activity"]

        colors = {i["key"]: i["color"] for i in items}
        assert colors["ore_transport"] == "#000000"
        # no longer in the palette, so a hue is generated from position 0
        assert colors["diesel_combustion"] == "hsl(0, 70%, 60%)"

    @pytest.mark.unit
    def test_summary(self, analytics, sample_records):
        summary = analytics.get_summary()

        assert summary["total_co2e"] == pytest.approx(13.212)
        assert summary["scope1"] == pytest.approx(5.26)
        assert summary["scope2"] == pytest.approx(4.452)
        assert summary["scope3"] == pytest.approx(3.5)
        assert summary["record_count"] == 5

    @pytest.mark.unit
    def test_export_newest_first(self, analytics, sample_records):
        rows = analytics.export_records()

        assert len(rows) == 5
        assert [r["date"] for r in rows] == sorted((r["date"] for r in rows), reverse=True)
        assert rows[0]["source"] == "value_chain"
        assert rows[0]["scope"] == "scope3"
        assert rows[0]["vendor_name"] == "Tata Steel"
