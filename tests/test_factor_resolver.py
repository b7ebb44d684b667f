"""
Unit tests for emission factor resolution and scope classification.
"""
import math

import pytest

from carbonledger.core.errors import InvalidInput
from carbonledger.core.models import Scope
from carbonledger.emissions import (
    DEFAULT_FACTORS,
    FactorResolver,
    SiteContext,
    ValueChainResolver,
    classify_scope,
)


class TestFactorResolver:
    """Tests for FactorResolver."""

    @pytest.fixture
    def resolver(self):
        return FactorResolver()

    @pytest.mark.unit
    def test_southern_tropical_grid_electricity(self, resolver):
        resolution = resolver.resolve(
            "grid_electricity", 1000, SiteContext("Southern", "Tropical")
        )

        assert resolution.rule == "grid_electricity"
        assert resolution.factor == 0.72
        assert resolution.climate_adjustment == 1.04
        assert resolution.effective_amount == pytest.approx(1040)
        assert resolution.co2e_tons == pytest.approx(0.7488)

    @pytest.mark.unit
    def test_diesel_without_context(self, resolver):
        assert resolver.co2e_tons("diesel_combustion", 500) == pytest.approx(1.34)

    @pytest.mark.unit
    def test_matching_is_case_insensitive(self, resolver):
        assert resolver.select("DIESEL Generator").rule == "diesel"
        assert resolver.select("Grid Electricity").rule == "grid_electricity"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "activity,rule",
        [
            ("diesel_combustion", "diesel"),
            ("fuel oil", "diesel"),
            # fuel wins over power: first matching rule applies
            ("fuel for power plant", "diesel"),
            ("grid_electricity", "grid_electricity"),
            # electricity wins over power
            ("power grid import", "grid_electricity"),
            ("captive_coal_power", "coal_power"),
            ("explosives_anfo", "explosives"),
            ("blasting", "explosives"),
            ("ore transport", "transport_plain"),
            ("water pumping", "default"),
            ("", "default"),
        ],
    )
    def test_rule_precedence(self, resolver, activity, rule):
        assert resolver.select(activity).rule == rule

    @pytest.mark.unit
    def test_grid_factor_by_region(self, resolver):
        for region, factor in [
            ("Northern", 0.82),
            ("Eastern", 0.85),
            ("Western", 0.84),
            ("North-Eastern", 0.65),
            ("Atlantis", 0.81),
            (None, 0.81),
        ]:
            assert resolver.select("grid_electricity", SiteContext(region, None)).factor == factor

    @pytest.mark.unit
    def test_unknown_climate_defaults_to_no_adjustment(self, resolver):
        resolution = resolver.resolve("grid_electricity", 1000, SiteContext("Northern", "Polar"))

        assert resolution.climate_adjustment == 1.0
        assert resolution.co2e_tons == pytest.approx(0.82)

    @pytest.mark.unit
    def test_climate_does_not_change_non_electricity(self, resolver):
        arid = resolver.co2e_tons("diesel_combustion", 750, SiteContext("Western", "Arid"))
        plain = resolver.co2e_tons("diesel_combustion", 750, SiteContext("Western", None))

        assert arid == plain

    @pytest.mark.unit
    def test_transport_is_hilly_only_in_montane(self, resolver):
        hilly = resolver.resolve("transport", 1000, SiteContext("North-Eastern", "Montane"))
        plain = resolver.resolve("transport", 1000, SiteContext("North-Eastern", "Tropical"))

        assert hilly.rule == "transport_hilly"
        assert hilly.co2e_tons == pytest.approx(0.22)
        assert plain.rule == "transport_plain"
        assert plain.co2e_tons == pytest.approx(0.15)

    @pytest.mark.unit
    def test_output_is_finite_and_non_negative(self, resolver):
        for activity in ["diesel", "grid", "coal", "blasting", "transport", "misc"]:
            for amount in [0, 0.001, 1, 123456.789]:
                value = resolver.co2e_tons(activity, amount, SiteContext("Eastern", "Arid"))
                assert math.isfinite(value)
                assert value >= 0

    @pytest.mark.unit
    @pytest.mark.parametrize("activity", ["grid_electricity", "diesel"])
    def test_overflowing_amount_is_rejected(self, resolver, activity):
        with pytest.raises(InvalidInput) as exc_info:
            resolver.resolve(activity, 1.7e308, SiteContext("Southern", "Arid"))
        assert exc_info.value.field == "amount"

    @pytest.mark.unit
    def test_large_amount_stays_finite(self, resolver):
        value = resolver.co2e_tons("diesel", 1e300)
        assert math.isfinite(value)

    @pytest.mark.unit
    def test_zero_amount_gives_zero(self, resolver):
        assert resolver.co2e_tons("grid_electricity", 0, SiteContext("Eastern", "Arid")) == 0

    @pytest.mark.unit
    def test_injected_factor_table(self):
        table = DEFAULT_FACTORS.with_overrides(activity={"diesel": 3.0})
        resolver = FactorResolver(factors=table)

        assert resolver.co2e_tons("diesel", 1000) == pytest.approx(3.0)
        # default table untouched
        assert DEFAULT_FACTORS.activity_factor("diesel") == 2.68


class TestValueChainResolver:
    """Tests for scope 3 category resolution."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "category,key,factor",
        [
            ("Purchased Goods", "purchased_goods", 0.35),
            ("Freight", "freight_transport", 0.12),
            ("Upstream Logistics", "freight_transport", 0.12),
            ("Business Travel", "business_travel", 0.18),
            ("Employee Commuting", "employee_commuting", 0.15),
            ("Waste Disposal", "waste_disposal", 0.45),
            ("Capital Equipment", "default", 0.5),
        ],
    )
    def test_category_factors(self, category, key, factor):
        assert ValueChainResolver().select(category) == (key, factor)

    @pytest.mark.unit
    def test_no_climate_adjustment(self):
        resolution = ValueChainResolver().resolve("Purchased Goods", 10000)

        assert resolution.climate_adjustment == 1.0
        assert resolution.co2e_tons == pytest.approx(3.5)

    @pytest.mark.unit
    def test_overflowing_amount_is_rejected(self):
        table = DEFAULT_FACTORS.with_overrides(value_chain={"waste_disposal": 2.0})
        resolver = ValueChainResolver(factors=table)

        with pytest.raises(InvalidInput) as exc_info:
            resolver.resolve("Waste Disposal", 1e308)
        assert exc_info.value.field == "amount"


class TestScopeClassifier:
    """Tests for classify_scope."""

    @pytest.mark.unit
    def test_electricity_is_scope2(self):
        assert classify_scope("grid_electricity") == Scope.SCOPE2
        assert classify_scope("Purchased ELECTRICITY") == Scope.SCOPE2

    @pytest.mark.unit
    def test_everything_else_is_scope1(self):
        for activity in ["diesel_combustion", "captive_coal_power", "explosives", "", None]:
            assert classify_scope(activity) == Scope.SCOPE1
