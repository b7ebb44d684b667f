"""
Factor resolution: activity descriptor + site context -> CO2e tonnes.

Keyword rules are evaluated in a fixed order and the first match wins.
Anything unrecognised falls back to the default factor so an estimate is
always produced. The only rejection is an amount so large that its CO2e
overflows a float.
"""

import math
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Tuple

from carbonledger.core.errors import InvalidInput
from carbonledger.emissions.factors import DEFAULT_FACTORS, DEFAULT_KEY, EmissionFactorTable

KG_PER_TONNE = 1000.0


@dataclass(frozen=True)
class SiteContext:
    """Geographic context of the site a record belongs to."""

    grid_region: Optional[str] = None
    climate_zone: Optional[str] = None

    @classmethod
    def from_site(cls, site) -> "SiteContext":
        if site is None:
            return cls()
        return cls(grid_region=site.grid_region, climate_zone=site.climate_zone)


NO_CONTEXT = SiteContext()


@dataclass(frozen=True)
class FactorResolution:
    """Outcome of resolving one activity amount."""

    rule: str
    factor: float
    climate_adjustment: float
    amount: float
    effective_amount: float
    co2e_tons: float


class _Selection(NamedTuple):
    rule: str
    factor: float
    climate_adjustment: float


Predicate = Callable[[str], bool]
Selector = Callable[[EmissionFactorTable, SiteContext], _Selection]


def _contains_any(*keywords: str) -> Predicate:
    return lambda activity: any(keyword in activity for keyword in keywords)


def _fixed(rule: str, key: str) -> Selector:
    return lambda table, context: _Selection(rule, table.activity_factor(key), 1.0)


def _grid_electricity(table: EmissionFactorTable, context: SiteContext) -> _Selection:
    # Climate scales the consumed amount, not the factor.
    return _Selection(
        "grid_electricity",
        table.grid_factor(context.grid_region),
        table.climate_factor(context.climate_zone),
    )


def _transport(table: EmissionFactorTable, context: SiteContext) -> _Selection:
    if context.climate_zone == table.hilly_climate_zone:
        return _Selection("transport_hilly", table.activity_factor("transport_hilly"), 1.0)
    return _Selection("transport_plain", table.activity_factor("transport_plain"), 1.0)


ACTIVITY_RULES: Tuple[Tuple[Predicate, Selector], ...] = (
    (_contains_any("diesel", "fuel"), _fixed("diesel", "diesel")),
    (_contains_any("electricity", "grid"), _grid_electricity),
    (_contains_any("coal", "power"), _fixed("coal_power", "coal_power")),
    (_contains_any("explosive", "blasting"), _fixed("explosives", "explosives")),
    (_contains_any("transport"), _transport),
)

VALUE_CHAIN_RULES: Tuple[Tuple[Predicate, str], ...] = (
    (_contains_any("goods"), "purchased_goods"),
    (_contains_any("freight", "transport", "logistics"), "freight_transport"),
    (_contains_any("travel"), "business_travel"),
    (_contains_any("commut"), "employee_commuting"),
    (_contains_any("waste"), "waste_disposal"),
)


def to_tonnes(amount: float, factor_kg: float) -> float:
    """Convert amount x kg-factor to metric tonnes."""
    return (amount * factor_kg) / KG_PER_TONNE


def finite_tonnes(amount: float, factor_kg: float) -> float:
    """to_tonnes, rejecting amounts whose product overflows."""
    tonnes = to_tonnes(amount, factor_kg)
    if not math.isfinite(tonnes):
        raise InvalidInput(f"amount {amount} is too large to convert to CO2e", field="amount")
    return tonnes


class FactorResolver:
    """
    Resolves scope 1/2 activity descriptors to an effective factor.

    Usage:
        resolver = FactorResolver()
        resolution = resolver.resolve("grid_electricity", 1000, SiteContext("Southern", "Tropical"))
        resolution.co2e_tons  # 0.7488
    """

    def __init__(
        self,
        factors: EmissionFactorTable = DEFAULT_FACTORS,
        rules: Tuple[Tuple[Predicate, Selector], ...] = ACTIVITY_RULES,
    ):
        self.factors = factors
        self.rules = rules

    def select(self, activity_type: str, context: Optional[SiteContext] = None) -> _Selection:
        activity = (activity_type or "").casefold()
        context = context or NO_CONTEXT
        for matches, selector in self.rules:
            if matches(activity):
                return selector(self.factors, context)
        return _Selection(DEFAULT_KEY, self.factors.activity_factor(DEFAULT_KEY), 1.0)

    def resolve(
        self,
        activity_type: str,
        amount: float,
        context: Optional[SiteContext] = None,
    ) -> FactorResolution:
        rule, factor, climate_adjustment = self.select(activity_type, context)
        effective_amount = amount * climate_adjustment
        return FactorResolution(
            rule=rule,
            factor=factor,
            climate_adjustment=climate_adjustment,
            amount=amount,
            effective_amount=effective_amount,
            co2e_tons=finite_tonnes(effective_amount, factor),
        )

    def co2e_tons(
        self,
        activity_type: str,
        amount: float,
        context: Optional[SiteContext] = None,
    ) -> float:
        return self.resolve(activity_type, amount, context).co2e_tons


class ValueChainResolver:
    """Scope 3 category -> factor; no grid or climate adjustment."""

    def __init__(self, factors: EmissionFactorTable = DEFAULT_FACTORS):
        self.factors = factors

    def select(self, category: str) -> Tuple[str, float]:
        normalized = (category or "").casefold()
        for matches, key in VALUE_CHAIN_RULES:
            if matches(normalized):
                return key, self.factors.value_chain_factor(key)
        return DEFAULT_KEY, self.factors.value_chain_factor(DEFAULT_KEY)

    def resolve(self, category: str, amount: float) -> FactorResolution:
        rule, factor = self.select(category)
        return FactorResolution(
            rule=rule,
            factor=factor,
            climate_adjustment=1.0,
            amount=amount,
            effective_amount=amount,
            co2e_tons=finite_tonnes(amount, factor),
        )
