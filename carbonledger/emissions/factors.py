"""
Static emission factor tables.

All factors are kg CO2e per unit of activity. Grid factors follow the CEA
2023 baseline for the Indian regional grids; the climate adjustment
coefficients model cooling-load-driven electricity consumption.

Tables are immutable: build a new EmissionFactorTable (for instance with
``with_overrides``) instead of mutating the default one.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_KEY = "default"


def _frozen(values: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(values))


# kg CO2e per kWh
GRID_FACTORS = _frozen({
    "Northern": 0.82,
    "Eastern": 0.85,
    "Western": 0.84,
    "Southern": 0.72,
    "North-Eastern": 0.65,
    DEFAULT_KEY: 0.81,
})

# Multiplier applied to electricity consumption
CLIMATE_ADJUSTMENT = _frozen({
    "Arid": 1.08,
    "Hot & Dry": 1.06,
    "Tropical": 1.04,
    "Warm & Humid": 1.05,
    "Composite": 1.03,
    "Montane": 0.97,
    DEFAULT_KEY: 1.0,
})

ACTIVITY_FACTORS = _frozen({
    "diesel": 2.68,            # kg per litre
    "explosives": 0.19,        # kg per kg
    "coal_power": 0.95,        # kg per kWh (captive)
    "transport_plain": 0.15,   # kg per ton-km
    "transport_hilly": 0.22,   # kg per ton-km
    DEFAULT_KEY: 0.5,
})

VALUE_CHAIN_FACTORS = _frozen({
    "purchased_goods": 0.35,      # kg per USD equivalent
    "freight_transport": 0.12,    # kg per ton-km
    "business_travel": 0.18,      # kg per km
    "employee_commuting": 0.15,   # kg per km
    "waste_disposal": 0.45,       # kg per kg
    DEFAULT_KEY: 0.5,
})

HILLY_CLIMATE_ZONE = "Montane"


@dataclass(frozen=True)
class EmissionFactorTable:
    """Factor configuration injected into the resolvers."""

    grid: Mapping[str, float] = field(default_factory=lambda: GRID_FACTORS)
    climate_adjustment: Mapping[str, float] = field(default_factory=lambda: CLIMATE_ADJUSTMENT)
    activity: Mapping[str, float] = field(default_factory=lambda: ACTIVITY_FACTORS)
    value_chain: Mapping[str, float] = field(default_factory=lambda: VALUE_CHAIN_FACTORS)
    hilly_climate_zone: str = HILLY_CLIMATE_ZONE

    def grid_factor(self, grid_region: Optional[str]) -> float:
        return _lookup(self.grid, grid_region)

    def climate_factor(self, climate_zone: Optional[str]) -> float:
        return _lookup(self.climate_adjustment, climate_zone)

    def activity_factor(self, key: str) -> float:
        return _lookup(self.activity, key)

    def value_chain_factor(self, key: str) -> float:
        return _lookup(self.value_chain, key)

    def with_overrides(
        self,
        grid: Optional[Mapping[str, float]] = None,
        climate_adjustment: Optional[Mapping[str, float]] = None,
        activity: Optional[Mapping[str, float]] = None,
        value_chain: Optional[Mapping[str, float]] = None,
    ) -> "EmissionFactorTable":
        """Return a copy where the given entries replace the current ones."""
        changes = {}
        for name, overrides in (
            ("grid", grid),
            ("climate_adjustment", climate_adjustment),
            ("activity", activity),
            ("value_chain", value_chain),
        ):
            if overrides:
                merged = dict(getattr(self, name))
                merged.update(overrides)
                changes[name] = _frozen(merged)
        return replace(self, **changes)


def _lookup(table: Mapping[str, float], key: Optional[str]) -> float:
    if key and key in table:
        return table[key]
    return table[DEFAULT_KEY]


DEFAULT_FACTORS = EmissionFactorTable()
