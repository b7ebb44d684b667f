"""
Aggregation engine for reporting.

Reads persisted records and produces independent rollups (by activity,
scope, site, region, grid and month). Every rollup item carries its share
of the rollup total and, where a presentation palette applies, a colour.
"""

import calendar
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional

from sqlalchemy.orm import Session

from carbonledger.core.models import EmissionRecord, Scope, Site, ValueChainRecord

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

BRAND_COLORS = MappingProxyType({
    "diesel": "#f59e0b",
    "diesel_combustion": "#f59e0b",
    "grid_electricity": "#3b82f6",
    "explosives": "#ef4444",
    "explosives_anfo": "#ef4444",
    "coal_power": "#8b5cf6",
    "captive_coal_power": "#8b5cf6",
})

SCOPE_COLORS = MappingProxyType({
    "scope1": "#10b981",
    "scope2": "#6366f1",
    "scope3": "#a855f7",
})

GRID_COLORS = MappingProxyType({
    "Northern": "#3b82f6",
    "Southern": "#10b981",
    "Eastern": "#f59e0b",
    "Western": "#8b5cf6",
    "North-Eastern": "#ec4899",
})

FALLBACK_COLOR = "#94a3b8"


@dataclass(frozen=True)
class PaletteConfig:
    """Colour tables used by the rollups."""

    activity: Mapping[str, str] = field(default_factory=lambda: BRAND_COLORS)
    scope: Mapping[str, str] = field(default_factory=lambda: SCOPE_COLORS)
    grid: Mapping[str, str] = field(default_factory=lambda: GRID_COLORS)
    fallback: str = FALLBACK_COLOR


DEFAULT_PALETTE = PaletteConfig()


class _Row(NamedTuple):
    activity: str
    scope: str
    co2e_tons: float
    date: date
    site_id: str
    site_name: str
    state: Optional[str]
    grid_region: Optional[str]


def normalize_activity(activity: Optional[str]) -> str:
    """'Grid Electricity ' -> 'grid_electricity'"""
    return re.sub(r"\s+", "_", (activity or "").strip().casefold())


def activity_label(key: str) -> str:
    """'grid_electricity' -> 'Grid Electricity'"""
    words = key.replace("_", " ").split()
    if not words:
        return UNKNOWN
    return " ".join(word[:1].upper() + word[1:] for word in words)


def scope_label(scope: str) -> str:
    match = re.fullmatch(r"scope(\d)", scope or "")
    if match:
        return f"Scope {match.group(1)}"
    return scope or UNKNOWN


def generated_hue(index: int, total_groups: int) -> float:
    """Deterministic hue for an activity with no palette entry."""
    return (index * (360 / max(total_groups, 1))) % 360


def hsl_color(hue: float) -> str:
    text = str(int(hue)) if float(hue).is_integer() else repr(hue)
    return f"hsl({text}, 70%, 60%)"


def percentage(value: float, total: float) -> float:
    if not total:
        return 0.0
    return value / total * 100


def _scope_value(scope: Any) -> str:
    if isinstance(scope, Scope):
        return scope.value
    return str(scope) if scope is not None else ""


class AnalyticsService:
    """Service for computing emission rollups."""

    def __init__(self, db: Session, palette: PaletteConfig = DEFAULT_PALETTE):
        self.db = db
        self.palette = palette

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    def _emission_rows(self, site_id: Optional[str]) -> List[_Row]:
        query = self.db.query(
            EmissionRecord.activity_type,
            EmissionRecord.scope,
            EmissionRecord.co2e_tons,
            EmissionRecord.date,
            Site.id,
            Site.name,
            Site.state,
            Site.grid_region,
        ).join(Site, Site.id == EmissionRecord.site_id)
        if site_id:
            query = query.filter(EmissionRecord.site_id == site_id)
        return [
            _Row(r[0], _scope_value(r[1]), r[2] or 0.0, r[3], r[4], r[5], r[6], r[7])
            for r in query.all()
        ]

    def _value_chain_rows(self, site_id: Optional[str]) -> List[_Row]:
        query = self.db.query(
            ValueChainRecord.category,
            ValueChainRecord.scope,
            ValueChainRecord.co2e_tons,
            ValueChainRecord.date,
            Site.id,
            Site.name,
            Site.state,
            Site.grid_region,
        ).join(Site, Site.id == ValueChainRecord.site_id)
        if site_id:
            query = query.filter(ValueChainRecord.site_id == site_id)
        return [
            _Row(r[0], _scope_value(r[1]), r[2] or 0.0, r[3], r[4], r[5], r[6], r[7])
            for r in query.all()
        ]

    def _rows(self, site_id: Optional[str], include_value_chain: bool) -> List[_Row]:
        rows = self._emission_rows(site_id)
        if include_value_chain:
            rows.extend(self._value_chain_rows(site_id))
        return rows

    # ------------------------------------------------------------------
    # Rollups
    # ------------------------------------------------------------------

    @staticmethod
    def _sum_by(rows: Iterable[_Row], key: Callable[[_Row], str]) -> Dict[str, float]:
        totals: Dict[str, float] = defaultdict(float)
        for row in rows:
            totals[key(row)] += row.co2e_tons
        return totals

    def by_activity(self, rows: List[_Row]) -> List[Dict[str, Any]]:
        """Group by normalised activity key, ordered by key."""
        totals = self._sum_by(rows, lambda r: normalize_activity(r.activity))
        total = sum(totals.values())
        keys = sorted(totals)

        items = []
        for index, key in enumerate(keys):
            color = self.palette.activity.get(key)
            if color is None:
                color = hsl_color(generated_hue(index, len(keys)))
            items.append({
                "key": key,
                "label": activity_label(key),
                "value": totals[key],
                "percentage": percentage(totals[key], total),
                "color": color,
            })
        return items

    def by_scope(self, rows: List[_Row]) -> List[Dict[str, Any]]:
        totals = self._sum_by(rows, lambda r: r.scope)
        total = sum(totals.values())
        return [
            {
                "key": key,
                "label": scope_label(key),
                "value": totals[key],
                "percentage": percentage(totals[key], total),
                "color": self.palette.scope.get(key, self.palette.fallback),
            }
            for key in sorted(totals)
        ]

    def by_site(self, rows: List[_Row]) -> List[Dict[str, Any]]:
        totals = self._sum_by(rows, lambda r: r.site_name or UNKNOWN)
        return self._descending(totals)

    def by_region(self, rows: List[_Row]) -> List[Dict[str, Any]]:
        totals = self._sum_by(rows, lambda r: r.state or UNKNOWN)
        return self._descending(totals)

    def by_grid(self, rows: List[_Row]) -> List[Dict[str, Any]]:
        totals = self._sum_by(rows, lambda r: r.grid_region or UNKNOWN)
        items = self._descending(totals)
        for item in items:
            region = item["key"]
            if region != UNKNOWN:
                item["label"] = f"{region} Grid"
            item["color"] = self.palette.grid.get(region, self.palette.fallback)
        return items

    def monthly_trend(self, rows: List[_Row]) -> List[Dict[str, Any]]:
        """Group by month abbreviation, ordered by each group's earliest date."""
        totals: Dict[str, float] = defaultdict(float)
        earliest: Dict[str, date] = {}
        for row in rows:
            month = calendar.month_abbr[row.date.month]
            totals[month] += row.co2e_tons
            if month not in earliest or row.date < earliest[month]:
                earliest[month] = row.date

        total = sum(totals.values())
        return [
            {
                "key": month,
                "label": month,
                "value": totals[month],
                "percentage": percentage(totals[month], total),
                "first_date": earliest[month].isoformat(),
            }
            for month in sorted(totals, key=lambda m: earliest[m])
        ]

    @staticmethod
    def _descending(totals: Mapping[str, float]) -> List[Dict[str, Any]]:
        total = sum(totals.values())
        ordered = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
        return [
            {
                "key": key,
                "label": key,
                "value": value,
                "percentage": percentage(value, total),
            }
            for key, value in ordered
        ]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_summary(self, site_id: Optional[str] = None) -> Dict[str, Any]:
        """Totals per scope plus the grand total (scope 1-3)."""
        rows = self._rows(site_id, include_value_chain=True)
        scopes = self._sum_by(rows, lambda r: r.scope)
        return {
            "site_id": site_id,
            "total_co2e": sum(scopes.values()),
            "scope1": scopes.get(Scope.SCOPE1.value, 0.0),
            "scope2": scopes.get(Scope.SCOPE2.value, 0.0),
            "scope3": scopes.get(Scope.SCOPE3.value, 0.0),
            "record_count": len(rows),
        }

    def get_detailed_breakdown(
        self,
        site_id: Optional[str] = None,
        include_value_chain: bool = False,
    ) -> Dict[str, Any]:
        """All rollups for one filter."""
        rows = self._rows(site_id, include_value_chain)
        logger.debug(f"Computing breakdown over {len(rows)} records (site={site_id})")

        return {
            "site_id": site_id,
            "include_value_chain": include_value_chain,
            "total": sum(r.co2e_tons for r in rows),
            "record_count": len(rows),
            "by_activity": self.by_activity(rows),
            "by_scope": self.by_scope(rows),
            "by_site": self.by_site(rows),
            "by_region": self.by_region(rows),
            "by_grid": self.by_grid(rows),
            "monthly_trend": self.monthly_trend(rows),
        }

    def export_records(self, site_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Scope 1, 2 and 3 records in one list, newest first."""
        emissions = self.db.query(EmissionRecord, Site.name).join(
            Site, Site.id == EmissionRecord.site_id
        )
        value_chain = self.db.query(ValueChainRecord, Site.name).join(
            Site, Site.id == ValueChainRecord.site_id
        )
        if site_id:
            emissions = emissions.filter(EmissionRecord.site_id == site_id)
            value_chain = value_chain.filter(ValueChainRecord.site_id == site_id)

        exported = []
        for record, site_name in emissions.all():
            exported.append({
                "id": record.id,
                "source": "emission",
                "scope": _scope_value(record.scope),
                "site_id": record.site_id,
                "site_name": site_name,
                "activity": record.activity_type,
                "vendor_name": None,
                "date": record.date,
                "amount": record.amount,
                "unit": record.unit,
                "co2e_tons": record.co2e_tons,
            })
        for record, site_name in value_chain.all():
            exported.append({
                "id": record.id,
                "source": "value_chain",
                "scope": _scope_value(record.scope),
                "site_id": record.site_id,
                "site_name": site_name,
                "activity": record.category,
                "vendor_name": record.vendor_name,
                "date": record.date,
                "amount": record.amount,
                "unit": record.unit,
                "co2e_tons": record.co2e_tons,
            })

        exported.sort(key=lambda item: item["date"], reverse=True)
        return exported
