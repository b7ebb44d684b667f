"""
Decarbonisation scenarios: CRUD and a simple reduction forecast.

Interventions are stored inline on the scenario. The forecast assumes
every intervention ramps up linearly over its first three years and then
holds its full impact.
"""

import logging
import math
import re
import uuid
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from carbonledger.core.database import atomic
from carbonledger.core.errors import InvalidInput, ReferenceNotFound
from carbonledger.core.models import Scenario, Site
from carbonledger.services.analytics_service import AnalyticsService
from carbonledger.services.ingestion_service import parse_amount

logger = logging.getLogger(__name__)

RAMP_YEARS = 3
NET_ZERO_HORIZON_YEARS = 25
NET_ZERO_OFFSET_YEARS = 5
MAX_FORECAST_YEARS = 50


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.casefold()).strip("_")


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


def normalize_intervention(raw: Any, position: int) -> Dict[str, Any]:
    """Validate one intervention and return its stored form."""
    if not isinstance(raw, Mapping):
        raise InvalidInput(f"interventions[{position}] must be an object", field="interventions")

    name = str(raw.get("name") or "").strip()
    if not name:
        raise InvalidInput(f"interventions[{position}].name is required", field="interventions")

    impact = raw.get("impact", 0)
    try:
        impact = float(impact)
    except (TypeError, ValueError):
        raise InvalidInput(
            f"interventions[{position}].impact must be a number", field="interventions"
        )
    if isinstance(raw.get("impact"), bool) or not 0.0 <= impact <= 1.0:
        raise InvalidInput(
            f"interventions[{position}].impact must be between 0 and 1", field="interventions"
        )

    capex = raw.get("capex_amount")
    savings = raw.get("annual_savings")
    return {
        "id": str(raw.get("id") or _slug(name) or uuid.uuid4().hex),
        "name": name,
        "category": raw.get("category") or raw.get("type"),
        "impact": impact,
        "cost_tier": raw.get("cost_tier") or raw.get("cost"),
        "capex_amount": None if capex in (None, "") else parse_amount(capex, "capex_amount"),
        "annual_savings": None if savings in (None, "") else parse_amount(savings, "annual_savings"),
    }


def total_impact(interventions: List[Mapping[str, Any]]) -> float:
    return sum(float(item.get("impact") or 0) for item in interventions)


def estimate_net_zero_year(impact: float, current_year: int) -> Optional[int]:
    """Year the scenario reaches net zero, or None when it never does."""
    if impact >= 1:
        return current_year + 1
    if impact <= 0:
        return None
    return _js_round(current_year + (1 - impact) * NET_ZERO_HORIZON_YEARS + NET_ZERO_OFFSET_YEARS)


def build_forecast(baseline: float, impact: float, start_year: int, years: int) -> List[Dict[str, Any]]:
    """Yearly baseline vs scenario emissions, start_year through start_year + years."""
    points = []
    for i in range(years + 1):
        ramp = min(i / RAMP_YEARS, 1)
        reduction = baseline * impact * ramp
        points.append({
            "year": start_year + i,
            "baseline": baseline,
            "scenario": max(0.0, baseline - reduction),
            "reduction": reduction,
        })
    return points


class ScenarioService:
    """CRUD and forecasting for decarbonisation scenarios."""

    def __init__(self, db: Session):
        self.db = db

    def _validated(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        name = str(data.get("name") or "").strip()
        if not name:
            raise InvalidInput("name is required", field="name")

        site_id = data.get("site_id") or None
        if site_id is not None and self.db.get(Site, site_id) is None:
            raise ReferenceNotFound("Site", site_id)

        target_year = data.get("target_year")
        if target_year is not None:
            if isinstance(target_year, bool) or not isinstance(target_year, int):
                raise InvalidInput("target_year must be an integer", field="target_year")
            if not 1900 <= target_year <= 2200:
                raise InvalidInput("target_year is out of range", field="target_year")

        raw_interventions = data.get("interventions") or []
        if not isinstance(raw_interventions, list):
            raise InvalidInput("interventions must be a list", field="interventions")

        return {
            "site_id": site_id,
            "name": name,
            "description": data.get("description"),
            "target_year": target_year,
            "interventions": [
                normalize_intervention(item, position)
                for position, item in enumerate(raw_interventions)
            ],
        }

    def create(self, data: Mapping[str, Any]) -> Scenario:
        scenario = Scenario(**self._validated(data))
        with atomic(self.db):
            self.db.add(scenario)
        self.db.refresh(scenario)
        logger.info(f"Created scenario {scenario.id} ({scenario.name})")
        return scenario

    def list_scenarios(self, site_id: Optional[str] = None) -> List[Scenario]:
        query = self.db.query(Scenario)
        if site_id:
            query = query.filter(Scenario.site_id == site_id)
        return query.order_by(Scenario.created_at.desc()).all()

    def get(self, scenario_id: str) -> Scenario:
        scenario = self.db.get(Scenario, scenario_id)
        if scenario is None:
            raise ReferenceNotFound("Scenario", scenario_id)
        return scenario

    def replace(self, scenario_id: str, data: Mapping[str, Any]) -> Scenario:
        """Overwrite every editable field of a scenario."""
        scenario = self.get(scenario_id)
        fields = self._validated(data)
        with atomic(self.db):
            for key, value in fields.items():
                setattr(scenario, key, value)
        self.db.refresh(scenario)
        logger.info(f"Replaced scenario {scenario.id}")
        return scenario

    def delete(self, scenario_id: str) -> None:
        scenario = self.get(scenario_id)
        with atomic(self.db):
            self.db.delete(scenario)
        logger.info(f"Deleted scenario {scenario_id}")

    def project(
        self,
        scenario_id: str,
        baseline: Optional[float] = None,
        years: int = 10,
        start_year: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Forecast emissions under a scenario.

        The baseline defaults to the recorded CO2e of the scenario's site,
        or of the whole organisation for org-wide scenarios.
        """
        scenario = self.get(scenario_id)
        if not 1 <= years <= MAX_FORECAST_YEARS:
            raise InvalidInput(
                f"years must be between 1 and {MAX_FORECAST_YEARS}", field="years"
            )

        if baseline is None:
            baseline = AnalyticsService(self.db).get_summary(scenario.site_id)["total_co2e"]
        else:
            baseline = parse_amount(baseline, "baseline")

        start_year = start_year or date.today().year
        impact = total_impact(scenario.interventions or [])

        return {
            "scenario_id": scenario.id,
            "name": scenario.name,
            "baseline": baseline,
            "total_impact": impact,
            "net_zero_year": estimate_net_zero_year(impact, start_year),
            "forecast": build_forecast(baseline, impact, start_year, years),
        }
