"""
Context digest handed to the report writer.

Only the numbers are assembled here; turning them into prose is the
report writer's job.
"""

from collections import defaultdict
from typing import Any, Dict, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from carbonledger.core.models import EmissionRecord, Scenario, Site
from carbonledger.services.analytics_service import normalize_activity

TOP_SOURCES = 3
TOP_SCENARIOS = 3


def build_report_context(db: Session) -> Dict[str, Any]:
    """
    Summarise direct emissions, planning scenarios and site geography.

    total_co2e and top_activity_sources cover scope 1/2 records only;
    value-chain (scope 3) records are left out. Activities are merged on
    their normalised key, the same grouping AnalyticsService.by_activity uses.

    Returns:
        {total_co2e, top_activity_sources, active_scenarios, regional_summary}
    """
    total = db.query(func.coalesce(func.sum(EmissionRecord.co2e_tons), 0.0)).scalar()

    activity_totals: Dict[str, float] = defaultdict(float)
    for activity, value in (
        db.query(EmissionRecord.activity_type, func.sum(EmissionRecord.co2e_tons))
        .group_by(EmissionRecord.activity_type)
        .all()
    ):
        activity_totals[normalize_activity(activity)] += float(value or 0.0)
    top_sources = sorted(activity_totals.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_SOURCES]

    scenarios = (
        db.query(Scenario)
        .order_by(Scenario.created_at.desc())
        .limit(TOP_SCENARIOS)
        .all()
    )

    regions: Dict[Tuple[Any, Any, Any], int] = defaultdict(int)
    for state, grid_region, climate_zone in db.query(
        Site.state, Site.grid_region, Site.climate_zone
    ).all():
        regions[(state, grid_region, climate_zone)] += 1

    return {
        "total_co2e": round(float(total or 0.0), 2),
        "top_activity_sources": [
            {"activity_type": activity, "total": value}
            for activity, value in top_sources
        ],
        "active_scenarios": [
            {
                "name": scenario.name,
                "target_year": scenario.target_year,
                "description": scenario.description,
            }
            for scenario in scenarios
        ],
        "regional_summary": [
            {
                "state": state,
                "grid_region": grid_region,
                "climate_zone": climate_zone,
                "units": count,
            }
            for (state, grid_region, climate_zone), count in sorted(
                regions.items(), key=lambda kv: tuple(str(part or "") for part in kv[0])
            )
        ],
    }
