"""
Emission analytics API endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from carbonledger.core.database import get_db
from carbonledger.core.errors import CarbonLedgerError
from carbonledger.services.analytics_service import AnalyticsService
from carbonledger.services.site_service import SiteService

router = APIRouter(prefix="/analytics", tags=["analytics"])


class SummaryResponse(BaseModel):
    site_id: Optional[str] = None
    total_co2e: float
    scope1: float
    scope2: float
    scope3: float
    record_count: int


class RollupItem(BaseModel):
    key: str
    label: str
    value: float
    percentage: float
    color: Optional[str] = None
    first_date: Optional[str] = None


class BreakdownResponse(BaseModel):
    site_id: Optional[str] = None
    include_value_chain: bool
    total: float
    record_count: int
    by_activity: List[RollupItem]
    by_scope: List[RollupItem]
    by_site: List[RollupItem]
    by_region: List[RollupItem]
    by_grid: List[RollupItem]
    monthly_trend: List[RollupItem]


def _check_site(db: Session, site_id: Optional[str]) -> None:
    if site_id:
        try:
            SiteService(db).get_site(site_id)
        except CarbonLedgerError as e:
            raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    site_id: Optional[str] = Query(None, description="Restrict to one site"),
    db: Session = Depends(get_db),
):
    """Total CO2e with the scope 1/2/3 split."""
    _check_site(db, site_id)
    return AnalyticsService(db).get_summary(site_id=site_id)


@router.get("/detailed", response_model=BreakdownResponse)
def get_detailed_breakdown(
    site_id: Optional[str] = Query(None, description="Restrict to one site"),
    include_value_chain: bool = Query(False, description="Merge scope 3 records"),
    db: Session = Depends(get_db),
):
    """
    Rollups by activity, scope, site, region, grid and month.

    Each item carries its percentage of the rollup total and, where a
    palette applies, a display colour.
    """
    _check_site(db, site_id)
    return AnalyticsService(db).get_detailed_breakdown(
        site_id=site_id, include_value_chain=include_value_chain
    )
