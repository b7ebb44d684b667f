"""
Report context API endpoint.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from carbonledger.core.database import get_db
from carbonledger.services.report_context import build_report_context

router = APIRouter(prefix="/reports", tags=["reports"])


class ActivitySource(BaseModel):
    activity_type: str
    total: float


class ScenarioDigest(BaseModel):
    name: str
    target_year: Optional[int] = None
    description: Optional[str] = None


class RegionDigest(BaseModel):
    state: Optional[str] = None
    grid_region: Optional[str] = None
    climate_zone: Optional[str] = None
    units: int


class ReportContextResponse(BaseModel):
    total_co2e: float
    top_activity_sources: List[ActivitySource]
    active_scenarios: List[ScenarioDigest]
    regional_summary: List[RegionDigest]


@router.get("/context", response_model=ReportContextResponse)
def get_report_context(db: Session = Depends(get_db)):
    """Numbers digest consumed by the report writer."""
    return build_report_context(db)
