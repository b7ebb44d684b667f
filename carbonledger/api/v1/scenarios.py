"""
Decarbonisation scenario API endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from carbonledger.core.database import get_db
from carbonledger.core.errors import CarbonLedgerError
from carbonledger.services.scenario_service import MAX_FORECAST_YEARS, ScenarioService

router = APIRouter(prefix="/scenarios", tags=["scenarios"])


class InterventionModel(BaseModel):
    id: Optional[str] = None
    name: str
    category: Optional[str] = None
    impact: float = Field(0.0, description="Fractional emissions reduction, 0-1")
    cost_tier: Optional[str] = Field(None, description="e.g. $, $$, $$$")
    capex_amount: Optional[float] = None
    annual_savings: Optional[float] = None


class ScenarioRequest(BaseModel):
    site_id: Optional[str] = Field(None, description="Omit for an organisation-wide scenario")
    name: str
    description: Optional[str] = None
    target_year: Optional[int] = None
    interventions: List[InterventionModel] = Field(default_factory=list)


class ScenarioResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    site_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    target_year: Optional[int] = None
    interventions: List[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime


class ForecastPoint(BaseModel):
    year: int
    baseline: float
    scenario: float
    reduction: float


class ProjectionResponse(BaseModel):
    scenario_id: str
    name: str
    baseline: float
    total_impact: float
    net_zero_year: Optional[int] = None
    forecast: List[ForecastPoint]


@router.post("", response_model=ScenarioResponse, status_code=201)
def create_scenario(request: ScenarioRequest, db: Session = Depends(get_db)):
    try:
        return ScenarioService(db).create(request.model_dump())
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("", response_model=List[ScenarioResponse])
def list_scenarios(
    site_id: Optional[str] = Query(None, description="Filter by site"),
    db: Session = Depends(get_db),
):
    return ScenarioService(db).list_scenarios(site_id=site_id)


@router.get("/{scenario_id}", response_model=ScenarioResponse)
def get_scenario(scenario_id: str, db: Session = Depends(get_db)):
    try:
        return ScenarioService(db).get(scenario_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.put("/{scenario_id}", response_model=ScenarioResponse)
def replace_scenario(scenario_id: str, request: ScenarioRequest, db: Session = Depends(get_db)):
    """Replace a scenario as a whole, interventions included."""
    try:
        return ScenarioService(db).replace(scenario_id, request.model_dump())
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.delete("/{scenario_id}")
def delete_scenario(scenario_id: str, db: Session = Depends(get_db)):
    try:
        ScenarioService(db).delete(scenario_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return {"scenario_id": scenario_id, "message": "Scenario deleted successfully"}


@router.get("/{scenario_id}/projection", response_model=ProjectionResponse)
def project_scenario(
    scenario_id: str,
    baseline: Optional[float] = Query(
        None, ge=0, description="Annual baseline in tCO2e; defaults to recorded emissions"
    ),
    years: int = Query(10, ge=1, le=MAX_FORECAST_YEARS, description="Forecast horizon"),
    db: Session = Depends(get_db),
):
    """Year-by-year forecast and the estimated net-zero year."""
    try:
        return ScenarioService(db).project(scenario_id, baseline=baseline, years=years)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
