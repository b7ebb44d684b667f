"""
Renewable asset and generation API endpoints.
"""

import datetime as dt
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from carbonledger.core.database import get_db
from carbonledger.core.errors import CarbonLedgerError
from carbonledger.services.renewables_service import RenewablesService

router = APIRouter(prefix="/renewables", tags=["renewables"])


class AssetCreateRequest(BaseModel):
    site_id: str
    name: str
    asset_type: str = Field(..., description="solar, wind, hydro, biomass, storage or hybrid")
    capacity_kw: float = Field(..., ge=0)
    commissioning_date: Optional[str] = None
    storage_capacity_kwh: Optional[float] = Field(None, ge=0)
    annual_degradation_rate: Optional[float] = Field(None, ge=0, description="% per year")
    technical_details: Dict[str, Any] = Field(default_factory=dict)
    match_with_load_profile: bool = False


class AssetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    site_id: str
    name: str
    asset_type: str
    capacity_kw: float
    commissioning_date: Optional[dt.date] = None
    storage_capacity_kwh: float
    annual_degradation_rate: float
    technical_details: Dict[str, Any]
    match_with_load_profile: bool
    created_at: dt.datetime


class GenerationRequest(BaseModel):
    date: Optional[str] = Field(None, description="Reading date; defaults to today")
    generated_kwh: float = Field(..., ge=0)


class GenerationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    asset_id: str
    date: dt.date
    generated_kwh: float


class GenerationSummaryResponse(BaseModel):
    asset_id: str
    reading_count: int
    total_kwh: float
    grid_factor: float
    avoided_co2e_tons: float


@router.post("/assets", response_model=AssetResponse, status_code=201)
def register_asset(request: AssetCreateRequest, db: Session = Depends(get_db)):
    try:
        return RenewablesService(db).register_asset(request.model_dump())
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/assets", response_model=List[AssetResponse])
def list_assets(
    site_id: Optional[str] = Query(None, description="Filter by site"),
    db: Session = Depends(get_db),
):
    return RenewablesService(db).list_assets(site_id=site_id)


@router.get("/assets/{asset_id}", response_model=AssetResponse)
def get_asset(asset_id: str, db: Session = Depends(get_db)):
    try:
        return RenewablesService(db).get_asset(asset_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/assets/{asset_id}/generation", response_model=GenerationResponse, status_code=201)
def record_generation(asset_id: str, request: GenerationRequest, db: Session = Depends(get_db)):
    try:
        return RenewablesService(db).record_generation(asset_id, request.model_dump())
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/assets/{asset_id}/summary", response_model=GenerationSummaryResponse)
def get_generation_summary(asset_id: str, db: Session = Depends(get_db)):
    """Total generation and the grid emissions it avoided."""
    try:
        return RenewablesService(db).get_generation_summary(asset_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/generation", response_model=List[GenerationResponse])
def list_generation(
    asset_id: Optional[str] = Query(None, description="Filter by asset"),
    db: Session = Depends(get_db),
):
    return RenewablesService(db).list_generation(asset_id=asset_id)
