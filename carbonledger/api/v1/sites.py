"""
Site registry API endpoints.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from carbonledger.api.v1.common import BulkEntriesRequest, BulkResultResponse, bulk_response
from carbonledger.core.config import get_settings
from carbonledger.core.database import get_db
from carbonledger.core.errors import CarbonLedgerError
from carbonledger.services.site_service import SiteService

router = APIRouter(prefix="/sites", tags=["sites"])


# Request/Response Models


class SiteCreateRequest(BaseModel):
    name: str = Field(..., description="Unique site name")
    location: Optional[str] = Field(None, description="Free-text location")
    state: Optional[str] = Field(None, description="Administrative region")
    grid_region: Optional[str] = Field(
        None, description="Northern, Southern, Eastern, Western or North-Eastern"
    )
    climate_zone: Optional[str] = Field(
        None, description="Arid, Hot & Dry, Tropical, Warm & Humid, Composite or Montane"
    )
    annual_capacity_tons: Optional[float] = Field(None, description="Annual capacity in tons")
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SiteUpdateRequest(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    state: Optional[str] = None
    grid_region: Optional[str] = None
    climate_zone: Optional[str] = None
    annual_capacity_tons: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SiteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    location: Optional[str] = None
    state: Optional[str] = None
    grid_region: Optional[str] = None
    climate_zone: Optional[str] = None
    annual_capacity_tons: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime
    updated_at: datetime


class SiteDeleteResponse(BaseModel):
    site_id: str
    deleted: Dict[str, int]
    message: str


# Endpoints


@router.post("", response_model=SiteResponse, status_code=201)
def register_site(request: SiteCreateRequest, db: Session = Depends(get_db)):
    """Register a new site."""
    try:
        return SiteService(db).register(request.model_dump())
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/bulk", response_model=BulkResultResponse)
def register_sites_bulk(request: BulkEntriesRequest, db: Session = Depends(get_db)):
    """
    Register many sites atomically.

    Sites whose name already exists are skipped; any invalid entry rolls
    back the whole batch.
    """
    service = SiteService(db, max_bulk_entries=get_settings().max_bulk_entries)
    try:
        result = service.register_sites_bulk(request.entries)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return bulk_response(result, "sites")


@router.get("", response_model=List[SiteResponse])
def list_sites(db: Session = Depends(get_db)):
    """List all sites by name."""
    return SiteService(db).list_sites()


@router.get("/{site_id}", response_model=SiteResponse)
def get_site(site_id: str, db: Session = Depends(get_db)):
    try:
        return SiteService(db).get_site(site_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.patch("/{site_id}", response_model=SiteResponse)
def update_site(site_id: str, request: SiteUpdateRequest, db: Session = Depends(get_db)):
    """Edit site attributes; only the fields sent are changed."""
    try:
        return SiteService(db).update_site(site_id, request.model_dump(exclude_unset=True))
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.delete("/{site_id}", response_model=SiteDeleteResponse)
def delete_site(site_id: str, db: Session = Depends(get_db)):
    """Delete a site together with its records, scenarios and renewable assets."""
    try:
        deleted = SiteService(db).delete_site(site_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return {"site_id": site_id, "deleted": deleted, "message": "Site deleted successfully"}
