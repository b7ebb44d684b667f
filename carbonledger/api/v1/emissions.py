"""
Scope 1/2 emission record API endpoints.

Single-record ingestion, atomic bulk ingestion, file upload, listing and
the combined scope 1-3 export.
"""

import datetime as dt
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from carbonledger.api.v1.common import (
    BulkEntriesRequest,
    BulkResultResponse,
    bulk_response,
    read_upload,
)
from carbonledger.core.config import get_settings
from carbonledger.core.database import get_db
from carbonledger.core.errors import CarbonLedgerError
from carbonledger.core.models import Scope
from carbonledger.import_data.records import EMISSION, RecordImporter
from carbonledger.services.analytics_service import AnalyticsService
from carbonledger.services.ingestion_service import IngestionService

router = APIRouter(prefix="/emissions", tags=["emissions"])


# Request/Response Models


class EmissionCreateRequest(BaseModel):
    site_id: str = Field(..., description="Site the activity belongs to")
    activity_type: str = Field(
        ..., description="Activity descriptor, e.g. diesel_combustion, grid_electricity"
    )
    amount: Union[float, str] = Field(..., description="Raw consumption amount (>= 0)")
    unit: str = Field(..., description="Unit of the amount (L, kWh, kg, ton-km ...)")
    date: Optional[str] = Field(None, description="Occurrence date; defaults to today")


class EmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    site_id: str
    activity_type: str
    scope: Scope
    date: dt.date
    amount: float
    unit: str
    co2e_tons: float
    created_at: dt.datetime


class ExportRow(BaseModel):
    id: str
    source: str
    scope: str
    site_id: str
    site_name: Optional[str] = None
    activity: str
    vendor_name: Optional[str] = None
    date: dt.date
    amount: float
    unit: str
    co2e_tons: float


# Endpoints


@router.post("", response_model=EmissionResponse, status_code=201)
def ingest_emission(request: EmissionCreateRequest, db: Session = Depends(get_db)):
    """Compute CO2e and scope for one activity record and store it."""
    try:
        return IngestionService(db).ingest_emission(request.model_dump())
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/bulk", response_model=BulkResultResponse)
def ingest_emissions_bulk(request: BulkEntriesRequest, db: Session = Depends(get_db)):
    """
    Ingest a batch of activity records atomically.

    If any entry fails, nothing is written and the response names the
    0-based index of the first offending entry.
    """
    service = IngestionService(db, max_bulk_entries=get_settings().max_bulk_entries)
    try:
        result = service.ingest_emissions_bulk(request.entries)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return bulk_response(result, "emission records")


@router.post(
    "/upload",
    response_model=BulkResultResponse,
    summary="Upload activity records file",
    description="""
    Upload a CSV or Excel (.xlsx) file of activity records.

    Headers are matched by synonym: `Mine ID` / `Site ID` / `Unit ID` -> site_id,
    `Quantity` / `Consumption` / `Qty` -> amount, `UOM` -> unit, and so on.
    Rows are ingested as one atomic batch.
    """,
)
async def upload_emissions(file: UploadFile = File(...), db: Session = Depends(get_db)):
    content = await read_upload(file)
    settings = get_settings()
    importer = RecordImporter(EMISSION, default_site_id=settings.default_site_id)
    service = IngestionService(db, max_bulk_entries=settings.max_bulk_entries)
    try:
        entries = importer.parse_file(file.filename or "", content)
        result = service.ingest_emissions_bulk(entries)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return bulk_response(result, "emission records")


@router.get("", response_model=List[EmissionResponse])
def list_emissions(
    site_id: Optional[str] = Query(None, description="Filter by site"),
    limit: int = Query(100, ge=1, le=1000, description="Results per page"),
    offset: int = Query(0, ge=0, description="Results offset"),
    db: Session = Depends(get_db),
):
    """List emission records, newest first."""
    return IngestionService(db).list_emissions(site_id=site_id, limit=limit, offset=offset)


@router.get("/export", response_model=List[ExportRow])
def export_emissions(
    site_id: Optional[str] = Query(None, description="Filter by site"),
    db: Session = Depends(get_db),
):
    """Scope 1, 2 and 3 records combined, newest first."""
    return AnalyticsService(db).export_records(site_id=site_id)
