"""
Scope 3 (value chain) record API endpoints.
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
from carbonledger.import_data.records import VALUE_CHAIN, RecordImporter
from carbonledger.services.ingestion_service import IngestionService

router = APIRouter(prefix="/value-chain", tags=["value-chain"])


class ValueChainCreateRequest(BaseModel):
    site_id: str = Field(..., description="Site the activity belongs to")
    category: str = Field(
        ..., description="Purchased Goods, Freight, Business Travel, Employee Commuting, Waste ..."
    )
    sub_category: Optional[str] = None
    vendor_name: Optional[str] = Field(None, description="Counterparty")
    amount: Union[float, str] = Field(..., description="Raw amount (>= 0)")
    unit: str
    date: Optional[str] = Field(None, description="Occurrence date; defaults to today")


class ValueChainResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    site_id: str
    category: str
    sub_category: Optional[str] = None
    vendor_name: Optional[str] = None
    scope: Scope
    date: dt.date
    amount: float
    unit: str
    co2e_tons: float
    created_at: dt.datetime


@router.post("", response_model=ValueChainResponse, status_code=201)
def ingest_value_chain(request: ValueChainCreateRequest, db: Session = Depends(get_db)):
    try:
        return IngestionService(db).ingest_value_chain(request.model_dump())
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/bulk", response_model=BulkResultResponse)
def ingest_value_chain_bulk(request: BulkEntriesRequest, db: Session = Depends(get_db)):
    """Ingest a batch of scope 3 records atomically."""
    service = IngestionService(db, max_bulk_entries=get_settings().max_bulk_entries)
    try:
        result = service.ingest_value_chain_bulk(request.entries)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return bulk_response(result, "value-chain records")


@router.post("/upload", response_model=BulkResultResponse)
async def upload_value_chain(file: UploadFile = File(...), db: Session = Depends(get_db)):
    """Upload a CSV or Excel file of scope 3 records (one atomic batch)."""
    content = await read_upload(file)
    settings = get_settings()
    importer = RecordImporter(VALUE_CHAIN, default_site_id=settings.default_site_id)
    service = IngestionService(db, max_bulk_entries=settings.max_bulk_entries)
    try:
        entries = importer.parse_file(file.filename or "", content)
        result = service.ingest_value_chain_bulk(entries)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return bulk_response(result, "value-chain records")


@router.get("", response_model=List[ValueChainResponse])
def list_value_chain(
    site_id: Optional[str] = Query(None, description="Filter by site"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return IngestionService(db).list_value_chain(site_id=site_id, limit=limit, offset=offset)
