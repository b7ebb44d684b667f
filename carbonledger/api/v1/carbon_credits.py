"""
Carbon credit ledger API endpoints.
"""

from datetime import datetime
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from carbonledger.core.database import get_db
from carbonledger.core.errors import CarbonLedgerError
from carbonledger.core.models import CreditStatus
from carbonledger.services.credit_ledger import CarbonCreditLedger

router = APIRouter(prefix="/carbon-credits", tags=["carbon-credits"])


# Request/Response Models


class IssueLotRequest(BaseModel):
    project_name: str = Field(..., description="Offset project name")
    credit_type: Optional[str] = Field(None, description="e.g. Afforestation, Renewable Energy")
    vintage: Optional[int] = Field(None, description="Vintage year")
    quantity_tco2e: Union[float, str] = Field(..., description="Credits issued, tCO2e (> 0)")
    cost_per_unit: Optional[float] = Field(None, description="Unit cost")
    verification_standard: Optional[str] = Field(None, description="e.g. VCS, Gold Standard")


class RetireRequest(BaseModel):
    quantity: Union[float, str] = Field(..., description="tCO2e to retire (> 0)")
    reason: Optional[str] = Field(None, description="Purpose of the retirement")


class LotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_name: str
    credit_type: Optional[str] = None
    vintage: Optional[int] = None
    quantity_tco2e: float
    available_tco2e: float
    retired_tco2e: float
    cost_per_unit: Optional[float] = None
    verification_standard: Optional[str] = None
    status: CreditStatus
    created_at: datetime
    updated_at: datetime


class RetirementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lot_id: str
    quantity_tco2e: float
    reason: Optional[str] = None
    retired_at: datetime


class PortfolioSummaryResponse(BaseModel):
    lot_count: int
    active_lots: int
    issued_tco2e: float
    available_tco2e: float
    retired_tco2e: float
    available_value: float


# Endpoints


@router.post("", response_model=LotResponse, status_code=201)
def issue_lot(request: IssueLotRequest, db: Session = Depends(get_db)):
    """Record a purchased credit lot; its whole quantity starts available."""
    try:
        return CarbonCreditLedger(db).issue(
            project_name=request.project_name,
            quantity=request.quantity_tco2e,
            credit_type=request.credit_type,
            vintage=request.vintage,
            cost_per_unit=request.cost_per_unit,
            verification_standard=request.verification_standard,
        )
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("", response_model=List[LotResponse])
def list_lots(
    status: Optional[CreditStatus] = Query(None, description="available or retired"),
    db: Session = Depends(get_db),
):
    return CarbonCreditLedger(db).list_lots(status=status)


@router.get("/summary", response_model=PortfolioSummaryResponse)
def get_portfolio_summary(db: Session = Depends(get_db)):
    """Issued, available and retired totals across all lots."""
    return CarbonCreditLedger(db).get_portfolio_summary()


@router.get("/{lot_id}", response_model=LotResponse)
def get_lot(lot_id: str, db: Session = Depends(get_db)):
    try:
        return CarbonCreditLedger(db).get_lot(lot_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/{lot_id}/retire", response_model=LotResponse)
def retire_credits(lot_id: str, request: RetireRequest, db: Session = Depends(get_db)):
    """
    Retire credits from a lot.

    Returns 409 when the lot has fewer credits available than requested;
    the lot is left unchanged in that case.
    """
    try:
        return CarbonCreditLedger(db).retire(lot_id, request.quantity, reason=request.reason)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/{lot_id}/retirements", response_model=List[RetirementResponse])
def list_retirements(lot_id: str, db: Session = Depends(get_db)):
    try:
        return CarbonCreditLedger(db).list_retirements(lot_id)
    except CarbonLedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
