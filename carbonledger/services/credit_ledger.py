"""
Carbon credit ledger.

Lots are issued once and then only move quantity from available to
retired. Quantities are handled as Decimal with four decimal places so
that available + retired == quantity holds exactly after every call.
"""

import logging
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from carbonledger.core.errors import (
    CarbonLedgerError,
    InsufficientBalance,
    InvalidInput,
    ReferenceNotFound,
    TransactionAborted,
)
from carbonledger.core.models import CarbonCreditLot, CarbonCreditRetirement, CreditStatus

logger = logging.getLogger(__name__)

QUANTUM = Decimal("0.0001")
ZERO = Decimal("0")

LOT = "Credit lot"


def to_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Parse a strictly positive credit quantity."""
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required and must be a number", field=field)
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidInput(f"{field} must be a finite number", field=field)
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{field} '{value}' is not a number", field=field)
    if not quantity.is_finite():
        raise InvalidInput(f"{field} must be a finite number", field=field)

    quantity = quantity.quantize(QUANTUM, rounding=ROUND_HALF_UP)
    if quantity <= ZERO:
        raise InvalidInput(f"{field} must be greater than zero", field=field)
    return quantity


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(QUANTUM, rounding=ROUND_HALF_UP)


class CarbonCreditLedger:
    """
    Issuance and retirement of purchased offset credits.

    Usage:
        ledger = CarbonCreditLedger(db)
        lot = ledger.issue("Mangrove Restoration", 100)
        ledger.retire(lot.id, 30)
    """

    def __init__(self, db: Session):
        self.db = db

    def issue(
        self,
        project_name: str,
        quantity: Any,
        credit_type: Optional[str] = None,
        vintage: Optional[int] = None,
        cost_per_unit: Any = None,
        verification_standard: Optional[str] = None,
    ) -> CarbonCreditLot:
        """Create a lot with its whole quantity available."""
        if not project_name or not str(project_name).strip():
            raise InvalidInput("project_name is required", field="project_name")
        amount = to_quantity(quantity)

        unit_cost = None
        if cost_per_unit is not None:
            try:
                unit_cost = Decimal(str(cost_per_unit))
            except (InvalidOperation, ValueError):
                raise InvalidInput(
                    f"cost_per_unit '{cost_per_unit}' is not a number", field="cost_per_unit"
                )
            if not unit_cost.is_finite() or unit_cost < ZERO:
                raise InvalidInput(
                    "cost_per_unit must be a non-negative number", field="cost_per_unit"
                )

        lot = CarbonCreditLot(
            project_name=str(project_name).strip(),
            credit_type=credit_type,
            vintage=vintage,
            quantity_tco2e=amount,
            available_tco2e=amount,
            retired_tco2e=ZERO,
            cost_per_unit=unit_cost,
            verification_standard=verification_standard,
            status=CreditStatus.AVAILABLE,
        )
        self.db.add(lot)
        self.db.commit()
        self.db.refresh(lot)

        logger.info(f"Issued credit lot {lot.id}: {amount} tCO2e ({lot.project_name})")
        return lot

    def get_lot(self, lot_id: str) -> CarbonCreditLot:
        lot = self.db.get(CarbonCreditLot, lot_id)
        if lot is None:
            raise ReferenceNotFound(LOT, lot_id)
        return lot

    def list_lots(self, status: Optional[CreditStatus] = None) -> List[CarbonCreditLot]:
        query = self.db.query(CarbonCreditLot)
        if status is not None:
            query = query.filter(CarbonCreditLot.status == status)
        return query.order_by(CarbonCreditLot.created_at.desc()).all()

    def retire(self, lot_id: str, quantity: Any, reason: Optional[str] = None) -> CarbonCreditLot:
        """
        Move quantity from available to retired.

        The lot row is locked for the read-modify-write and the update is
        checked against the lot's version, so two racing retirements can
        never both draw on the same balance.

        Raises:
            InvalidInput: quantity is not a positive number
            ReferenceNotFound: no such lot
            InsufficientBalance: quantity exceeds the available balance
            TransactionAborted: the lot changed underneath this call
        """
        amount = to_quantity(quantity)

        try:
            lot = (
                self.db.query(CarbonCreditLot)
                .filter(CarbonCreditLot.id == lot_id)
                .with_for_update()
                .populate_existing()
                .one_or_none()
            )
            if lot is None:
                raise ReferenceNotFound(LOT, lot_id)

            available = _as_decimal(lot.available_tco2e)
            if amount > available:
                raise InsufficientBalance(lot_id, amount, available)

            lot.available_tco2e = available - amount
            lot.retired_tco2e = _as_decimal(lot.retired_tco2e) + amount
            lot.status = (
                CreditStatus.RETIRED if lot.available_tco2e <= ZERO else CreditStatus.AVAILABLE
            )
            self.db.add(
                CarbonCreditRetirement(lot_id=lot.id, quantity_tco2e=amount, reason=reason)
            )
            self.db.commit()

        except CarbonLedgerError:
            self.db.rollback()
            raise

        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"Concurrent update on credit lot {lot_id}; retirement aborted")
            raise TransactionAborted(
                reason="credit lot was modified by a concurrent retirement", status_code=409
            ) from e

        self.db.refresh(lot)
        logger.info(
            f"Retired {amount} tCO2e from lot {lot.id}: "
            f"available={lot.available_tco2e} retired={lot.retired_tco2e} status={lot.status.value}"
        )
        return lot

    def list_retirements(self, lot_id: str) -> List[CarbonCreditRetirement]:
        self.get_lot(lot_id)
        return (
            self.db.query(CarbonCreditRetirement)
            .filter(CarbonCreditRetirement.lot_id == lot_id)
            .order_by(CarbonCreditRetirement.retired_at.asc())
            .all()
        )

    def get_portfolio_summary(self) -> Dict[str, Any]:
        """Issued, available and retired totals across all lots."""
        lots = self.db.query(CarbonCreditLot).all()

        issued = sum((_as_decimal(lot.quantity_tco2e) for lot in lots), ZERO)
        available = sum((_as_decimal(lot.available_tco2e) for lot in lots), ZERO)
        retired = sum((_as_decimal(lot.retired_tco2e) for lot in lots), ZERO)
        available_value = sum(
            (
                _as_decimal(lot.available_tco2e) * Decimal(str(lot.cost_per_unit))
                for lot in lots
                if lot.cost_per_unit is not None
            ),
            ZERO,
        )

        return {
            "lot_count": len(lots),
            "active_lots": sum(1 for lot in lots if lot.status == CreditStatus.AVAILABLE),
            "issued_tco2e": issued,
            "available_tco2e": available,
            "retired_tco2e": retired,
            "available_value": available_value.quantize(Decimal("0.01")),
        }
