"""
Domain error hierarchy for the carbon accounting engine.

Every error carries the HTTP status the API layer should answer with
and a serialisable payload describing what went wrong.
"""

from typing import Any, Dict, Optional


class CarbonLedgerError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        message: Human-readable error description
        status_code: HTTP status code the API should return
    """

    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
        }


class ReferenceNotFound(CarbonLedgerError):
    """
    A referenced entity (site, credit lot, scenario, asset) does not exist.
    """

    status_code = 404

    def __init__(
        self,
        entity: str,
        entity_id: Any,
        message: Optional[str] = None,
    ):
        super().__init__(message or f"{entity} '{entity_id}' not found")
        self.entity = entity
        self.entity_id = entity_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"entity": self.entity, "entity_id": str(self.entity_id)})
        return data


class InvalidInput(CarbonLedgerError):
    """
    A field is missing or malformed (non-numeric amount, negative
    quantity, unparseable date, ...).
    """

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class InsufficientBalance(CarbonLedgerError):
    """
    A credit retirement asks for more than the lot has available.
    """

    status_code = 409

    def __init__(self, lot_id: Any, requested: Any, available: Any):
        super().__init__(
            f"Insufficient credits on lot '{lot_id}': "
            f"requested {requested}, available {available}"
        )
        self.lot_id = lot_id
        self.requested = requested
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "lot_id": str(self.lot_id),
                "requested": str(self.requested),
                "available": str(self.available),
            }
        )
        return data


class TransactionAborted(CarbonLedgerError):
    """
    A multi-record transaction was rolled back.

    For bulk ingestion, ``index`` is the 0-based position of the first
    offending entry; ``reason`` is the message of the underlying error.
    """

    status_code = 400

    def __init__(
        self,
        reason: str,
        index: Optional[int] = None,
        field: Optional[str] = None,
        site_id: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        where = f" at entry {index}" if index is not None else ""
        super().__init__(
            f"Transaction rolled back{where}: {reason}", status_code=status_code
        )
        self.reason = reason
        self.index = index
        self.field = field
        self.site_id = site_id

    @classmethod
    def from_error(
        cls, error: CarbonLedgerError, index: Optional[int] = None
    ) -> "TransactionAborted":
        """Wrap the error that caused a batch to abort."""
        site_id = None
        if isinstance(error, ReferenceNotFound) and error.entity == "Site":
            site_id = str(error.entity_id)
        return cls(
            reason=error.message,
            index=index,
            field=getattr(error, "field", None) or ("site_id" if site_id else None),
            site_id=site_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "index": self.index,
                "reason": self.reason,
                "field": self.field,
                "site_id": self.site_id,
            }
        )
        return data
