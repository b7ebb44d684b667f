"""
Record ingestion for scope 1/2 activity records and scope 3 value-chain records.

Each entry is validated, resolved against its site's grid/climate context,
converted to CO2e and persisted as an immutable row. The bulk variants
run every entry through the same path inside one atomic batch.
"""

import logging
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from carbonledger.core.batch_operations import BatchInsertResult, atomic_batch_insert
from carbonledger.core.database import atomic
from carbonledger.core.errors import InvalidInput, ReferenceNotFound
from carbonledger.core.models import EmissionRecord, Scope, Site, ValueChainRecord
from carbonledger.emissions.resolver import FactorResolver, SiteContext, ValueChainResolver
from carbonledger.emissions.scope import classify_scope

logger = logging.getLogger(__name__)

DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%m-%d-%Y",
    "%d-%m-%Y",
)


def parse_amount(value: Any, field: str = "amount") -> float:
    """
    Parse a raw amount into a finite, non-negative float.

    Negative values are rejected rather than sign-corrected.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required and must be a number", field=field)

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            raise InvalidInput(f"{field} is required and must be a number", field=field)
        try:
            number = float(Decimal(cleaned))
        except (InvalidOperation, ValueError):
            raise InvalidInput(f"{field} '{value}' is not a number", field=field)
    else:
        raise InvalidInput(f"{field} must be a number", field=field)

    if not math.isfinite(number):
        raise InvalidInput(f"{field} must be a finite number", field=field)
    if number < 0:
        raise InvalidInput(f"{field} must not be negative (got {value})", field=field)
    return number


def parse_record_date(value: Any, field: str = "date") -> date:
    """Parse a record date; a missing value means today."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidInput(f"Cannot parse {field}: {value!r}", field=field)

    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidInput(f"Cannot parse {field}: {value}", field=field)


def _required_text(entry: Mapping[str, Any], field: str) -> str:
    value = entry.get(field)
    if value is None or not str(value).strip():
        raise InvalidInput(f"{field} is required", field=field)
    return str(value).strip()


def _optional_text(entry: Mapping[str, Any], field: str) -> Optional[str]:
    value = entry.get(field)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


class IngestionService:
    """
    Validates and persists activity records.

    Usage:
        service = IngestionService(db)
        record = service.ingest_emission({
            "site_id": site.id,
            "activity_type": "grid_electricity",
            "amount": 1000,
            "unit": "kWh",
        })
    """

    def __init__(
        self,
        db: Session,
        resolver: Optional[FactorResolver] = None,
        value_chain_resolver: Optional[ValueChainResolver] = None,
        max_bulk_entries: Optional[int] = None,
    ):
        self.db = db
        self.resolver = resolver or FactorResolver()
        self.value_chain_resolver = value_chain_resolver or ValueChainResolver()
        self.max_bulk_entries = max_bulk_entries

    # ------------------------------------------------------------------
    # Site lookup
    # ------------------------------------------------------------------

    def _resolve_site(
        self, entry: Mapping[str, Any], cache: Optional[Dict[str, Site]] = None
    ) -> Site:
        site_id = entry.get("site_id")
        if site_id is None or not str(site_id).strip():
            raise InvalidInput("site_id is required", field="site_id")
        site_id = str(site_id).strip()

        if cache is not None and site_id in cache:
            return cache[site_id]

        site = self.db.get(Site, site_id)
        if site is None:
            raise ReferenceNotFound("Site", site_id)

        if cache is not None:
            cache[site_id] = site
        return site

    # ------------------------------------------------------------------
    # Row builders (validate + compute, no writes)
    # ------------------------------------------------------------------

    def build_emission_record(
        self, entry: Mapping[str, Any], cache: Optional[Dict[str, Site]] = None
    ) -> EmissionRecord:
        """Validate one scope 1/2 entry and return an unsaved record."""
        if not isinstance(entry, Mapping):
            raise InvalidInput("Entry must be an object")

        site = self._resolve_site(entry, cache)
        activity_type = _required_text(entry, "activity_type")
        amount = parse_amount(entry.get("amount"))
        unit = _required_text(entry, "unit")
        record_date = parse_record_date(entry.get("date"))

        resolution = self.resolver.resolve(
            activity_type, amount, SiteContext.from_site(site)
        )

        return EmissionRecord(
            site_id=site.id,
            activity_type=activity_type,
            scope=classify_scope(activity_type),
            date=record_date,
            amount=amount,
            unit=unit,
            co2e_tons=resolution.co2e_tons,
        )

    def build_value_chain_record(
        self, entry: Mapping[str, Any], cache: Optional[Dict[str, Site]] = None
    ) -> ValueChainRecord:
        """Validate one scope 3 entry and return an unsaved record."""
        if not isinstance(entry, Mapping):
            raise InvalidInput("Entry must be an object")

        site = self._resolve_site(entry, cache)
        category = _required_text(entry, "category")
        amount = parse_amount(entry.get("amount"))
        unit = _required_text(entry, "unit")
        record_date = parse_record_date(entry.get("date"))

        resolution = self.value_chain_resolver.resolve(category, amount)

        return ValueChainRecord(
            site_id=site.id,
            category=category,
            sub_category=_optional_text(entry, "sub_category"),
            vendor_name=_optional_text(entry, "vendor_name"),
            scope=Scope.SCOPE3,
            date=record_date,
            amount=amount,
            unit=unit,
            co2e_tons=resolution.co2e_tons,
        )

    # ------------------------------------------------------------------
    # Single-record ingestion
    # ------------------------------------------------------------------

    def ingest_emission(self, entry: Mapping[str, Any]) -> EmissionRecord:
        """Validate, compute and persist one scope 1/2 record."""
        record = self.build_emission_record(entry)
        with atomic(self.db):
            self.db.add(record)
        self.db.refresh(record)

        logger.info(
            f"Ingested emission {record.id}: site={record.site_id} "
            f"activity={record.activity_type} co2e={record.co2e_tons:.4f}t "
            f"scope={record.scope.value}"
        )
        return record

    def ingest_value_chain(self, entry: Mapping[str, Any]) -> ValueChainRecord:
        """Validate, compute and persist one scope 3 record."""
        record = self.build_value_chain_record(entry)
        with atomic(self.db):
            self.db.add(record)
        self.db.refresh(record)

        logger.info(
            f"Ingested value-chain record {record.id}: site={record.site_id} "
            f"category={record.category} co2e={record.co2e_tons:.4f}t"
        )
        return record

    # ------------------------------------------------------------------
    # Bulk ingestion (all-or-nothing)
    # ------------------------------------------------------------------

    def ingest_emissions_bulk(self, entries: Sequence[Mapping[str, Any]]) -> BatchInsertResult:
        """Ingest a batch of scope 1/2 entries in one transaction."""
        sites: Dict[str, Site] = {}
        return atomic_batch_insert(
            self.db,
            entries,
            lambda index, entry: self.build_emission_record(entry, sites),
            max_entries=self.max_bulk_entries,
            label="emission records",
        )

    def ingest_value_chain_bulk(self, entries: Sequence[Mapping[str, Any]]) -> BatchInsertResult:
        """Ingest a batch of scope 3 entries in one transaction."""
        sites: Dict[str, Site] = {}
        return atomic_batch_insert(
            self.db,
            entries,
            lambda index, entry: self.build_value_chain_record(entry, sites),
            max_entries=self.max_bulk_entries,
            label="value-chain records",
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_emissions(
        self, site_id: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[EmissionRecord]:
        query = self.db.query(EmissionRecord)
        if site_id:
            query = query.filter(EmissionRecord.site_id == site_id)
        return (
            query.order_by(EmissionRecord.date.desc(), EmissionRecord.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_value_chain(
        self, site_id: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[ValueChainRecord]:
        query = self.db.query(ValueChainRecord)
        if site_id:
            query = query.filter(ValueChainRecord.site_id == site_id)
        return (
            query.order_by(ValueChainRecord.date.desc(), ValueChainRecord.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
