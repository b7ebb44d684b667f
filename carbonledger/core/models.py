"""
SQLAlchemy models for the carbon accounting tables.

Tables:
- sites: Operating units with their geographic context
- emission_records: Scope 1/2 activity records (append-only)
- value_chain_records: Scope 3 activity records (append-only)
- scenarios: Decarbonisation scenarios with embedded interventions
- carbon_credit_lots: Purchased offset credits
- carbon_credit_retirements: Audit trail of credit retirements
- renewable_assets / renewable_generation: On-site renewable capacity
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Text, Float, Integer, Numeric, Date, DateTime, Boolean,
    JSON, Enum, ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Scope(str, enum.Enum):
    """GHG accounting scope."""
    SCOPE1 = "scope1"
    SCOPE2 = "scope2"
    SCOPE3 = "scope3"


class GridRegion(str, enum.Enum):
    """Regional electricity grids with their own emission factor."""
    NORTHERN = "Northern"
    SOUTHERN = "Southern"
    EASTERN = "Eastern"
    WESTERN = "Western"
    NORTH_EASTERN = "North-Eastern"


class ClimateZone(str, enum.Enum):
    """Climate zones driving the electricity cooling-load adjustment."""
    ARID = "Arid"
    HOT_DRY = "Hot & Dry"
    TROPICAL = "Tropical"
    WARM_HUMID = "Warm & Humid"
    COMPOSITE = "Composite"
    MONTANE = "Montane"


class CreditStatus(str, enum.Enum):
    """Credit lot status - ONLY these values allowed."""
    AVAILABLE = "available"
    RETIRED = "retired"


class Site(Base):
    """
    An operating unit (mine, plant, depot).

    Identity is immutable; every other attribute may be edited.
    """
    __tablename__ = "sites"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False, unique=True)
    location = Column(String(255), nullable=True)
    state = Column(String(100), nullable=True, index=True)
    grid_region = Column(String(50), nullable=True, index=True)
    climate_zone = Column(String(50), nullable=True)
    annual_capacity_tons = Column(Float, nullable=False, default=0.0)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return (
            f"<Site(id={self.id}, name={self.name}, "
            f"grid_region={self.grid_region}, climate_zone={self.climate_zone})>"
        )


class EmissionRecord(Base):
    """
    Scope 1/2 activity record.

    co2e_tons and scope are derived at ingestion time and never recomputed.
    """
    __tablename__ = "emission_records"

    id = Column(String(36), primary_key=True, default=_new_id)
    site_id = Column(
        String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True
    )
    activity_type = Column(String(100), nullable=False, index=True)
    scope = Column(
        Enum(Scope, native_enum=False, length=10, values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    date = Column(Date, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False)
    co2e_tons = Column(Float, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_emission_amount_non_negative"),
        Index("ix_emission_site_date", "site_id", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<EmissionRecord(id={self.id}, site_id={self.site_id}, "
            f"activity_type={self.activity_type}, co2e_tons={self.co2e_tons})>"
        )


class ValueChainRecord(Base):
    """Scope 3 (value chain) activity record."""
    __tablename__ = "value_chain_records"

    id = Column(String(36), primary_key=True, default=_new_id)
    site_id = Column(
        String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category = Column(String(100), nullable=False, index=True)
    sub_category = Column(String(100), nullable=True)
    vendor_name = Column(String(255), nullable=True)
    scope = Column(
        Enum(Scope, native_enum=False, length=10, values_callable=_enum_values),
        nullable=False,
        default=Scope.SCOPE3,
    )
    date = Column(Date, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False)
    co2e_tons = Column(Float, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_value_chain_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<ValueChainRecord(id={self.id}, site_id={self.site_id}, "
            f"category={self.category}, co2e_tons={self.co2e_tons})>"
        )


class Scenario(Base):
    """
    Decarbonisation scenario.

    interventions is a JSON list of
    {id, name, category, impact, cost_tier, capex_amount, annual_savings}.
    """
    __tablename__ = "scenarios"

    id = Column(String(36), primary_key=True, default=_new_id)
    site_id = Column(
        String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    target_year = Column(Integer, nullable=True)
    interventions = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Scenario(id={self.id}, name={self.name}, target_year={self.target_year})>"


class CarbonCreditLot(Base):
    """
    A purchased lot of offset credits.

    Invariant: available_tco2e + retired_tco2e == quantity_tco2e.
    version_id guards concurrent retirements (optimistic locking).
    """
    __tablename__ = "carbon_credit_lots"

    id = Column(String(36), primary_key=True, default=_new_id)
    project_name = Column(String(255), nullable=False)
    credit_type = Column(String(100), nullable=True)
    vintage = Column(Integer, nullable=True)
    quantity_tco2e = Column(Numeric(15, 4), nullable=False)
    available_tco2e = Column(Numeric(15, 4), nullable=False)
    retired_tco2e = Column(Numeric(15, 4), nullable=False, default=0)
    cost_per_unit = Column(Numeric(12, 2), nullable=True)
    verification_standard = Column(String(100), nullable=True)
    status = Column(
        Enum(CreditStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=CreditStatus.AVAILABLE,
        index=True,
    )
    version_id = Column(Integer, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        CheckConstraint("available_tco2e >= 0", name="ck_credit_available_non_negative"),
        CheckConstraint("retired_tco2e >= 0", name="ck_credit_retired_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<CarbonCreditLot(id={self.id}, project_name={self.project_name}, "
            f"available={self.available_tco2e}, retired={self.retired_tco2e}, status={self.status})>"
        )


class CarbonCreditRetirement(Base):
    """One successful retirement against a credit lot."""
    __tablename__ = "carbon_credit_retirements"

    id = Column(String(36), primary_key=True, default=_new_id)
    lot_id = Column(
        String(36), ForeignKey("carbon_credit_lots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity_tco2e = Column(Numeric(15, 4), nullable=False)
    reason = Column(Text, nullable=True)
    retired_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class RenewableAsset(Base):
    """On-site renewable generation asset (solar, wind, storage)."""
    __tablename__ = "renewable_assets"

    id = Column(String(36), primary_key=True, default=_new_id)
    site_id = Column(
        String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    asset_type = Column(String(50), nullable=False)
    capacity_kw = Column(Float, nullable=False)
    commissioning_date = Column(Date, nullable=True)
    storage_capacity_kwh = Column(Float, nullable=False, default=0.0)
    annual_degradation_rate = Column(Float, nullable=False, default=0.5)
    technical_details = Column(JSON, nullable=False, default=dict)
    match_with_load_profile = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class RenewableGeneration(Base):
    """Generation reading for a renewable asset."""
    __tablename__ = "renewable_generation"

    id = Column(String(36), primary_key=True, default=_new_id)
    asset_id = Column(
        String(36), ForeignKey("renewable_assets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(Date, nullable=False)
    generated_kwh = Column(Float, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
