"""
On-site renewable assets and their generation readings.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from carbonledger.core.database import atomic
from carbonledger.core.errors import InvalidInput, ReferenceNotFound
from carbonledger.core.models import RenewableAsset, RenewableGeneration, Site
from carbonledger.emissions.resolver import FactorResolver, SiteContext
from carbonledger.services.ingestion_service import parse_amount, parse_record_date

logger = logging.getLogger(__name__)

ASSET_TYPES = {"solar", "wind", "hydro", "biomass", "storage", "hybrid"}


class RenewablesService:
    """Registers renewable assets and tracks what they generate."""

    def __init__(self, db: Session, resolver: Optional[FactorResolver] = None):
        self.db = db
        self.resolver = resolver or FactorResolver()

    def register_asset(self, data: Mapping[str, Any]) -> RenewableAsset:
        site_id = data.get("site_id")
        if not site_id:
            raise InvalidInput("site_id is required", field="site_id")
        if self.db.get(Site, site_id) is None:
            raise ReferenceNotFound("Site", site_id)

        name = str(data.get("name") or "").strip()
        if not name:
            raise InvalidInput("name is required", field="name")

        asset_type = str(data.get("asset_type") or "").strip().casefold()
        if asset_type not in ASSET_TYPES:
            raise InvalidInput(
                f"asset_type must be one of {sorted(ASSET_TYPES)}", field="asset_type"
            )

        commissioning_date = data.get("commissioning_date")
        storage = data.get("storage_capacity_kwh")
        degradation = data.get("annual_degradation_rate")

        asset = RenewableAsset(
            site_id=site_id,
            name=name,
            asset_type=asset_type,
            capacity_kw=parse_amount(data.get("capacity_kw"), "capacity_kw"),
            commissioning_date=(
                parse_record_date(commissioning_date, "commissioning_date")
                if commissioning_date
                else None
            ),
            storage_capacity_kwh=(
                0.0 if storage is None else parse_amount(storage, "storage_capacity_kwh")
            ),
            annual_degradation_rate=(
                0.5 if degradation is None else parse_amount(degradation, "annual_degradation_rate")
            ),
            technical_details=dict(data.get("technical_details") or {}),
            match_with_load_profile=bool(data.get("match_with_load_profile", False)),
        )
        with atomic(self.db):
            self.db.add(asset)
        self.db.refresh(asset)

        logger.info(f"Registered {asset.asset_type} asset {asset.id} at site {site_id}")
        return asset

    def list_assets(self, site_id: Optional[str] = None) -> List[RenewableAsset]:
        query = self.db.query(RenewableAsset)
        if site_id:
            query = query.filter(RenewableAsset.site_id == site_id)
        return query.order_by(RenewableAsset.created_at.asc()).all()

    def get_asset(self, asset_id: str) -> RenewableAsset:
        asset = self.db.get(RenewableAsset, asset_id)
        if asset is None:
            raise ReferenceNotFound("Renewable asset", asset_id)
        return asset

    def record_generation(self, asset_id: str, data: Mapping[str, Any]) -> RenewableGeneration:
        asset = self.get_asset(asset_id)
        reading = RenewableGeneration(
            asset_id=asset.id,
            date=parse_record_date(data.get("date")),
            generated_kwh=parse_amount(data.get("generated_kwh"), "generated_kwh"),
        )
        with atomic(self.db):
            self.db.add(reading)
        self.db.refresh(reading)
        return reading

    def list_generation(self, asset_id: Optional[str] = None) -> List[RenewableGeneration]:
        query = self.db.query(RenewableGeneration)
        if asset_id:
            query = query.filter(RenewableGeneration.asset_id == asset_id)
        return query.order_by(RenewableGeneration.date.desc()).all()

    def get_generation_summary(self, asset_id: str) -> Dict[str, Any]:
        """
        Total generation of an asset and the grid emissions it displaced.

        Avoided CO2e is what the same kWh would have emitted on the site's
        grid, climate adjustment included.
        """
        asset = self.get_asset(asset_id)
        site = self.db.get(Site, asset.site_id)
        readings = self.list_generation(asset.id)
        total_kwh = sum(reading.generated_kwh for reading in readings)

        resolution = self.resolver.resolve(
            "grid_electricity", total_kwh, SiteContext.from_site(site)
        )
        return {
            "asset_id": asset.id,
            "reading_count": len(readings),
            "total_kwh": total_kwh,
            "grid_factor": resolution.factor,
            "avoided_co2e_tons": resolution.co2e_tons,
        }
