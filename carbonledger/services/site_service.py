"""
Site registry: registration, edits and cascading deletion.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from sqlalchemy.orm import Session

from carbonledger.core.batch_operations import BatchInsertResult, atomic_batch_insert
from carbonledger.core.database import atomic
from carbonledger.core.errors import InvalidInput, ReferenceNotFound
from carbonledger.core.models import (
    ClimateZone,
    EmissionRecord,
    GridRegion,
    RenewableAsset,
    RenewableGeneration,
    Scenario,
    Site,
    ValueChainRecord,
)
from carbonledger.services.ingestion_service import parse_amount

logger = logging.getLogger(__name__)

GRID_REGIONS = {region.value for region in GridRegion}
CLIMATE_ZONES = {zone.value for zone in ClimateZone}

EDITABLE_FIELDS = (
    "name",
    "location",
    "state",
    "grid_region",
    "climate_zone",
    "annual_capacity_tons",
    "latitude",
    "longitude",
)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coordinate(value: Any, field: str, limit: float) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be a number", field=field)
    if not -limit <= number <= limit:
        raise InvalidInput(f"{field} must be between -{limit:g} and {limit:g}", field=field)
    return number


class SiteService:
    """CRUD for operating sites."""

    def __init__(self, db: Session, max_bulk_entries: Optional[int] = None):
        self.db = db
        self.max_bulk_entries = max_bulk_entries

    def _validated_fields(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}

        if "name" in data:
            name = _clean(data.get("name"))
            if not name:
                raise InvalidInput("name is required", field="name")
            fields["name"] = name

        for key in ("location", "state"):
            if key in data:
                fields[key] = _clean(data.get(key))

        if "grid_region" in data:
            grid_region = _clean(data.get("grid_region"))
            if grid_region is not None and grid_region not in GRID_REGIONS:
                raise InvalidInput(
                    f"Unknown grid_region '{grid_region}'", field="grid_region"
                )
            fields["grid_region"] = grid_region

        if "climate_zone" in data:
            climate_zone = _clean(data.get("climate_zone"))
            if climate_zone is not None and climate_zone not in CLIMATE_ZONES:
                raise InvalidInput(
                    f"Unknown climate_zone '{climate_zone}'", field="climate_zone"
                )
            fields["climate_zone"] = climate_zone

        if "annual_capacity_tons" in data:
            capacity = data.get("annual_capacity_tons")
            fields["annual_capacity_tons"] = (
                0.0 if capacity in (None, "") else parse_amount(capacity, "annual_capacity_tons")
            )

        if "latitude" in data:
            fields["latitude"] = _coordinate(data.get("latitude"), "latitude", 90)
        if "longitude" in data:
            fields["longitude"] = _coordinate(data.get("longitude"), "longitude", 180)

        return fields

    def _name_taken(self, name: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(Site.id).filter(Site.name == name)
        if exclude_id:
            query = query.filter(Site.id != exclude_id)
        return query.first() is not None

    def build_site(self, data: Mapping[str, Any]) -> Site:
        if not isinstance(data, Mapping):
            raise InvalidInput("Entry must be an object")
        if "name" not in data:
            raise InvalidInput("name is required", field="name")
        return Site(**self._validated_fields(data))

    def register(self, data: Mapping[str, Any]) -> Site:
        site = self.build_site(data)
        if self._name_taken(site.name):
            raise InvalidInput(f"A site named '{site.name}' already exists", field="name")

        with atomic(self.db):
            self.db.add(site)
        self.db.refresh(site)

        logger.info(f"Registered site {site.id} ({site.name})")
        return site

    def register_sites_bulk(self, entries: Sequence[Mapping[str, Any]]) -> BatchInsertResult:
        """
        Register many sites in one transaction.

        Names that already exist (or repeat within the batch) are skipped.
        """
        seen: Set[str] = {name for (name,) in self.db.query(Site.name).all()}

        def build(index: int, entry: Mapping[str, Any]) -> Optional[Site]:
            site = self.build_site(entry)
            if site.name in seen:
                logger.debug(f"Skipping existing site name '{site.name}'")
                return None
            seen.add(site.name)
            return site

        return atomic_batch_insert(
            self.db,
            entries,
            build,
            max_entries=self.max_bulk_entries,
            label="sites",
        )

    def list_sites(self) -> List[Site]:
        return self.db.query(Site).order_by(Site.name.asc()).all()

    def get_site(self, site_id: str) -> Site:
        site = self.db.get(Site, site_id)
        if site is None:
            raise ReferenceNotFound("Site", site_id)
        return site

    def update_site(self, site_id: str, changes: Mapping[str, Any]) -> Site:
        site = self.get_site(site_id)
        fields = self._validated_fields(
            {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
        )
        if "name" in fields and self._name_taken(fields["name"], exclude_id=site.id):
            raise InvalidInput(f"A site named '{fields['name']}' already exists", field="name")

        with atomic(self.db):
            for key, value in fields.items():
                setattr(site, key, value)
        self.db.refresh(site)

        logger.info(f"Updated site {site.id}: {sorted(fields)}")
        return site

    def delete_site(self, site_id: str) -> Dict[str, int]:
        """Delete a site and everything that references it in one transaction."""
        site = self.get_site(site_id)

        with atomic(self.db):
            asset_ids = self.db.query(RenewableAsset.id).filter(RenewableAsset.site_id == site.id)
            deleted = {
                "renewable_generation": self.db.query(RenewableGeneration)
                .filter(RenewableGeneration.asset_id.in_(asset_ids.scalar_subquery()))
                .delete(synchronize_session=False),
                "renewable_assets": self.db.query(RenewableAsset)
                .filter(RenewableAsset.site_id == site.id)
                .delete(synchronize_session=False),
                "emission_records": self.db.query(EmissionRecord)
                .filter(EmissionRecord.site_id == site.id)
                .delete(synchronize_session=False),
                "value_chain_records": self.db.query(ValueChainRecord)
                .filter(ValueChainRecord.site_id == site.id)
                .delete(synchronize_session=False),
                "scenarios": self.db.query(Scenario)
                .filter(Scenario.site_id == site.id)
                .delete(synchronize_session=False),
            }
            self.db.delete(site)

        self.db.expire_all()
        logger.info(f"Deleted site {site_id} with dependents {deleted}")
        return deleted
