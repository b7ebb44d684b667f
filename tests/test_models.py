"""
Unit tests for database models.
"""
import pytest
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from carbonledger.core.models import (
    CarbonCreditLot,
    CreditStatus,
    EmissionRecord,
    Scenario,
    Scope,
    Site,
    ValueChainRecord,
)


@pytest.mark.unit
def test_site_creation(test_db):
    """Test creating a site with defaults."""
    site = Site(name="Bailadila Iron Ore", grid_region="Western", climate_zone="Tropical")

    test_db.add(site)
    test_db.commit()
    test_db.refresh(site)

    assert len(site.id) == 36
    assert site.annual_capacity_tons == 0.0
    assert isinstance(site.created_at, datetime)


@pytest.mark.unit
def test_site_name_is_unique(test_db, sample_site):
    test_db.add(Site(name=sample_site.name))

    with pytest.raises(IntegrityError):
        test_db.commit()
    test_db.rollback()


@pytest.mark.unit
def test_emission_record_requires_existing_site(test_db):
    """Foreign keys are enforced on SQLite too."""
    test_db.add(EmissionRecord(
        site_id="missing", activity_type="diesel", scope=Scope.SCOPE1,
        date=date(2024, 1, 1), amount=1, unit="L", co2e_tons=0.00268,
    ))

    with pytest.raises(IntegrityError):
        test_db.commit()
    test_db.rollback()


@pytest.mark.unit
def test_negative_amount_violates_constraint(test_db, sample_site):
    test_db.add(EmissionRecord(
        site_id=sample_site.id, activity_type="diesel", scope=Scope.SCOPE1,
        date=date(2024, 1, 1), amount=-1, unit="L", co2e_tons=0.0,
    ))

    with pytest.raises(IntegrityError):
        test_db.commit()
    test_db.rollback()


@pytest.mark.unit
def test_scope_round_trips_as_enum(test_db, sample_site):
    test_db.add(ValueChainRecord(
        site_id=sample_site.id, category="Freight", date=date(2024, 1, 1),
        amount=10, unit="ton-km", co2e_tons=0.0012,
    ))
    test_db.commit()

    record = test_db.query(ValueChainRecord).one()
    assert record.scope == Scope.SCOPE3
    assert record.scope.value == "scope3"


@pytest.mark.unit
def test_scenario_interventions_default_to_empty_list(test_db):
    scenario = Scenario(name="Baseline")
    test_db.add(scenario)
    test_db.commit()
    test_db.refresh(scenario)

    assert scenario.interventions == []
    assert scenario.site_id is None


@pytest.mark.unit
def test_credit_lot_versioning(test_db):
    """Test the lot version counter starts at 1 and bumps on update."""
    lot = CarbonCreditLot(
        project_name="Western Ghats Reforestation",
        quantity_tco2e=Decimal("10"),
        available_tco2e=Decimal("10"),
        retired_tco2e=Decimal("0"),
    )
    test_db.add(lot)
    test_db.commit()
    assert lot.version_id == 1
    assert lot.status == CreditStatus.AVAILABLE

    lot.credit_type = "Forestry"
    test_db.commit()
    assert lot.version_id == 2
