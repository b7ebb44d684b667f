"""
Pytest configuration and shared fixtures.
"""
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carbonledger.core.config import reset_settings
from carbonledger.core.database import _enable_sqlite_foreign_keys
from carbonledger.core.models import Base, EmissionRecord, Scope, Site, ValueChainRecord


@pytest.fixture(scope="function")
def clean_env(monkeypatch):
    """
    Clean environment for testing.

    Removes all app-related env vars to ensure clean state.
    """
    env_vars = [
        "DATABASE_URL",
        "DB_POOL_SIZE",
        "DB_MAX_OVERFLOW",
        "LOG_LEVEL",
        "MAX_BULK_ENTRIES",
        "MAX_UPLOAD_BYTES",
        "DEFAULT_SITE_ID",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)

    # Reset settings singleton
    reset_settings()

    yield

    # Reset again after test
    reset_settings()


@pytest.fixture(scope="function")
def test_db():
    """
    Create an in-memory SQLite database for testing.

    Fresh database for each test. StaticPool keeps a single connection so
    the TestClient worker threads see the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_db):
    """
    Alias for test_db fixture.
    """
    yield test_db


# =============================================================================
# Site and record fixtures
# =============================================================================

@pytest.fixture
def sample_site(test_db):
    """A site on the Southern grid in a Tropical climate."""
    site = Site(
        name="Neyveli Lignite Block",
        location="Cuddalore",
        state="Tamil Nadu",
        grid_region="Southern",
        climate_zone="Tropical",
        annual_capacity_tons=25000000,
    )
    test_db.add(site)
    test_db.commit()
    test_db.refresh(site)
    return site


@pytest.fixture
def sample_sites(test_db):
    """Three sites across grids and climates."""
    sites = [
        Site(
            name="Korba Coal Field",
            location="Korba",
            state="Chhattisgarh",
            grid_region="Western",
            climate_zone="Hot & Dry",
            annual_capacity_tons=50000000,
        ),
        Site(
            name="Jharia Mines",
            location="Dhanbad",
            state="Jharkhand",
            grid_region="Eastern",
            climate_zone="Composite",
            annual_capacity_tons=30000000,
        ),
        Site(
            name="Margherita Colliery",
            location="Tinsukia",
            state="Assam",
            grid_region="North-Eastern",
            climate_zone="Montane",
            annual_capacity_tons=1000000,
        ),
    ]
    for site in sites:
        test_db.add(site)
    test_db.commit()
    for site in sites:
        test_db.refresh(site)
    return sites


@pytest.fixture
def sample_records(test_db, sample_sites):
    """Emission and value-chain records spread over sites and months."""
    korba, jharia, margherita = sample_sites
    records = [
        EmissionRecord(site_id=korba.id, activity_type="diesel_combustion", scope=Scope.SCOPE1,
                       date=date(2024, 1, 10), amount=1000, unit="L", co2e_tons=2.68),
        EmissionRecord(site_id=korba.id, activity_type="grid_electricity", scope=Scope.SCOPE2,
                       date=date(2024, 2, 5), amount=5000, unit="kWh", co2e_tons=4.452),
        EmissionRecord(site_id=jharia.id, activity_type="explosives_anfo", scope=Scope.SCOPE1,
                       date=date(2023, 12, 20), amount=2000, unit="kg", co2e_tons=0.38),
        EmissionRecord(site_id=margherita.id, activity_type="ore transport", scope=Scope.SCOPE1,
                       date=date(2024, 1, 25), amount=10000, unit="ton-km", co2e_tons=2.2),
    ]
    value_chain = [
        ValueChainRecord(site_id=jharia.id, category="Purchased Goods", vendor_name="Tata Steel",
                         scope=Scope.SCOPE3, date=date(2024, 2, 15), amount=10000, unit="USD",
                         co2e_tons=3.5),
    ]
    test_db.add_all(records + value_chain)
    test_db.commit()
    return records, value_chain
