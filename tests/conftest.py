"""Pytest configuration and fixtures."""

import os
import time
import tempfile

# Settings are read once at import time, so the test environment goes first
_TEST_DIR = tempfile.mkdtemp(prefix="propius-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/propius-test.db"
os.environ["LOG_FILE"] = os.path.join(_TEST_DIR, "propius-test.log")
os.environ["SEED_CATALOG"] = "false"
os.environ["BLOCKCHAIN_BACKEND"] = "simulation"
os.environ["STORAGE_BACKEND"] = "simulation"
os.environ["DEPLOYMENTS_DIR"] = os.path.join(_TEST_DIR, "deployments")

import pytest
from httpx import ASGITransport, AsyncClient

from core.blockchain import SimulatedChain
from core.deployment import deploy_platform
from core.storage import SimulatedStorage
from db.seed import seed_catalog
from db.session import AsyncSessionLocal, engine, reset_db


@pytest.fixture
async def db_session():
    """Fresh tables for every test."""
    await reset_db()
    async with AsyncSessionLocal() as session:
        yield session
    await engine.dispose()


@pytest.fixture
async def seeded_db(db_session):
    """Database holding the six reference listings."""
    await seed_catalog(db_session)
    return db_session


@pytest.fixture
async def client(db_session):
    """HTTP client wired straight into the ASGI app."""
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def seeded_client(seeded_db):
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def chain() -> SimulatedChain:
    """Simulated chain, contracts not yet deployed."""
    return SimulatedChain()


@pytest.fixture
def deployer(chain) -> str:
    return chain.accounts[0]


@pytest.fixture
def platform(chain, deployer) -> dict:
    """Simulated chain with both contracts deployed and roles configured."""
    return deploy_platform(chain, deployer, fee_recipient=chain.accounts[9])


@pytest.fixture
def funded_storage() -> SimulatedStorage:
    return SimulatedStorage(price_per_byte=1_000, initial_balance=10 ** 16)


@pytest.fixture
def sample_property() -> dict:
    """Keyword arguments for tokenize_property, minus sender and owner."""
    return {
        "registry_number": "RGP-2025-001",
        "cadastral_reference": "CAD-GT-Z10-001",
        "municipality": "Guatemala City",
        "zone": "10",
        "area_sq_meters": 500,
        "construction_sq_meters": 350,
        "property_type": 0,
        "document_hash": "QmXoypizjW3WknFiJnKLwHCnL72vedxjQkDDP1mXWo6uco",
        "valuation_usd": 250_000,
        "valuation_gtq": 1_950_000,
    }


@pytest.fixture
def guatemala_tz(monkeypatch):
    """Run with the host clock set to Guatemala (UTC-6)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/Guatemala")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
