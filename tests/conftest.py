"""Pytest configuration and fixtures."""

import asyncio
import sys
from datetime import date

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import config
import models  # noqa: F401
from api.principal import Principal
from auth.jwt import create_dev_token
from db import Base, make_engine
from main import app
from models.experiment import Experiment
from models.reagent import Reagent
from models.sample import Sample
from models.sample_type import SampleType
from models.source import Source
from models.storage_location import StorageLocation
from models.supplier import Supplier
from models.test_definition import TestDefinition
from models.user import User
from services.seed_service import seed_roles_and_permissions

# Fix Windows asyncio event loop
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# In-memory SQLite with foreign keys on; one engine per test keeps tests isolated
TEST_DATABASE_URL = config.settings.TEST_DATABASE_URL


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create a test database session on a fresh schema."""
    engine = make_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
def override_get_db(db_session):
    """Override get_db dependency for testing."""
    from api.deps import get_db

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(override_get_db):
    """Create an async test client bound to the app (lifespan not started)."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def make_auth_headers():
    """Return a helper that builds bearer auth headers for a user."""
    return _auth_headers


def _auth_headers(user: User, role_name: str) -> dict:
    """
    Create bearer auth headers for a user.

    Args:
        user: User the token is issued for
        role_name: Role claim to embed

    Returns:
        Headers dict with Authorization
    """
    token = create_dev_token(user_id=user.id, role=role_name)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def roles(db_session):
    """Seed the default roles and permissions."""
    return await seed_roles_and_permissions(db_session)


async def _create_user(db_session, username: str, role_id: int | None) -> User:
    user = User(
        username=username,
        email=f"{username}@lab.example.com",
        full_name=username.replace("_", " ").title(),
        role_id=role_id,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(db_session, roles):
    """Create a user with the administrator role."""
    return await _create_user(db_session, "admin_user", roles["administrator"].id)


@pytest_asyncio.fixture
async def manager_user(db_session, roles):
    """Create a user with the lab_manager role."""
    return await _create_user(db_session, "manager_user", roles["lab_manager"].id)


@pytest_asyncio.fixture
async def researcher_user(db_session, roles):
    """Create a user with the researcher role."""
    return await _create_user(db_session, "researcher_user", roles["researcher"].id)


@pytest_asyncio.fixture
async def roleless_user(db_session, roles):
    """Create a user without any role."""
    return await _create_user(db_session, "roleless_user", None)


@pytest.fixture
def admin(admin_user) -> Principal:
    return Principal(principal_id=admin_user.id, role_name="administrator")


@pytest.fixture
def manager(manager_user) -> Principal:
    return Principal(principal_id=manager_user.id, role_name="lab_manager")


@pytest.fixture
def researcher(researcher_user) -> Principal:
    return Principal(principal_id=researcher_user.id, role_name="researcher")


@pytest.fixture
def nobody(roleless_user) -> Principal:
    return Principal(principal_id=roleless_user.id, role_name="")


@pytest_asyncio.fixture
async def registry(db_session):
    """Create the registry rows samples, tests and orders refer to."""
    sample_type = SampleType(name="Blood", description="Whole blood")
    source = Source(name="Clinic A")
    freezer = StorageLocation(name="Freezer A1", temperature=-80.0, capacity=100, current_load=0)
    fridge = StorageLocation(name="Fridge B2", temperature=4.0, capacity=50, current_load=0)
    experiment = Experiment(name="Stability Study", start_date=date(2024, 1, 1))
    supplier = Supplier(name="Acme Reagents", contact_person="R. Vendor")
    pcr = TestDefinition(name="PCR Panel", protocol="Standard PCR")
    elisa = TestDefinition(name="ELISA", protocol="Sandwich ELISA")
    db_session.add_all([sample_type, source, freezer, fridge, experiment, supplier, pcr, elisa])
    await db_session.commit()
    return {
        "sample_type": sample_type,
        "source": source,
        "freezer": freezer,
        "fridge": fridge,
        "experiment": experiment,
        "supplier": supplier,
        "tests": [pcr, elisa],
    }


@pytest_asyncio.fixture
async def sample(db_session, registry):
    """Create a sample in status 'Registered' (no ledger entry)."""
    sample = Sample(
        unique_sample_id="SAMP-1700000000000-ABCDE",
        sample_type_id=registry["sample_type"].id,
        source_id=registry["source"].id,
        collection_date=date(2024, 1, 15),
        current_status="Registered",
        barcode_qr_code="QR-SAMP-1700000000000-ABCDE",
    )
    db_session.add(sample)
    await db_session.commit()
    await db_session.refresh(sample)
    return sample


@pytest_asyncio.fixture
async def reagent(db_session):
    """Create a reagent with 50 units in stock."""
    reagent = Reagent(
        name="Taq Polymerase",
        lot_number="LOT-TAQ-001",
        expiry_date=date(2027, 6, 30),
        manufacturer="Acme",
        current_stock=50,
        min_stock_level=10,
    )
    db_session.add(reagent)
    await db_session.commit()
    await db_session.refresh(reagent)
    return reagent
