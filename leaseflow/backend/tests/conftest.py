# tests/conftest.py
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.pool import NullPool

from app.adapters.blob_store import LocalBlobStore
from app.db import make_engine, make_session_factory
from app.domain.types import Caller, EmploymentInfo, LeaseOptions, Role
from app.models import Base
from app.service_layer import applications, leases
from app.service_layer.properties import create_property
from app.service_layer.unit_of_work import uow_factory_for


@pytest.fixture
async def engine(tmp_path):
    """
    File-backed SQLite per test. NullPool gives every session its own
    connection, so concurrent units of work really do race each other.
    """
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'leaseflow.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def uow_factory(session_factory):
    return uow_factory_for(session_factory)


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def landlord():
    return Caller(user_id="L1", role=Role.landlord)


@pytest.fixture
def tenant():
    return Caller(user_id="T1", role=Role.tenant)


@pytest.fixture
def other_tenant():
    return Caller(user_id="T2", role=Role.tenant)


@pytest.fixture
def employment():
    return EmploymentInfo(
        employment_status="full-time",
        employer="Acme Tools",
        monthly_income=Decimal("5200"),
        employment_length="3 years",
    )


@pytest.fixture
async def property_p101(uow_factory, landlord):
    return await create_property(
        uow_factory,
        landlord,
        {
            "name": "Maple Court 1A",
            "address": "101 Maple Ct",
            "city": "Birmingham",
            "state": "MI",
            "zip_code": "48009",
            "monthly_rent": "1450.00",
            "security_deposit": "1450.00",
            "property_type": "apartment",
            "bedrooms": 2,
            "amenities": ["parking", "laundry"],
        },
        property_id="P101",
    )


@pytest.fixture
def lease_options(tenant):
    return LeaseOptions(
        terms="12 month residential lease",
        monthly_rent=Decimal("1450.00"),
        security_deposit=Decimal("1450.00"),
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        tenant_id=tenant.user_id,
    )


@pytest.fixture
async def approved_application(uow_factory, landlord, tenant, employment, property_p101):
    a = await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    return await applications.resolve(uow_factory, landlord, a.id, "approved")


@pytest.fixture
async def pending_lease(uow_factory, landlord, property_p101, lease_options):
    """A lease for P101 bound to T1, sent out for signature."""
    lease = await leases.create(uow_factory, landlord, property_p101.id, lease_options)
    return await leases.attach_document(uow_factory, landlord, lease.id, "https://docs.example.com/p101.pdf")
