# tests/conftest.py - shared fixtures: in-memory database, fixed clock, seeded organizations, API client

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["BREVO_API_KEY"] = "test-brevo-key"
os.environ["GENERATION_REFERENCE_POLICY"] = "skip"

import itertools
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import create_db_engine, get_session
from dependencies import get_clock
from main import app
from models import (
    Base,
    Invoice,
    InvoiceLineItem,
    Lease,
    LeaseStatus,
    Organization,
    Property,
    Tenant,
    User,
)
from models.invoice import InvoiceCategory, InvoiceStatus
from services.clock import FixedClock

NOW = datetime(2025, 2, 15, 12, 0, 0)


@pytest.fixture
def clock():
    """Clock frozen at 2025-02-15 12:00 UTC"""
    return FixedClock(NOW)


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    """
    Two organizations.

    Org A (code ACME1): two properties, three tenants, three active leases
    and one terminated lease. Org B (code BETA): one tenant, one active lease.
    """
    org_a = Organization(name="Acme Property", code="ACME1")
    org_b = Organization(name="Beta Homes", code="BETA")
    db.add_all([org_a, org_b])
    db.flush()

    admin = User(organization_id=org_a.id, email="admin@acme.test", first_name="Ada", last_name="Admin", role="admin")
    manager = User(organization_id=org_a.id, email="manager@acme.test", first_name="Max", last_name="Manager", role="manager")
    agent = User(organization_id=org_a.id, email="agent@acme.test", first_name="Ann", last_name="Agent", role="agent")
    tenant_user = User(organization_id=org_a.id, email="tina@acme.test", first_name="Tina", last_name="Tenant", role="tenant")
    admin_b = User(organization_id=org_b.id, email="admin@beta.test", first_name="Bob", last_name="Beta", role="admin")
    db.add_all([admin, manager, agent, tenant_user, admin_b])
    db.flush()

    prop_a1 = Property(organization_id=org_a.id, property_name="Maple Court", city="Springfield")
    prop_a2 = Property(organization_id=org_a.id, property_name="Oak Tower", city="Springfield")
    prop_b1 = Property(organization_id=org_b.id, property_name="Birch House", city="Shelbyville")
    db.add_all([prop_a1, prop_a2, prop_b1])
    db.flush()

    tenant_1 = Tenant(
        organization_id=org_a.id, property_id=prop_a1.id, user_id=tenant_user.id,
        first_name="Tina", last_name="Tenant", email="tina@acme.test",
    )
    tenant_2 = Tenant(
        organization_id=org_a.id, property_id=prop_a1.id,
        first_name="Sam", last_name="Smith", email="sam@acme.test",
    )
    tenant_3 = Tenant(
        organization_id=org_a.id, property_id=prop_a2.id,
        first_name="Lee", last_name="Jones", email=None,
    )
    tenant_b = Tenant(
        organization_id=org_b.id, property_id=prop_b1.id,
        first_name="Bea", last_name="Brown", email="bea@beta.test",
    )
    db.add_all([tenant_1, tenant_2, tenant_3, tenant_b])
    db.flush()

    lease_1 = Lease(
        organization_id=org_a.id, property_id=prop_a1.id, tenant_id=tenant_1.tenant_id,
        rent_price=Decimal("1000.00"), start_date=date(2024, 1, 1), status=LeaseStatus.ACTIVE,
    )
    lease_2 = Lease(
        organization_id=org_a.id, property_id=prop_a1.id, tenant_id=tenant_2.tenant_id,
        rent_price=Decimal("1200.50"), start_date=date(2024, 6, 1), status=LeaseStatus.ACTIVE,
    )
    lease_3 = Lease(
        organization_id=org_a.id, property_id=prop_a2.id, tenant_id=tenant_3.tenant_id,
        rent_price=Decimal("900.00"), start_date=date(2024, 9, 1), status=LeaseStatus.ACTIVE,
    )
    lease_old = Lease(
        organization_id=org_a.id, property_id=prop_a2.id, tenant_id=tenant_3.tenant_id,
        rent_price=Decimal("800.00"), start_date=date(2023, 1, 1), end_date=date(2024, 8, 31),
        status=LeaseStatus.TERMINATED,
    )
    lease_b = Lease(
        organization_id=org_b.id, property_id=prop_b1.id, tenant_id=tenant_b.tenant_id,
        rent_price=Decimal("750.00"), start_date=date(2024, 1, 1), status=LeaseStatus.ACTIVE,
    )
    db.add_all([lease_1, lease_2, lease_3, lease_old, lease_b])
    db.commit()

    return SimpleNamespace(
        org_a=org_a, org_b=org_b,
        admin=admin, manager=manager, agent=agent, tenant_user=tenant_user, admin_b=admin_b,
        prop_a1=prop_a1, prop_a2=prop_a2, prop_b1=prop_b1,
        tenant_1=tenant_1, tenant_2=tenant_2, tenant_3=tenant_3, tenant_b=tenant_b,
        lease_1=lease_1, lease_2=lease_2, lease_3=lease_3, lease_old=lease_old, lease_b=lease_b,
    )


@pytest.fixture
def make_invoice(db, seed):
    """Factory for invoices inserted directly through the ORM."""
    counter = itertools.count(1)

    def _make(
        tenant=None,
        amount=Decimal("1000.00"),
        status=InvoiceStatus.DRAFT,
        issue_date=date(2025, 2, 1),
        due_date=date(2025, 3, 1),
        category=InvoiceCategory.RENT,
        created_by=None,
        **fields,
    ):
        tenant = tenant or seed.tenant_1
        invoice = Invoice(
            organization_id=tenant.organization_id,
            invoice_number=fields.pop("invoice_number", f"TEST-{next(counter):04d}"),
            tenant_id=tenant.tenant_id,
            property_id=tenant.property_id,
            created_by=created_by or (seed.admin_b.id if tenant.organization_id == seed.org_b.id else seed.admin.id),
            title=fields.pop("title", "Test invoice"),
            category=category,
            status=status,
            issue_date=issue_date,
            due_date=due_date,
            **fields,
        )
        invoice.line_items = [
            InvoiceLineItem(description="Charge", quantity=Decimal("1"), unit_price=amount)
        ]
        db.add(invoice)
        db.commit()
        return invoice

    return _make


@pytest.fixture
def client(db, clock):
    def _session_override():
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_token(user_id, organization_id, role):
    claims = {"id": user_id, "role": role}
    if organization_id is not None:
        claims["organizationId"] = organization_id
    return jwt.encode(claims, os.environ["JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def auth_headers():
    """auth_headers(user) -> Authorization header for that user's organization and role"""

    def _headers(user, role=None):
        token = make_token(user.id, user.organization_id, role or user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
