"""Pytest configuration and fixtures."""

import os

# Keep the app's own engine off the on-disk database during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tabill.core.tenancy import OwnerContext, TenantContext
from tabill.db.base import Base
from tabill.db.session import get_db
from tabill.main import app
# Import all models to ensure they're registered with Base.metadata
from tabill.models import *
from tabill.models.branch import Branch
from tabill.models.menu import Category, MenuItem, MenuItemVariant
from tabill.models.restaurant import DiningTable

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"
OWNER_ID = 1


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable the rate limiter during tests to avoid flaky failures
    from tabill.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def branch(db_session: Session) -> Branch:
    branch = Branch(owner_id=OWNER_ID, name="MG Road", address="12 MG Road")
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


@pytest.fixture
def other_branch(db_session: Session) -> Branch:
    branch = Branch(owner_id=OWNER_ID, name="Indiranagar")
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


@pytest.fixture
def tenant(branch: Branch) -> TenantContext:
    return TenantContext(owner_id=OWNER_ID, branch_id=branch.id)


@pytest.fixture
def owner() -> OwnerContext:
    return OwnerContext(owner_id=OWNER_ID)


@pytest.fixture
def tenant_headers(branch: Branch) -> dict:
    """Headers that select the test branch."""
    return {"X-Owner-ID": str(OWNER_ID), "X-Branch-ID": str(branch.id)}


@pytest.fixture
def table(db_session: Session, branch: Branch) -> DiningTable:
    table = DiningTable(owner_id=OWNER_ID, branch_id=branch.id, name="T1", location="Main Floor")
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def menu(db_session: Session, branch: Branch) -> dict:
    """A small menu: Chicken Biryani (Half/Full) and Masala Soda (Regular).

    Returns a dict of the created rows keyed by short names.
    """
    db_session.add_all([
        Category(owner_id=OWNER_ID, branch_id=branch.id, name="Main Course"),
        Category(owner_id=OWNER_ID, branch_id=branch.id, name="Beverages"),
    ])

    biryani = MenuItem(
        owner_id=OWNER_ID,
        branch_id=branch.id,
        name="Chicken Biryani",
        category="Main Course",
        part_number="MC-101",
        variants=[
            MenuItemVariant(name="Half", cost_price=120.0, selling_price=200.0),
            MenuItemVariant(name="Full", cost_price=200.0, selling_price=350.0),
        ],
    )
    soda = MenuItem(
        owner_id=OWNER_ID,
        branch_id=branch.id,
        name="Masala Soda",
        category="Beverages",
        part_number="BV-7",
        variants=[MenuItemVariant(name="Regular", cost_price=20.0, selling_price=60.0)],
    )
    db_session.add_all([biryani, soda])
    db_session.commit()
    db_session.refresh(biryani)
    db_session.refresh(soda)

    return {
        "biryani": biryani,
        "biryani_half": biryani.variants[0],
        "biryani_full": biryani.variants[1],
        "soda": soda,
        "soda_regular": soda.variants[0],
    }
