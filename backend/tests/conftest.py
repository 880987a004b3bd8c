"""Pytest fixtures for rental back-office tests."""

import datetime as dt
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rental_backoffice.db.session import Base, get_db

# Ensure all models are loaded for create_all
import rental_backoffice.models  # noqa: F401
from rental_backoffice.models.client import Client
from rental_backoffice.models.enums import RentalStatus
from rental_backoffice.models.rental import Rental


@pytest.fixture(scope="function")
def session_factory():
    """In-memory SQLite shared by every session the test opens."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory):
    """Create an in-memory SQLite DB with all tables for tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def api(session_factory):
    from rental_backoffice.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_rental(db):
    def _make(*, total: str = "1000.00", client_name: str = "Amine Alaoui", status=RentalStatus.ACTIVE) -> Rental:
        client = Client(name=client_name)
        db.add(client)
        db.flush()
        r = Rental(
            client_id=client.id,
            start_date=dt.date(2026, 3, 1),
            end_date=dt.date(2026, 3, 5),
            days=4,
            price_per_day=Decimal(total) / 4,
            total_price=Decimal(total),
            status=status,
        )
        db.add(r)
        db.commit()
        db.refresh(r)
        return r

    return _make
