"""Shared fixtures for the Shop Boost test suite."""

from collections.abc import Callable, Iterator
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from shop_boost.db.init_db import init_db
from shop_boost.db.models import ShopBoostIntake
from shop_boost.db.session import get_db
from shop_boost.schemas.shop_health import ClassificationResult, LineTotals
from shop_boost.services.storage import LocalObjectStorage, get_storage

SHOP_ID = "shop-1"
INTAKE_ID = "11111111-2222-4333-8444-555555555555"

VEHICLES_CSV = (
    "ro_date,description,labor_hours,total,technician\n"
    "2024-01-05,DPF regen and derate fault,2.5,900,Sam\n"
    "2024-02-10,Front brake pads and rotors,1.5,450,Alex\n"
    "2024-03-01,misc shop work,,120,Sam\n"
)
CUSTOMERS_CSV = "name,phone\nBob,555-0100\nAmy,555-0101\n"


# ---------------------------------------------------------------------------
# Database / storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite shared across threads so the TestClient sees it."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(root=tmp_path, bucket="shop-imports")


@pytest.fixture
def client(session_factory: sessionmaker, storage: LocalObjectStorage) -> Iterator[TestClient]:
    def override_get_db() -> Iterator[Session]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seeded_intake(db_session: Session, storage: LocalObjectStorage) -> ShopBoostIntake:
    """A pending intake with uploaded customers and vehicles exports."""
    customers_path = f"shops/{SHOP_ID}/{INTAKE_ID}/customers-customers.csv"
    vehicles_path = f"shops/{SHOP_ID}/{INTAKE_ID}/vehicles-history.csv"
    storage.upload(customers_path, CUSTOMERS_CSV.encode("utf-8"))
    storage.upload(vehicles_path, VEHICLES_CSV.encode("utf-8"))

    intake = ShopBoostIntake(
        id=INTAKE_ID,
        shop_id=SHOP_ID,
        questionnaire={"specialty": "general"},
        customers_file_path=customers_path,
        vehicles_file_path=vehicles_path,
        parts_file_path=None,
    )
    db_session.add(intake)
    db_session.commit()
    return intake


# ---------------------------------------------------------------------------
# Classified-line factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_line() -> Callable[..., ClassificationResult]:
    """Factory for classified lines with sensible defaults."""
    counter = {"n": 0}

    def _make(
        job_type: str = "brakes",
        *,
        total: float | None = 100.0,
        labor_hours: float | None = None,
        confidence: float = 0.82,
        occurred_at: datetime | None = None,
        tech_name: str | None = None,
    ) -> ClassificationResult:
        counter["n"] += 1
        return ClassificationResult(
            key=f"row:{counter['n']}",
            occurred_at=occurred_at,
            job_type=job_type,
            job_scope="test scope",
            confidence=confidence,
            signals=(f"{job_type}:test",),
            totals=LineTotals(labor_hours=labor_hours, total=total),
            tech_name=tech_name,
        )

    return _make
