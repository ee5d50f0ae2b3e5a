import os
import secrets
import sys
from datetime import datetime, timezone
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'affiliate_dashboard' resolves without an install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Point the app at the test database and keep logs on the console only
SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///./test_dashboard.db"
os.environ.setdefault("DATABASE_URL", SQLALCHEMY_TEST_URL)
os.environ.setdefault("LOG_FILE", "")

from affiliate_dashboard.main import app  # type: ignore  # noqa: E402
from affiliate_dashboard.database import Base  # type: ignore  # noqa: E402
from affiliate_dashboard.api import deps  # type: ignore  # noqa: E402
"""Pytest fixtures and factories.

All model modules are imported through `affiliate_dashboard.models.db` before
Base.metadata.create_all() so every table and relationship target exists.
"""
from affiliate_dashboard.models.db import (  # noqa: E402
    Publisher, Offer, OfferPublisher, Click, Conversion,
)
from affiliate_dashboard.models.db.enums import ConversionStatus, PublisherStatus  # noqa: E402
from affiliate_dashboard.utils.time import fixed_clock  # noqa: E402

# Friday; its ISO week runs Mon 2026-10-12 .. Sun 2026-10-18
NOW = datetime(2026, 10, 16, 14, 30, tzinfo=timezone.utc)
NOW_NAIVE = NOW.replace(tzinfo=None)

# File-based SQLite so the concurrent aggregate reads (one worker thread and
# session each) all see the rows committed by the test thread.
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    try:
        os.remove("test_dashboard.db")
    except OSError:
        pass

@pytest.fixture(autouse=True)
def _isolate_test_state(create_test_db):  # type: ignore[unused-argument]
    """Empty every table after each test so scenarios never see each other's rows."""
    yield
    with TestingSessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()

@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def session_factory():
    return TestingSessionLocal

# Override dependencies
app.dependency_overrides[deps.get_session_factory] = lambda: TestingSessionLocal
app.dependency_overrides[deps.get_clock] = lambda: fixed_clock(NOW)

@pytest.fixture()
def client():
    return TestClient(app)

# ---------- Data factory helpers ----------

@pytest.fixture()
def publisher_factory(db_session):
    def _create(name: str | None = None):
        name = name or f"Publisher {secrets.token_hex(2)}"
        p = Publisher(name=name, email=f"{secrets.token_hex(4)}@example.com", status=PublisherStatus.APPROVED)
        db_session.add(p)
        db_session.commit()
        db_session.refresh(p)
        return p
    return _create

@pytest.fixture()
def offer_factory(db_session):
    def _create(name: str | None = "Test Offer"):
        o = Offer(name=name, payout=10)
        db_session.add(o)
        db_session.commit()
        db_session.refresh(o)
        return o
    return _create

@pytest.fixture()
def agreement_factory(db_session):
    def _create(offer, publisher, *, cut: float | None = None, percent: float | None = 50):
        a = OfferPublisher(
            offer_id=offer.id,
            publisher_id=publisher.id,
            commission_cut=cut,
            commission_percent=percent,
        )
        db_session.add(a)
        db_session.commit()
        db_session.refresh(a)
        return a
    return _create

@pytest.fixture()
def click_factory(db_session):
    """Insert `count` clicks, the first `unique` of them flagged unique."""
    def _create(publisher, offer, *, at: datetime = NOW_NAIVE, count: int = 1, unique: int = 0, geo: str | None = "US"):
        clicks = [
            Click(
                click_id=secrets.token_hex(8),
                publisher_id=publisher.id,
                offer_id=offer.id,
                geo=geo,
                device="desktop",
                browser="firefox",
                is_unique=index < unique,
                timestamp=at,
            )
            for index in range(count)
        ]
        db_session.add_all(clicks)
        db_session.commit()
        return clicks
    return _create

@pytest.fixture()
def conversion_factory(db_session):
    def _create(
        publisher,
        offer,
        *,
        at: datetime = NOW_NAIVE,
        count: int = 1,
        amount: float = 10.0,
        commission: float = 2.5,
        status: ConversionStatus = ConversionStatus.PENDING,
    ):
        conversions = [
            Conversion(
                offer_id=offer.id,
                publisher_id=publisher.id,
                amount=amount,
                commission_amount=commission,
                status=status,
                created_at=at,
            )
            for _ in range(count)
        ]
        db_session.add_all(conversions)
        db_session.commit()
        return conversions
    return _create
