"""Shared test fixtures for all test modules."""

import contextlib
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import orderflow.models  # noqa: F401  registers every table on Base.metadata
from orderflow.core import database as db_module
from orderflow.core.database import Base, get_db
from orderflow.main import app
from orderflow.schemas.client import ClientCreate
from orderflow.schemas.order import OrderCreate, OrderItemCreate
from orderflow.services.client_service import ClientService
from orderflow.services.notification_service import ChangeNotifier
from orderflow.services.order_service import OrderService

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

BASE_DATE = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def api_client():
    """Create test client."""
    return TestClient(app)


class RecordingNotifier(ChangeNotifier):
    """Notifier that keeps every published event."""

    def __init__(self):
        super().__init__()
        self.events = []
        self.subscribe(lambda event_type, payload: self.events.append((event_type, payload)))

    def of_type(self, event_type):
        return [payload for t, payload in self.events if t == event_type]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_client(db_session):
    """Factory for clients; the return policy is off unless asked for."""

    def _make(name="Corner Bakery", **kwargs):
        kwargs.setdefault("return_policy_enabled", False)
        return ClientService(db_session).create_client(ClientCreate(name=name, **kwargs))

    return _make


@pytest.fixture
def client_row(make_client):
    return make_client()


@pytest.fixture
def make_order(db_session):
    """Factory for orders.

    ``total`` places a single line of one unit at that price. ``day`` offsets
    the order date from a fixed base date so FIFO order is explicit.
    """

    def _make(client, total=None, items=None, day=0):
        if items is None:
            items = [OrderItemCreate(product_name="Bread", quantity=1, unit_price=Decimal(str(total)))]
        return OrderService(db_session).place_order(
            OrderCreate(
                client_id=client.id,
                items=items,
                order_date=BASE_DATE + timedelta(days=day),
            )
        )

    return _make
