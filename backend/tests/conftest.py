"""
Pytest fixtures for the store ledger tests.

Provides an in-memory database, a fixed clock, isolated StoreLedger
instances and the Flask test client / CLI runner.
"""

from datetime import datetime, timedelta

import pytest

from shopsavvy import LEDGER_EXTENSION_KEY, create_app
from shopsavvy.extensions import db
from shopsavvy.services.persistence_service import COLLECTION_KEYS, PersistenceAdapter
from shopsavvy.services.store_ledger import StoreLedger
from shopsavvy.services.user_directory import SqlUserDirectory
from shopsavvy.validation import StorageIOError


class FixedClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FlakyAdapter(PersistenceAdapter):
    """PersistenceAdapter whose writes can be switched to fail."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.fail_writes = False
        self.fail_reads = False
        self.flushes = []

    def save_many(self, entries, **kwargs):
        if self.fail_writes:
            raise StorageIOError("Changes could not be saved and may not persist")
        self.flushes.append(sorted(entries))
        return super().save_many(entries, **kwargs)

    def exists(self, keys=COLLECTION_KEYS):
        if self.fail_reads:
            raise StorageIOError("Could not inspect stored collections")
        return super().exists(keys)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_SEED_DEMO_DATA': False,
        'LEDGER_FLUSH_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 4, 10, 9, 30, 0))


@pytest.fixture
def adapter(db_session):
    return FlakyAdapter(flush_timeout=None, retry_attempts=1, retry_backoff=0)


@pytest.fixture
def users(db_session):
    return SqlUserDirectory()


@pytest.fixture
def ledger(adapter, users, clock):
    """Empty ledger (no demo data) on a clean database."""
    ledger = StoreLedger(adapter, users=users, clock=clock, seed_demo_data=False)
    ledger.load()
    return ledger


@pytest.fixture
def seeded_ledger(adapter, users, clock):
    """Ledger seeded with the demo dataset on a clean database."""
    ledger = StoreLedger(adapter, users=users, clock=clock, seed_demo_data=True)
    ledger.load()
    return ledger


@pytest.fixture
def shared_session_ledger(db_session, clock):
    """Empty ledger bound to one Session object so worker threads can write through it."""
    adapter = PersistenceAdapter(db.session(), flush_timeout=None, retry_attempts=1)
    ledger = StoreLedger(adapter, clock=clock, seed_demo_data=False)
    ledger.load()
    return ledger


@pytest.fixture
def app_ledger(app, db_session, clock):
    """Replace the app's ledger with a fresh seeded one for the duration of a test."""
    original = app.extensions[LEDGER_EXTENSION_KEY]
    fresh = StoreLedger(
        PersistenceAdapter(flush_timeout=None, retry_attempts=1),
        users=SqlUserDirectory(),
        clock=clock,
        seed_demo_data=True,
    )
    app.extensions[LEDGER_EXTENSION_KEY] = fresh
    yield fresh
    app.extensions[LEDGER_EXTENSION_KEY] = original


@pytest.fixture
def client(app, app_ledger):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app, app_ledger):
    return app.test_cli_runner()


def shop_draft(**overrides) -> dict:
    draft = {
        "name": "Downtown",
        "storeNumber": "S001",
        "address": "1 Main St",
    }
    draft.update(overrides)
    return draft


def product_draft(**overrides) -> dict:
    draft = {
        "name": "Milk",
        "sku": "MLK-1",
        "category": "Dairy",
        "price": "2.50",
        "cost": "1.20",
        "stock": 10,
    }
    draft.update(overrides)
    return draft
