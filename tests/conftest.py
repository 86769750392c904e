import os
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

# Set test environment variables before importing the app
os.environ['FLASK_ENV'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

from stock_ledger import create_app
from stock_ledger.clients import InMemoryCatalog
from stock_ledger.database import db
from stock_ledger.ledger import get_ledger
from stock_ledger.models import MovementRequest, StockPosition, StockTransaction, TransactionType
from stock_ledger.repositories import MemoryStorage, SqlStorage
from stock_ledger.services import MovementEngine, StockQueryService


class FakeClock:
    """Deterministic clock; every call returns the current time then ticks"""

    def __init__(self, start=datetime(2026, 1, 1, 9, 0, 0), tick=timedelta(seconds=1)):
        self.now = start
        self.tick = tick

    def __call__(self):
        current = self.now
        self.now = self.now + self.tick
        return current

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def catalog():
    """Catalog with two products, two warehouses and a default threshold of 10."""
    return (
        InMemoryCatalog(default_reorder_threshold=10)
        .add_product('P1')
        .add_product('P2', reorder_threshold=5)
        .add_product('P3', reorder_threshold=0)
        .add_warehouse('W1')
        .add_warehouse('W2')
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_storage():
    """An open in-memory storage."""
    storage = MemoryStorage().open()
    yield storage
    storage.close()


@pytest.fixture
def engine(memory_storage, catalog, clock):
    """Movement engine over in-memory storage."""
    return MovementEngine(memory_storage, catalog, clock=clock)


@pytest.fixture
def queries(memory_storage, catalog):
    """Query service over the same storage as ``engine``."""
    return StockQueryService(memory_storage, catalog)


@pytest.fixture
def app(catalog):
    """Create application for the tests."""
    app = create_app('testing', catalog=catalog)

    with app.app_context():
        # Create all database tables
        db.create_all()
        yield app
        # Clean up
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def ledger(app):
    """The app's stock ledger."""
    return get_ledger()


@pytest.fixture
def sql_storage(app):
    """An open SQL storage using the app's database."""
    storage = SqlStorage().open()
    yield storage
    storage.close()


@pytest.fixture
def sql_engine(sql_storage, catalog, clock):
    """Movement engine over SQL storage."""
    return MovementEngine(sql_storage, catalog, clock=clock)


@pytest.fixture
def sql_queries(sql_storage, catalog):
    return StockQueryService(sql_storage, catalog)


# Helper functions for tests
def create_test_request(**kwargs):
    """Create a movement request with default values."""
    defaults = {
        'product_id': 'P1',
        'warehouse_id': 'W1',
        'transaction_type': TransactionType.IN,
        'quantity': 10,
        'unit_price': Decimal('5'),
        'operator': 'tester',
    }
    defaults.update(kwargs)
    return MovementRequest(**defaults)


def receive(engine, quantity, unit_price, product_id='P1', warehouse_id='W1', **kwargs):
    """Apply an IN movement and return (position, transaction)."""
    return engine.stock_in(product_id, warehouse_id, quantity, Decimal(str(unit_price)), 'tester', **kwargs)


def issue(engine, quantity, product_id='P1', warehouse_id='W1', **kwargs):
    """Apply an OUT movement and return (position, transaction)."""
    return engine.stock_out(product_id, warehouse_id, quantity, 'tester', **kwargs)


# Test data generators
def generate_movement_data(**kwargs):
    """Generate movement request JSON."""
    defaults = {
        'product_id': 'P1',
        'warehouse_id': 'W1',
        'transaction_type': 'in',
        'quantity': 10,
        'unit_price': 5.0,
        'operator': 'tester',
    }
    defaults.update(kwargs)
    return defaults


def create_test_position(**kwargs):
    """Create a stock position with default values."""
    defaults = {
        'id': 'stock-1',
        'product_id': 'P1',
        'warehouse_id': 'W1',
        'current_stock': 10,
        'reserved_stock': 4,
        'avg_cost': Decimal('2.5'),
        'created_at': datetime(2026, 1, 1),
        'updated_at': datetime(2026, 1, 1),
    }
    defaults.update(kwargs)
    return StockPosition(**defaults)


def create_test_transaction(**kwargs):
    """Create a ledger entry with default values."""
    defaults = {
        'transaction_no': 'TXN-20260101090000000000-000001',
        'product_id': 'P1',
        'warehouse_id': 'W1',
        'transaction_type': TransactionType.IN,
        'quantity': 10,
        'unit_price': Decimal('5'),
        'total_amount': Decimal('50'),
        'operator': 'alice',
        'created_at': datetime(2026, 1, 1, 9, 0, 0),
    }
    defaults.update(kwargs)
    return StockTransaction(**defaults)
