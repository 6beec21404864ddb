"""
Pytest fixtures for POS backend tests.

Provides test database setup, a demo catalog, and the test client.
"""

import pytest
from quickpos import create_app
from quickpos.extensions import db
from quickpos.models import Customer, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POS_TIMEZONE': 'UTC',
        'CHECKOUT_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_product(session, *, sku, name, price_cents, cost_cents=0, stock=100,
                 category="General", tax_rate_bps=1500) -> Product:
    product = Product(
        sku=sku,
        name=name,
        price_cents=price_cents,
        cost_cents=cost_cents,
        stock=stock,
        category=category,
        tax_rate_bps=tax_rate_bps,
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(sku=..., name=..., price_cents=..., **fields)."""
    def _factory(**fields):
        return _make_product(db_session, **fields)
    return _factory


@pytest.fixture(scope='function')
def catalog(db_session):
    """Small catalog across two categories, keyed by SKU."""
    products = [
        _make_product(db_session, sku="OFF-001", name="Ballpoint Pen (Box)", price_cents=1299,
                     cost_cents=750, stock=150, category="Office Supplies"),
        _make_product(db_session, sku="OFF-002", name="A4 Paper Ream", price_cents=2499,
                     cost_cents=1400, stock=80, category="Office Supplies"),
        _make_product(db_session, sku="ELC-001", name="Desk Calculator", price_cents=4500,
                     cost_cents=2200, stock=35, category="Electronics"),
        _make_product(db_session, sku="ELC-003", name="Wireless Mouse", price_cents=5500,
                     cost_cents=2800, stock=12, category="Electronics"),
    ]
    return {p.sku: p for p in products}


@pytest.fixture(scope='function')
def customers(db_session):
    """Walk-in sentinel plus one named customer."""
    walk_in = Customer(id=1, name="Walk-in Customer")
    named = Customer(id=2, name="Gulf Trading Co.", phone="+966-54-1112233", email="procurement@gulftrade.sa")
    db_session.add_all([walk_in, named])
    db_session.commit()
    return {"walk_in": walk_in, "named": named}
