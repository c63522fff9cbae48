"""
Pytest fixtures for storeledger backend tests.

Provides an in-memory database, per-test table wipe, owner/store/category/
product factories and auth header helpers.
"""

from datetime import date, datetime

import pytest
from storeledger import create_app
from storeledger.extensions import db
from storeledger.models import Category, Store, User
from storeledger.services import products_service
from storeledger.services.auth_service import hash_password
from storeledger.services.session_service import create_session

PASSWORD = "Password123!"

# Scenario product: 100 units at 10.00, capital 500.00, 10% tax
SCENARIO_PRODUCT = {
    "name": "Kopi Susu",
    "price_cents": 1000,
    "capital_cents": 50_000,
    "quantity": 100,
    "tax_bps": 1000,
    "created_at": datetime(2024, 1, 1, 8, 0, 0),
}

DAY_1 = date(2024, 1, 2)
DAY_2 = date(2024, 1, 3)
DAY_3 = date(2024, 1, 4)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLITE_BEGIN_IMMEDIATE': False,
        'BCRYPT_ROUNDS': 4,
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
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, username: str, *, is_admin: bool = False) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(PASSWORD),
        is_admin=is_admin,
    )
    db_session.add(user)
    db_session.commit()
    return user


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user: User) -> dict:
    _, token = create_session(user_id=user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def owner(db_session):
    return make_user(db_session, "owner")


@pytest.fixture(scope='function')
def intruder(db_session):
    """A second, unrelated store owner."""
    return make_user(db_session, "intruder")


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, "admin", is_admin=True)


@pytest.fixture(scope='function')
def store(db_session, owner):
    store = Store(user_id=owner.id, name="Warung A")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def foreign_store(db_session, intruder):
    store = Store(user_id=intruder.id, name="Warung B")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def category(db_session, store):
    category = Category(store_id=store.id, name="Drinks")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def other_category(db_session, store):
    category = Category(store_id=store.id, name="Snacks")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(db_session, store, category):
    """Factory: create a product through the service, scenario values by default."""
    def _make(**overrides):
        patch = dict(SCENARIO_PRODUCT, category_id=category.id)
        patch.update(overrides)
        return products_service.create_product(store.id, patch=patch)
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product()


@pytest.fixture(scope='function')
def owner_headers(owner):
    return headers_for(owner)


@pytest.fixture(scope='function')
def intruder_headers(intruder):
    return headers_for(intruder)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)
