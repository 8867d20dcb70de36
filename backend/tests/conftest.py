"""
Pytest fixtures for utang backend tests.

Provides test database setup, user/store factories, and test client.
"""

import pytest

from utang import create_app
from utang.config import Config
from utang.extensions import db
from utang.models import Customer, Item, Store, StoreMembership, User
from utang.services.auth_service import hash_password
from utang.services.session_service import create_session

DEFAULT_PASSWORD = "Password123!"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_ROUNDS = 4


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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


def make_user(db_session, name: str, email: str) -> User:
    user = User(name=name, email=email, password_hash=hash_password(DEFAULT_PASSWORD))
    db_session.add(user)
    db_session.commit()
    return user


def make_store(db_session, owner: User, name: str) -> Store:
    store = Store(name=name)
    store.memberships.append(StoreMembership(user_id=owner.id, role="OWNER"))
    db_session.add(store)
    db_session.commit()
    return store


def add_member(db_session, store: Store, user: User, role: str = "STAFF") -> StoreMembership:
    membership = StoreMembership(store_id=store.id, user_id=user.id, role=role)
    db_session.add(membership)
    db_session.commit()
    return membership


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user: User) -> dict:
    _, token = create_session(user_id=user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def user_one(db_session):
    return make_user(db_session, "Aling Nena", "nena@example.com")


@pytest.fixture(scope='function')
def user_two(db_session):
    return make_user(db_session, "Mang Tomas", "tomas@example.com")


@pytest.fixture(scope='function')
def store_one(db_session, user_one):
    return make_store(db_session, user_one, "Nena's Sari-Sari")


@pytest.fixture(scope='function')
def store_two(db_session, user_two):
    return make_store(db_session, user_two, "Tomas Store")


@pytest.fixture(scope='function')
def customer_one(db_session, store_one):
    customer = Customer(store_id=store_one.id, name="Juan Dela Cruz", phone="09171234567")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_two(db_session, store_two):
    customer = Customer(store_id=store_two.id, name="Maria Clara")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def item_one(db_session, store_one):
    item = Item(store_id=store_one.id, name="Sardinas", category="Canned", price=25, stock=40, unit="can")
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def headers_one(db_session, user_one):
    return headers_for(user_one)


@pytest.fixture(scope='function')
def headers_two(db_session, user_two):
    return headers_for(user_two)
