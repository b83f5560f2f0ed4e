"""
Pytest fixtures for the field operations backend tests.

Provides an in-memory database, one user per role, bearer headers and
small factories for the rows most workflows start from.
"""

from datetime import datetime

import pytest

from fieldops import create_app
from fieldops.extensions import db
from fieldops.models import DamageClaim, Distributor, LegacyShop, Order, OrderItem, User
from fieldops.services import token_service
from fieldops.services.auth_service import hash_password

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
        'JWT_SECRET': 'test-jwt-secret',
        'LOG_LEVEL': 'WARNING',
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
    """Empty every table before each test."""
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='session')
def password_hash(app):
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    def _make_user(role, email=None, name=None, **fields):
        user = User(
            name=name or role,
            email=email or f"{role.lower().replace(' ', '-')}@fieldops.test",
            password_hash=password_hash,
            role=role,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("Admin")


@pytest.fixture(scope='function')
def marketing(make_user):
    return make_user("Marketing Staff")


@pytest.fixture(scope='function')
def manager(make_user):
    return make_user("Mid-Level Manager")


@pytest.fixture(scope='function')
def godown(make_user):
    return make_user("Godown Incharge")


@pytest.fixture(scope='function')
def developer(make_user):
    return make_user("App Developer")


def auth_headers(user):
    """Bearer header for a user, freshly signed."""
    return {"Authorization": f"Bearer {token_service.issue_token(user)}"}


@pytest.fixture(scope='function')
def headers_for(app):
    return auth_headers


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture(scope='function')
def marketing_headers(marketing):
    return auth_headers(marketing)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return auth_headers(manager)


@pytest.fixture(scope='function')
def godown_headers(godown):
    return auth_headers(godown)


@pytest.fixture(scope='function')
def developer_headers(developer):
    return auth_headers(developer)


# ============================================================================
# ROW FACTORIES
# ============================================================================

@pytest.fixture(scope='function')
def distributor(db_session, admin):
    row = Distributor(
        name="Sharma Traders",
        shop_name="Sharma Wholesale",
        contact="9800000001",
        address="12 Market Road",
        created_by_id=admin.id,
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture(scope='function')
def legacy_shop(db_session, distributor):
    row = LegacyShop(
        distributor_id=distributor.id,
        shop_type="Retailer",
        shop_name="Old Corner Store",
        owner_name="Mehta",
        address="4 Lane",
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture(scope='function')
def make_order(db_session, distributor):
    def _make_order(created_by, status="Requested"):
        order = Order(distributor_id=distributor.id, created_by_id=created_by.id, status=status)
        order.items = [OrderItem(product_name="Cement 50kg", quantity=10, unit="bags")]
        db_session.add(order)
        db_session.commit()
        return order
    return _make_order


@pytest.fixture(scope='function')
def make_claim(db_session, distributor):
    def _make_claim(created_by, pieces=10, **fields):
        claim = DamageClaim(
            distributor_id=distributor.id,
            distributor_name=distributor.name,
            created_by_id=created_by.id,
            brand="Acme",
            variant="Gold",
            size="1L",
            pieces=pieces,
            manufacturing_date=datetime(2025, 1, 1),
            batch_details="B-17",
            damage_type="Leakage",
            reason="Broken seal",
            images=[],
            **fields,
        )
        db_session.add(claim)
        db_session.commit()
        return claim
    return _make_claim