"""
Pytest fixtures for Tubex backend tests.

Provides test database setup (relational store and document store binds),
tenant fixtures (two suppliers and a dealer), users per role, and helpers
for authenticated requests.
"""

from decimal import Decimal

import pytest
from tubex import create_app
from tubex.extensions import db
from tubex.models import Company, Warehouse, Product, Inventory, Batch
from tubex.services.auth_service import create_user
from tubex.services.session_service import create_session


PASSWORD = "Passw0rd!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_BINDS': {'documents': 'sqlite:///:memory:'},
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RETURN_ACTION_TOKENS': True,
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
        # Clear all data but keep schema, in both stores
        for meta in db.metadatas.values():
            for table in reversed(meta.sorted_tables):
                db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_company(db_session, name: str, company_type: str, tax_id: str, status: str = "active") -> Company:
    company = Company(
        name=name,
        type=company_type,
        tax_id=tax_id,
        business_license=f"BL-{tax_id}",
        address={"street": "1 Le Loi", "city": "Ho Chi Minh City", "province": "HCM", "postal_code": "700000"},
        contact_phone="+84901234567",
        status=status,
    )
    db_session.add(company)
    db_session.commit()
    return company


def make_user(company, email: str, role: str = "admin", status: str = "active"):
    return create_user(company=company, email=email, password=PASSWORD, role=role, status=status)


def login_token(user) -> str:
    """Session token without going through the login endpoint."""
    _, token = create_session(user)
    return token


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token through the login endpoint."""
    response = client.post('/api/v1/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


# =============================================================================
# TENANTS
# =============================================================================


@pytest.fixture(scope='function')
def supplier_a(db_session):
    """Supplier A (first tenant)."""
    return make_company(db_session, "Alpha Cement", "supplier", "0100000001")


@pytest.fixture(scope='function')
def supplier_b(db_session):
    """Supplier B (second tenant)."""
    return make_company(db_session, "Beta Steel", "supplier", "0100000002")


@pytest.fixture(scope='function')
def dealer_a(db_session):
    """Dealer A (orders from suppliers)."""
    return make_company(db_session, "Delta Building Supplies", "dealer", "0100000003")


# =============================================================================
# USERS
# =============================================================================


@pytest.fixture(scope='function')
def supplier_admin(db_session, supplier_a):
    return make_user(supplier_a, "admin@alpha.vn", "admin")


@pytest.fixture(scope='function')
def supplier_manager(db_session, supplier_a):
    return make_user(supplier_a, "manager@alpha.vn", "manager")


@pytest.fixture(scope='function')
def supplier_staff(db_session, supplier_a):
    return make_user(supplier_a, "staff@alpha.vn", "staff")


@pytest.fixture(scope='function')
def supplier_b_admin(db_session, supplier_b):
    return make_user(supplier_b, "admin@beta.vn", "admin")


@pytest.fixture(scope='function')
def dealer_admin(db_session, dealer_a):
    return make_user(dealer_a, "admin@delta.vn", "admin")


@pytest.fixture(scope='function')
def dealer_staff(db_session, dealer_a):
    return make_user(dealer_a, "staff@delta.vn", "staff")


@pytest.fixture(scope='function')
def platform_admin(db_session):
    return create_user(
        company=None,
        email="root@tubex.vn",
        password=PASSWORD,
        role="admin",
        status="active",
        is_platform_admin=True,
    )


@pytest.fixture(scope='function')
def supplier_admin_headers(supplier_admin):
    return auth_headers(login_token(supplier_admin))


@pytest.fixture(scope='function')
def supplier_manager_headers(supplier_manager):
    return auth_headers(login_token(supplier_manager))


@pytest.fixture(scope='function')
def supplier_staff_headers(supplier_staff):
    return auth_headers(login_token(supplier_staff))


@pytest.fixture(scope='function')
def supplier_b_headers(supplier_b_admin):
    return auth_headers(login_token(supplier_b_admin))


@pytest.fixture(scope='function')
def dealer_headers(dealer_admin):
    return auth_headers(login_token(dealer_admin))


@pytest.fixture(scope='function')
def dealer_staff_headers(dealer_staff):
    return auth_headers(login_token(dealer_staff))


@pytest.fixture(scope='function')
def platform_headers(platform_admin):
    return auth_headers(login_token(platform_admin))


# =============================================================================
# CATALOG AND STOCK
# =============================================================================


@pytest.fixture(scope='function')
def warehouse_a1(db_session, supplier_a):
    warehouse = Warehouse(company_id=supplier_a.id, name="Alpha Main", address="Lot 5, Tan Binh", type="main",
                          capacity=Decimal("1000"))
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def warehouse_a2(db_session, supplier_a):
    warehouse = Warehouse(company_id=supplier_a.id, name="Alpha North", address="Lot 9, Thu Duc", type="secondary")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def warehouse_b1(db_session, supplier_b):
    warehouse = Warehouse(company_id=supplier_b.id, name="Beta Yard", address="Lot 1, Binh Duong")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def product_a(db_session, supplier_a):
    """Portland cement from Supplier A."""
    product = Product(supplier_id=supplier_a.id, name="Portland Cement PCB40", base_price=Decimal("95.50"),
                      unit="bag", description="50kg bag")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session, supplier_b):
    """Rebar from Supplier B."""
    product = Product(supplier_id=supplier_b.id, name="Rebar D16", base_price=Decimal("250.00"), unit="bar")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stocked_product_a(db_session, supplier_a, warehouse_a1, product_a):
    """
    product_a with 100 bags in warehouse_a1 split over two batches:
    B-OLD (40, expires first) and B-NEW (60).
    """
    from tubex.time_utils import days_from_today

    item = Inventory(company_id=supplier_a.id, product_id=product_a.id, warehouse_id=warehouse_a1.id,
                     quantity=Decimal("100"), unit="bag", min_threshold=Decimal("20"))
    db_session.add(item)
    db_session.add(Batch(batch_number="B-OLD", product_id=product_a.id, warehouse_id=warehouse_a1.id,
                         company_id=supplier_a.id, quantity=Decimal("40"), unit="bag",
                         expiry_date=days_from_today(10)))
    db_session.add(Batch(batch_number="B-NEW", product_id=product_a.id, warehouse_id=warehouse_a1.id,
                         company_id=supplier_a.id, quantity=Decimal("60"), unit="bag",
                         expiry_date=days_from_today(200)))
    db_session.commit()
    return item
