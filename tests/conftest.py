import pytest
import uuid
from decimal import Decimal

from backoffice import create_app
from backoffice.commands import CategoryCreate, ProductCreate
from backoffice.context import RequestContext
from backoffice.database import Base, create_all, get_session
from backoffice.models import Store, User
from backoffice.services import catalog_service


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestConfig')
    with app.app_context():
        create_all()
    return app


@pytest.fixture(autouse=True)
def app_context(app):
    """Every test runs inside an app context and starts from empty tables."""
    with app.app_context():
        yield
        session = get_session()
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session for testing."""
    return get_session()


def _make_store(session, label):
    suffix = str(uuid.uuid4())[:8]
    store = Store(slug=f'test-store-{label}-{suffix}', name=f'Test Store {label}', currency='USD')
    session.add(store)
    session.commit()
    return store


def _make_user(session, store, label, role='ADMIN'):
    suffix = str(uuid.uuid4())[:8]
    user = User(
        store_id=store.id,
        email=f'user{label}-{suffix}@test.com',
        name=f'User {label}',
        role=role,
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def store1(session):
    return _make_store(session, '1')


@pytest.fixture(scope='function')
def store2(session):
    """Second store for isolation tests."""
    return _make_store(session, '2')


@pytest.fixture(scope='function')
def user1(session, store1):
    return _make_user(session, store1, '1')


@pytest.fixture(scope='function')
def user2(session, store2):
    return _make_user(session, store2, '2')


@pytest.fixture(scope='function')
def staff_user(session, store1):
    return _make_user(session, store1, 'staff', role='STAFF')


@pytest.fixture(scope='function')
def ctx1(user1):
    return RequestContext(store_id=user1.store_id, user_id=user1.id, role=user1.role)


@pytest.fixture(scope='function')
def ctx2(user2):
    return RequestContext(store_id=user2.store_id, user_id=user2.id, role=user2.role)


@pytest.fixture(scope='function')
def category1(ctx1):
    return catalog_service.create_category(ctx1, CategoryCreate(name='Bebidas'))


@pytest.fixture(scope='function')
def category2(ctx2):
    return catalog_service.create_category(ctx2, CategoryCreate(name='Bebidas'))


@pytest.fixture(scope='function')
def make_product(ctx1, category1):
    """Factory: product in store1 created through the catalog (initial stock in the ledger)."""
    def _make(name='Producto', price='10.00', stock=0, cost=None, ctx=None, category=None, **extra):
        return catalog_service.create_product(ctx or ctx1, ProductCreate(
            name=name,
            category_id=(category or category1).id,
            price=price,
            cost=cost,
            stock=stock,
            **extra
        ))
    return _make


@pytest.fixture(scope='function')
def product_a(make_product):
    return make_product(name='Producto A', price=Decimal('10.00'), stock=5, cost='6.00', sku='SKU-A')


@pytest.fixture(scope='function')
def product_b(make_product):
    return make_product(name='Producto B', price=Decimal('5.00'), stock=3, cost='2.50', sku='SKU-B')


@pytest.fixture(scope='function')
def product_store2(ctx2, category2):
    return catalog_service.create_product(ctx2, ProductCreate(
        name='Producto Tienda 2', category_id=category2.id, price='20.00', stock=20, sku='SKU-A'
    ))


@pytest.fixture(scope='function')
def authenticated_client(client, user1):
    """Client logged in as user1 (ADMIN of store1)."""
    with client.session_transaction() as sess:
        sess['user_id'] = user1.id
    return client
