"""
Concurrent sales against a SQLite file, one connection per thread.

The shared in-memory test database runs on a single connection, so it cannot
show two writers racing. Here every thread commits through its own session.
"""
import threading

import pytest

from backoffice import create_app, database
from backoffice.commands import CategoryCreate, CommitSaleCommand, ProductCreate, SaleLineInput
from backoffice.context import RequestContext
from backoffice.database import Base, create_all, get_session
from backoffice.exceptions import InsufficientStock
from backoffice.models import Product, Sale, StockMovement, StockMovementType, Store, User
from backoffice.services import cache_service, catalog_service
from backoffice.services import stock_ledger_service as ledger
from backoffice.services.sales_service import commit_sale
from config import TestConfig

THREADS = 10
STOCK = 5


@pytest.fixture
def file_app(app, tmp_path, monkeypatch):
    """A second app bound to a SQLite file; the in-memory globals come back afterwards."""

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'backoffice.db'}"
        SALE_COMMIT_RETRIES = 12
        SALE_COMMIT_BACKOFF = 0.002

    # init_db and init_cache rebind these module globals
    monkeypatch.setattr(database, 'engine', database.engine)
    monkeypatch.setattr(database, 'db_session', database.db_session)
    # monkeypatch.setattr would read Base.query through its descriptor, which
    # queries the unmapped Base; save and restore the raw class attribute instead
    saved_query = Base.__dict__['query']
    monkeypatch.setattr(cache_service, '_report_cache', cache_service._report_cache)

    file_app = create_app(FileConfig)
    with file_app.app_context():
        create_all()

    yield file_app

    database.db_session.remove()
    database.engine.dispose()
    Base.query = saved_query


@pytest.fixture
def seeded(file_app):
    """Store, admin and one product with STOCK units; returns plain ids."""
    with file_app.app_context():
        session = get_session()
        store = Store(slug='concurrencia', name='Tienda Concurrencia', currency='ARS')
        session.add(store)
        session.commit()

        user = User(store_id=store.id, email='caja@concurrencia.com', name='Caja', role='ADMIN', active=True)
        user.set_password('password123')
        session.add(user)
        session.commit()

        ctx = RequestContext(store_id=store.id, user_id=user.id, role='ADMIN')
        category = catalog_service.create_category(ctx, CategoryCreate(name='Almacén'))
        product = catalog_service.create_product(ctx, ProductCreate(
            name='Yerba', category_id=category.id, price='10.00', stock=STOCK, sku='YERBA-1'
        ))
        return ctx, product.id


def test_concurrent_sales_never_oversell(file_app, seeded):
    ctx, product_id = seeded
    barrier = threading.Barrier(THREADS)
    outcomes = []
    errors = []
    lock = threading.Lock()

    def sell():
        with file_app.app_context():
            barrier.wait()
            try:
                commit_sale(ctx, CommitSaleCommand([SaleLineInput(product_id, 1, '10')], 'CASH'))
                outcome = 'sold'
            except InsufficientStock:
                outcome = 'rejected'
            except Exception as e:
                with lock:
                    errors.append(e)
                return
            with lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=sell) for _ in range(THREADS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert not any(thread.is_alive() for thread in threads)
    assert errors == []
    assert outcomes.count('sold') == STOCK
    assert outcomes.count('rejected') == THREADS - STOCK

    with file_app.app_context():
        session = get_session()
        assert session.get(Product, product_id).stock == 0
        assert session.query(Sale).filter_by(store_id=ctx.store_id).count() == STOCK
        sale_movements = session.query(StockMovement).filter_by(
            product_id=product_id, type=StockMovementType.SALE
        ).all()
        assert sorted(m.new_stock for m in sale_movements) == list(range(STOCK))
        assert ledger.verify_ledger(session, ctx.store_id) == []
