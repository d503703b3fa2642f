"""Sale commit protocol tests."""
from decimal import Decimal

import pytest

from backoffice.commands import CommitSaleCommand, SaleLineInput
from backoffice.exceptions import (
    EmptyOrder, InsufficientStock, InvalidLine, InvalidPaymentMethod,
    MissingPaymentMethod, ProductNotFound, SaleNotFound
)
from backoffice.models import PaymentMethod, Product, Sale, SaleItem, StockMovement, StockMovementType
from backoffice.services import stock_ledger_service as ledger
from backoffice.services.sales_service import commit_sale, get_sale, list_sales


def _sale(*lines, payment_method='CASH', **extra):
    return CommitSaleCommand(
        lines=[SaleLineInput(product_id, qty, price) for product_id, qty, price in lines],
        payment_method=payment_method,
        **extra
    )


class TestCommitSale:

    def test_total_and_subtotals(self, session, ctx1, product_a, product_b):
        sale = commit_sale(ctx1, _sale((product_a.id, 2, '10'), (product_b.id, 3, '5')))

        assert sale.total == Decimal('35.00')
        assert sale.payment_method == PaymentMethod.CASH
        assert [item.subtotal for item in sale.items] == [Decimal('20.00'), Decimal('15.00')]
        assert session.query(SaleItem).filter_by(sale_id=sale.id).count() == 2

    def test_decrements_stock_and_writes_ledger(self, session, ctx1, product_a, product_b):
        sale = commit_sale(ctx1, _sale((product_a.id, 2, '10'), (product_b.id, 3, '5')))

        assert session.get(Product, product_a.id).stock == 3
        assert session.get(Product, product_b.id).stock == 0

        movements = session.query(StockMovement).filter_by(sale_id=sale.id).order_by(StockMovement.id).all()
        assert [(m.product_id, m.quantity, m.previous_stock, m.new_stock) for m in movements] == [
            (product_a.id, -2, 5, 3),
            (product_b.id, -3, 3, 0),
        ]
        assert all(m.type == StockMovementType.SALE for m in movements)
        assert all(m.user_id == ctx1.user_id for m in movements)
        assert movements[0].notes == f'Venta #{sale.id}'

    def test_items_snapshot_product_name_and_sku(self, ctx1, product_a):
        sale = commit_sale(ctx1, _sale((product_a.id, 1, '10')))

        item = sale.items[0]
        assert item.product_name == 'Producto A'
        assert item.product_sku == 'SKU-A'

    def test_caller_price_is_used(self, ctx1, product_a):
        sale = commit_sale(ctx1, _sale((product_a.id, 2, '8.50')))
        assert sale.total == Decimal('17.00')

    def test_insufficient_stock_rolls_back_everything(self, session, ctx1, product_a, product_b):
        with pytest.raises(InsufficientStock) as exc_info:
            commit_sale(ctx1, _sale((product_a.id, 2, '10'), (product_b.id, 10, '5')))

        assert exc_info.value.product_name == 'Producto B'
        assert exc_info.value.required == 10
        assert exc_info.value.available == 3
        assert exc_info.value.status_code == 409

        assert session.get(Product, product_a.id).stock == 5
        assert session.get(Product, product_b.id).stock == 3
        assert session.query(Sale).count() == 0
        assert session.query(SaleItem).count() == 0
        assert session.query(StockMovement).filter_by(type=StockMovementType.SALE).count() == 0

    def test_duplicate_lines_are_summed(self, session, ctx1, product_a):
        with pytest.raises(InsufficientStock) as exc_info:
            commit_sale(ctx1, _sale((product_a.id, 3, '10'), (product_a.id, 3, '10')))
        assert exc_info.value.required == 6

        sale = commit_sale(ctx1, _sale((product_a.id, 2, '10'), (product_a.id, 3, '10')))
        assert len(sale.items) == 2
        assert session.get(Product, product_a.id).stock == 0
        assert ledger.verify_ledger(session, ctx1.store_id) == []

    def test_untracked_product_is_not_decremented(self, session, ctx1, make_product):
        service = make_product(name='Servicio', price='30', stock=0, track_stock=False)

        sale = commit_sale(ctx1, _sale((service.id, 4, '30')))

        assert sale.total == Decimal('120.00')
        assert session.get(Product, service.id).stock == 0
        assert session.query(StockMovement).filter_by(sale_id=sale.id).count() == 0

    def test_unknown_product(self, session, ctx1, product_a):
        with pytest.raises(ProductNotFound):
            commit_sale(ctx1, _sale((product_a.id, 1, '10'), (999999, 1, '5')))
        assert session.get(Product, product_a.id).stock == 5

    def test_product_of_other_store_is_not_found(self, ctx2, product_a):
        with pytest.raises(ProductNotFound):
            commit_sale(ctx2, _sale((product_a.id, 1, '10')))

    def test_selling_exact_stock_reaches_zero(self, session, ctx1, product_b):
        commit_sale(ctx1, _sale((product_b.id, 3, '5')))
        with pytest.raises(InsufficientStock):
            commit_sale(ctx1, _sale((product_b.id, 1, '5')))
        assert session.get(Product, product_b.id).stock == 0


class TestValidation:

    def test_empty_order(self, ctx1):
        with pytest.raises(EmptyOrder):
            commit_sale(ctx1, _sale())

    def test_missing_payment_method(self, ctx1, product_a):
        with pytest.raises(MissingPaymentMethod):
            commit_sale(ctx1, _sale((product_a.id, 1, '10'), payment_method=None))

    def test_invalid_payment_method(self, ctx1, product_a):
        with pytest.raises(InvalidPaymentMethod):
            commit_sale(ctx1, _sale((product_a.id, 1, '10'), payment_method='BITCOIN'))

    def test_payment_method_is_case_insensitive(self, ctx1, product_a):
        sale = commit_sale(ctx1, _sale((product_a.id, 1, '10'), payment_method='transfer'))
        assert sale.payment_method == PaymentMethod.TRANSFER

    @pytest.mark.parametrize('quantity', [0, -1, 1.5, 'abc', None, True])
    def test_invalid_quantity(self, ctx1, product_a, quantity):
        with pytest.raises(InvalidLine):
            commit_sale(ctx1, _sale((product_a.id, quantity, '10')))

    def test_negative_price(self, ctx1, product_a):
        with pytest.raises(InvalidLine):
            commit_sale(ctx1, _sale((product_a.id, 1, '-1')))

    @pytest.mark.parametrize('price', ['1e30', 1e30])
    def test_huge_price_is_rejected(self, session, ctx1, product_a, price):
        with pytest.raises(InvalidLine):
            commit_sale(ctx1, _sale((product_a.id, 1, price)))
        assert session.query(Sale).count() == 0

    def test_huge_quantity_of_untracked_product(self, session, ctx1, make_product):
        service = make_product(name='Servicio', price='30', stock=0, track_stock=False)
        with pytest.raises(InvalidLine):
            commit_sale(ctx1, _sale((service.id, 10 ** 30, '30')))
        assert session.query(Sale).count() == 0


class TestListing:

    def test_list_is_newest_first_and_store_scoped(self, ctx1, ctx2, product_a, product_store2):
        first = commit_sale(ctx1, _sale((product_a.id, 1, '10')))
        second = commit_sale(ctx1, _sale((product_a.id, 1, '10'), payment_method='QR'))
        commit_sale(ctx2, _sale((product_store2.id, 1, '20')))

        assert [s.id for s in list_sales(ctx1)] == [second.id, first.id]
        assert [s.id for s in list_sales(ctx1, payment_method='QR')] == [second.id]
        assert [s.id for s in list_sales(ctx1, limit=1)] == [second.id]

    def test_get_sale_of_other_store(self, ctx1, ctx2, product_a):
        sale = commit_sale(ctx1, _sale((product_a.id, 1, '10')))
        assert get_sale(ctx1, sale.id).id == sale.id
        with pytest.raises(SaleNotFound):
            get_sale(ctx2, sale.id)
