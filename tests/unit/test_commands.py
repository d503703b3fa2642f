"""Payload parsing and validation of command objects."""
from decimal import Decimal

import pytest

from backoffice.commands import (
    MAX_QUANTITY, UNSET, AdjustStockCommand, CommitSaleCommand, ProductCreate, ProductUpdate,
    StoreUpdate, parse_money
)
from backoffice.exceptions import (
    EmptyOrder, InvalidField, InvalidLine, InvalidPaymentMethod, InvalidQuantity, MissingPaymentMethod
)
from backoffice.models import PaymentMethod, StockMovementType


class TestCommitSaleCommand:

    def test_from_payload(self):
        command = CommitSaleCommand.from_payload({
            'items': [{'productId': 7, 'quantity': 2, 'price': '10.5'}],
            'paymentMethod': 'cash',
            'customerName': '  Ana  ',
        }).validate()

        assert command.payment_method == PaymentMethod.CASH
        assert command.customer_name == 'Ana'
        line = command.lines[0]
        assert (line.product_id, line.quantity, line.price) == (7, 2, Decimal('10.50'))
        assert line.subtotal == Decimal('21.00')

    def test_validation_order(self):
        # Empty order is reported before a missing payment method
        with pytest.raises(EmptyOrder):
            CommitSaleCommand.from_payload({'items': []}).validate()
        with pytest.raises(MissingPaymentMethod):
            CommitSaleCommand.from_payload({'items': [{'productId': 1, 'quantity': 0}]}).validate()
        with pytest.raises(InvalidPaymentMethod):
            CommitSaleCommand.from_payload({
                'items': [{'productId': 1, 'quantity': 0}], 'paymentMethod': 'CHEQUE'
            }).validate()

    def test_invalid_line_index(self):
        with pytest.raises(InvalidLine) as exc_info:
            CommitSaleCommand.from_payload({
                'items': [
                    {'productId': 1, 'quantity': 1, 'price': 1},
                    {'productId': 2, 'quantity': -4, 'price': 1},
                ],
                'paymentMethod': 'QR',
            }).validate()
        assert exc_info.value.to_dict()['line'] == 1

    def test_quantities_by_product(self):
        command = CommitSaleCommand.from_payload({
            'items': [
                {'productId': 1, 'quantity': 2, 'price': 1},
                {'productId': 2, 'quantity': 1, 'price': 1},
                {'productId': 1, 'quantity': 3, 'price': 1},
            ],
            'paymentMethod': 'DEBIT',
        }).validate()
        assert command.quantities_by_product() == {1: 5, 2: 1}


class TestAdjustStockCommand:

    def test_from_payload_defaults_to_adjustment(self):
        command = AdjustStockCommand.from_payload({'productId': '3', 'quantity': '-2'}).validate()
        assert command.product_id == 3
        assert command.quantity_delta == -2
        assert command.reason_code == StockMovementType.ADJUSTMENT

    def test_type_key_is_accepted(self):
        command = AdjustStockCommand.from_payload({'productId': 3, 'quantity': 4, 'type': 'PURCHASE'}).validate()
        assert command.reason_code == StockMovementType.PURCHASE


class TestProductCommands:

    def test_create_requires_name_price_category(self):
        with pytest.raises(InvalidField) as exc_info:
            ProductCreate.from_payload({'name': 'X'}).validate()
        assert exc_info.value.message == 'Nombre, precio y categoría son requeridos'

    def test_create_defaults(self):
        command = ProductCreate.from_payload({'name': 'X', 'price': '3', 'categoryId': 1}).validate()
        assert command.min_stock == 5
        assert command.stock == 0
        assert command.track_stock is True
        assert command.images == []
        assert command.attributes == {}

    def test_create_rejects_negative_stock(self):
        with pytest.raises(InvalidField):
            ProductCreate.from_payload({'name': 'X', 'price': '3', 'categoryId': 1, 'stock': -1}).validate()

    def test_update_rejects_stock(self):
        with pytest.raises(InvalidField) as exc_info:
            ProductUpdate.from_payload({'stock': 10})
        assert exc_info.value.to_dict()['field'] == 'stock'

    def test_update_only_sent_fields(self):
        command = ProductUpdate.from_payload({'price': '12.5', 'isActive': False}).validate()
        assert command.changes() == {'price': Decimal('12.50'), 'is_active': False}
        assert command.name is UNSET


class TestStoreUpdate:

    def test_currency_is_normalized(self):
        command = StoreUpdate.from_payload({'currency': 'ars'}).validate()
        assert command.changes() == {'currency': 'ARS'}

    def test_currency_must_be_iso_code(self):
        with pytest.raises(InvalidField):
            StoreUpdate.from_payload({'currency': 'PESOS'}).validate()

    def test_colors_must_be_object(self):
        with pytest.raises(InvalidField):
            StoreUpdate.from_payload({'colors': ['red']}).validate()


class TestLimits:

    @pytest.mark.parametrize('value', ['1e30', 1e30, '100000000', '99999999.995'])
    def test_money_above_column_limit(self, value):
        with pytest.raises(InvalidField) as exc_info:
            parse_money(value, 'price')
        assert exc_info.value.to_dict()['field'] == 'price'

    def test_money_at_limit(self):
        assert parse_money('99999999.99', 'price') == Decimal('99999999.99')
        assert parse_money('1e-40', 'price') == Decimal('0.00')

    @pytest.mark.parametrize('quantity', [10 ** 30, 1e30, MAX_QUANTITY + 1])
    def test_sale_quantity_above_limit(self, quantity):
        with pytest.raises(InvalidLine) as exc_info:
            CommitSaleCommand.from_payload({
                'items': [{'productId': 1, 'quantity': quantity, 'price': 1}],
                'paymentMethod': 'CASH',
            }).validate()
        assert exc_info.value.to_dict()['line'] == 0

    def test_sale_line_subtotal_above_limit(self):
        with pytest.raises(InvalidLine):
            CommitSaleCommand.from_payload({
                'items': [{'productId': 1, 'quantity': MAX_QUANTITY, 'price': '99999999.99'}],
                'paymentMethod': 'CASH',
            }).validate()

    def test_sale_total_above_limit(self):
        line = {'productId': 1, 'quantity': 100, 'price': '60000000'}
        with pytest.raises(InvalidField) as exc_info:
            CommitSaleCommand.from_payload({'items': [line, line], 'paymentMethod': 'CASH'}).validate()
        assert exc_info.value.to_dict()['field'] == 'items'

    def test_product_id_above_bigint(self):
        with pytest.raises(InvalidLine):
            CommitSaleCommand.from_payload({
                'items': [{'productId': 2 ** 70, 'quantity': 1, 'price': 1}],
                'paymentMethod': 'CASH',
            }).validate()

    def test_adjustment_above_limit(self):
        with pytest.raises(InvalidQuantity):
            AdjustStockCommand.from_payload({'productId': 1, 'quantity': -(MAX_QUANTITY + 1)}).validate()

    @pytest.mark.parametrize('payload', [
        {'stock': MAX_QUANTITY + 1},
        {'minStock': 10 ** 30},
        {'price': '1e30'},
        {'cost': 1e30},
    ])
    def test_product_create_out_of_range(self, payload):
        with pytest.raises(InvalidField):
            ProductCreate.from_payload({'name': 'X', 'price': '3', 'categoryId': 1, **payload}).validate()

    def test_product_update_out_of_range(self):
        with pytest.raises(InvalidField):
            ProductUpdate.from_payload({'comparePrice': '1e30'}).validate()
