"""
Command objects for every write operation.

Handlers turn the JSON body (camelCase keys, as sent by the admin front end)
into one of these with `from_payload`, and services call `validate()` before
touching storage. Fields left out of a PATCH body stay UNSET and are not
written.
"""
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from backoffice.exceptions import (
    EmptyOrder, MissingPaymentMethod, InvalidPaymentMethod, InvalidLine,
    InvalidQuantity, InvalidReason, InvalidField
)
from backoffice.models import PaymentMethod, StockMovementType, ADJUSTMENT_REASONS
from backoffice.utils.formatters import quantize_money


class _Unset:
    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET = _Unset()

# Column limits: Numeric(10, 2) for prices, Numeric(12, 2) for sale amounts,
# Integer for units
MAX_PRICE = Decimal('99999999.99')
MAX_SALE_AMOUNT = Decimal('9999999999.99')
MAX_QUANTITY = 2 ** 31 - 1
MAX_BIG_INT = 2 ** 63 - 1


# =====================================================
# PARSING HELPERS
# =====================================================

def parse_int(value, field_name, *, allow_none=False):
    """Strict integer: ints and digit strings, never bools or fractional numbers."""
    if value is None or value == '':
        if allow_none:
            return None
        raise InvalidField(field_name, f'{field_name} es requerido')
    number = None
    if isinstance(value, bool):
        pass
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            pass
    if number is None:
        raise InvalidField(field_name, f'{field_name} debe ser un número entero')
    # Ids are BigInteger
    if abs(number) > MAX_BIG_INT:
        raise InvalidField(field_name, f'{field_name} fuera de rango')
    return number


def parse_units(value, field_name, *, allow_none=False):
    """parse_int for stock quantities, bounded by the Integer column."""
    units = parse_int(value, field_name, allow_none=allow_none)
    if units is not None and abs(units) > MAX_QUANTITY:
        raise InvalidField(field_name, f'{field_name} fuera de rango (máximo {MAX_QUANTITY})')
    return units


def parse_money(value, field_name, *, allow_none=False):
    """Non-negative decimal rounded to cents, at most MAX_PRICE."""
    if value is None or value == '':
        if allow_none:
            return None
        raise InvalidField(field_name, f'{field_name} es requerido')
    if isinstance(value, bool):
        raise InvalidField(field_name, f'{field_name} debe ser un número')
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidField(field_name, f'{field_name} debe ser un número')
    if not amount.is_finite():
        raise InvalidField(field_name, f'{field_name} debe ser un número')
    if amount < 0:
        raise InvalidField(field_name, f'{field_name} no puede ser negativo')
    if amount > MAX_PRICE:
        raise InvalidField(field_name, f'{field_name} supera el máximo permitido ({MAX_PRICE})')
    try:
        amount = quantize_money(amount)
    except InvalidOperation:
        raise InvalidField(field_name, f'{field_name} debe ser un número')
    # 99999999.995 rounds up past the limit
    if amount > MAX_PRICE:
        raise InvalidField(field_name, f'{field_name} supera el máximo permitido ({MAX_PRICE})')
    return amount


def parse_bool(value, field_name):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', 'false', '1', '0'):
        return value.lower() in ('true', '1')
    raise InvalidField(field_name, f'{field_name} debe ser verdadero o falso')


def parse_text(value, field_name, *, required=False, max_length=None):
    if value is None:
        if required:
            raise InvalidField(field_name, f'{field_name} es requerido')
        return None
    if not isinstance(value, str):
        raise InvalidField(field_name, f'{field_name} debe ser texto')
    value = value.strip()
    if required and not value:
        raise InvalidField(field_name, f'{field_name} es requerido')
    if max_length and len(value) > max_length:
        raise InvalidField(field_name, f'{field_name} supera los {max_length} caracteres')
    return value or None


def _pick(payload, *keys):
    """First present key wins (accepts camelCase and snake_case)."""
    for key in keys:
        if key in payload:
            return payload[key]
    return UNSET


class _PatchMixin:
    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


# =====================================================
# SALES
# =====================================================

@dataclass
class SaleLineInput:
    """One requested line: product, units and the unit price shown at the till."""
    product_id: Any
    quantity: Any
    price: Any

    def validate(self, index):
        try:
            product_id = parse_int(self.product_id, 'productId')
        except InvalidField:
            raise InvalidLine(f'Línea {index + 1}: producto inválido', index)

        if isinstance(self.quantity, bool) or not isinstance(self.quantity, (int, float, str)):
            raise InvalidLine(f'Línea {index + 1}: la cantidad debe ser un entero positivo', index)
        try:
            quantity = parse_int(self.quantity, 'quantity')
        except InvalidField:
            raise InvalidLine(f'Línea {index + 1}: la cantidad debe ser un entero positivo', index)
        if quantity <= 0:
            raise InvalidLine(f'Línea {index + 1}: la cantidad debe ser un entero positivo', index)
        if quantity > MAX_QUANTITY:
            raise InvalidLine(f'Línea {index + 1}: la cantidad supera el máximo ({MAX_QUANTITY})', index)

        try:
            price = parse_money(self.price, 'price')
        except InvalidField:
            raise InvalidLine(f'Línea {index + 1}: precio inválido', index)

        line = SaleLineInput(product_id=product_id, quantity=quantity, price=price)
        if line.subtotal > MAX_SALE_AMOUNT:
            raise InvalidLine(f'Línea {index + 1}: el subtotal supera el máximo permitido', index)
        return line

    @property
    def subtotal(self) -> Decimal:
        return quantize_money(self.price * self.quantity)


@dataclass
class CommitSaleCommand:
    lines: List[SaleLineInput]
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'CommitSaleCommand':
        raw_items = payload.get('items') or []
        if not isinstance(raw_items, list):
            raise InvalidField('items', 'items debe ser una lista')
        lines = []
        for index, item in enumerate(raw_items):
            if not isinstance(item, dict):
                raise InvalidLine(f'Línea {index + 1}: formato inválido', index)
            lines.append(SaleLineInput(
                product_id=_pick(item, 'productId', 'product_id') or None,
                quantity=item.get('quantity'),
                price=item.get('price'),
            ))
        return cls(
            lines=lines,
            payment_method=payload.get('paymentMethod') or payload.get('payment_method'),
            payment_reference=payload.get('paymentReference'),
            customer_name=payload.get('customerName'),
            customer_email=payload.get('customerEmail'),
            customer_phone=payload.get('customerPhone'),
            notes=payload.get('notes'),
        )

    def validate(self) -> 'CommitSaleCommand':
        """
        Checks that need no storage access, in protocol order.

        Returns a normalized copy: typed lines and a PaymentMethod member.
        """
        if not self.lines:
            raise EmptyOrder()

        if self.payment_method is None or (isinstance(self.payment_method, str) and not self.payment_method.strip()):
            raise MissingPaymentMethod()
        if isinstance(self.payment_method, PaymentMethod):
            method = self.payment_method
        else:
            raw = str(self.payment_method).strip().upper()
            if raw not in PaymentMethod.__members__:
                raise InvalidPaymentMethod(self.payment_method)
            method = PaymentMethod[raw]

        lines = [line.validate(index) for index, line in enumerate(self.lines)]
        if sum((line.subtotal for line in lines), Decimal('0')) > MAX_SALE_AMOUNT:
            raise InvalidField('items', 'El total de la venta supera el máximo permitido')

        return CommitSaleCommand(
            lines=lines,
            payment_method=method,
            payment_reference=parse_text(self.payment_reference, 'paymentReference', max_length=120),
            customer_name=parse_text(self.customer_name, 'customerName', max_length=200),
            customer_email=parse_text(self.customer_email, 'customerEmail', max_length=255),
            customer_phone=parse_text(self.customer_phone, 'customerPhone', max_length=50),
            notes=parse_text(self.notes, 'notes'),
        )

    def quantities_by_product(self) -> Dict[int, int]:
        """Requested units per product (a product may appear on several lines)."""
        totals: Dict[int, int] = {}
        for line in self.lines:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
        return totals


# =====================================================
# STOCK ADJUSTMENTS
# =====================================================

@dataclass
class AdjustStockCommand:
    product_id: Any
    quantity_delta: Any
    reason_code: Any = StockMovementType.ADJUSTMENT.value
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'AdjustStockCommand':
        reason = payload.get('reason') or payload.get('type') or StockMovementType.ADJUSTMENT.value
        return cls(
            product_id=payload.get('productId'),
            quantity_delta=payload.get('quantity'),
            reason_code=reason,
            notes=payload.get('notes'),
        )

    def validate(self) -> 'AdjustStockCommand':
        if self.product_id is None or self.product_id == '':
            raise InvalidField('productId', 'Producto y cantidad son requeridos')
        product_id = parse_int(self.product_id, 'productId')

        if self.quantity_delta is None or self.quantity_delta == '':
            raise InvalidField('quantity', 'Producto y cantidad son requeridos')
        try:
            quantity = parse_int(self.quantity_delta, 'quantity')
        except InvalidField:
            raise InvalidQuantity()
        if quantity == 0:
            raise InvalidQuantity('El ajuste no puede ser 0')
        if abs(quantity) > MAX_QUANTITY:
            raise InvalidQuantity(f'La cantidad supera el máximo ({MAX_QUANTITY})')

        if isinstance(self.reason_code, StockMovementType):
            reason = self.reason_code
        else:
            raw = str(self.reason_code).strip().upper()
            reason = StockMovementType.__members__.get(raw)
        if reason not in ADJUSTMENT_REASONS:
            raise InvalidReason(self.reason_code)

        return AdjustStockCommand(
            product_id=product_id,
            quantity_delta=quantity,
            reason_code=reason,
            notes=parse_text(self.notes, 'notes'),
        )


# =====================================================
# CATALOG
# =====================================================

@dataclass
class CategoryCreate:
    name: Any
    description: Any = None
    image: Any = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'CategoryCreate':
        return cls(
            name=payload.get('name'),
            description=payload.get('description'),
            image=payload.get('image'),
        )

    def validate(self) -> 'CategoryCreate':
        return CategoryCreate(
            name=parse_text(self.name, 'name', required=True, max_length=120),
            description=parse_text(self.description, 'description'),
            image=parse_text(self.image, 'image', max_length=500),
        )


@dataclass
class CategoryUpdate(_PatchMixin):
    name: Any = UNSET
    description: Any = UNSET
    image: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict) -> 'CategoryUpdate':
        return cls(
            name=_pick(payload, 'name'),
            description=_pick(payload, 'description'),
            image=_pick(payload, 'image'),
        )

    def validate(self) -> 'CategoryUpdate':
        out = CategoryUpdate()
        if self.name is not UNSET:
            out.name = parse_text(self.name, 'name', required=True, max_length=120)
        if self.description is not UNSET:
            out.description = parse_text(self.description, 'description')
        if self.image is not UNSET:
            out.image = parse_text(self.image, 'image', max_length=500)
        return out


def _parse_images(value):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
        raise InvalidField('images', 'images debe ser una lista de URLs')
    return value


def _parse_attributes(value):
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidField('attributes', 'attributes debe ser un objeto')
    return value


@dataclass
class ProductCreate:
    name: Any
    category_id: Any
    price: Any
    description: Any = None
    compare_price: Any = None
    cost: Any = None
    sku: Any = None
    stock: Any = 0
    min_stock: Any = None
    track_stock: Any = True
    images: Any = None
    attributes: Any = None
    is_active: Any = True
    is_featured: Any = False

    @classmethod
    def from_payload(cls, payload: dict) -> 'ProductCreate':
        def get(key, default=None):
            value = payload.get(key)
            return default if value is None else value

        return cls(
            name=payload.get('name'),
            category_id=payload.get('categoryId'),
            price=payload.get('price'),
            description=payload.get('description'),
            compare_price=payload.get('comparePrice'),
            cost=payload.get('cost'),
            sku=payload.get('sku'),
            stock=get('stock', 0),
            min_stock=payload.get('minStock'),
            track_stock=get('trackStock', True),
            images=payload.get('images'),
            attributes=payload.get('attributes'),
            is_active=get('isActive', True),
            is_featured=get('isFeatured', False),
        )

    def validate(self, default_min_stock=5) -> 'ProductCreate':
        if not self.name or self.price in (None, '') or self.category_id in (None, ''):
            raise InvalidField('name', 'Nombre, precio y categoría son requeridos')

        stock = parse_units(self.stock, 'stock')
        if stock < 0:
            raise InvalidField('stock', 'El stock inicial no puede ser negativo')
        min_stock = parse_units(self.min_stock, 'minStock', allow_none=True)
        if min_stock is not None and min_stock < 0:
            raise InvalidField('minStock', 'El stock mínimo no puede ser negativo')

        return ProductCreate(
            name=parse_text(self.name, 'name', required=True, max_length=200),
            category_id=parse_int(self.category_id, 'categoryId'),
            price=parse_money(self.price, 'price'),
            description=parse_text(self.description, 'description'),
            compare_price=parse_money(self.compare_price, 'comparePrice', allow_none=True),
            cost=parse_money(self.cost, 'cost', allow_none=True),
            sku=parse_text(self.sku, 'sku', max_length=64),
            stock=stock,
            min_stock=default_min_stock if min_stock is None else min_stock,
            track_stock=parse_bool(self.track_stock, 'trackStock'),
            images=_parse_images(self.images),
            attributes=_parse_attributes(self.attributes),
            is_active=parse_bool(self.is_active, 'isActive'),
            is_featured=parse_bool(self.is_featured, 'isFeatured'),
        )


@dataclass
class ProductUpdate(_PatchMixin):
    """Editable product fields. Stock is not one of them."""
    name: Any = UNSET
    category_id: Any = UNSET
    price: Any = UNSET
    description: Any = UNSET
    compare_price: Any = UNSET
    cost: Any = UNSET
    sku: Any = UNSET
    min_stock: Any = UNSET
    track_stock: Any = UNSET
    images: Any = UNSET
    attributes: Any = UNSET
    is_active: Any = UNSET
    is_featured: Any = UNSET

    _KEYS = {
        'name': 'name',
        'category_id': 'categoryId',
        'price': 'price',
        'description': 'description',
        'compare_price': 'comparePrice',
        'cost': 'cost',
        'sku': 'sku',
        'min_stock': 'minStock',
        'track_stock': 'trackStock',
        'images': 'images',
        'attributes': 'attributes',
        'is_active': 'isActive',
        'is_featured': 'isFeatured',
    }

    @classmethod
    def from_payload(cls, payload: dict) -> 'ProductUpdate':
        if 'stock' in payload:
            raise InvalidField(
                'stock',
                'El stock no se edita directamente; registre un ajuste de stock'
            )
        return cls(**{attr: _pick(payload, key) for attr, key in cls._KEYS.items()})

    def validate(self) -> 'ProductUpdate':
        out = ProductUpdate()
        if self.name is not UNSET:
            out.name = parse_text(self.name, 'name', required=True, max_length=200)
        if self.category_id is not UNSET:
            out.category_id = parse_int(self.category_id, 'categoryId')
        if self.price is not UNSET:
            out.price = parse_money(self.price, 'price')
        if self.description is not UNSET:
            out.description = parse_text(self.description, 'description')
        if self.compare_price is not UNSET:
            out.compare_price = parse_money(self.compare_price, 'comparePrice', allow_none=True)
        if self.cost is not UNSET:
            out.cost = parse_money(self.cost, 'cost', allow_none=True)
        if self.sku is not UNSET:
            out.sku = parse_text(self.sku, 'sku', max_length=64)
        if self.min_stock is not UNSET:
            out.min_stock = parse_units(self.min_stock, 'minStock')
            if out.min_stock < 0:
                raise InvalidField('minStock', 'El stock mínimo no puede ser negativo')
        if self.track_stock is not UNSET:
            out.track_stock = parse_bool(self.track_stock, 'trackStock')
        if self.images is not UNSET:
            out.images = _parse_images(self.images)
        if self.attributes is not UNSET:
            out.attributes = _parse_attributes(self.attributes)
        if self.is_active is not UNSET:
            out.is_active = parse_bool(self.is_active, 'isActive')
        if self.is_featured is not UNSET:
            out.is_featured = parse_bool(self.is_featured, 'isFeatured')
        return out


# =====================================================
# STORE SETTINGS
# =====================================================

@dataclass
class StoreUpdate(_PatchMixin):
    name: Any = UNSET
    description: Any = UNSET
    logo: Any = UNSET
    colors: Any = UNSET
    currency: Any = UNSET
    language: Any = UNSET
    timezone: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict) -> 'StoreUpdate':
        return cls(**{f.name: _pick(payload, f.name) for f in fields(cls)})

    def validate(self) -> 'StoreUpdate':
        out = StoreUpdate()
        if self.name is not UNSET:
            out.name = parse_text(self.name, 'name', required=True, max_length=200)
        if self.description is not UNSET:
            out.description = parse_text(self.description, 'description')
        if self.logo is not UNSET:
            out.logo = parse_text(self.logo, 'logo', max_length=500)
        if self.colors is not UNSET:
            if self.colors is not None and not isinstance(self.colors, dict):
                raise InvalidField('colors', 'colors debe ser un objeto')
            out.colors = self.colors
        if self.currency is not UNSET:
            currency = parse_text(self.currency, 'currency', required=True)
            if len(currency) != 3 or not currency.isalpha():
                raise InvalidField('currency', 'La moneda debe ser un código ISO de 3 letras')
            out.currency = currency.upper()
        if self.language is not UNSET:
            out.language = parse_text(self.language, 'language', required=True, max_length=10)
        if self.timezone is not UNSET:
            out.timezone = parse_text(self.timezone, 'timezone', required=True, max_length=64)
        return out
