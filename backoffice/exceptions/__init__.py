"""Custom exceptions for the store back office."""


class BackofficeError(Exception):
    """Base exception for all application errors."""
    code = 'INTERNAL_ERROR'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['error'] = self.message
        rv['code'] = self.code
        rv['status'] = 'error'
        return rv


# =====================================================
# VALIDATION (400) - rejected before any storage access
# =====================================================

class ValidationError(BackofficeError):
    """Missing or malformed input."""
    code = 'VALIDATION_ERROR'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class EmptyOrder(ValidationError):
    code = 'EMPTY_ORDER'

    def __init__(self):
        super().__init__('Debe incluir al menos un producto')


class MissingPaymentMethod(ValidationError):
    code = 'MISSING_PAYMENT_METHOD'

    def __init__(self):
        super().__init__('Método de pago es requerido')


class InvalidPaymentMethod(ValidationError):
    code = 'INVALID_PAYMENT_METHOD'

    def __init__(self, method):
        super().__init__(f'Método de pago inválido: {method}', payload={'paymentMethod': method})


class InvalidLine(ValidationError):
    """A sale line with a bad quantity, price or product reference."""
    code = 'INVALID_LINE'

    def __init__(self, message, index=None):
        super().__init__(message, payload={'line': index} if index is not None else None)


class InvalidQuantity(ValidationError):
    code = 'INVALID_QUANTITY'

    def __init__(self, message='La cantidad debe ser un entero distinto de 0'):
        super().__init__(message)


class InvalidReason(ValidationError):
    code = 'INVALID_REASON'

    def __init__(self, reason):
        super().__init__(f'Motivo de ajuste inválido: {reason}', payload={'reason': reason})


class InvalidField(ValidationError):
    code = 'INVALID_FIELD'

    def __init__(self, field, message):
        super().__init__(message, payload={'field': field})


# =====================================================
# NOT FOUND (404)
# =====================================================

class NotFoundError(BackofficeError):
    """Exception raised when a resource is not found."""
    code = 'NOT_FOUND'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ProductNotFound(NotFoundError):
    code = 'PRODUCT_NOT_FOUND'

    def __init__(self, product_id):
        super().__init__(f'Producto {product_id} no encontrado', payload={'productId': product_id})


class CategoryNotFound(NotFoundError):
    code = 'CATEGORY_NOT_FOUND'

    def __init__(self, category_id):
        super().__init__('Categoría no encontrada', payload={'categoryId': category_id})


class SaleNotFound(NotFoundError):
    code = 'SALE_NOT_FOUND'

    def __init__(self, sale_id):
        super().__init__('Venta no encontrada', payload={'saleId': sale_id})


class StoreNotFound(NotFoundError):
    code = 'STORE_NOT_FOUND'

    def __init__(self, store_id):
        super().__init__('Tienda no encontrada', payload={'storeId': store_id})


# =====================================================
# CONFLICT (409) - detected inside the unit of work
# =====================================================

class ConflictError(BackofficeError):
    """The request is valid but clashes with current state."""
    code = 'CONFLICT'

    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class InsufficientStock(ConflictError):
    """Raised when a sale asks for more units than are on hand."""
    code = 'INSUFFICIENT_STOCK'

    def __init__(self, product_name, required, available, product_id=None):
        self.product_name = product_name
        self.required = required
        self.available = available
        message = f"Stock insuficiente para {product_name}: se requieren {required}, disponible {available}"
        super().__init__(message, payload={
            'productId': product_id,
            'productName': product_name,
            'requested': required,
            'available': available,
        })


class InvalidStock(ConflictError):
    """Raised when a stock change would leave the counter below zero."""
    code = 'INVALID_STOCK'

    def __init__(self, product_name, previous_stock, quantity):
        message = (
            f'Stock no puede ser negativo: {product_name} tiene {previous_stock}, '
            f'ajuste {quantity:+d}'
        )
        super().__init__(message, payload={
            'productName': product_name,
            'previousStock': previous_stock,
            'quantity': quantity,
        })


class DuplicateSlug(ConflictError):
    code = 'DUPLICATE_SLUG'

    def __init__(self, entity_label, slug):
        super().__init__(f'Ya existe {entity_label} con ese nombre', payload={'slug': slug})


class DuplicateSku(ConflictError):
    code = 'DUPLICATE_SKU'

    def __init__(self, sku):
        super().__init__('Ya existe un producto con ese SKU', payload={'sku': sku})


class CategoryInUse(ConflictError):
    code = 'CATEGORY_IN_USE'

    def __init__(self, product_count):
        super().__init__(
            'No se puede eliminar una categoría con productos',
            payload={'products': product_count}
        )


class ProductInUse(ConflictError):
    code = 'PRODUCT_IN_USE'

    def __init__(self, movements, sale_items):
        super().__init__(
            'El producto tiene movimientos o ventas registradas; desactívelo en lugar de eliminarlo',
            payload={'movements': movements, 'saleItems': sale_items}
        )


# =====================================================
# ACCESS (401 / 403)
# =====================================================

class UnauthorizedError(BackofficeError):
    """Raised when the request carries no valid session."""
    code = 'UNAUTHORIZED'

    def __init__(self, message="No autorizado"):
        super().__init__(message, 401)


class ForbiddenError(BackofficeError):
    """Raised when a user lacks permission for an action."""
    code = 'FORBIDDEN'

    def __init__(self, message="No tienes permisos para esta acción"):
        super().__init__(message, 403)
