"""Models package - exports all SQLAlchemy models."""
from backoffice.models.store import Store
from backoffice.models.user import User, UserRole, ROLE_LEVELS
from backoffice.models.category import Category
from backoffice.models.product import Product
from backoffice.models.sale import Sale, PaymentMethod
from backoffice.models.sale_item import SaleItem
from backoffice.models.stock_movement import StockMovement, StockMovementType, ADJUSTMENT_REASONS

__all__ = [
    'Store', 'User', 'UserRole', 'ROLE_LEVELS',
    'Category', 'Product',
    'Sale', 'PaymentMethod', 'SaleItem',
    'StockMovement', 'StockMovementType', 'ADJUSTMENT_REASONS',
]
