"""Stock Movement model - one row per stock-affecting event."""
import enum
from sqlalchemy import (
    Column, String, Text, Integer, DateTime, Enum, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backoffice.database import Base, BigId
from backoffice.utils.formatters import money


class StockMovementType(enum.Enum):
    """Stock movement type enum."""
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    PURCHASE = "PURCHASE"
    RETURN = "RETURN"
    DAMAGED = "DAMAGED"
    THEFT = "THEFT"


# Reason codes accepted by manual adjustments (everything except SALE)
ADJUSTMENT_REASONS = tuple(t for t in StockMovementType if t is not StockMovementType.SALE)


class StockMovement(Base):
    """
    Stock Movement (movimiento de stock).

    Append-only: rows are inserted by the stock ledger and never updated or
    deleted. previous_stock/new_stock are the counter values around the event.
    """

    __tablename__ = 'stock_movement'
    __table_args__ = (
        CheckConstraint('quantity <> 0', name='ck_movement_quantity_non_zero'),
        CheckConstraint('new_stock = previous_stock + quantity', name='ck_movement_snapshot_chain'),
        CheckConstraint('new_stock >= 0', name='ck_movement_new_stock_non_negative'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    store_id = Column(BigId, ForeignKey('store.id'), nullable=False, index=True)
    product_id = Column(BigId, ForeignKey('product.id'), nullable=False, index=True)
    sale_id = Column(BigId, ForeignKey('sale.id'), nullable=True, index=True)
    user_id = Column(BigId, ForeignKey('app_user.id'), nullable=False)
    type = Column(Enum(StockMovementType, name='stock_movement_type'), nullable=False)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    store = relationship('Store')
    product = relationship('Product', back_populates='movements')
    sale = relationship('Sale', back_populates='movements')
    user = relationship('User')

    def to_dict(self):
        data = {
            'id': self.id,
            'type': self.type.value,
            'quantity': self.quantity,
            'previousStock': self.previous_stock,
            'newStock': self.new_stock,
            'reason': self.reason,
            'notes': self.notes,
            'productId': self.product_id,
            'saleId': self.sale_id,
            'userId': self.user_id,
            'storeId': self.store_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        if self.product is not None:
            data['product'] = {'name': self.product.name, 'sku': self.product.sku}
        if self.sale is not None:
            data['sale'] = {
                'id': self.sale.id,
                'total': money(self.sale.total),
                'paymentMethod': self.sale.payment_method.value,
            }
        return data

    def __repr__(self):
        return (
            f"<StockMovement(id={self.id}, type={self.type.value}, product_id={self.product_id}, "
            f"{self.previous_stock}->{self.new_stock})>"
        )
