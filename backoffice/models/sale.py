"""Sale model."""
import enum
from sqlalchemy import Column, String, Text, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backoffice.database import Base, BigId
from backoffice.utils.formatters import money


class PaymentMethod(enum.Enum):
    """Accepted payment methods."""
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    QR = "QR"


class Sale(Base):
    """Sale (venta confirmada). Immutable once committed."""

    __tablename__ = 'sale'

    id = Column(BigId, primary_key=True, autoincrement=True)
    store_id = Column(BigId, ForeignKey('store.id'), nullable=False, index=True)
    user_id = Column(BigId, ForeignKey('app_user.id'), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod, name='payment_method'), nullable=False)
    payment_reference = Column(String(120), nullable=True)
    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    store = relationship('Store')
    user = relationship('User')
    items = relationship('SaleItem', back_populates='sale', order_by='SaleItem.id')
    movements = relationship('StockMovement', back_populates='sale', order_by='StockMovement.id')

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'total': money(self.total),
            'paymentMethod': self.payment_method.value,
            'paymentReference': self.payment_reference,
            'customerName': self.customer_name,
            'customerEmail': self.customer_email,
            'customerPhone': self.customer_phone,
            'notes': self.notes,
            'storeId': self.store_id,
            'userId': self.user_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            '_count': {'items': len(self.items)},
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total}, payment_method={self.payment_method.value})>"
