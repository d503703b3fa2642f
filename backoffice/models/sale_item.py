"""Sale Item model."""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from backoffice.database import Base, BigId
from backoffice.utils.formatters import money


class SaleItem(Base):
    """
    Sale Item (detalle de venta).

    Name, SKU and price are snapshots taken at sale time so the sale reads the
    same after the product is edited or removed.
    """

    __tablename__ = 'sale_item'

    id = Column(BigId, primary_key=True, autoincrement=True)
    sale_id = Column(BigId, ForeignKey('sale.id'), nullable=False, index=True)
    product_id = Column(BigId, ForeignKey('product.id', ondelete='SET NULL'), nullable=True, index=True)
    product_name = Column(String, nullable=False)
    product_sku = Column(String, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    # Relationships
    sale = relationship('Sale', back_populates='items')
    product = relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'productName': self.product_name,
            'productSku': self.product_sku,
            'price': money(self.price),
            'quantity': self.quantity,
            'subtotal': money(self.subtotal),
        }

    def __repr__(self):
        return f"<SaleItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
