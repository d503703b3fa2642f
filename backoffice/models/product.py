"""Product model."""
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, Numeric, JSON, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backoffice.database import Base, BigId
from backoffice.utils.formatters import money


class Product(Base):
    """
    Product model.

    `stock` is the denormalized on-hand counter. It is only written by the
    stock ledger (sales and adjustments), which keeps it equal to the replay
    of the product's StockMovement rows. `version` is bumped on every flush so
    a write based on a stale read fails with StaleDataError.
    """

    __tablename__ = 'product'
    __table_args__ = (
        UniqueConstraint('store_id', 'slug', name='uq_product_store_slug'),
        UniqueConstraint('store_id', 'sku', name='uq_product_store_sku'),
        CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
        CheckConstraint('price >= 0', name='ck_product_price_non_negative'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    store_id = Column(BigId, ForeignKey('store.id'), nullable=False, index=True)
    category_id = Column(BigId, ForeignKey('category.id'), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    sku = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    compare_price = Column(Numeric(10, 2), nullable=True)
    cost = Column(Numeric(10, 2), nullable=True)  # Precio de compra
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    min_stock = Column(Integer, nullable=False, default=5, server_default='5')
    track_stock = Column(Boolean, nullable=False, default=True)
    images = Column(JSON, nullable=True)
    attributes = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {'version_id_col': version}

    # Relationships
    store = relationship('Store')
    category = relationship('Category', back_populates='products')
    movements = relationship('StockMovement', back_populates='product', order_by='StockMovement.id')

    @property
    def is_low_stock(self):
        return bool(self.track_stock and self.stock <= self.min_stock)

    @property
    def is_out_of_stock(self):
        return bool(self.track_stock and self.stock == 0)

    def to_dict(self, include_category=True):
        data = {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'sku': self.sku,
            'description': self.description,
            'price': money(self.price),
            'comparePrice': money(self.compare_price) if self.compare_price is not None else None,
            'cost': money(self.cost) if self.cost is not None else None,
            'stock': self.stock,
            'minStock': self.min_stock,
            'trackStock': self.track_stock,
            'images': self.images or [],
            'attributes': self.attributes or {},
            'isActive': self.is_active,
            'isFeatured': self.is_featured,
            'categoryId': self.category_id,
            'storeId': self.store_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        if include_category and self.category is not None:
            data['category'] = {'id': self.category.id, 'name': self.category.name, 'slug': self.category.slug}
        return data

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}', stock={self.stock})>"
