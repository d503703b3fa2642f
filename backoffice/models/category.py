"""Category model."""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backoffice.database import Base, BigId


class Category(Base):
    """Product Category."""

    __tablename__ = 'category'
    __table_args__ = (
        UniqueConstraint('store_id', 'slug', name='uq_category_store_slug'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    store_id = Column(BigId, ForeignKey('store.id'), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    store = relationship('Store')
    products = relationship('Product', back_populates='category')

    def to_dict(self, product_count=None):
        data = {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'image': self.image,
            'storeId': self.store_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        if product_count is not None:
            data['_count'] = {'products': product_count}
        return data

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
