"""Store model - the tenant root every other entity belongs to."""
from sqlalchemy import Column, String, Text, JSON, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backoffice.database import Base, BigId


class Store(Base):
    """Store model - each shop using the back office."""

    __tablename__ = 'store'

    id = Column(BigId, primary_key=True, autoincrement=True)
    slug = Column(String(80), nullable=False, unique=True)  # URL-safe identifier
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    logo = Column(String(500), nullable=True)
    colors = Column(JSON, nullable=True)
    currency = Column(String(3), nullable=False, default='USD')
    language = Column(String(10), nullable=False, default='es')
    timezone = Column(String(64), nullable=False, default='America/Argentina/Buenos_Aires')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    users = relationship('User', back_populates='store')

    def to_dict(self):
        return {
            'id': self.id,
            'slug': self.slug,
            'name': self.name,
            'description': self.description,
            'logo': self.logo,
            'colors': self.colors or {},
            'currency': self.currency,
            'language': self.language,
            'timezone': self.timezone,
        }

    def __repr__(self):
        return f"<Store(id={self.id}, slug='{self.slug}', name='{self.name}')>"
