"""User model - back-office staff bound to one store with a role."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from backoffice.database import Base, BigId


class UserRole(enum.Enum):
    """User roles within a store."""
    OWNER = 'OWNER'
    ADMIN = 'ADMIN'
    STAFF = 'STAFF'


# Higher number wins
ROLE_LEVELS = {'OWNER': 3, 'ADMIN': 2, 'STAFF': 1}


class User(Base):
    """User model - staff account with email/password login."""

    __tablename__ = 'app_user'

    id = Column(BigId, primary_key=True, autoincrement=True)
    store_id = Column(BigId, ForeignKey('store.id'), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.STAFF.value)  # OWNER, ADMIN, STAFF
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    store = relationship('Store', back_populates='users')

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'storeId': self.store_id,
        }

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
