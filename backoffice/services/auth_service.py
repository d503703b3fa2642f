"""
Authentication service.

Email/password login for back-office staff. The resulting user carries the
identity tuple (store, user, role) that every request context is built from.
"""
import logging
from typing import Optional

from backoffice.context import RequestContext
from backoffice.database import get_session
from backoffice.exceptions import UnauthorizedError
from backoffice.models import User

logger = logging.getLogger(__name__)


def authenticate(email, password, session=None) -> User:
    """
    Check credentials of an active user.

    Raises:
        UnauthorizedError: unknown email, wrong password or inactive user
            (same message for all three)
    """
    if not email or not password:
        raise UnauthorizedError('Email y contraseña son requeridos')

    session = session or get_session()
    email = email.strip().lower()
    user = session.query(User).filter(User.email == email).first()

    if not user or not user.check_password(password) or not user.active:
        logger.warning(f"Failed login attempt for {email}")
        raise UnauthorizedError('Credenciales inválidas')

    logger.info(f"User {user.id} logged in (store {user.store_id})")
    return user


def create_user(session, store_id, email, password, name=None, role='STAFF') -> User:
    """Add a user to a store. Caller commits."""
    user = User(
        store_id=store_id,
        email=email.strip().lower(),
        name=name,
        role=role,
        active=True,
    )
    user.set_password(password)
    session.add(user)
    session.flush()
    return user


def context_for(user: Optional[User]) -> Optional[RequestContext]:
    if user is None:
        return None
    return RequestContext(store_id=user.store_id, user_id=user.id, role=user.role)
