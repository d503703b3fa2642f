"""Middleware for authentication and store context."""
from functools import wraps
from flask import session, g, request

from backoffice.database import get_session
from backoffice.exceptions import ForbiddenError, InvalidField, UnauthorizedError
from backoffice.models import User
from backoffice.services.auth_service import context_for


def load_user_and_store():
    """
    Load current user and request context into g.

    Called before each request. Sets g.user and g.ctx (RequestContext) when
    the session holds the id of an active user; both stay None otherwise.
    """
    g.user = None
    g.ctx = None

    user_id = session.get('user_id')
    if not user_id:
        return

    user = get_session().query(User).filter_by(id=user_id, active=True).first()
    if user is None:
        # Deactivated or deleted since login
        session.pop('user_id', None)
        return

    g.user = user
    g.ctx = context_for(user)


def require_login(f):
    """
    Decorator: Require user to be logged in.

    Raises UnauthorizedError, rendered as 401 JSON by the app error handler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('ctx') is None:
            raise UnauthorizedError()
        return f(*args, **kwargs)
    return decorated_function


def require_role(min_role='STAFF'):
    """
    Decorator: Require minimum role in the store.

    Roles hierarchy: OWNER > ADMIN > STAFF

    Must be used AFTER require_login.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not g.ctx.has_role(min_role):
                raise ForbiddenError(f'Necesitas rol de {min_role} o superior para esta acción.')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def json_body():
    """Request body as a dict; an empty or non-JSON body counts as {}."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidField('body', 'El cuerpo de la petición debe ser un objeto JSON')
    return payload
