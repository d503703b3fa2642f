"""Explicit per-request identity passed into every service call."""
from dataclasses import dataclass

from backoffice.exceptions import ForbiddenError
from backoffice.models.user import ROLE_LEVELS


@dataclass(frozen=True)
class RequestContext:
    """
    Who is acting and on which store.

    Built by the middleware from the session (or by tests and CLI commands
    directly). Services scope every read and write by `store_id` and record
    `user_id` on the rows they create.
    """
    store_id: int
    user_id: int
    role: str = 'STAFF'

    def has_role(self, min_role):
        return ROLE_LEVELS.get(self.role, 0) >= ROLE_LEVELS.get(min_role, 1)

    def require_role(self, min_role):
        if not self.has_role(min_role):
            raise ForbiddenError(f'Necesitas rol de {min_role} o superior para esta acción.')
