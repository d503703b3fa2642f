"""Store settings service."""
import logging

from backoffice.commands import StoreUpdate
from backoffice.database import get_session, unit_of_work
from backoffice.exceptions import StoreNotFound
from backoffice.models import Store

logger = logging.getLogger(__name__)


def get_store(ctx, session=None) -> Store:
    session = session or get_session()
    store = session.query(Store).filter(Store.id == ctx.store_id).first()
    if store is None:
        raise StoreNotFound(ctx.store_id)
    return store


def update_store(ctx, command: StoreUpdate, session=None) -> Store:
    """Apply the settings sent by the caller. Requires ADMIN or above."""
    ctx.require_role('ADMIN')
    command = command.validate()
    session = session or get_session()
    changes = command.changes()

    with unit_of_work(session):
        store = get_store(ctx, session=session)
        for attr, value in changes.items():
            setattr(store, attr, value)

    logger.info(f"[STORE] Settings updated for store {ctx.store_id}: {sorted(changes)}")
    return store
