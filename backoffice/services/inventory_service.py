"""
Inventory service - manual stock adjustments and the movement history.
"""
import logging
from typing import List, Optional

from backoffice.blueprints.metrics import record_movement
from backoffice.commands import AdjustStockCommand, parse_int
from backoffice.database import get_session, unit_of_work
from backoffice.exceptions import InvalidField
from backoffice.models import StockMovement, StockMovementType
from backoffice.services import stock_ledger_service as ledger
from backoffice.services.cache_service import invalidate_reports
from backoffice.utils.pagination import clamp_limit

logger = logging.getLogger(__name__)


def adjust_stock(ctx, command: AdjustStockCommand, session=None) -> StockMovement:
    """
    Apply one reason-coded stock correction (tenant-scoped).

    The ledger row's type is the reason code (PURCHASE, RETURN, DAMAGED,
    THEFT or ADJUSTMENT) and the code is also kept in `reason`.

    Raises:
        InvalidField, InvalidQuantity, InvalidReason: before storage access
        ProductNotFound: product missing or from another store
        InvalidStock: the counter would go below zero
    """
    command = command.validate()
    session = session or get_session()

    movement = ledger.run_with_retry(lambda: _adjust_once(session, ctx, command), session)

    invalidate_reports(ctx.store_id)
    record_movement(movement)
    return movement


def _adjust_once(session, ctx, command: AdjustStockCommand) -> StockMovement:
    with unit_of_work(session):
        product = ledger.lock_products(session, ctx, [command.product_id])[command.product_id]
        movement = ledger.append(
            session, ctx, product,
            command.reason_code,
            command.quantity_delta,
            reason=command.reason_code.value,
            notes=command.notes,
        )
    return movement


def record_initial_stock(session, ctx, product, quantity: int) -> Optional[StockMovement]:
    """
    Ledger entry for the stock a product is created with.

    Called inside the catalog's unit of work right after the product row is
    flushed with stock 0, so the ledger replay starts from zero.
    """
    if quantity <= 0:
        return None
    return ledger.append(
        session, ctx, product,
        StockMovementType.ADJUSTMENT,
        quantity,
        reason='STOCK_INICIAL',
        notes='Stock inicial',
    )


def list_movements(ctx, product_id=None, movement_type=None, limit=None, session=None) -> List[StockMovement]:
    """Store movements newest first, optionally filtered by product and type."""
    session = session or get_session()
    query = session.query(StockMovement).filter(StockMovement.store_id == ctx.store_id)

    if product_id not in (None, ''):
        query = query.filter(StockMovement.product_id == parse_int(product_id, 'productId'))

    if movement_type:
        raw = str(movement_type).strip().upper()
        if raw not in StockMovementType.__members__:
            raise InvalidField('type', f'Tipo de movimiento inválido: {movement_type}')
        query = query.filter(StockMovement.type == StockMovementType[raw])

    return (
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(clamp_limit(limit))
        .all()
    )
