"""
Stock ledger - the only code that writes Product.stock.

Every change to a product's counter goes through `append()`, which writes one
StockMovement row carrying the counter before and after the change. Callers
must first load the product with `lock_products()` inside their unit of work
so concurrent writers on the same product are serialized:

- PostgreSQL: SELECT ... FOR UPDATE on the product rows, taken in ascending id
  order so two multi-line sales can never deadlock each other.
- Every engine: Product.version (SQLAlchemy version_id_col) turns a write based
  on a stale read into StaleDataError, which `run_with_retry()` answers by
  re-running the whole protocol from a fresh read.

Invariant: replaying a product's movements in id order from 0 yields
Product.stock, and each movement's previous_stock is the prior new_stock.
"""
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from backoffice.commands import MAX_QUANTITY
from backoffice.exceptions import InvalidQuantity, InvalidStock, ProductNotFound
from backoffice.models import Product, StockMovement, StockMovementType

logger = logging.getLogger(__name__)


def lock_products(session, ctx, product_ids: Iterable[int], strict: bool = True) -> Dict[int, Product]:
    """
    Load the caller's store products FOR UPDATE, lowest id first.

    With `strict`, raises ProductNotFound for the lowest id that is missing
    or belongs to another store; otherwise missing ids are left out.
    """
    wanted = sorted(set(product_ids))
    if not wanted:
        return {}

    products = (
        session.query(Product)
        .filter(Product.id.in_(wanted), Product.store_id == ctx.store_id)
        .order_by(Product.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    found = {product.id: product for product in products}

    for product_id in wanted:
        if strict and product_id not in found:
            raise ProductNotFound(product_id)
    return found


def append(
    session,
    ctx,
    product: Product,
    movement_type: StockMovementType,
    quantity_delta: int,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    sale=None,
) -> StockMovement:
    """
    Apply `quantity_delta` to the product counter and record it.

    Runs inside the caller's transaction and never commits. The product must
    come from `lock_products()` for the same session.
    """
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int) or quantity_delta == 0:
        raise InvalidQuantity('El movimiento de stock no puede ser 0')
    if product.store_id != ctx.store_id:
        raise ProductNotFound(product.id)

    previous_stock = product.stock or 0
    new_stock = previous_stock + quantity_delta
    if new_stock < 0:
        raise InvalidStock(product.name, previous_stock, quantity_delta)
    if new_stock > MAX_QUANTITY:
        raise InvalidQuantity(f'El stock de {product.name} superaría el máximo ({MAX_QUANTITY})')

    movement = StockMovement(
        store_id=ctx.store_id,
        product_id=product.id,
        sale_id=sale.id if sale is not None else None,
        user_id=ctx.user_id,
        type=movement_type,
        quantity=quantity_delta,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        notes=notes,
    )
    product.stock = new_stock
    session.add(movement)
    # Flush now so the version check on the product UPDATE fires here,
    # inside the unit of work, rather than at commit
    session.flush()

    logger.info(
        f"[STOCK] {movement_type.value} product={product.id} "
        f"{previous_stock} -> {new_stock} ({quantity_delta:+d}) store={ctx.store_id}"
    )
    return movement


def run_with_retry(operation, session, *, attempts: Optional[int] = None, backoff_base: Optional[float] = None):
    """
    Execute a whole commit protocol, re-running it on concurrency failures.

    Retries on OperationalError (lock timeouts, deadlocks) and StaleDataError
    (another writer changed the counter after we read it). Business errors
    propagate on the first attempt.
    """
    if attempts is None:
        attempts = _config('SALE_COMMIT_RETRIES', 3)
    if backoff_base is None:
        backoff_base = _config('SALE_COMMIT_BACKOFF', 0.05)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return operation()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                logger.error(f"[STOCK] Giving up after {attempts} attempts: {exc}")
                raise
            logger.warning(f"[STOCK] Concurrent stock write detected (attempt {attempt + 1}/{attempts}): {exc}")
            if backoff_base:
                time.sleep(backoff_base * (2 ** attempt))


def _config(key, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


# =====================================================
# AUDIT
# =====================================================

@dataclass
class LedgerDiscrepancy:
    product_id: int
    product_name: str
    counter: int
    replayed: int
    broken_chain_at: Optional[int] = None

    def to_dict(self):
        return {
            'productId': self.product_id,
            'productName': self.product_name,
            'counter': self.counter,
            'replayed': self.replayed,
            'brokenChainAt': self.broken_chain_at,
        }


def movements_for(session, store_id: int, product_id: int) -> List[StockMovement]:
    return (
        session.query(StockMovement)
        .filter(StockMovement.store_id == store_id, StockMovement.product_id == product_id)
        .order_by(StockMovement.id)
        .all()
    )


def replay_stock(session, store_id: int, product_id: int) -> int:
    """Stock obtained by summing the product's movements from zero."""
    return sum(m.quantity for m in movements_for(session, store_id, product_id))


def first_broken_link(movements: List[StockMovement]) -> Optional[int]:
    """Id of the first movement whose previous_stock is not the prior new_stock."""
    expected = 0
    for movement in movements:
        if movement.previous_stock != expected or movement.new_stock != movement.previous_stock + movement.quantity:
            return movement.id
        expected = movement.new_stock
    return None


def verify_ledger(session, store_id: int) -> List[LedgerDiscrepancy]:
    """Check every product of a store against its ledger; empty list means consistent."""
    discrepancies = []
    products = session.query(Product).filter(Product.store_id == store_id).order_by(Product.id).all()
    for product in products:
        movements = movements_for(session, store_id, product.id)
        replayed = sum(m.quantity for m in movements)
        broken = first_broken_link(movements)
        if replayed != product.stock or broken is not None:
            discrepancies.append(LedgerDiscrepancy(
                product_id=product.id,
                product_name=product.name,
                counter=product.stock,
                replayed=replayed,
                broken_chain_at=broken,
            ))
    if discrepancies:
        logger.warning(f"[STOCK] Ledger check for store {store_id}: {len(discrepancies)} discrepancies")
    return discrepancies
