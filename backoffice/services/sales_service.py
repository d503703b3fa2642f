"""
Sales service with transactional logic - store scoped.
Handles sale commit, stock decrement and the matching ledger entries.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from backoffice.blueprints.metrics import record_sale, record_sale_rejected
from backoffice.commands import CommitSaleCommand
from backoffice.database import get_session, unit_of_work
from backoffice.exceptions import (
    BackofficeError, InsufficientStock, InvalidPaymentMethod, ProductNotFound, SaleNotFound
)
from backoffice.models import PaymentMethod, Sale, SaleItem, StockMovementType
from backoffice.services import stock_ledger_service as ledger
from backoffice.services.cache_service import invalidate_reports
from backoffice.utils.pagination import clamp_limit
from backoffice.utils.formatters import money_ar, quantize_money

logger = logging.getLogger(__name__)


def commit_sale(ctx, command: CommitSaleCommand, session=None) -> Sale:
    """
    Commit a sale: validate, check stock, persist and decrement in one unit.

    Steps:
        1. Validate the command (empty order, payment method, line shapes)
           without touching storage.
        2. Lock every referenced product of the store, lowest id first.
        3. Reject the whole sale if a product is missing or a tracked product
           lacks the summed requested quantity.
        4. Insert Sale + SaleItems (name/sku snapshotted from the product,
           price from the line) and append one SALE ledger entry per tracked
           line.
        5. Commit. Any failure rolls every write back.

    Lock timeouts and stale counters re-run steps 2-5 from a fresh read.

    Raises:
        EmptyOrder, MissingPaymentMethod, InvalidPaymentMethod, InvalidLine,
        ProductNotFound, InsufficientStock
    """
    try:
        command = command.validate()
    except BackofficeError as e:
        record_sale_rejected(e.code)
        raise

    session = session or get_session()

    try:
        sale = ledger.run_with_retry(lambda: _commit_once(session, ctx, command), session)
    except BackofficeError as e:
        record_sale_rejected(e.code)
        logger.info(f"[SALE] Rejected for store {ctx.store_id}: {e.message}")
        raise

    invalidate_reports(ctx.store_id)
    record_sale(sale, sale.movements)
    logger.info(
        f"[SALE] #{sale.id} committed: {money_ar(sale.total)} {sale.payment_method.value}, "
        f"{len(sale.items)} items, store={ctx.store_id} user={ctx.user_id}"
    )
    return sale


def _commit_once(session, ctx, command: CommitSaleCommand) -> Sale:
    with unit_of_work(session):
        requested = command.quantities_by_product()
        products = ledger.lock_products(session, ctx, requested.keys(), strict=False)

        # Walk lines in order so the first offending line is the one reported
        claimed = {}
        for line in command.lines:
            product = products.get(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)
            claimed[product.id] = claimed.get(product.id, 0) + line.quantity
            if product.track_stock and product.stock < claimed[product.id]:
                raise InsufficientStock(product.name, claimed[product.id], product.stock, product_id=product.id)

        total = quantize_money(sum((line.subtotal for line in command.lines), Decimal('0')))

        sale = Sale(
            store_id=ctx.store_id,
            user_id=ctx.user_id,
            total=total,
            payment_method=command.payment_method,
            payment_reference=command.payment_reference,
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            customer_phone=command.customer_phone,
            notes=command.notes,
        )
        session.add(sale)
        session.flush()

        for line in command.lines:
            product = products[line.product_id]
            if line.price != quantize_money(product.price):
                # Caller-supplied price is trusted (till discounts); leave a trace
                logger.info(
                    f"[SALE] #{sale.id} product {product.id} sold at {line.price} "
                    f"(list price {product.price})"
                )
            session.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                price=line.price,
                quantity=line.quantity,
                subtotal=line.subtotal,
            ))

            if product.track_stock:
                ledger.append(
                    session, ctx, product,
                    StockMovementType.SALE,
                    -line.quantity,
                    notes=f'Venta #{sale.id}',
                    sale=sale,
                )

        session.flush()
    return sale


def list_sales(ctx, payment_method: Optional[str] = None, limit=None, session=None) -> List[Sale]:
    """Latest sales of the store, optionally filtered by payment method."""
    session = session or get_session()
    query = session.query(Sale).filter(Sale.store_id == ctx.store_id)

    if payment_method:
        raw = str(payment_method).strip().upper()
        if raw not in PaymentMethod.__members__:
            raise InvalidPaymentMethod(payment_method)
        query = query.filter(Sale.payment_method == PaymentMethod[raw])

    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(clamp_limit(limit)).all()


def get_sale(ctx, sale_id: int, session=None) -> Sale:
    session = session or get_session()
    sale = session.query(Sale).filter(Sale.id == sale_id, Sale.store_id == ctx.store_id).first()
    if sale is None:
        raise SaleNotFound(sale_id)
    return sale
