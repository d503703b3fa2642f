"""Report service - inventory reports (low stock, valuation, summary)."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from sqlalchemy.orm import joinedload

from backoffice.database import get_session
from backoffice.models import Product
from backoffice.services.cache_service import cached_report
from backoffice.utils.formatters import money, quantize_money

logger = logging.getLogger(__name__)

STATUS_OUT_OF_STOCK = 'SIN_STOCK'
STATUS_LOW_STOCK = 'STOCK_BAJO'

_ZERO = Decimal('0')


def _dec(value) -> Decimal:
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def margin_percent(profit, cost_value) -> float:
    """profit / cost_value * 100 rounded to 2 decimals; 0 when there is no cost."""
    cost_value = _dec(cost_value)
    if cost_value <= 0:
        return 0.0
    margin = _dec(profit) / cost_value * 100
    return float(margin.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def _category_name(product):
    category = getattr(product, 'category', None)
    return category.name if category is not None else None


# =====================================================
# PURE BUILDERS (operate on a product snapshot)
# =====================================================

def build_low_stock_report(products: Iterable) -> dict:
    """Tracked products at or below their minimum."""
    rows = []
    for p in products:
        if not (p.track_stock and p.stock <= p.min_stock):
            continue
        rows.append({
            'id': p.id,
            'name': p.name,
            'sku': p.sku,
            'stock': p.stock,
            'minStock': p.min_stock,
            'category': _category_name(p),
            'status': STATUS_OUT_OF_STOCK if p.stock == 0 else STATUS_LOW_STOCK,
        })
    return {'total': len(rows), 'products': rows}


def build_valuation_report(products: Iterable) -> dict:
    """Cost value vs sale value of the stock on hand, per product and in total."""
    rows = []
    total_cost = _ZERO
    total_sale = _ZERO

    for p in products:
        unit_cost = _dec(p.cost)
        unit_price = _dec(p.price)
        cost_value = quantize_money(unit_cost * p.stock)
        sale_value = quantize_money(unit_price * p.stock)
        profit = sale_value - cost_value

        total_cost += cost_value
        total_sale += sale_value

        rows.append({
            'id': p.id,
            'name': p.name,
            'sku': p.sku,
            'stock': p.stock,
            'unitCost': money(unit_cost),
            'unitPrice': money(unit_price),
            'costValue': money(cost_value),
            'saleValue': money(sale_value),
            'potentialProfit': money(profit),
            'margin': margin_percent(profit, cost_value),
            'category': _category_name(p),
        })

    total_profit = total_sale - total_cost
    return {
        'products': rows,
        'totals': {
            'totalCostValue': money(total_cost),
            'totalSaleValue': money(total_sale),
            'totalPotentialProfit': money(total_profit),
            'averageMargin': margin_percent(total_profit, total_cost),
        },
    }


def build_inventory_summary(products: Iterable) -> dict:
    products = list(products)

    total_units = sum(p.stock for p in products)
    total_value = quantize_money(sum((_dec(p.price) * p.stock for p in products), _ZERO))
    total_cost = quantize_money(sum((_dec(p.cost) * p.stock for p in products), _ZERO))
    average_price = quantize_money(total_value / total_units) if total_units > 0 else _ZERO

    return {
        'totalProducts': len(products),
        'activeProducts': sum(1 for p in products if p.is_active),
        'totalUnits': total_units,
        'totalValue': money(total_value),
        'totalCost': money(total_cost),
        'potentialProfit': money(total_value - total_cost),
        'lowStockCount': sum(1 for p in products if p.track_stock and p.stock <= p.min_stock),
        'outOfStockCount': sum(1 for p in products if p.track_stock and p.stock == 0),
        'averagePrice': money(average_price),
    }


# =====================================================
# LOADERS (store-scoped, cached)
# =====================================================

REPORT_BUILDERS = {
    'summary': build_inventory_summary,
    'low-stock': build_low_stock_report,
    'valuation': build_valuation_report,
}


def _load_products(session, store_id):
    return (
        session.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.store_id == store_id)
        .order_by(Product.name, Product.id)
        .all()
    )


def get_report(ctx, report_type: str = 'summary', session=None) -> dict:
    """
    Build one inventory report for the caller's store.

    Unknown report types fall back to the summary. Results are memoized per
    store in Redis when the cache is up; stock and catalog writes drop them.
    """
    if report_type not in REPORT_BUILDERS:
        report_type = 'summary'
    builder = REPORT_BUILDERS[report_type]
    session = session or get_session()

    def load():
        return builder(_load_products(session, ctx.store_id))

    return cached_report(ctx.store_id, report_type, load)


def get_low_stock_report(ctx, session=None) -> dict:
    return get_report(ctx, 'low-stock', session=session)


def get_inventory_valuation(ctx, session=None) -> dict:
    return get_report(ctx, 'valuation', session=session)


def get_inventory_summary(ctx, session=None) -> dict:
    return get_report(ctx, 'summary', session=session)
