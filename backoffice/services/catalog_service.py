"""
Catalog service - categories and products (store scoped).

Product stock is never written here directly: the initial stock of a new
product goes through the ledger as a STOCK_INICIAL adjustment, and later
changes only happen through sales or stock adjustments.
"""
import logging
from typing import List, Optional

from flask import current_app, has_app_context
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from backoffice.commands import (
    CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate, parse_int
)
from backoffice.database import get_session, unit_of_work
from backoffice.exceptions import (
    CategoryInUse, CategoryNotFound, DuplicateSku, DuplicateSlug,
    InvalidField, ProductInUse, ProductNotFound
)
from backoffice.models import Category, Product, SaleItem, StockMovement
from backoffice.services.cache_service import invalidate_reports
from backoffice.services.inventory_service import record_initial_stock
from backoffice.utils.formatters import generate_slug

logger = logging.getLogger(__name__)


def _slug_for(name, field='name'):
    slug = generate_slug(name)
    if not slug:
        raise InvalidField(field, 'El nombre debe contener letras o números')
    return slug


def _translate_integrity_error(e: IntegrityError, label: str, slug: str, sku: Optional[str] = None):
    """Map a unique-constraint race to the same error the pre-check raises."""
    error_msg = str(e.orig).lower()
    if sku and 'sku' in error_msg:
        return DuplicateSku(sku)
    if slug is not None and ('unique' in error_msg or 'duplicate' in error_msg):
        return DuplicateSlug(label, slug)
    return None


# =====================================================
# CATEGORIES
# =====================================================

def list_categories(ctx, session=None):
    """Categories of the store with their product counts, by name."""
    session = session or get_session()
    rows = (
        session.query(Category, func.count(Product.id))
        .outerjoin(Product, Product.category_id == Category.id)
        .filter(Category.store_id == ctx.store_id)
        .group_by(Category.id)
        .order_by(Category.name)
        .all()
    )
    return [(category, count) for category, count in rows]


def get_category(ctx, category_id, session=None) -> Category:
    session = session or get_session()
    category = session.query(Category).filter(
        Category.id == category_id,
        Category.store_id == ctx.store_id
    ).first()
    if category is None:
        raise CategoryNotFound(category_id)
    return category


def count_products_in_category(session, category_id) -> int:
    return session.query(func.count(Product.id)).filter(Product.category_id == category_id).scalar() or 0


def _ensure_category_slug_free(session, store_id, slug, exclude_id=None):
    query = session.query(Category.id).filter(Category.store_id == store_id, Category.slug == slug)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise DuplicateSlug('una categoría', slug)


def create_category(ctx, command: CategoryCreate, session=None) -> Category:
    command = command.validate()
    session = session or get_session()
    slug = _slug_for(command.name)

    try:
        with unit_of_work(session):
            _ensure_category_slug_free(session, ctx.store_id, slug)
            category = Category(
                store_id=ctx.store_id,
                name=command.name,
                slug=slug,
                description=command.description,
                image=command.image,
            )
            session.add(category)
            session.flush()
    except IntegrityError as e:
        translated = _translate_integrity_error(e, 'una categoría', slug)
        if translated is None:
            raise
        raise translated from e

    logger.info(f"[CATALOG] Category {category.id} '{category.name}' created in store {ctx.store_id}")
    return category


def update_category(ctx, category_id, command: CategoryUpdate, session=None) -> Category:
    command = command.validate()
    session = session or get_session()
    changes = command.changes()

    slug = _slug_for(changes['name']) if 'name' in changes else None

    try:
        with unit_of_work(session):
            category = get_category(ctx, category_id, session=session)
            if slug is not None:
                _ensure_category_slug_free(session, ctx.store_id, slug, exclude_id=category.id)
                category.slug = slug
            for attr, value in changes.items():
                setattr(category, attr, value)
    except IntegrityError as e:
        translated = _translate_integrity_error(e, 'una categoría', slug)
        if translated is None:
            raise
        raise translated from e

    invalidate_reports(ctx.store_id)
    return category


def delete_category(ctx, category_id, session=None) -> None:
    """Delete an empty category; CategoryInUse while any product references it."""
    session = session or get_session()

    with unit_of_work(session):
        category = get_category(ctx, category_id, session=session)
        product_count = count_products_in_category(session, category.id)
        if product_count > 0:
            raise CategoryInUse(product_count)
        session.delete(category)

    logger.info(f"[CATALOG] Category {category_id} deleted from store {ctx.store_id}")


# =====================================================
# PRODUCTS
# =====================================================

def list_products(ctx, category_id=None, session=None) -> List[Product]:
    """Store products newest first, optionally only one category."""
    session = session or get_session()
    query = (
        session.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.store_id == ctx.store_id)
    )
    if category_id not in (None, ''):
        query = query.filter(Product.category_id == parse_int(category_id, 'categoryId'))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(ctx, product_id, session=None) -> Product:
    session = session or get_session()
    product = session.query(Product).filter(
        Product.id == product_id,
        Product.store_id == ctx.store_id
    ).first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


def _ensure_product_unique(session, store_id, slug=None, sku=None, exclude_id=None):
    if slug is not None:
        query = session.query(Product.id).filter(Product.store_id == store_id, Product.slug == slug)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first() is not None:
            raise DuplicateSlug('un producto', slug)
    if sku:
        query = session.query(Product.id).filter(Product.store_id == store_id, Product.sku == sku)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first() is not None:
            raise DuplicateSku(sku)


def create_product(ctx, command: ProductCreate, session=None) -> Product:
    """
    Create a product; a positive initial stock is recorded in the ledger.

    Raises:
        InvalidField: missing name/price/category or malformed values
        CategoryNotFound: category missing or from another store
        DuplicateSlug, DuplicateSku: name or SKU already used in the store
    """
    default_min_stock = current_app.config.get('DEFAULT_MIN_STOCK', 5) if has_app_context() else 5
    command = command.validate(default_min_stock=default_min_stock)
    session = session or get_session()
    slug = _slug_for(command.name)

    try:
        with unit_of_work(session):
            get_category(ctx, command.category_id, session=session)
            _ensure_product_unique(session, ctx.store_id, slug=slug, sku=command.sku)

            product = Product(
                store_id=ctx.store_id,
                category_id=command.category_id,
                name=command.name,
                slug=slug,
                sku=command.sku,
                description=command.description,
                price=command.price,
                compare_price=command.compare_price,
                cost=command.cost,
                stock=0,
                min_stock=command.min_stock,
                track_stock=command.track_stock,
                images=command.images,
                attributes=command.attributes,
                is_active=command.is_active,
                is_featured=command.is_featured,
            )
            session.add(product)
            session.flush()

            record_initial_stock(session, ctx, product, command.stock)
    except IntegrityError as e:
        translated = _translate_integrity_error(e, 'un producto', slug, command.sku)
        if translated is None:
            raise
        raise translated from e

    invalidate_reports(ctx.store_id)
    logger.info(
        f"[CATALOG] Product {product.id} '{product.name}' created in store {ctx.store_id} "
        f"(stock inicial {product.stock})"
    )
    return product


def update_product(ctx, product_id, command: ProductUpdate, session=None) -> Product:
    """Apply the fields sent in a PATCH; stock is not among them."""
    command = command.validate()
    session = session or get_session()
    changes = command.changes()

    slug = _slug_for(changes['name']) if 'name' in changes else None
    sku = changes.get('sku')

    try:
        with unit_of_work(session):
            product = get_product(ctx, product_id, session=session)

            if 'category_id' in changes:
                get_category(ctx, changes['category_id'], session=session)

            _ensure_product_unique(session, ctx.store_id, slug=slug, sku=sku, exclude_id=product.id)
            if slug is not None:
                product.slug = slug

            for attr, value in changes.items():
                setattr(product, attr, value)
    except IntegrityError as e:
        translated = _translate_integrity_error(e, 'un producto', slug, sku)
        if translated is None:
            raise
        raise translated from e

    invalidate_reports(ctx.store_id)
    return product


def delete_product(ctx, product_id, session=None) -> None:
    """
    Delete a product permanently (tenant-scoped).

    Fails with ProductInUse when the product has ledger entries or sale
    lines; in those cases the user should deactivate it instead.
    """
    session = session or get_session()

    with unit_of_work(session):
        product = get_product(ctx, product_id, session=session)
        movements = session.query(func.count(StockMovement.id)).filter(
            StockMovement.product_id == product.id
        ).scalar() or 0
        sale_items = session.query(func.count(SaleItem.id)).filter(
            SaleItem.product_id == product.id
        ).scalar() or 0
        if movements or sale_items:
            raise ProductInUse(movements, sale_items)
        session.delete(product)

    invalidate_reports(ctx.store_id)
    logger.info(f"[CATALOG] Product {product_id} deleted from store {ctx.store_id}")
