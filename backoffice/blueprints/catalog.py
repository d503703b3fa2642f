"""Catalog blueprint - categories and products (JSON, store scoped)."""
from flask import Blueprint, jsonify, request, g

from backoffice.commands import CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate
from backoffice.middleware import json_body, require_login, require_role
from backoffice.services import catalog_service

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


# =====================================================
# CATEGORIES
# =====================================================

@catalog_bp.route('/categories', methods=['GET'])
@require_login
def list_categories():
    rows = catalog_service.list_categories(g.ctx)
    return jsonify([category.to_dict(product_count=count) for category, count in rows])


@catalog_bp.route('/categories', methods=['POST'])
@require_login
def create_category():
    category = catalog_service.create_category(g.ctx, CategoryCreate.from_payload(json_body()))
    return jsonify(category.to_dict(product_count=0)), 201


@catalog_bp.route('/categories/<int:category_id>', methods=['GET'])
@require_login
def get_category(category_id):
    category = catalog_service.get_category(g.ctx, category_id)
    return jsonify(category.to_dict())


@catalog_bp.route('/categories/<int:category_id>', methods=['PATCH', 'PUT'])
@require_login
def update_category(category_id):
    category = catalog_service.update_category(g.ctx, category_id, CategoryUpdate.from_payload(json_body()))
    return jsonify(category.to_dict())


@catalog_bp.route('/categories/<int:category_id>', methods=['DELETE'])
@require_login
@require_role('ADMIN')
def delete_category(category_id):
    catalog_service.delete_category(g.ctx, category_id)
    return jsonify({'message': 'Categoría eliminada'})


# =====================================================
# PRODUCTS
# =====================================================

@catalog_bp.route('/products', methods=['GET'])
@require_login
def list_products():
    products = catalog_service.list_products(g.ctx, category_id=request.args.get('categoryId'))
    return jsonify([product.to_dict() for product in products])


@catalog_bp.route('/products', methods=['POST'])
@require_login
def create_product():
    product = catalog_service.create_product(g.ctx, ProductCreate.from_payload(json_body()))
    return jsonify(product.to_dict()), 201


@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
@require_login
def get_product(product_id):
    product = catalog_service.get_product(g.ctx, product_id)
    return jsonify(product.to_dict())


@catalog_bp.route('/products/<int:product_id>', methods=['PATCH', 'PUT'])
@require_login
def update_product(product_id):
    product = catalog_service.update_product(g.ctx, product_id, ProductUpdate.from_payload(json_body()))
    return jsonify(product.to_dict())


@catalog_bp.route('/products/<int:product_id>', methods=['DELETE'])
@require_login
@require_role('ADMIN')
def delete_product(product_id):
    catalog_service.delete_product(g.ctx, product_id)
    return jsonify({'message': 'Producto eliminado'})
