"""Sales blueprint - sale commit and history (JSON, store scoped)."""
from flask import Blueprint, jsonify, request, g

from backoffice.commands import CommitSaleCommand
from backoffice.middleware import json_body, require_login
from backoffice.services.sales_service import commit_sale, get_sale, list_sales

sales_bp = Blueprint('sales', __name__, url_prefix='/api/sales')


@sales_bp.route('', methods=['GET'])
@require_login
def index():
    """Latest sales; `limit` and `paymentMethod` query filters."""
    sales = list_sales(
        g.ctx,
        payment_method=request.args.get('paymentMethod'),
        limit=request.args.get('limit'),
    )
    return jsonify([sale.to_dict() for sale in sales])


@sales_bp.route('', methods=['POST'])
@require_login
def create():
    """
    Commit a sale.

    Body: {items: [{productId, quantity, price}], paymentMethod, customerName?,
    customerEmail?, customerPhone?, paymentReference?, notes?}
    """
    sale = commit_sale(g.ctx, CommitSaleCommand.from_payload(json_body()))
    return jsonify(sale.to_dict()), 201


@sales_bp.route('/<int:sale_id>', methods=['GET'])
@require_login
def detail(sale_id):
    return jsonify(get_sale(g.ctx, sale_id).to_dict())
