"""Inventory blueprint - stock movements and inventory reports."""
from flask import Blueprint, jsonify, request, g

from backoffice.commands import AdjustStockCommand
from backoffice.middleware import json_body, require_login
from backoffice.services.inventory_service import adjust_stock, list_movements
from backoffice.services.report_service import get_report

inventory_bp = Blueprint('inventory', __name__, url_prefix='/api')


@inventory_bp.route('/stock-movements', methods=['GET'])
@require_login
def movements():
    rows = list_movements(
        g.ctx,
        product_id=request.args.get('productId'),
        movement_type=request.args.get('type'),
        limit=request.args.get('limit'),
    )
    return jsonify([movement.to_dict() for movement in rows])


@inventory_bp.route('/stock-movements', methods=['POST'])
@require_login
def adjust():
    """Manual adjustment. Body: {productId, quantity, reason?, notes?}"""
    movement = adjust_stock(g.ctx, AdjustStockCommand.from_payload(json_body()))
    return jsonify(movement.to_dict()), 201


@inventory_bp.route('/reports/inventory', methods=['GET'])
@require_login
def inventory_report():
    """?type=summary (default) | low-stock | valuation"""
    return jsonify(get_report(g.ctx, request.args.get('type') or 'summary'))
