"""Store settings blueprint."""
from flask import Blueprint, jsonify, g

from backoffice.commands import StoreUpdate
from backoffice.middleware import json_body, require_login
from backoffice.services.store_service import get_store, update_store

store_bp = Blueprint('store', __name__, url_prefix='/api/store')


@store_bp.route('', methods=['GET'])
@require_login
def show():
    return jsonify(get_store(g.ctx).to_dict())


@store_bp.route('', methods=['PATCH', 'PUT'])
@require_login
def update():
    store = update_store(g.ctx, StoreUpdate.from_payload(json_body()))
    return jsonify(store.to_dict())
