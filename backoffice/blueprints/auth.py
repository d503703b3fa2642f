"""
Authentication blueprint.
Session login/logout for back-office staff (JSON).
"""
import logging

from flask import Blueprint, jsonify, session, g
from flask_wtf.csrf import generate_csrf

from backoffice.middleware import json_body, require_login
from backoffice.services import auth_service

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    """Check credentials and bind the user to the session."""
    payload = json_body()
    user = auth_service.authenticate(payload.get('email'), payload.get('password'))

    session.clear()
    session['user_id'] = user.id
    session.permanent = True

    return jsonify({'user': user.to_dict(), 'store': user.store.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'message': 'Sesión cerrada'})


@auth_bp.route('/me')
@require_login
def me():
    return jsonify({'user': g.user.to_dict(), 'store': g.user.store.to_dict()})


@auth_bp.route('/csrf')
def csrf_token():
    """Token for the X-CSRFToken header of later writes."""
    return jsonify({'csrfToken': generate_csrf()})
