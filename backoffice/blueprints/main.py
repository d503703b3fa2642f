"""Main blueprint with health check endpoints."""
from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from backoffice.database import ping
from backoffice.services.cache_service import get_cache

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        500: Unhealthy (DB error)
    """
    try:
        if ping():
            return jsonify({
                'status': 'healthy',
                'database': 'connected',
                'message': 'Database connection successful'
            }), 200
        return jsonify({
            'status': 'unhealthy',
            'database': 'error',
            'message': 'Unexpected query result'
        }), 500

    except SQLAlchemyError as e:
        return jsonify({
            'status': 'unhealthy',
            'database': 'disconnected',
            'error': str(e),
            'message': 'Failed to connect to database'
        }), 500


@main_bp.route('/health/cache')
def health_cache():
    """
    Cache health check endpoint.

    Never returns 500: reports are served uncached while Redis is down, so
    an unavailable cache is "degraded", not unhealthy.
    """
    cache = get_cache()

    if not cache.is_available():
        return jsonify({
            'status': 'degraded',
            'cache': 'unavailable',
            'redis': 'disconnected',
            'message': 'Cache disabled or Redis unavailable (app continues without cache)'
        }), 200

    return jsonify({
        'status': 'ok',
        'cache': 'connected',
        'redis': 'healthy',
        'ttl': cache.ttl,
        'message': 'Inventory reports are cached'
    }), 200
