"""Limit parsing for list endpoints."""
from flask import current_app, has_app_context


def clamp_limit(limit, default=None, maximum=None):
    """
    Turn a ?limit= value into a safe positive int.

    Garbage or non-positive values fall back to the default; large values are
    capped at MAX_LIST_LIMIT.
    """
    if has_app_context():
        default = default or current_app.config.get('DEFAULT_LIST_LIMIT', 50)
        maximum = maximum or current_app.config.get('MAX_LIST_LIMIT', 500)
    default = default or 50
    maximum = maximum or 500

    try:
        value = int(limit)
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return min(value, maximum)
