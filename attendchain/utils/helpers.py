"""Helper functions for the application."""
from datetime import datetime
from typing import Any, Dict, Optional

from flask import jsonify


def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    message = getattr(error, 'description', None) or str(error)
    return jsonify({
        'error': True,
        'message': message,
        'status_code': status_code
    }), status_code


def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code


def error_response(message: str, status_code: int = 400, error_code: str = None,
                   details: Optional[Dict] = None):
    """Return consistent error response."""
    response = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    if error_code:
        response['error_code'] = error_code
    if details:
        response['details'] = details

    return jsonify(response), status_code


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize a naive UTC datetime, passing None through."""
    return value.isoformat() if value else None


def parse_bool(value: Any, default: bool = False) -> bool:
    """Interpret JSON or query-string truthiness."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')
