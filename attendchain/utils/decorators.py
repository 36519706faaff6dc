"""Custom decorators for authorization."""
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt_identity

from attendchain import db
from attendchain.models.user import User, UserRole
from attendchain.utils.helpers import error_response


def _load_current_user():
    user = db.session.get(User, get_jwt_identity())
    if user is not None:
        g.current_user = user
    return user


def teacher_required(f):
    """Decorator to require teacher role or higher."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.is_active:
            return error_response("Account is deactivated", 403)

        if not user.is_teacher():
            return error_response("Teacher access required", 403)

        return f(*args, **kwargs)
    return decorated_function


def student_required(f):
    """Decorator to require student role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.is_active:
            return error_response("Account is deactivated", 403)

        if user.role != UserRole.STUDENT:
            return error_response("Student access required", 403)

        return f(*args, **kwargs)
    return decorated_function


def user_required(f):
    """Decorator that resolves the JWT identity to an active user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_current_user()

        if not user or not user.is_active:
            return error_response("User not found", 404)

        return f(*args, **kwargs)
    return decorated_function
