"""Authentication API endpoints."""
from flask import Blueprint, g, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from attendchain import limiter
from attendchain.services.auth_service import AuthService
from attendchain.utils.decorators import user_required
from attendchain.utils.helpers import error_response, success_response

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return success_response(message="Auth service is running")


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    """Register a student or teacher account."""
    data = request.get_json(silent=True)

    if not data:
        return error_response("Request body must be JSON", 400)

    user, error = AuthService.register(
        email=data.get("email", ""),
        password=data.get("password", ""),
        first_name=data.get("first_name", ""),
        last_name=data.get("last_name", ""),
        role=data.get("role", "student"),
        roll_number=data.get("roll_number"),
        department=data.get("department")
    )

    if error:
        return error_response(error, 400)

    return success_response(data=user, message="Registration successful", status_code=201)


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """Login with email and password."""
    data = request.get_json(silent=True)

    if not data:
        return error_response("Request body must be JSON", 400)

    email = data.get("email", "").strip()
    password = data.get("password", "")

    if not email or not password:
        return error_response("Email and password are required", 400)

    result, error = AuthService.login(email, password)

    if error:
        return error_response(error, 401)

    return success_response(data=result, message="Login successful")


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_token():
    """Refresh access token."""
    result, error = AuthService.refresh_token(get_jwt_identity())

    if error:
        return error_response(error, 401)

    return success_response(data=result, message="Token refreshed successfully")


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
@user_required
def get_current_user():
    """Get current user profile."""
    return success_response(data=g.current_user.to_dict())


@auth_bp.route("/wallet", methods=["PUT"])
@jwt_required()
@user_required
def save_wallet():
    """Save the ledger account address used for mirrored check-ins."""
    data = request.get_json(silent=True) or {}

    user, error = AuthService.save_wallet_address(g.current_user, data.get("wallet_address", ""))

    if error:
        return error_response(error, 400)

    return success_response(data=user, message="Wallet address saved")
