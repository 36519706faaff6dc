"""Authentication service for user management."""
from datetime import datetime
from typing import Optional, Tuple

from flask_jwt_extended import create_access_token, create_refresh_token
from sqlalchemy.exc import SQLAlchemyError

from attendchain import db
from attendchain.models.user import User, UserRole
from attendchain.utils.validators import Validator


class AuthService:
    @staticmethod
    def login(email: str, password: str) -> Tuple[Optional[dict], Optional[str]]:
        """Authenticate user and return tokens."""
        if not email or not password:
            return None, "Email and password are required"

        if not Validator.validate_email(email):
            return None, "Invalid email format"

        user = User.query.filter_by(email=email.lower().strip()).first()

        if not user:
            return None, "Invalid email or password"

        if not user.check_password(password):
            user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
            user.save()
            return None, "Invalid email or password"

        if not user.is_active:
            return None, "Account is deactivated"

        user.failed_login_attempts = 0
        user.last_login = datetime.utcnow()
        user.save()

        return {
            "access_token": create_access_token(identity=user.id),
            "refresh_token": create_refresh_token(identity=user.id),
            "user": user.to_dict()
        }, None

    @staticmethod
    def register(email: str, password: str, first_name: str, last_name: str,
                 role: str = "student", roll_number: str = None,
                 department: str = None) -> Tuple[Optional[dict], Optional[str]]:
        """Register new user."""
        if not all([email, password, first_name, last_name]):
            return None, "Email, password, first name and last name are required"

        if not Validator.validate_email(email):
            return None, "Invalid email format"

        password_check = Validator.validate_password(password)
        if not password_check["is_valid"]:
            return None, password_check["errors"][0]

        for name in (first_name, last_name):
            name_check = Validator.validate_name(name)
            if not name_check["is_valid"]:
                return None, name_check["errors"][0]

        email = email.lower().strip()
        if User.query.filter_by(email=email).first():
            return None, "Email already exists"

        if roll_number and User.query.filter_by(roll_number=roll_number).first():
            return None, "Roll number already exists"

        # Admin accounts are only created from the CLI
        try:
            user_role = UserRole(str(role).lower())
        except ValueError:
            user_role = UserRole.STUDENT
        if user_role == UserRole.ADMIN:
            user_role = UserRole.STUDENT

        user = User(
            email=email,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            roll_number=roll_number,
            department=department,
            role=user_role
        )
        user.set_password(password)

        try:
            user.save()
        except SQLAlchemyError:
            db.session.rollback()
            return None, "Registration failed"

        return user.to_dict(), None

    @staticmethod
    def refresh_token(user_id: str) -> Tuple[Optional[dict], Optional[str]]:
        """Generate new access token."""
        user = db.session.get(User, user_id)
        if not user or not user.is_active:
            return None, "User not found or inactive"

        return {
            "access_token": create_access_token(identity=user.id),
            "user": user.to_dict()
        }, None

    @staticmethod
    def save_wallet_address(user: User, wallet_address: str) -> Tuple[Optional[dict], Optional[str]]:
        """Attach a ledger account address to a profile."""
        if not Validator.validate_wallet_address(wallet_address):
            return None, "Invalid wallet address"

        try:
            user.update(wallet_address=wallet_address)
        except SQLAlchemyError:
            db.session.rollback()
            return None, "Could not save wallet address"

        return user.to_dict(), None
