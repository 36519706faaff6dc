"""User model for authentication and authorization."""
from enum import Enum

from werkzeug.security import check_password_hash, generate_password_hash

from attendchain import db
from attendchain.models.base import BaseModel


class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    TEACHER = 'teacher'
    ADMIN = 'admin'


class User(BaseModel):
    """User model for students, teachers and administrators."""

    __tablename__ = 'users'

    # Basic Information
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    roll_number = db.Column(db.String(50), unique=True, nullable=True, index=True)
    department = db.Column(db.String(100), nullable=True)

    # Role
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)

    # Ledger account used for mirrored check-ins
    wallet_address = db.Column(db.String(42), nullable=True)

    # Account state
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)
    failed_login_attempts = db.Column(db.Integer, default=0)

    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Check if provided password matches user's password."""
        return check_password_hash(self.password_hash, password)

    def is_teacher(self) -> bool:
        """Check if user is a teacher."""
        return self.role in [UserRole.TEACHER, UserRole.ADMIN]

    def is_student(self) -> bool:
        """Check if user is a student."""
        return self.role == UserRole.STUDENT

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        default_exclude = ['password_hash', 'failed_login_attempts']
        exclude = (exclude or []) + default_exclude

        result = super().to_dict(exclude=exclude)
        result['role'] = self.role.value if self.role else None
        result['full_name'] = self.full_name

        return result

    def __repr__(self) -> str:
        return f'<User {self.email}>'
