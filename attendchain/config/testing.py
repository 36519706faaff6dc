"""Testing configuration."""
from datetime import timedelta

from sqlalchemy.pool import StaticPool

from .base import BaseConfig


class TestingConfig(BaseConfig):
    """Testing configuration class."""

    TESTING = True
    SECRET_KEY = 'test-secret-key'

    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    # One shared connection so background ledger threads see the same database
    SQLALCHEMY_ENGINE_OPTIONS = {
        'poolclass': StaticPool,
        'connect_args': {'check_same_thread': False}
    }

    # JWT Configuration
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(hours=1)

    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False

    # Short location timeout keeps timeout tests fast
    LOCATION_TIMEOUT_SECONDS = 2

    # Disable external services in testing
    LEDGER_RPC_URL = None
    LEDGER_MAX_WORKERS = 1

    # Logging
    LOG_LEVEL = 'WARNING'
