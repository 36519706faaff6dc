"""Base configuration shared by every environment."""
import os
from datetime import timedelta


class BaseConfig:
    """Base configuration class."""

    # Basic Flask config
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DEBUG = False
    TESTING = False

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL') or 'sqlite:///attendchain.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"

    # Attendance codes
    ATTENDANCE_CODE_LENGTH = 6
    ATTENDANCE_CODE_VALIDITY_MINUTES = 5
    ATTENDANCE_CODE_MAX_VALIDITY_MINUTES = 60
    CLOCK_SKEW_TOLERANCE_SECONDS = 30

    # Geofence
    DEFAULT_GEOFENCE_RADIUS_METERS = 100
    GPS_ACCURACY_BUFFER_METERS = 10
    LOCATION_TIMEOUT_SECONDS = 15

    # Ledger mirror (disabled when no relay URL is configured)
    LEDGER_RPC_URL = os.getenv('LEDGER_RPC_URL')
    LEDGER_API_KEY = os.getenv('LEDGER_API_KEY')
    LEDGER_TIMEOUT_SECONDS = 10
    LEDGER_MAX_WORKERS = 4
    LEDGER_EXPLORER_URL = os.getenv('LEDGER_EXPLORER_URL', 'https://testnet.teloscan.io/tx/')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')
