"""Development configuration."""
import os

from .base import BaseConfig


class DevelopmentConfig(BaseConfig):
    """Development configuration class."""

    DEBUG = True

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DEV_DATABASE_URL') or 'sqlite:///attendchain_dev.db'
    SQLALCHEMY_ECHO = True

    # Relaxed limits for local work
    RATELIMIT_DEFAULT = "1000 per day, 200 per hour"

    # Logging
    LOG_LEVEL = 'DEBUG'
