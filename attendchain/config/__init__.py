"""Configuration package for the attendance service.

``create_app`` accepts a config name; without one the ``FLASK_ENV``
environment variable picks it, falling back to development.
"""
import os
from typing import Optional, Type

from .base import BaseConfig
from .development import DevelopmentConfig
from .production import ProductionConfig
from .testing import TestingConfig

CONFIGS = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}

ALIASES = {
    'dev': 'development',
    'prod': 'production',
    'test': 'testing',
}

DEFAULT_CONFIG = 'development'


def get_config(config_name: Optional[str] = None) -> Type[BaseConfig]:
    """Resolve a config name (or alias) to its class. Unknown names raise ValueError."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV') or DEFAULT_CONFIG

    name = config_name.strip().lower()
    if name == 'default':
        name = DEFAULT_CONFIG
    name = ALIASES.get(name, name)

    try:
        return CONFIGS[name]
    except KeyError:
        raise ValueError(
            f"Unknown configuration '{config_name}'. Expected one of: {', '.join(sorted(CONFIGS))}"
        ) from None
