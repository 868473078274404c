"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, optional_env
from .errors import ConfigurationError
from .federation import FederationConfig, get_federation_config
from .http_resilience import RateLimit, ResilienceConfig
from .logging import configure_logging
from .storage import StorageConfig, get_storage_config

__all__ = [
    "ConfigurationError",
    "FederationConfig",
    "RateLimit",
    "ResilienceConfig",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_federation_config",
    "get_storage_config",
    "optional_env",
]
