"""Gatewatch configuration system."""

from gatewatch.config.loader import find_config_file, load_config
from gatewatch.config.models import (
    AuthConfig,
    CacheConfig,
    DatabaseConfig,
    GatewatchConfig,
    HealthConfig,
    RedisConfig,
    RegistryConfig,
)

__all__ = [
    "AuthConfig",
    "CacheConfig",
    "DatabaseConfig",
    "GatewatchConfig",
    "HealthConfig",
    "RedisConfig",
    "RegistryConfig",
    "load_config",
    "find_config_file",
]
