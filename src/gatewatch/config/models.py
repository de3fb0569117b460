"""Pydantic models for Gatewatch configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class GatewatchIdentity(BaseModel):
    """Top-level deployment identity metadata."""

    name: str = "Gatewatch"
    version: str = "0.1.0"


class DatabaseConfig(BaseModel):
    """Relational store configuration."""

    path: str = "gatewatch.db"
    client_name: str = "gatewatch"  # namespace for records owned by this deployment
    save_instances: bool = True


class RedisConfig(BaseModel):
    """Distributed cache configuration."""

    enabled: bool = False
    uri: str = "redis://localhost:6379/0"
    prefix_key: str = "gatewatch"
    ttl: int = 604800
    save_instances: bool = False


class CacheConfig(BaseModel):
    redis: RedisConfig = Field(default_factory=RedisConfig)


class RegistryConfig(BaseModel):
    """Instance registry behaviour."""

    hydration: Literal["auto", "store", "cache", "none"] = "auto"


class HealthConfig(BaseModel):
    """Time budgets for dependency probes, in seconds."""

    database_timeout: float = Field(default=3.0, gt=0)
    cache_timeout: float = Field(default=1.0, gt=0)
    probe_key_ttl: int = Field(default=1, ge=1)


class AuthConfig(BaseModel):
    """Authentication configuration."""

    api_key: str = ""  # empty = auth disabled


class LogConfig(BaseModel):
    level: str = "INFO"


class GatewatchConfig(BaseModel):
    """Root configuration model for .gatewatch.yaml."""

    gatewatch: GatewatchIdentity = Field(default_factory=GatewatchIdentity)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    @property
    def cache_enabled(self) -> bool:
        return self.cache.redis.enabled

    @property
    def cache_retains_instances(self) -> bool:
        return self.cache.redis.enabled and self.cache.redis.save_instances
