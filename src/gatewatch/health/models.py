"""Data models for dependency probes and the aggregate health status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Optional


class ProbeStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    DISABLED = "disabled"
    ERROR = "error"


class OverallStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def http_status(self) -> int:
        return 503 if self is OverallStatus.UNHEALTHY else 200


@dataclass
class ProbeResult:
    """Outcome of one bounded round trip against a dependency."""

    status: ProbeStatus
    response_time_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def is_up(self) -> bool:
        return self.status is ProbeStatus.CONNECTED

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"status": self.status.value}
        if self.response_time_ms is not None:
            out["responseTime"] = self.response_time_ms
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class InstanceCounts:
    total: int = 0
    active: int = 0
    inactive: int = 0


@dataclass
class MemoryInfo:
    used: int = 0
    total: int = 0
    percentage: float = 0.0


@dataclass
class SystemInfo:
    python_version: str
    platform: str
    arch: str


@dataclass
class HealthStatus:
    """Aggregate snapshot. Rebuilt on every call, never cached."""

    status: OverallStatus
    version: str
    uptime_seconds: int
    database: ProbeResult
    cache: ProbeResult
    instances: InstanceCounts
    memory: MemoryInfo
    system: SystemInfo
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> Dict[str, Any]:
        # The cache is exposed under "redis", the name existing consumers expect.
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "uptime": self.uptime_seconds,
            "database": self.database.to_dict(),
            "redis": self.cache.to_dict(),
            "instances": {
                "total": self.instances.total,
                "active": self.instances.active,
                "inactive": self.instances.inactive,
            },
            "memory": {
                "used": self.memory.used,
                "total": self.memory.total,
                "percentage": self.memory.percentage,
            },
            "system": {
                "pythonVersion": self.system.python_version,
                "platform": self.system.platform,
                "arch": self.system.arch,
            },
        }
