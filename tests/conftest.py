"""Shared fixtures for Gatewatch tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from gatewatch.config.models import GatewatchConfig
from gatewatch.registry.models import ConnectionState, InstanceRecord, Integration
from gatewatch.registry.registry import InstanceRegistry
from gatewatch.registry.store import InMemoryInstanceStore

SAMPLE_CONFIG: Dict[str, Any] = {
    "gatewatch": {"name": "Gatewatch", "version": "0.1.0"},
    "database": {
        "path": "gatewatch_test.db",
        "client_name": "gatewatch_test",
        "save_instances": True,
    },
    "cache": {
        "redis": {
            "enabled": False,
            "uri": "redis://localhost:6379/0",
            "prefix_key": "gatewatch-test",
            "ttl": 604800,
            "save_instances": False,
        },
    },
    "health": {"database_timeout": 0.5, "cache_timeout": 0.5, "probe_key_ttl": 1},
    "log": {"level": "ERROR"},
}


def make_record(
    name: str = "test-instance",
    instance_id: str | None = None,
    client_name: str = "gatewatch_test",
    state: ConnectionState = ConnectionState.CLOSED,
    number: str | None = "5511999999999",
) -> InstanceRecord:
    return InstanceRecord(
        id=instance_id or f"{name}-id",
        name=name,
        client_name=client_name,
        integration=Integration.BAILEYS,
        connection_status=state,
        number=number,
        token="TEST-TOKEN",
    )


@pytest.fixture()
def sample_config() -> GatewatchConfig:
    """Return a parsed GatewatchConfig from sample data."""
    return GatewatchConfig(**SAMPLE_CONFIG)


@pytest.fixture()
def sample_config_dict() -> Dict[str, Any]:
    return dict(SAMPLE_CONFIG)


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Write sample config to a temp .gatewatch.yaml and return the path."""
    path = tmp_path / ".gatewatch.yaml"
    data = dict(SAMPLE_CONFIG)
    data["database"] = {**SAMPLE_CONFIG["database"], "path": str(tmp_path / "gatewatch.db")}
    with path.open("w") as fh:
        yaml.dump(data, fh)
    return path


@pytest.fixture()
def store() -> InMemoryInstanceStore:
    return InMemoryInstanceStore()


@pytest.fixture()
def registry(sample_config: GatewatchConfig, store: InMemoryInstanceStore) -> InstanceRegistry:
    return InstanceRegistry(sample_config, store)


@pytest.fixture()
def record_factory():
    """Return the make_record helper for building persisted records."""
    return make_record
