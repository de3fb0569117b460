"""Per-instance settings, delegated to the instance's session."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from gatewatch.registry.models import InstanceSettings
from gatewatch.registry.registry import InstanceRegistry

logger = logging.getLogger(__name__)


class SettingsService:
    def __init__(self, registry: InstanceRegistry) -> None:
        self._registry = registry

    async def create(self, name: str, settings: InstanceSettings) -> Dict[str, Any]:
        """Apply *settings* to the named instance. Session errors propagate."""
        handle = self._registry.require(name)
        await handle.session.set_settings(settings)
        return {"settings": {"instanceName": name, "settings": settings.to_dict()}}

    async def find(self, name: str) -> Optional[InstanceSettings]:
        """Settings of the named instance, or ``None`` when none are configured.

        A missing record, an empty record and a failed lookup all read as
        ``None``. Only an unknown instance name raises.
        """
        handle = self._registry.require(name)
        try:
            settings = await handle.session.find_settings()
        except Exception as exc:
            logger.warning("Settings lookup failed for instance %s: %s", name, exc)
            return None
        if settings is None or settings.is_empty:
            return None
        return settings
