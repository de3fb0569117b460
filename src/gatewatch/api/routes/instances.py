"""Instance creation, lookup, connection, deletion and settings endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from gatewatch.api.auth import require_api_key
from gatewatch.registry.models import InstanceData, InstanceSettings, Integration
from gatewatch.registry.registry import InstanceRegistry
from gatewatch.registry.settings import SettingsService

router = APIRouter(tags=["instances"])


class InstanceCreateRequest(BaseModel):
    name: str
    id: Optional[str] = None
    integration: Integration = Integration.BAILEYS
    number: Optional[str] = None
    token: Optional[str] = None


class SettingsRequest(BaseModel):
    reject_call: Optional[bool] = None
    msg_call: Optional[str] = None
    groups_ignore: Optional[bool] = None
    always_online: Optional[bool] = None
    read_messages: Optional[bool] = None
    read_status: Optional[bool] = None
    sync_full_history: Optional[bool] = None
    wavoip_token: Optional[str] = None


def _registry(request: Request) -> InstanceRegistry:
    return request.app.state.services.registry


def _settings(request: Request) -> SettingsService:
    return request.app.state.services.settings


@router.get("/instances")
async def list_instances(
    request: Request, names: Optional[List[str]] = Query(default=None, alias="name")
) -> List[Dict[str, Any]]:
    records = await _registry(request).lookup_by_names(names)
    return [r.to_dict() for r in records]


@router.get("/instances/lookup")
async def lookup_instance(
    request: Request, instance_id: Optional[str] = None, number: Optional[str] = None
) -> List[Dict[str, Any]]:
    records = await _registry(request).lookup_by_id(instance_id, number)
    return [r.to_dict() for r in records]


@router.post("/instances", status_code=201, dependencies=[Depends(require_api_key)])
async def create_instance(request: Request, body: InstanceCreateRequest) -> Dict[str, Any]:
    handle = await _registry(request).create(InstanceData(**body.model_dump()))
    return handle.to_dict()


@router.delete("/instances/{name}", dependencies=[Depends(require_api_key)])
async def delete_instance(request: Request, name: str) -> Dict[str, Any]:
    await _registry(request).delete(name)
    return {"status": "deleted", "instance": name}


@router.post("/instances/{name}/connect", dependencies=[Depends(require_api_key)])
async def connect_instance(request: Request, name: str) -> Dict[str, Any]:
    handle = await _registry(request).connect(name)
    return {"instance": name, "state": handle.connection_state.value}


@router.get("/instances/{name}/connection-state")
async def connection_state(request: Request, name: str) -> Dict[str, Any]:
    handle = _registry(request).require(name)
    return {"instance": name, "state": handle.connection_state.value}


@router.post("/instances/{name}/settings", status_code=201, dependencies=[Depends(require_api_key)])
async def set_settings(request: Request, name: str, body: SettingsRequest) -> Dict[str, Any]:
    return await _settings(request).create(name, InstanceSettings(**body.model_dump()))


@router.get("/instances/{name}/settings")
async def find_settings(request: Request, name: str) -> Optional[Dict[str, Any]]:
    settings = await _settings(request).find(name)
    return settings.to_dict() if settings is not None else None
