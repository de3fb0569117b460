"""FastAPI application factory for Gatewatch."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatewatch import __version__
from gatewatch.api.routes import health, instances
from gatewatch.config.loader import load_config_or_default
from gatewatch.errors import ConflictError, NotFoundError, PersistenceError
from gatewatch.services import Services, build_services

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(ConflictError)
    async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=409)

    @app.exception_handler(PersistenceError)
    async def _persistence(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=500)

    @app.exception_handler(ValueError)
    async def _bad_request(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=400)


def create_app(services: Optional[Services] = None, hydrate: bool = True) -> FastAPI:
    """Build the app. Without *services*, components are wired from the config file."""
    if services is None:
        services = build_services(load_config_or_default())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if hydrate:
            await services.registry.hydrate()
        yield
        await services.close()

    app = FastAPI(
        title="Gatewatch",
        version=__version__,
        description="Instance registry and health aggregator",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.services = services
    _register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(instances.router, prefix="/api")
    return app
