from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from adapters.platform import HttpxPlatform, Platform
from appconfig import settings
from appconfig.registry import (
    bundled_app_config_document,
    get_base_maps,
    get_locations,
)
from appconfig.types import BaseMapType
from engine.in_memory import InMemoryMapSurface
from layers.catalog import CatalogLoader
from layers.loaders import load_datasets
from mapview.session import MapSession

logger = logging.getLogger(__name__)


class ApiPoint(BaseModel):
    x: float
    y: float


class ApiBaseMap(BaseModel):
    type: BaseMapType


class ApiGoTo(BaseModel):
    locationId: str


def default_surface() -> InMemoryMapSurface:
    data_dir = settings.data_dir()
    datasets = load_datasets(data_dir) if data_dir is not None else {}
    return InMemoryMapSurface(datasets=datasets)


def create_app(
    *,
    platform: Platform | None = None,
    surface_factory: Callable[[], InMemoryMapSurface] | None = None,
) -> FastAPI:
    """
    Build the service. Tests inject a fake `platform` and a surface with datasets.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.configure_logging()
        owned_platform: HttpxPlatform | None = None
        plat = platform
        if plat is None:
            owned_platform = HttpxPlatform(
                origin=settings.origin(),
                port=settings.port(),
                timeout=settings.http_timeout_s(),
            )
            plat = owned_platform

        surface = (surface_factory or default_surface)()
        session = MapSession(
            surface, CatalogLoader(plat, config_url=settings.config_url())
        )
        app.state.session = session
        try:
            # The headless surface has no style to fetch: it is ready right away.
            surface.fire_load()
            await session.load()
            yield
        finally:
            session.close()
            if owned_platform is not None:
                await owned_platform.aclose()

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _session(request: Request) -> MapSession:
        session = getattr(request.app.state, "session", None)
        if session is None or session.closed:
            raise HTTPException(status_code=503, detail="Map session is not running")
        return session

    @app.get("/config.json")
    def config_document():
        return bundled_app_config_document()

    @app.get("/locations")
    def locations():
        return [loc.model_dump() for loc in get_locations()]

    @app.get("/basemaps")
    def base_maps():
        return [cfg.model_dump(exclude_none=True) for cfg in get_base_maps().values()]

    @app.get("/session")
    def session_state(request: Request):
        return _session(request).describe()

    @app.post("/session/retry")
    async def session_retry(request: Request):
        session = _session(request)
        await session.retry()
        return session.describe()

    @app.post("/session/layers/{layer_id}/toggle")
    def toggle_layer(layer_id: str, request: Request):
        session = _session(request)
        enabled = session.toggle_layer(layer_id)
        return {
            "enabledLayers": sorted(enabled),
            "syncedLayers": session.describe()["syncedLayers"],
        }

    @app.put("/session/basemap")
    def switch_base_map(body: ApiBaseMap, request: Request):
        session = _session(request)
        session.switch_base_map(body.type)
        return {"baseMap": session.base_map.active}

    @app.post("/session/goto")
    def go_to(body: ApiGoTo, request: Request):
        session = _session(request)
        moved = session.go_to(body.locationId)
        return {"moved": moved, "camera": session.describe()["camera"]}

    @app.post("/session/click")
    def click(body: ApiPoint, request: Request):
        selected = _session(request).click_at((body.x, body.y))
        return selected.to_dict() if selected is not None else None

    @app.delete("/session/selected")
    def close_popup(request: Request):
        session = _session(request)
        session.clear_selection()
        return {"selected": None}

    @app.post("/session/hover")
    def hover(body: ApiPoint, request: Request):
        session = _session(request)
        hit = session.hover_at((body.x, body.y))
        return {"hit": hit, "cursor": "pointer" if hit else ""}

    return app


app = create_app()
