from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from adapters.platform import Platform, PlatformError
from appconfig.types import AppConfig, CollectionsResponse
from layers.resolver import collection_names, resolve
from layers.types import ResolvedLayerList

logger = logging.getLogger(__name__)

DEV_SERVER_PORT = "5173"
DEV_TIPG_URL = "http://localhost:8000"


class ConfigLoadError(RuntimeError):
    """The config document could not be fetched or parsed. Fatal for the session."""


@dataclass(frozen=True)
class CatalogResult:
    layers: ResolvedLayerList
    default_enabled: frozenset[str]
    tipg_url: str
    schema_prefix: str
    # False when the tipg catalog was unreachable and config-only resolution was used.
    catalog_available: bool


def detect_tipg_url(platform: Platform) -> str:
    """
    Where tipg lives when `config.json` does not say.

    The dev server (port 5173) talks to a local tipg; deployments proxy it under `/api`.
    """
    if platform.current_port() == DEV_SERVER_PORT:
        return DEV_TIPG_URL
    origin = platform.current_origin()
    if origin:
        return f"{origin.rstrip('/')}/api"
    return "/api"


class CatalogLoader:
    """
    Fetches `config.json` and the tipg collection catalog, then resolves the layer list.

    Every `load()` call takes a new request token. Only the newest request may publish a
    result: an older request that finishes late returns `None`.
    """

    def __init__(self, platform: Platform, *, config_url: str = "/config.json") -> None:
        self._platform = platform
        self._config_url = config_url
        self._latest_token = 0

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def is_current(self, token: int) -> bool:
        return token == self._latest_token

    async def load(self) -> CatalogResult | None:
        self._latest_token += 1
        token = self._latest_token

        try:
            config = await self._fetch_config()
        except ConfigLoadError:
            if not self.is_current(token):
                logger.info("ignoring config failure of superseded request %d", token)
                return None
            raise
        tipg_url = (config.tipgUrl or detect_tipg_url(self._platform)).rstrip("/")
        names = await self._fetch_collection_names(tipg_url, config)
        layers = resolve(config, names)

        if not self.is_current(token):
            logger.info(
                "discarding stale catalog result (token=%d, latest=%d)",
                token,
                self._latest_token,
            )
            return None

        return CatalogResult(
            layers=layers,
            default_enabled=frozenset(config.defaultEnabledLayers),
            tipg_url=tipg_url,
            schema_prefix=config.schemaPrefix,
            catalog_available=bool(names),
        )

    async def _fetch_config(self) -> AppConfig:
        try:
            raw = await self._platform.http_get(self._config_url)
        except PlatformError as e:
            raise ConfigLoadError(f"Failed to load config.json: {e}") from e
        try:
            return AppConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigLoadError(f"Invalid config.json: {e}") from e

    async def _fetch_collection_names(
        self, tipg_url: str, config: AppConfig
    ) -> list[str]:
        url = f"{tipg_url}/collections"
        try:
            raw = await self._platform.http_get(url)
            catalog = CollectionsResponse.model_validate(raw)
        except (PlatformError, ValidationError) as e:
            logger.warning(
                "failed to fetch collections from tipg, using config only: %s", e
            )
            return []
        return collection_names(
            catalog.collections,
            schema_prefix=config.schemaPrefix,
        )
