from __future__ import annotations

import logging
import os
from pathlib import Path


DEFAULT_HTTP_TIMEOUT_S = 10.0


def origin() -> str | None:
    """
    Origin the viewer is served from, e.g. `http://localhost:5173`.

    Used to auto-detect the tipg URL when `config.json` leaves `tipgUrl` unset.
    """
    v = (os.getenv("LAYERVIEW_ORIGIN") or "").strip()
    return v.rstrip("/") or None


def port() -> str | None:
    v = (os.getenv("LAYERVIEW_PORT") or "").strip()
    if v:
        return v
    o = origin()
    if o is None:
        return None
    # Port embedded in the origin, if any.
    host = o.split("://", 1)[-1]
    if ":" in host:
        return host.rsplit(":", 1)[1] or None
    return None


def config_url() -> str:
    v = (os.getenv("LAYERVIEW_CONFIG_URL") or "").strip()
    if v:
        return v
    return f"{origin() or ''}/config.json"


def http_timeout_s() -> float:
    raw = (os.getenv("LAYERVIEW_HTTP_TIMEOUT") or "").strip()
    if not raw:
        return DEFAULT_HTTP_TIMEOUT_S
    try:
        return max(0.1, float(raw))
    except ValueError:
        return DEFAULT_HTTP_TIMEOUT_S


def log_level() -> str:
    v = (os.getenv("LAYERVIEW_LOG_LEVEL") or "INFO").strip().upper()
    return v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO"


def configure_logging() -> None:
    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def data_dir() -> Path | None:
    """
    Directory of `{collection}.geojson` files served by the in-memory surface.
    """
    v = (os.getenv("LAYERVIEW_DATA_DIR") or "").strip()
    return Path(v) if v else None


def cors_origins() -> list[str]:
    raw = os.getenv("LAYERVIEW_CORS_ORIGINS") or "http://localhost:5173"
    return [o.strip() for o in raw.split(",") if o.strip()]
