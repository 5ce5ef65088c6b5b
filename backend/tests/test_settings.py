from __future__ import annotations

from pathlib import Path

from appconfig import settings


def test_defaults(monkeypatch):
    for name in (
        "LAYERVIEW_ORIGIN",
        "LAYERVIEW_PORT",
        "LAYERVIEW_CONFIG_URL",
        "LAYERVIEW_HTTP_TIMEOUT",
        "LAYERVIEW_LOG_LEVEL",
        "LAYERVIEW_DATA_DIR",
        "LAYERVIEW_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    assert settings.origin() is None
    assert settings.port() is None
    assert settings.config_url() == "/config.json"
    assert settings.http_timeout_s() == settings.DEFAULT_HTTP_TIMEOUT_S
    assert settings.log_level() == "INFO"
    assert settings.data_dir() is None
    assert settings.cors_origins() == ["http://localhost:5173"]


def test_port_falls_back_to_origin(monkeypatch):
    monkeypatch.delenv("LAYERVIEW_PORT", raising=False)
    monkeypatch.setenv("LAYERVIEW_ORIGIN", "http://localhost:5173/")
    assert settings.origin() == "http://localhost:5173"
    assert settings.port() == "5173"
    assert settings.config_url() == "http://localhost:5173/config.json"

    monkeypatch.setenv("LAYERVIEW_ORIGIN", "https://maps.example.org")
    assert settings.port() is None

    monkeypatch.setenv("LAYERVIEW_PORT", "8080")
    assert settings.port() == "8080"


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("LAYERVIEW_HTTP_TIMEOUT", "soon")
    monkeypatch.setenv("LAYERVIEW_LOG_LEVEL", "chatty")
    assert settings.http_timeout_s() == settings.DEFAULT_HTTP_TIMEOUT_S
    assert settings.log_level() == "INFO"

    monkeypatch.setenv("LAYERVIEW_HTTP_TIMEOUT", "0")
    assert settings.http_timeout_s() == 0.1


def test_lists_and_paths(monkeypatch, tmp_path):
    monkeypatch.setenv("LAYERVIEW_CORS_ORIGINS", "http://a.test, ,http://b.test")
    monkeypatch.setenv("LAYERVIEW_DATA_DIR", str(tmp_path))
    assert settings.cors_origins() == ["http://a.test", "http://b.test"]
    assert settings.data_dir() == Path(str(tmp_path))
