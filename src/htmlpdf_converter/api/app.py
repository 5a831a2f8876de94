from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI

from .. import __version__
from ..config import AppConfig, load_config
from ..core import ConversionService
from ..extract import fetch_page
from ..settings import Settings, get_settings
from .routers import convert, health


def create_app(
    config_path: Path | None = None,
    *,
    require_enabled: bool = True,
    service: ConversionService | None = None,
) -> FastAPI:
    if service is not None:
        config = service.config
    else:
        config = _prepare_config(get_settings(), config_path)
    if require_enabled and not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via configuration or environment.")

    app = FastAPI(title="Local HTML to PDF Converter", version=__version__)
    app.state.config = config
    app.state.service = service or ConversionService(config)
    app.state.fetcher = fetch_page

    app.include_router(health.router)
    app.include_router(convert.router)
    return app


def _prepare_config(settings: Settings, config_path: Path | None = None) -> AppConfig:
    config = load_config(config_path or settings.config_path)
    if settings.enable_local_api is not None:
        config.runtime.enable_local_api = settings.enable_local_api
    return config


__all__ = ["create_app"]
