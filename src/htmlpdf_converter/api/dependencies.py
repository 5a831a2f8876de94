"""FastAPI dependency providers for application services."""

from __future__ import annotations

from typing import Callable

from fastapi import HTTPException, Request

from ..config import AppConfig
from ..core import ConversionService


def get_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise HTTPException(status_code=503, detail="CONFIG_UNAVAILABLE")
    return config


def get_service(request: Request) -> ConversionService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="SERVICE_UNAVAILABLE")
    return service


def get_fetcher(request: Request) -> Callable[[str], str]:
    fetcher = getattr(request.app.state, "fetcher", None)
    if fetcher is None:
        raise HTTPException(status_code=503, detail="FETCHER_UNAVAILABLE")
    return fetcher


__all__ = ["get_config", "get_fetcher", "get_service"]
