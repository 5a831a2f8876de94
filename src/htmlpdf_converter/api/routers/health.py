from __future__ import annotations

from fastapi import APIRouter, Depends

from ... import __version__
from ...config import AppConfig
from ..dependencies import get_config
from ..schemas import HealthStatus

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health(config: AppConfig = Depends(get_config)) -> HealthStatus:
    return HealthStatus(status="ok", version=__version__, backend=config.render.backend)


__all__ = ["router"]
