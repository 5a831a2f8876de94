from __future__ import annotations

import threading
from typing import Callable, Dict, Type

from ..config import RenderConfig
from .base import BaseBrowserRenderer, Renderer
from .native import NativePrintRenderer
from .raster import RasterRenderer

RendererFactory = Callable[[str], Renderer]

_RENDERER_CLASSES: Dict[str, Type[BaseBrowserRenderer]] = {
    NativePrintRenderer.name: NativePrintRenderer,
    RasterRenderer.name: RasterRenderer,
}


def get_renderer(
    backend: str,
    config: RenderConfig,
    sessions: threading.BoundedSemaphore | None = None,
) -> Renderer:
    renderer_cls = _RENDERER_CLASSES.get(backend)
    if not renderer_cls:
        raise KeyError(f"No renderer registered for {backend}")
    return renderer_cls(config, sessions)


__all__ = [
    "BaseBrowserRenderer",
    "NativePrintRenderer",
    "RasterRenderer",
    "Renderer",
    "RendererFactory",
    "get_renderer",
]
