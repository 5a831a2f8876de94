from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_PATH = Path("config.toml")
ENV_PREFIX = "HTMLPDF_"

# Portrait width x height in millimetres.
PAGE_DIMENSIONS_MM: dict[str, tuple[float, float]] = {
    "A4": (210.0, 297.0),
    "Letter": (215.9, 279.4),
    "Legal": (215.9, 355.6),
    "A3": (297.0, 420.0),
}

MM_PER_INCH = 25.4

RASTER_VIEWPORT_WIDTH_PX = 800
RASTER_DEVICE_SCALE_FACTOR = 2

STYLE_BLOCK_ID = "htmlpdf-style"
PREVIEW_CLASS = "htmlpdf-rendered-preview"
PREVIEW_LABEL = "Rendered HTML Preview:"
DOCUMENT_TITLE = "HTML to PDF"

SETTINGS_KEYS = ("pageSize", "orientation", "margin", "filename")

CHROMIUM_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
)

__all__ = [
    "CHROMIUM_ARGS",
    "DEFAULT_CONFIG_PATH",
    "DOCUMENT_TITLE",
    "ENV_PREFIX",
    "MM_PER_INCH",
    "PAGE_DIMENSIONS_MM",
    "PREVIEW_CLASS",
    "PREVIEW_LABEL",
    "RASTER_DEVICE_SCALE_FACTOR",
    "RASTER_VIEWPORT_WIDTH_PX",
    "SETTINGS_KEYS",
    "STYLE_BLOCK_ID",
]
