from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from ..errors import RenderError
from ..models import ConversionSettings, RasterCapture
from .base import BaseBrowserRenderer

# Initial viewport height only; the screenshot covers the full scroll height.
VIEWPORT_HEIGHT_PX = 1100


class RasterRenderer(BaseBrowserRenderer):
    """Screenshot the laid-out document at a fixed width for later slicing."""

    name = "raster"

    def _render(self, html: str, settings: ConversionSettings) -> RasterCapture:
        with self.open_page(
            viewport={"width": self._config.viewport_width_px, "height": VIEWPORT_HEIGHT_PX},
            device_scale_factor=self._config.device_scale_factor,
        ) as page:
            self.load(page, html)
            png = page.screenshot(full_page=True, type="png")
        try:
            image = Image.open(io.BytesIO(png))
            image.load()
        except Image.DecompressionBombError as exc:
            raise RenderError(
                f"Page is too tall to rasterize ({exc}); use the native backend for very long documents",
                code="PAGE_TOO_LARGE",
            ) from exc
        except (UnidentifiedImageError, OSError) as exc:
            raise RenderError(f"Screenshot could not be decoded: {exc}") from exc
        return RasterCapture(image=image)
