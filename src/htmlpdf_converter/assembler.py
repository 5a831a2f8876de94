from __future__ import annotations

import io
from typing import Sequence

from PIL import Image

from .constants import MM_PER_INCH, RASTER_DEVICE_SCALE_FACTOR, RASTER_VIEWPORT_WIDTH_PX
from .errors import RenderError, Stage
from .models import ConversionSettings, PageImage, PageLayout
from .pagination import placement

WHITE = (255, 255, 255)


def _page_canvas(px_per_mm: float, settings: ConversionSettings) -> Image.Image:
    geometry = settings.geometry()
    size = (round(geometry.width_mm * px_per_mm), round(geometry.height_mm * px_per_mm))
    return Image.new("RGB", size, WHITE)


def _px_per_mm(page_images: Sequence[PageImage], settings: ConversionSettings, layout: PageLayout | None) -> float:
    if layout is not None:
        return layout.px_per_mm
    content_width_mm = settings.geometry().content_width_mm
    if page_images:
        return page_images[0].image.width / content_width_mm
    return RASTER_VIEWPORT_WIDTH_PX * RASTER_DEVICE_SCALE_FACTOR / content_width_mm


def assemble(
    page_images: Sequence[PageImage],
    settings: ConversionSettings,
    layout: PageLayout | None = None,
) -> bytes:
    """Place each page image on its own PDF page inside the configured margins.

    An empty sequence yields a single blank page so the result is always a
    readable document.
    """

    px_per_mm = _px_per_mm(page_images, settings, layout)
    pages: list[Image.Image] = []
    for page in page_images:
        canvas = _page_canvas(px_per_mm, settings)
        if layout is not None:
            box = placement(layout, page.slice)
            origin = (round(box.x_mm * px_per_mm), round(box.y_mm * px_per_mm))
        else:
            offset = round(settings.margin_mm * px_per_mm)
            origin = (offset, offset)
        canvas.paste(page.image.convert("RGB"), origin)
        pages.append(canvas)
    if not pages:
        pages.append(_page_canvas(px_per_mm, settings))

    buffer = io.BytesIO()
    try:
        pages[0].save(
            buffer,
            format="PDF",
            save_all=True,
            append_images=pages[1:],
            resolution=px_per_mm * MM_PER_INCH,
        )
    except (OSError, ValueError) as exc:
        raise RenderError(f"Could not assemble PDF: {exc}", stage=Stage.ASSEMBLING) from exc
    return buffer.getvalue()


__all__ = ["assemble"]
