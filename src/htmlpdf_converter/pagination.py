"""Cut a tall raster into page-sized bands.

This module owns the slicing math; renderers and the assembler only consume
the resulting :class:`PageLayout`.
"""

from __future__ import annotations

from dataclasses import dataclass

from PIL import Image

from .models import ConversionSettings, PageGeometry, PageImage, PageLayout, PageSlice, RasterPages


@dataclass(frozen=True, slots=True)
class Placement:
    x_mm: float
    y_mm: float
    width_mm: float
    height_mm: float


def page_content_height_px(raster_width_px: int, geometry: PageGeometry) -> int:
    """Height in raster pixels of one page's printable area.

    The raster is scaled so that its full width spans the content width, so
    the vertical budget follows from the same pixels-per-millimetre ratio.
    """

    if raster_width_px <= 0:
        raise ValueError(f"Raster width must be positive, got {raster_width_px}")
    px_per_mm = raster_width_px / geometry.content_width_mm
    return max(1, int(round(geometry.content_height_mm * px_per_mm)))


def slice_bands(total_height_px: int, page_height_px: int) -> tuple[PageSlice, ...]:
    if page_height_px <= 0:
        raise ValueError(f"Page height must be positive, got {page_height_px}")
    if total_height_px < 0:
        raise ValueError(f"Raster height must not be negative, got {total_height_px}")
    slices: list[PageSlice] = []
    offset = 0
    while offset < total_height_px:
        height = min(page_height_px, total_height_px - offset)
        slices.append(PageSlice(index=len(slices), y_offset=offset, height=height))
        offset += height
    return tuple(slices)


def paginate(raster_width_px: int, raster_height_px: int, settings: ConversionSettings) -> PageLayout:
    geometry = settings.geometry()
    content_height = page_content_height_px(raster_width_px, geometry)
    return PageLayout(
        geometry=geometry,
        raster_width_px=raster_width_px,
        raster_height_px=raster_height_px,
        content_height_px=content_height,
        slices=slice_bands(raster_height_px, content_height),
    )


def placement(layout: PageLayout, page_slice: PageSlice) -> Placement:
    geometry = layout.geometry
    return Placement(
        x_mm=geometry.margin_mm,
        y_mm=geometry.margin_mm,
        width_mm=geometry.content_width_mm,
        height_mm=page_slice.height / layout.px_per_mm,
    )


def slice_raster(image: Image.Image, settings: ConversionSettings) -> RasterPages:
    layout = paginate(image.width, image.height, settings)
    pages = [
        PageImage(image=image.crop((0, band.y_offset, image.width, band.y_offset + band.height)), slice=band)
        for band in layout.slices
    ]
    return RasterPages(layout=layout, pages=pages)


__all__ = ["Placement", "page_content_height_px", "paginate", "placement", "slice_bands", "slice_raster"]
