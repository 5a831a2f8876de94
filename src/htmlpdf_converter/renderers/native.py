from __future__ import annotations

from ..models import ConversionSettings, NativePdf
from .base import BaseBrowserRenderer


class NativePrintRenderer(BaseBrowserRenderer):
    """Print the document with the browser's own PDF engine."""

    name = "native"

    def pdf_options(self, settings: ConversionSettings) -> dict[str, object]:
        margin = f"{settings.margin_mm:g}mm"
        return {
            "format": settings.page_size.value,
            "landscape": settings.landscape,
            "margin": {"top": margin, "right": margin, "bottom": margin, "left": margin},
            "print_background": True,
            "prefer_css_page_size": True,
            "scale": 1.0,
        }

    def _render(self, html: str, settings: ConversionSettings) -> NativePdf:
        with self.open_page() as page:
            self.load(page, html)
            page.emulate_media(media="print")
            data = page.pdf(**self.pdf_options(settings))
        return NativePdf(data=data)
