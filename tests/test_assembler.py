import pytest
from PIL import Image, PdfParser

from htmlpdf_converter.assembler import assemble
from htmlpdf_converter.models import ConversionSettings
from htmlpdf_converter.pagination import slice_raster

POINTS_PER_MM = 72 / 25.4


def _page_count(data: bytes) -> int:
    return len(PdfParser.PdfParser(buf=data).pages)


def _first_media_box(data: bytes) -> tuple[float, ...]:
    box = data.split(b"/MediaBox [ 0 0 ")[1].split(b"]")[0]
    return tuple(float(value) for value in box.split())


def test_assemble_one_pdf_page_per_slice() -> None:
    settings = ConversionSettings()
    raster = slice_raster(Image.new("RGB", (1600, 5000), "white"), settings)
    data = assemble(raster.pages, settings, raster.layout)
    assert data.startswith(b"%PDF")
    assert _page_count(data) == 3
    assert _page_count(assemble(raster.pages, settings)) == 3


def test_assemble_uses_physical_page_size() -> None:
    settings = ConversionSettings(page_size="Letter", orientation="landscape")
    raster = slice_raster(Image.new("RGB", (1600, 900), "white"), settings)
    width, height = _first_media_box(assemble(raster.pages, settings))
    assert width == pytest.approx(279.4 * POINTS_PER_MM, abs=1.0)
    assert height == pytest.approx(215.9 * POINTS_PER_MM, abs=1.0)


def test_assemble_empty_sequence_yields_blank_page() -> None:
    data = assemble([], ConversionSettings())
    assert _page_count(data) == 1
