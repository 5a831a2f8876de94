"""Domain models for HTML to PDF conversion."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Mapping

from .constants import PAGE_DIMENSIONS_MM
from .errors import InputError, Stage
from .logging import BatchSummary

if TYPE_CHECKING:  # pragma: no cover
    from PIL.Image import Image


class PageSize(str, Enum):
    A4 = "A4"
    LETTER = "Letter"
    LEGAL = "Legal"
    A3 = "A3"

    @classmethod
    def parse(cls, value: object) -> "PageSize":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        choices = ", ".join(member.value for member in cls)
        raise InputError(f"Unsupported page size {value!r}; choose one of {choices}", code="INVALID_SETTINGS", stage=Stage.IDLE)

    @property
    def portrait_mm(self) -> tuple[float, float]:
        return PAGE_DIMENSIONS_MM[self.value]


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

    @classmethod
    def parse(cls, value: object) -> "Orientation":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InputError(
                f"Unsupported orientation {value!r}; choose portrait or landscape",
                code="INVALID_SETTINGS",
                stage=Stage.IDLE,
            ) from exc


class SourceKind(str, Enum):
    PAGE = "page"
    SELECTION = "selection"
    RAW_HTML = "raw_html"


@dataclass(frozen=True, slots=True)
class PageGeometry:
    width_mm: float
    height_mm: float
    margin_mm: float

    @property
    def content_width_mm(self) -> float:
        return self.width_mm - 2 * self.margin_mm

    @property
    def content_height_mm(self) -> float:
        return self.height_mm - 2 * self.margin_mm


@dataclass(frozen=True, slots=True)
class ConversionSettings:
    """Per-conversion options, passed by value into the pipeline."""

    page_size: PageSize = PageSize.A4
    orientation: Orientation = Orientation.PORTRAIT
    margin_mm: float = 10
    filename: str = "document.pdf"
    include_fonts: bool = True
    render_code_blocks: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "page_size", PageSize.parse(self.page_size))
        object.__setattr__(self, "orientation", Orientation.parse(self.orientation))
        try:
            margin = float(self.margin_mm)
        except (TypeError, ValueError) as exc:
            raise InputError(f"Margin must be a number of millimetres, got {self.margin_mm!r}", code="INVALID_SETTINGS", stage=Stage.IDLE) from exc
        if margin < 0:
            raise InputError(f"Margin must be >= 0 mm, got {margin:g}", code="INVALID_SETTINGS", stage=Stage.IDLE)
        object.__setattr__(self, "margin_mm", margin)
        geometry = self.geometry()
        if geometry.content_width_mm <= 0 or geometry.content_height_mm <= 0:
            raise InputError(
                f"A {margin:g} mm margin leaves no printable area on {self.page_size.value}",
                code="INVALID_SETTINGS",
                stage=Stage.IDLE,
            )

    @property
    def landscape(self) -> bool:
        return self.orientation is Orientation.LANDSCAPE

    def geometry(self) -> PageGeometry:
        width, height = self.page_size.portrait_mm
        if self.landscape:
            width, height = height, width
        return PageGeometry(width_mm=width, height_mm=height, margin_mm=float(self.margin_mm))

    def with_overrides(self, **changes: Any) -> "ConversionSettings":
        return replace(self, **{key: value for key, value in changes.items() if value is not None})

    @classmethod
    def from_mapping(cls, data: Mapping[str, object], base: "ConversionSettings | None" = None) -> "ConversionSettings":
        """Build settings from stored (camelCase) or keyword (snake_case) keys."""

        base = base or cls()
        aliases = {
            "pageSize": "page_size",
            "margin": "margin_mm",
            "includeFonts": "include_fonts",
            "renderCodeBlocks": "render_code_blocks",
        }
        changes: dict[str, object] = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None and value != "":
                changes[name] = value
        return base.with_overrides(**changes)

    def to_storage(self) -> dict[str, object]:
        return {
            "pageSize": self.page_size.value,
            "orientation": self.orientation.value,
            "margin": self.margin_mm,
            "filename": self.filename,
        }


@dataclass(frozen=True, slots=True)
class ConversionRequest:
    """A single user action, consumed once by the pipeline."""

    source_kind: SourceKind
    html_content: str
    settings: ConversionSettings
    base_url: str | None = None
    source_label: str = "<html>"


@dataclass(frozen=True, slots=True)
class PageSlice:
    index: int
    y_offset: int
    height: int


@dataclass(frozen=True, slots=True)
class PageLayout:
    geometry: PageGeometry
    raster_width_px: int
    raster_height_px: int
    content_height_px: int
    slices: tuple[PageSlice, ...]

    @property
    def px_per_mm(self) -> float:
        return self.raster_width_px / self.geometry.content_width_mm

    @property
    def page_count(self) -> int:
        return len(self.slices)


@dataclass(slots=True)
class PageImage:
    image: "Image"
    slice: PageSlice


@dataclass(slots=True)
class RasterCapture:
    """One tall screenshot of the rendered document."""

    image: "Image"
    kind: Literal["raster"] = "raster"


@dataclass(slots=True)
class RasterPages:
    layout: PageLayout
    pages: list[PageImage]


@dataclass(slots=True)
class NativePdf:
    data: bytes
    kind: Literal["native"] = "native"


RenderOutput = RasterCapture | NativePdf


@dataclass(slots=True)
class ConversionResult:
    """Result metadata for an individual conversion."""

    run_id: str
    output_path: Path
    backend: str
    page_count: int | None
    size_bytes: int
    summary: str
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class BatchConversionResult:
    runs: list[ConversionResult]
    summary: BatchSummary


__all__ = [
    "BatchConversionResult",
    "ConversionRequest",
    "ConversionResult",
    "ConversionSettings",
    "NativePdf",
    "Orientation",
    "PageGeometry",
    "PageImage",
    "PageLayout",
    "PageSize",
    "PageSlice",
    "RasterCapture",
    "RasterPages",
    "RenderOutput",
    "SourceKind",
]
