from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from PIL import Image

from htmlpdf_converter.config import AppConfig, RenderConfig, RuntimeConfig
from htmlpdf_converter.models import ConversionSettings, NativePdf, RasterCapture, RenderOutput

FAKE_PDF = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


@dataclass
class FakeRenderer:
    name: str = "raster"
    width_px: int = 1600
    height_px: int = 5000
    documents: list[str] = field(default_factory=list)

    def render(self, html: str, settings: ConversionSettings) -> RenderOutput:
        self.documents.append(html)
        if self.name == "native":
            return NativePdf(data=FAKE_PDF)
        return RasterCapture(image=Image.new("RGB", (self.width_px, self.height_px), "white"))


class FakeRendererFactory:
    def __init__(self, height_px: int = 5000) -> None:
        self.height_px = height_px
        self.created: dict[str, FakeRenderer] = {}

    def __call__(self, backend: str) -> FakeRenderer:
        if backend not in self.created:
            self.created[backend] = FakeRenderer(name=backend, height_px=self.height_px)
        return self.created[backend]


def build_config(base_dir: Path, backend: str = "raster") -> AppConfig:
    runtime = RuntimeConfig()
    runtime.output_dir = base_dir / "runs"
    runtime.downloads_dir = base_dir / "downloads"
    runtime.settings_file = base_dir / "settings.json"
    runtime.log_file = "log.jsonl"
    runtime.summary_csv = "summary.csv"
    return AppConfig(runtime=runtime, render=RenderConfig(backend=backend))


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return build_config(tmp_path)


@pytest.fixture
def renderers() -> FakeRendererFactory:
    return FakeRendererFactory()
