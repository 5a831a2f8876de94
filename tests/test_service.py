import csv
from pathlib import Path

import pytest
from PIL import PdfParser

from conftest import FAKE_PDF, FakeRendererFactory, build_config
from htmlpdf_converter.config import AppConfig
from htmlpdf_converter.core import ConversionService, convert_html_to_pdf
from htmlpdf_converter.errors import ConversionError, InputError, RenderError, Stage
from htmlpdf_converter.models import ConversionRequest, ConversionSettings, RenderOutput, SourceKind


def _request(html: str, **settings: object) -> ConversionRequest:
    return ConversionRequest(
        source_kind=SourceKind.RAW_HTML,
        html_content=html,
        settings=ConversionSettings(**settings),
    )


def test_raster_conversion_writes_paginated_pdf(
    tmp_path: Path, config: AppConfig, renderers: FakeRendererFactory
) -> None:
    service = ConversionService(config, renderers)
    stages: list[Stage] = []
    result = service.convert(_request("<h1>Hello</h1>"), tmp_path / "out.pdf", progress=stages.append)

    assert result.output_path.exists()
    assert result.backend == "raster"
    assert result.page_count == 3
    assert len(PdfParser.PdfParser(str(result.output_path)).pages) == 3
    assert stages == [
        Stage.EXTRACTING,
        Stage.PREPROCESSING,
        Stage.RENDERING,
        Stage.PAGINATING,
        Stage.ASSEMBLING,
        Stage.DELIVERING,
        Stage.DONE,
    ]
    rendered = renderers.created["raster"].documents[0]
    assert rendered.startswith("<!DOCTYPE html>")
    assert "<h1>Hello</h1>" in rendered

    entry = service.run_logger.read()[-1]
    assert entry["status"] == "success"
    assert entry["page_count"] == 3
    assert entry["size_bytes"] == result.size_bytes
    assert set(entry["timings"]) >= {"extract_ms", "render_ms", "paginate_ms", "assemble_ms", "deliver_ms"}


def test_native_conversion_skips_pagination(tmp_path: Path, config: AppConfig, renderers: FakeRendererFactory) -> None:
    service = ConversionService(config, renderers)
    stages: list[Stage] = []
    result = service.convert(_request("<p>x</p>"), tmp_path / "native.pdf", backend="native", progress=stages.append)
    assert result.output_path.read_bytes() == FAKE_PDF
    assert result.page_count is None
    assert Stage.PAGINATING not in stages
    assert "raster" not in renderers.created


def test_zero_height_render_gives_single_blank_page(tmp_path: Path, config: AppConfig) -> None:
    service = ConversionService(config, FakeRendererFactory(height_px=0))
    result = service.convert(_request("<p></p>"), tmp_path / "blank.pdf")
    assert result.page_count == 1
    assert result.warnings


def test_empty_html_fails_before_rendering(tmp_path: Path, config: AppConfig, renderers: FakeRendererFactory) -> None:
    service = ConversionService(config, renderers)
    with pytest.raises(InputError) as excinfo:
        service.convert(_request("   "), tmp_path / "out.pdf")
    assert excinfo.value.code == "EMPTY_INPUT"
    assert excinfo.value.stage is Stage.EXTRACTING
    assert renderers.created == {}
    assert not (tmp_path / "out.pdf").exists()
    entry = service.run_logger.read()[-1]
    assert entry["status"] == "failure"
    assert entry["failed_stage"] == "extracting"


def test_render_failure_is_tagged_with_stage(tmp_path: Path, config: AppConfig) -> None:
    class BrokenRenderer:
        name = "raster"

        def render(self, html: str, settings: ConversionSettings) -> RenderOutput:
            raise RenderError("browser crashed")

    service = ConversionService(config, lambda backend: BrokenRenderer())
    with pytest.raises(RenderError) as excinfo:
        service.convert(_request("<p>x</p>"), tmp_path / "out.pdf")
    assert excinfo.value.stage is Stage.RENDERING
    assert service.run_logger.read()[-1]["error_code"] == "RENDER_FAILED"


def test_unexpected_renderer_exception_fails_only_that_run(tmp_path: Path, config: AppConfig) -> None:
    class CrashingRenderer:
        name = "raster"

        def render(self, html: str, settings: ConversionSettings) -> RenderOutput:
            raise ZeroDivisionError("division by zero")

    stages: list[Stage] = []
    service = ConversionService(config, lambda backend: CrashingRenderer())
    with pytest.raises(ConversionError) as excinfo:
        service.convert(_request("<p>x</p>"), tmp_path / "out.pdf", progress=stages.append)
    assert excinfo.value.code == "UNEXPECTED"
    assert excinfo.value.stage is Stage.RENDERING
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)
    assert stages[-1] is Stage.FAILED
    entry = service.run_logger.read()[-1]
    assert entry["status"] == "failure"
    assert entry["failed_stage"] == "rendering"


def test_unknown_backend_rejected(tmp_path: Path, config: AppConfig, renderers: FakeRendererFactory) -> None:
    service = ConversionService(config, renderers)
    with pytest.raises(InputError) as excinfo:
        service.convert(_request("<p>x</p>"), tmp_path / "out.pdf", backend="wkhtml")
    assert excinfo.value.code == "INVALID_SETTINGS"


def test_convert_url_uses_fetcher(tmp_path: Path, config: AppConfig, renderers: FakeRendererFactory) -> None:
    page = '<html><head><script>x()</script></head><body><main><img src="a.png"></main><p>tail</p></body></html>'
    service = ConversionService(config, renderers)
    result = service.convert_url(
        "https://example.com/post/",
        tmp_path / "page.pdf",
        selector="main",
        fetcher=lambda url: page,
    )
    assert result.output_path.exists()
    rendered = renderers.created["raster"].documents[0]
    assert "https://example.com/post/a.png" in rendered
    assert "tail" not in rendered
    assert "x()" not in rendered


def test_batch_convert_writes_summary(tmp_path: Path, renderers: FakeRendererFactory) -> None:
    config = build_config(tmp_path)
    inputs = tmp_path / "inputs"
    inputs.mkdir()
    (inputs / "a.html").write_text("<p>A</p>", encoding="utf-8")
    (inputs / "b.html").write_text("<p>B</p>", encoding="utf-8")
    (inputs / "empty.html").write_text("", encoding="utf-8")
    service = ConversionService(config, renderers)

    result = service.batch_convert([inputs], tmp_path / "pdfs", parallelism=2)

    assert result.summary.total == 3
    assert result.summary.successes == 2
    assert result.summary.failures == 1
    assert result.summary.errors == {"EMPTY_INPUT": 1}
    assert result.summary.pages == 6
    assert sorted(p.output_path.name for p in result.runs) == ["a.pdf", "b.pdf"]
    with (config.runtime.output_dir / "summary.csv").open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == ["batch_id", "timestamp", "total", "successes", "failures", "pages", "errors"]
    assert rows[1][2:6] == ["3", "2", "1", "6"]


def test_batch_convert_keeps_same_named_inputs_apart(tmp_path: Path, renderers: FakeRendererFactory) -> None:
    config = build_config(tmp_path)
    inputs = tmp_path / "inputs"
    for folder in ("a", "b"):
        (inputs / folder).mkdir(parents=True)
        (inputs / folder / "index.html").write_text(f"<p>{folder}</p>", encoding="utf-8")
    loose = tmp_path / "index.html"
    loose.write_text("<p>loose</p>", encoding="utf-8")
    service = ConversionService(config, renderers)

    output_dir = tmp_path / "pdfs"
    result = service.batch_convert([inputs, loose], output_dir)

    assert result.summary.successes == 3
    outputs = {run.output_path.relative_to(output_dir).as_posix() for run in result.runs}
    assert outputs == {"a/index.pdf", "b/index.pdf", "index.pdf"}
    assert all(run.output_path.exists() for run in result.runs)


def test_batch_convert_suffixes_colliding_explicit_files(tmp_path: Path, renderers: FakeRendererFactory) -> None:
    config = build_config(tmp_path)
    first = tmp_path / "one" / "report.html"
    second = tmp_path / "two" / "report.htm"
    for path in (first, second):
        path.parent.mkdir()
        path.write_text("<p>r</p>", encoding="utf-8")
    service = ConversionService(config, renderers)

    result = service.batch_convert([first, second], tmp_path / "pdfs")

    assert sorted(run.output_path.name for run in result.runs) == ["report (1).pdf", "report.pdf"]


def test_convert_html_to_pdf_rejects_empty_input_before_rendering(tmp_path: Path) -> None:
    calls: list[str] = []

    def factory(backend: str):
        calls.append(backend)
        raise AssertionError("renderer must not be created")

    config = build_config(tmp_path)
    with pytest.raises(InputError):
        convert_html_to_pdf("", "out.pdf", config=config, renderer_factory=factory)
    with pytest.raises(InputError):
        convert_html_to_pdf("<p>x</p>", "", config=config, renderer_factory=factory)
    assert calls == []


def test_convert_html_to_pdf_accepts_stored_option_names(tmp_path: Path, renderers: FakeRendererFactory) -> None:
    config = build_config(tmp_path)
    output = convert_html_to_pdf(
        "<p>x</p>",
        tmp_path / "opts.pdf",
        {"pageSize": "Letter", "orientation": "landscape", "margin": 0, "backend": "raster"},
        config=config,
        renderer_factory=renderers,
    )
    assert output == tmp_path / "opts.pdf"
    assert output.read_bytes().startswith(b"%PDF")
    assert "margin: 0mm" in renderers.created["raster"].documents[0]
