from __future__ import annotations

import concurrent.futures
import csv
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Mapping, Sequence

from . import preprocess
from .assembler import assemble
from .config import BACKENDS, AppConfig, load_config
from .delivery import Delivery, FileDelivery
from .errors import ConversionError, InputError, Stage
from .extract import clean_page, fetch_page, read_html_file, select_fragment
from .logging import BatchSummary, RunLogEntry, RunLogger, StageTimings, write_summary_csv
from .models import (
    BatchConversionResult,
    ConversionRequest,
    ConversionResult,
    ConversionSettings,
    NativePdf,
    SourceKind,
)
from .pagination import slice_raster
from .renderers import Renderer, RendererFactory, get_renderer
from .settings import get_settings
from .utils import generate_run_id, iter_files

ProgressCallback = Callable[[Stage], None]
Extractor = Callable[[], str]
Fetcher = Callable[[str], str]

SUMMARY_HEADER = ["batch_id", "timestamp", "total", "successes", "failures", "pages", "errors"]
_TIMING_FIELDS = {
    Stage.EXTRACTING: "extract_ms",
    Stage.PREPROCESSING: "preprocess_ms",
    Stage.RENDERING: "render_ms",
    Stage.PAGINATING: "paginate_ms",
    Stage.ASSEMBLING: "assemble_ms",
    Stage.DELIVERING: "deliver_ms",
}


@dataclass(slots=True)
class _ConversionContext:
    run_id: str
    source: str
    source_kind: SourceKind
    settings: ConversionSettings
    backend: str
    callback: ProgressCallback
    timings: StageTimings = field(default_factory=StageTimings)
    stage: Stage = Stage.IDLE
    page_count: int | None = None
    output_path: Path | None = None
    warnings: list[str] = field(default_factory=list)


class ConversionService:
    """Run conversions through the staged pipeline.

    ``extract -> preprocess -> render -> paginate -> assemble -> deliver``; the
    paginate and assemble stages only run for raster output. Every run appends
    one entry to the JSONL run log whether it succeeds or not.
    """

    def __init__(self, config: AppConfig, renderer_factory: RendererFactory | None = None) -> None:
        self._config = config
        self._sessions = threading.BoundedSemaphore(max(1, config.runtime.max_browser_sessions))
        self._renderer_factory = renderer_factory or self._build_renderer
        self._logger = RunLogger(config.runtime.log_path)

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def run_logger(self) -> RunLogger:
        return self._logger

    def convert(
        self,
        request: ConversionRequest,
        target: str | Path,
        *,
        delivery: Delivery | None = None,
        backend: str | None = None,
        progress: ProgressCallback | None = None,
        run_id: str | None = None,
    ) -> ConversionResult:
        return self._run(
            lambda: request.html_content,
            request.source_label,
            request.source_kind,
            request.settings,
            target,
            base_url=request.base_url,
            delivery=delivery,
            backend=backend,
            progress=progress,
            run_id=run_id,
        )

    def convert_file(
        self,
        path: Path,
        target: str | Path,
        *,
        settings: ConversionSettings | None = None,
        backend: str | None = None,
        progress: ProgressCallback | None = None,
        run_id: str | None = None,
    ) -> ConversionResult:
        limit = self._config.runtime.max_file_size_mb
        return self._run(
            lambda: read_html_file(path, limit),
            str(path),
            SourceKind.RAW_HTML,
            settings or self._config.defaults,
            target,
            backend=backend,
            progress=progress,
            run_id=run_id,
        )

    def convert_url(
        self,
        url: str,
        target: str | Path,
        *,
        selector: str | None = None,
        settings: ConversionSettings | None = None,
        delivery: Delivery | None = None,
        backend: str | None = None,
        progress: ProgressCallback | None = None,
        fetcher: Fetcher = fetch_page,
    ) -> ConversionResult:
        """Capture a web page, or the part of it matching ``selector``."""

        def extract() -> str:
            html = fetcher(url)
            if selector:
                return select_fragment(html, selector, url)
            return clean_page(html, url)

        return self._run(
            extract,
            url,
            SourceKind.SELECTION if selector else SourceKind.PAGE,
            settings or self._config.defaults,
            target,
            delivery=delivery,
            backend=backend,
            progress=progress,
        )

    def _run(
        self,
        extract: Extractor,
        source: str,
        source_kind: SourceKind,
        settings: ConversionSettings,
        target: str | Path,
        *,
        base_url: str | None = None,
        delivery: Delivery | None = None,
        backend: str | None = None,
        progress: ProgressCallback | None = None,
        run_id: str | None = None,
    ) -> ConversionResult:
        backend = (backend or self._config.render.backend).lower()
        context = _ConversionContext(
            run_id=run_id or generate_run_id(),
            source=source,
            source_kind=source_kind,
            settings=settings,
            backend=backend,
            callback=progress or (lambda _: None),
        )
        start = time.perf_counter()
        try:
            if backend not in BACKENDS:
                raise InputError(
                    f"Unsupported backend {backend!r}; choose one of {', '.join(BACKENDS)}",
                    code="INVALID_SETTINGS",
                    stage=Stage.IDLE,
                )
            data = self._convert_internal(extract, context, base_url)
            with self._stage(context, Stage.DELIVERING):
                output_path = (delivery or FileDelivery()).deliver(data, target)
                context.output_path = output_path
        except ConversionError as exc:
            context.callback(Stage.FAILED)
            self._log_failure(context, exc)
            raise

        context.stage = Stage.DONE
        context.callback(Stage.DONE)
        elapsed = time.perf_counter() - start
        pages = f"{context.page_count} page(s)" if context.page_count is not None else "native print"
        self._append_success_log(context, len(data))
        return ConversionResult(
            run_id=context.run_id,
            output_path=output_path,
            backend=backend,
            page_count=context.page_count,
            size_bytes=len(data),
            summary=f"Converted {source} -> {output_path} ({pages}) in {elapsed:.2f}s",
            warnings=list(context.warnings),
        )

    def _convert_internal(self, extract: Extractor, context: _ConversionContext, base_url: str | None) -> bytes:
        with self._stage(context, Stage.EXTRACTING):
            html = extract()
            if not html or not html.strip():
                raise InputError("HTML content is empty; provide markup to convert", code="EMPTY_INPUT")

        with self._stage(context, Stage.PREPROCESSING):
            document = preprocess.process(html, context.settings, base_url)

        with self._stage(context, Stage.RENDERING):
            renderer = self._renderer_factory(context.backend)
            output = renderer.render(document, context.settings)

        if isinstance(output, NativePdf):
            return output.data

        with self._stage(context, Stage.PAGINATING):
            raster = slice_raster(output.image, context.settings)
            context.page_count = max(1, raster.layout.page_count)
            if not raster.pages:
                context.warnings.append("Rendered document has no height; emitted a blank page")

        with self._stage(context, Stage.ASSEMBLING):
            return assemble(raster.pages, context.settings, raster.layout)

    @contextmanager
    def _stage(self, context: _ConversionContext, stage: Stage) -> Iterator[None]:
        context.stage = stage
        context.callback(stage)
        stage_start = time.perf_counter()
        try:
            yield
        except ConversionError as exc:
            exc.stage = stage
            raise
        except Exception as exc:
            message = f"Unexpected failure while {stage.value}: {exc}"
            raise ConversionError(message, code="UNEXPECTED", stage=stage) from exc
        finally:
            setattr(context.timings, _TIMING_FIELDS[stage], (time.perf_counter() - stage_start) * 1000)

    def _build_renderer(self, backend: str) -> Renderer:
        try:
            return get_renderer(backend, self._config.render, self._sessions)
        except KeyError as exc:
            raise InputError(f"No renderer registered for {backend}", code="INVALID_SETTINGS") from exc

    def _log_failure(self, context: _ConversionContext, exc: ConversionError) -> None:
        self._logger.append(
            RunLogEntry(
                run_id=context.run_id,
                source=context.source,
                source_kind=context.source_kind.value,
                status="failure",
                backend=context.backend,
                error_code=exc.code,
                failed_stage=exc.stage.value,
                timings=context.timings,
                output_path=None,
                page_count=context.page_count,
                size_bytes=0,
                warnings=list(context.warnings),
            )
        )

    def _append_success_log(self, context: _ConversionContext, size_bytes: int) -> None:
        self._logger.append(
            RunLogEntry(
                run_id=context.run_id,
                source=context.source,
                source_kind=context.source_kind.value,
                status="success",
                backend=context.backend,
                error_code=None,
                failed_stage=None,
                timings=context.timings,
                output_path=str(context.output_path),
                page_count=context.page_count,
                size_bytes=size_bytes,
                warnings=list(context.warnings),
            )
        )

    def batch_convert(
        self,
        inputs: Sequence[Path],
        output_dir: Path | None = None,
        *,
        settings: ConversionSettings | None = None,
        backend: str | None = None,
        parallelism: int | None = None,
    ) -> BatchConversionResult:
        destination = output_dir or self._config.runtime.output_dir
        summary = BatchSummary()
        parallelism = max(1, parallelism or self._config.runtime.batch.default_parallelism)
        jobs = _batch_jobs(inputs, destination)

        def run(job: tuple[Path, Path]) -> ConversionResult:
            source, target = job
            return self.convert_file(source, target, settings=settings, backend=backend)

        results: list[ConversionResult] = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=parallelism) as executor:
            future_map = {executor.submit(run, job): job for job in jobs}
            for future in concurrent.futures.as_completed(future_map):
                try:
                    result = future.result()
                except ConversionError as exc:
                    summary.record_failure(exc.code)
                    continue
                results.append(result)
                summary.successes += 1
                summary.pages += result.page_count or 0

        summary.total = len(jobs)
        results.sort(key=lambda item: str(item.output_path))
        if jobs:
            self._write_batch_summary(summary)
        return BatchConversionResult(runs=results, summary=summary)

    def _write_batch_summary(self, summary: BatchSummary) -> None:
        summary_path = self._config.runtime.output_dir / self._config.runtime.summary_csv
        header = SUMMARY_HEADER
        rows: list[list[str]] = []
        if summary_path.exists():
            with summary_path.open("r", encoding="utf-8", newline="") as handle:
                reader = list(csv.reader(handle))
            if reader:
                header, rows = reader[0], reader[1:]
        rows.append(summary.as_row(generate_run_id("batch")))
        write_summary_csv(summary_path, header, rows)


def _batch_jobs(inputs: Sequence[Path], destination: Path) -> list[tuple[Path, Path]]:
    """Pair each input with a target, mirroring directories below their input root.

    Targets that would still collide get a ` (n)` suffix.
    """

    jobs: list[tuple[Path, Path]] = []
    claimed: set[Path] = set()
    for root in inputs:
        for path in iter_files([root]):
            relative = path.relative_to(root) if root.is_dir() else Path(path.name)
            target = destination / relative.with_suffix(".pdf")
            stem, counter = target.stem, 1
            while target in claimed:
                target = target.with_name(f"{stem} ({counter}).pdf")
                counter += 1
            claimed.add(target)
            jobs.append((path, target))
    return jobs


def convert_html_to_pdf(
    html_content: str,
    output_path: str | Path,
    options: Mapping[str, object] | None = None,
    *,
    config: AppConfig | None = None,
    renderer_factory: RendererFactory | None = None,
) -> Path:
    """Convert an HTML string and write the PDF to ``output_path``.

    ``options`` accepts the stored camelCase keys (``pageSize``, ``margin``…)
    or the snake_case field names, plus ``backend`` and ``baseUrl``. Empty
    HTML or an empty output path is rejected before any browser starts.
    """

    if not html_content or not str(html_content).strip():
        raise InputError("HTML content is required", code="EMPTY_INPUT")
    if not output_path or not str(output_path).strip():
        raise InputError("Output path is required", code="EMPTY_INPUT")

    options = dict(options or {})
    config = config or load_config(get_settings().config_path)
    settings = ConversionSettings.from_mapping(options, base=config.defaults)
    base_url = options.get("baseUrl") or options.get("base_url")
    backend = options.get("backend")
    service = ConversionService(config, renderer_factory)
    result = service.convert(
        ConversionRequest(
            source_kind=SourceKind.RAW_HTML,
            html_content=str(html_content),
            settings=settings,
            base_url=str(base_url) if base_url else None,
        ),
        Path(output_path),
        backend=str(backend) if backend else None,
    )
    return result.output_path


__all__ = [
    "ConversionService",
    "ProgressCallback",
    "convert_html_to_pdf",
]
