from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Callable

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..config import BACKENDS, AppConfig, dump_config, load_config
from ..core import ConversionService
from ..errors import ConversionError, InputError, Stage
from ..extract import read_html_file, read_stream
from ..models import ConversionRequest, ConversionResult, ConversionSettings, SourceKind
from ..renderers import RendererFactory
from ..session import ConversionSession
from ..settings import get_settings
from ..store import SettingsStore

console = Console()

app = typer.Typer(help="Local HTML to paginated PDF conversion toolkit")
settings_app = typer.Typer(help="Show or change the stored conversion settings")
app.add_typer(settings_app, name="settings")

# Tests swap this out to run without a browser.
renderer_factory: RendererFactory | None = None

CONFIG_OPTION = typer.Option(None, "--config", help="Path to config.toml")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log browser lifecycle details")) -> None:
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(message)s", handlers=[RichHandler(console=console, show_path=False)])


def _load_config(path: Path | None) -> AppConfig:
    try:
        return load_config(path or get_settings().config_path)
    except (OSError, ValueError, TypeError, tomllib.TOMLDecodeError, ConversionError) as exc:
        console.print(f"[red]Invalid configuration[/red]: {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _service(config: AppConfig) -> ConversionService:
    return ConversionService(config, renderer_factory)


def _store(config: AppConfig) -> SettingsStore:
    return SettingsStore(config.runtime.settings_file, config.defaults)


def _fail(exc: ConversionError) -> typer.Exit:
    console.print(f"[red]Conversion failed[/red]: {escape(exc.describe())}")
    return typer.Exit(1)


def _check_backend(backend: str | None) -> str | None:
    if backend is not None and backend.lower() not in BACKENDS:
        raise typer.BadParameter(f"choose one of {', '.join(BACKENDS)}", param_hint="--backend")
    return backend


def _run(action: Callable[[Callable[[Stage], None]], ConversionResult]) -> ConversionResult:
    with console.status("Converting...") as status:
        try:
            return action(lambda stage: status.update(f"{stage.value.capitalize()}..."))
        except ConversionError as exc:
            raise _fail(exc) from exc


def _report(result: ConversionResult) -> None:
    console.print(f"[green]Success[/green]: {result.summary}")
    for warning in result.warnings:
        console.print(f"[yellow]Warning[/yellow]: {warning}")


@app.command()
def convert(
    source: str = typer.Argument(..., help="HTML file to convert, or - to read standard input"),
    output: Path = typer.Argument(..., help="Where to write the PDF"),
    page_size: str | None = typer.Option(None, "--page-size", help="A4, Letter, Legal or A3"),
    orientation: str | None = typer.Option(None, "--orientation", help="portrait or landscape"),
    margin: float | None = typer.Option(None, "--margin", min=0, help="Margin in millimetres"),
    no_fonts: bool = typer.Option(False, "--no-fonts", help="Skip the web font stylesheet"),
    no_code_blocks: bool = typer.Option(False, "--no-code-blocks", help="Do not render HTML code samples"),
    backend: str | None = typer.Option(None, "--backend", help="native (print to PDF) or raster"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Convert an HTML file or standard input into a PDF."""

    _check_backend(backend)
    cfg = _load_config(config)
    service = _service(cfg)
    try:
        settings = cfg.defaults.with_overrides(
            page_size=page_size,
            orientation=orientation,
            margin_mm=margin,
            include_fonts=False if no_fonts else None,
            render_code_blocks=False if no_code_blocks else None,
        )
        markup = read_stream() if source == "-" else read_html_file(Path(source), cfg.runtime.max_file_size_mb)
    except InputError as exc:
        raise _fail(exc) from exc
    request = ConversionRequest(
        source_kind=SourceKind.RAW_HTML,
        html_content=markup,
        settings=settings,
        source_label="<stdin>" if source == "-" else source,
    )
    result = _run(lambda progress: service.convert(request, output, backend=backend, progress=progress))
    _report(result)


@app.command()
def page(
    url: str = typer.Argument(..., help="http(s) page to capture"),
    selector: str | None = typer.Option(None, "--selector", help="Only convert elements matching this CSS selector"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Capture a web page with the stored settings into the downloads folder."""

    cfg = _load_config(config)
    session = ConversionSession(_service(cfg), _store(cfg))
    if selector is not None:
        result = _run(lambda _: session.convert_selection(url, selector))
    else:
        result = _run(lambda _: session.convert_page(url))
    _report(result)


@app.command()
def html(
    source: str = typer.Argument("-", help="HTML file, or - to read standard input"),
    base_url: str | None = typer.Option(None, "--base-url", help="Resolve relative links against this URL"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Convert pasted HTML with the stored settings into the downloads folder."""

    cfg = _load_config(config)
    session = ConversionSession(_service(cfg), _store(cfg))
    try:
        markup = read_stream() if source == "-" else read_html_file(Path(source), cfg.runtime.max_file_size_mb)
    except InputError as exc:
        raise _fail(exc) from exc
    result = _run(lambda _: session.convert_html(markup, base_url))
    _report(result)


@app.command()
def batch(
    path: list[Path],
    output_dir: Path | None = typer.Option(None, "--output-dir", help="Directory for the PDFs"),
    parallel: int | None = typer.Option(None, "--parallel", min=1, help="Parallel workers"),
    backend: str | None = typer.Option(None, "--backend", help="native (print to PDF) or raster"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Convert many HTML files; directories are searched recursively."""

    _check_backend(backend)
    cfg = _load_config(config)
    service = _service(cfg)
    batch_result = service.batch_convert(path, output_dir, backend=backend, parallelism=parallel)
    table = Table(title="Batch summary")
    table.add_column("Run ID")
    table.add_column("Output")
    table.add_column("Pages")
    table.add_column("Warnings")
    for result in batch_result.runs:
        pages = str(result.page_count) if result.page_count is not None else "-"
        table.add_row(result.run_id, str(result.output_path), pages, ", ".join(result.warnings) or "-")
    console.print(table)
    summary = batch_result.summary
    console.print(f"Processed {summary.total} files: {summary.successes} succeeded, {summary.failures} failed.")
    for code, count in sorted(summary.errors.items()):
        console.print(f"  [red]{code}[/red] x{count}")
    if summary.failures:
        raise typer.Exit(1)


@settings_app.command("show")
def settings_show(config: Path | None = CONFIG_OPTION) -> None:
    cfg = _load_config(config)
    store = _store(cfg)
    try:
        current = store.load()
    except InputError as exc:
        raise _fail(exc) from exc
    table = Table(title=f"Settings ({store.path})")
    table.add_column("Key")
    table.add_column("Value")
    for key, value in current.to_storage().items():
        table.add_row(key, str(value))
    console.print(table)


@settings_app.command("set")
def settings_set(
    page_size: str | None = typer.Option(None, "--page-size", help="A4, Letter, Legal or A3"),
    orientation: str | None = typer.Option(None, "--orientation", help="portrait or landscape"),
    margin: float | None = typer.Option(None, "--margin", min=0, help="Margin in millimetres"),
    filename: str | None = typer.Option(None, "--filename", help="Download file name"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    cfg = _load_config(config)
    store = _store(cfg)
    try:
        updated: ConversionSettings = store.update(
            pageSize=page_size, orientation=orientation, margin=margin, filename=filename
        )
    except InputError as exc:
        raise _fail(exc) from exc
    console.print(f"[green]Saved[/green] {store.path}: {updated.to_storage()}")


@app.command("show-config")
def show_config(config: Path | None = CONFIG_OPTION) -> None:
    """Print the effective configuration as JSON."""

    typer.echo(dump_config(_load_config(config)))


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Run the local HTTP API."""

    import uvicorn

    from ..api import create_app

    cfg = _load_config(config)
    api = create_app(config or get_settings().config_path, require_enabled=False)
    uvicorn.run(api, host=host or cfg.api.host, port=port or cfg.api.port)


if __name__ == "__main__":
    app()
