from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Literal, Mapping

from .constants import (
    CHROMIUM_ARGS,
    DEFAULT_CONFIG_PATH,
    RASTER_DEVICE_SCALE_FACTOR,
    RASTER_VIEWPORT_WIDTH_PX,
)
from .models import ConversionSettings

Backend = Literal["native", "raster"]
BACKENDS: tuple[str, ...] = ("native", "raster")


@dataclass(slots=True)
class BatchConfig:
    default_parallelism: int = 1


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("runs")
    downloads_dir: Path = Path("downloads")
    log_file: str = "log.jsonl"
    summary_csv: str = "summary.csv"
    settings_file: Path = Path("settings.json")
    max_file_size_mb: int = 25
    max_browser_sessions: int = 2
    enable_local_api: bool = False
    batch: BatchConfig = field(default_factory=BatchConfig)

    @property
    def log_path(self) -> Path:
        return self.output_dir / self.log_file


@dataclass(slots=True)
class RenderConfig:
    backend: Backend = "native"
    viewport_width_px: int = RASTER_VIEWPORT_WIDTH_PX
    device_scale_factor: float = RASTER_DEVICE_SCALE_FACTOR
    timeout_s: int = 60
    chromium_args: tuple[str, ...] = CHROMIUM_ARGS


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    defaults: ConversionSettings = field(default_factory=ConversionSettings)
    api: APIConfig = field(default_factory=APIConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else None


def _build_batch(data: Mapping[str, object] | None) -> BatchConfig:
    if not data:
        return BatchConfig()
    return BatchConfig(default_parallelism=max(1, int(data.get("default_parallelism", 1))))


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    batch = _build_batch(_section(data, "batch"))
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "runs"))),
        downloads_dir=Path(str(data.get("downloads_dir", "downloads"))),
        log_file=str(data.get("log_file", "log.jsonl")),
        summary_csv=str(data.get("summary_csv", "summary.csv")),
        settings_file=Path(str(data.get("settings_file", "settings.json"))),
        max_file_size_mb=int(data.get("max_file_size_mb", 25)),
        max_browser_sessions=max(1, int(data.get("max_browser_sessions", 2))),
        enable_local_api=bool(data.get("enable_local_api", False)),
        batch=batch,
    )


def _tuple_of_strings(value: object | None, default: Iterable[str]) -> tuple[str, ...]:
    if not value:
        return tuple(default)
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value)
    raise TypeError(f"Unsupported chromium_args configuration: {value!r}")


def _build_render(data: Mapping[str, object] | None) -> RenderConfig:
    if not data:
        return RenderConfig()
    backend = str(data.get("backend", "native")).lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unsupported render backend {backend!r}; expected one of {', '.join(BACKENDS)}")
    return RenderConfig(
        backend=backend,  # type: ignore[arg-type]
        viewport_width_px=int(data.get("viewport_width_px", RASTER_VIEWPORT_WIDTH_PX)),
        device_scale_factor=float(data.get("device_scale_factor", RASTER_DEVICE_SCALE_FACTOR)),
        timeout_s=int(data.get("timeout_s", 60)),
        chromium_args=_tuple_of_strings(data.get("chromium_args"), CHROMIUM_ARGS),
    )


def _build_defaults(data: Mapping[str, object] | None) -> ConversionSettings:
    if not data:
        return ConversionSettings()
    return ConversionSettings.from_mapping(data)


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or DEFAULT_CONFIG_PATH
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        render=_build_render(_section(raw, "render")),
        defaults=_build_defaults(_section(raw, "defaults")),
        api=_build_api(_section(raw, "api")),
    )


def dump_config(config: AppConfig) -> str:
    defaults = config.defaults
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "downloads_dir": str(config.runtime.downloads_dir),
            "log_file": config.runtime.log_file,
            "summary_csv": config.runtime.summary_csv,
            "settings_file": str(config.runtime.settings_file),
            "max_file_size_mb": config.runtime.max_file_size_mb,
            "max_browser_sessions": config.runtime.max_browser_sessions,
            "enable_local_api": config.runtime.enable_local_api,
            "batch": {
                "default_parallelism": config.runtime.batch.default_parallelism,
            },
        },
        "render": {
            "backend": config.render.backend,
            "viewport_width_px": config.render.viewport_width_px,
            "device_scale_factor": config.render.device_scale_factor,
            "timeout_s": config.render.timeout_s,
            "chromium_args": list(config.render.chromium_args),
        },
        "defaults": {
            "page_size": defaults.page_size.value,
            "orientation": defaults.orientation.value,
            "margin_mm": defaults.margin_mm,
            "filename": defaults.filename,
            "include_fonts": defaults.include_fonts,
            "render_code_blocks": defaults.render_code_blocks,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)
