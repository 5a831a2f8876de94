"""Stage-tagged conversion errors."""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    PREPROCESSING = "preprocessing"
    RENDERING = "rendering"
    PAGINATING = "paginating"
    ASSEMBLING = "assembling"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


class ConversionError(RuntimeError):
    default_code = "CONVERSION_FAILED"
    default_stage = Stage.IDLE

    def __init__(self, message: str, *, code: str | None = None, stage: Stage | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.stage = stage or self.default_stage

    def describe(self) -> str:
        return f"[{self.stage.value}] {self.code}: {self}"


class InputError(ConversionError):
    """Empty or invalid HTML, bad settings, or a missing input file."""

    default_code = "INVALID_INPUT"
    default_stage = Stage.EXTRACTING


class AccessError(ConversionError):
    """The source page cannot be read (internal pages, 401/403)."""

    default_code = "ACCESS_DENIED"
    default_stage = Stage.EXTRACTING


class LibraryLoadError(ConversionError):
    """A rendering dependency could not be imported or launched."""

    default_code = "LIBRARY_LOAD"
    default_stage = Stage.RENDERING


class RenderError(ConversionError):
    default_code = "RENDER_FAILED"
    default_stage = Stage.RENDERING


class DeliveryError(ConversionError):
    default_code = "DELIVERY_FAILED"
    default_stage = Stage.DELIVERING


class BusyError(ConversionError):
    """A conversion is already running for this session."""

    default_code = "BUSY"
    default_stage = Stage.IDLE


__all__ = [
    "AccessError",
    "BusyError",
    "ConversionError",
    "DeliveryError",
    "InputError",
    "LibraryLoadError",
    "RenderError",
    "Stage",
]
