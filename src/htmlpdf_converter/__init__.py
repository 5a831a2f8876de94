"""Local HTML to paginated PDF conversion toolkit."""

__version__ = "0.1.0"

from .config import AppConfig, load_config
from .core import ConversionService, convert_html_to_pdf
from .errors import (
    AccessError,
    BusyError,
    ConversionError,
    DeliveryError,
    InputError,
    LibraryLoadError,
    RenderError,
    Stage,
)
from .models import BatchConversionResult, ConversionRequest, ConversionResult, ConversionSettings
from .session import ConversionSession
from .store import SettingsStore

__all__ = [
    "AccessError",
    "AppConfig",
    "BatchConversionResult",
    "BusyError",
    "ConversionError",
    "ConversionRequest",
    "ConversionResult",
    "ConversionService",
    "ConversionSession",
    "ConversionSettings",
    "DeliveryError",
    "InputError",
    "LibraryLoadError",
    "RenderError",
    "SettingsStore",
    "Stage",
    "convert_html_to_pdf",
    "load_config",
]
