from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from .constants import SETTINGS_KEYS
from .errors import InputError
from .models import ConversionSettings
from .utils import atomic_write


class SettingsStore:
    """Persisted user settings as a flat JSON object.

    Only ``pageSize``, ``orientation``, ``margin`` and ``filename`` are kept.
    Missing keys fall back to ``defaults`` and unknown keys are ignored.
    """

    def __init__(self, path: Path, defaults: ConversionSettings | None = None) -> None:
        self._path = path
        self._defaults = defaults or ConversionSettings()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Mapping[str, object]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise InputError(f"Settings file {self._path} is not valid JSON: {exc}", code="INVALID_SETTINGS") from exc
        if not isinstance(data, dict):
            raise InputError(f"Settings file {self._path} must hold a JSON object", code="INVALID_SETTINGS")
        return {key: data[key] for key in SETTINGS_KEYS if key in data}

    def load(self) -> ConversionSettings:
        return ConversionSettings.from_mapping(self._read(), base=self._defaults)

    def save(self, settings: ConversionSettings) -> Path:
        atomic_write(self._path, json.dumps(settings.to_storage(), indent=2) + "\n")
        return self._path

    def update(self, **changes: object) -> ConversionSettings:
        settings = ConversionSettings.from_mapping(changes, base=self.load())
        self.save(settings)
        return settings


__all__ = ["SettingsStore"]
