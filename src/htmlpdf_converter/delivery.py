"""Hand finished PDF bytes to the user."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .errors import DeliveryError
from .utils import atomic_write_bytes, pdf_filename, unique_path


class Delivery(Protocol):
    def deliver(self, data: bytes, target: str | Path) -> Path:  # pragma: no cover - interface
        ...


class FileDelivery:
    """Write to an explicit path, replacing whatever was there."""

    def deliver(self, data: bytes, target: str | Path) -> Path:
        path = Path(target)
        try:
            atomic_write_bytes(path, data)
        except OSError as exc:
            raise DeliveryError(f"Could not write {path}: {exc}") from exc
        return path


class DownloadDelivery:
    """Save under a sanitized name inside a downloads folder without overwriting."""

    def __init__(self, downloads_dir: Path) -> None:
        self._downloads_dir = downloads_dir

    @property
    def downloads_dir(self) -> Path:
        return self._downloads_dir

    def deliver(self, data: bytes, target: str | Path) -> Path:
        filename = pdf_filename(str(target))
        try:
            self._downloads_dir.mkdir(parents=True, exist_ok=True)
            path = unique_path(self._downloads_dir, filename)
            atomic_write_bytes(path, data)
        except OSError as exc:
            raise DeliveryError(f"Could not save download {filename}: {exc}") from exc
        return path


__all__ = ["Delivery", "DownloadDelivery", "FileDelivery"]
