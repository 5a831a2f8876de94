from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator

from .core import ConversionService, ProgressCallback
from .delivery import DownloadDelivery
from .errors import BusyError, InputError, Stage
from .extract import fetch_page
from .models import ConversionRequest, ConversionResult, SourceKind
from .store import SettingsStore


class ConversionSession:
    """The interactive front door: one conversion at a time.

    Settings are read from the store when an action starts, and the result is
    saved into the downloads folder under the stored filename. Submitting
    while a conversion is in flight raises :class:`BusyError` at once.
    """

    def __init__(
        self,
        service: ConversionService,
        store: SettingsStore,
        delivery: DownloadDelivery | None = None,
        *,
        fetcher: Callable[[str], str] = fetch_page,
        progress: ProgressCallback | None = None,
    ) -> None:
        self._service = service
        self._store = store
        self._delivery = delivery or DownloadDelivery(service.config.runtime.downloads_dir)
        self._fetcher = fetcher
        self._progress = progress
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def _claim(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise BusyError("A conversion is already running; wait for it to finish")
        try:
            yield
        finally:
            self._lock.release()

    def convert_page(self, url: str) -> ConversionResult:
        with self._claim():
            settings = self._store.load()
            return self._service.convert_url(
                url,
                settings.filename,
                settings=settings,
                delivery=self._delivery,
                progress=self._progress,
                fetcher=self._fetcher,
            )

    def convert_selection(self, url: str, selector: str) -> ConversionResult:
        if not selector or not selector.strip():
            raise InputError("Select some content first; the selector is empty", code="SELECTION_EMPTY", stage=Stage.IDLE)
        with self._claim():
            settings = self._store.load()
            return self._service.convert_url(
                url,
                settings.filename,
                selector=selector,
                settings=settings,
                delivery=self._delivery,
                progress=self._progress,
                fetcher=self._fetcher,
            )

    def convert_html(self, html: str, base_url: str | None = None) -> ConversionResult:
        if not html or not html.strip():
            raise InputError("Please enter some HTML content", code="EMPTY_INPUT", stage=Stage.IDLE)
        with self._claim():
            settings = self._store.load()
            request = ConversionRequest(
                source_kind=SourceKind.RAW_HTML,
                html_content=html,
                settings=settings,
                base_url=base_url,
            )
            return self._service.convert(request, settings.filename, delivery=self._delivery, progress=self._progress)


__all__ = ["ConversionSession"]
