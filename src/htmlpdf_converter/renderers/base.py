from __future__ import annotations

import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import Any, Iterator, Protocol

from ..config import RenderConfig
from ..errors import LibraryLoadError, RenderError
from ..models import ConversionSettings, RenderOutput

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    name: str

    def render(self, html: str, settings: ConversionSettings) -> RenderOutput:  # pragma: no cover - interface
        ...


class BaseBrowserRenderer:
    """Shared headless Chromium lifecycle for the concrete renderers.

    Every call to :meth:`render` launches its own browser and closes it again
    on all exit paths. ``sessions`` bounds how many browsers may be open at
    once across threads.
    """

    name: str = "browser"

    def __init__(self, config: RenderConfig, sessions: threading.BoundedSemaphore | None = None) -> None:
        try:
            from playwright.sync_api import Error, sync_playwright
        except ModuleNotFoundError as exc:  # pragma: no cover - import guard
            raise LibraryLoadError(
                "playwright is required for rendering; install it and run `playwright install chromium`"
            ) from exc

        self._config = config
        self._sessions = sessions
        self._sync_playwright = sync_playwright
        self._playwright_error: type[Exception] = Error

    @contextmanager
    def open_page(self, **page_options: Any) -> Iterator[Any]:
        guard = self._sessions if self._sessions is not None else nullcontext()
        with guard:
            with self._sync_playwright() as playwright:
                try:
                    browser = playwright.chromium.launch(headless=True, args=list(self._config.chromium_args))
                except self._playwright_error as exc:
                    raise LibraryLoadError(f"Could not launch headless Chromium: {exc}") from exc
                logger.debug("Launched Chromium for %s renderer", self.name)
                try:
                    page = browser.new_page(**page_options)
                    page.set_default_timeout(self._config.timeout_s * 1000)
                    yield page
                finally:
                    browser.close()
                    logger.debug("Closed Chromium for %s renderer", self.name)

    def load(self, page: Any, html: str) -> None:
        page.set_content(html, wait_until="networkidle")

    def render(self, html: str, settings: ConversionSettings) -> RenderOutput:
        try:
            return self._render(html, settings)
        except self._playwright_error as exc:
            raise RenderError(f"{self.name} rendering failed: {exc}") from exc

    def _render(self, html: str, settings: ConversionSettings) -> RenderOutput:  # pragma: no cover - interface
        raise NotImplementedError
