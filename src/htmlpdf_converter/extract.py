"""Obtain the HTML a conversion starts from: a file, stdin, a web page or part of one."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO
from urllib.parse import urlsplit

import requests
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from .errors import AccessError, InputError
from .urls import absolutize
from .utils import size_within_limit

FETCH_TIMEOUT_S = 20
USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) htmlpdf-converter"
FETCHABLE_SCHEMES = frozenset({"http", "https"})
PRIVILEGED_SCHEMES = frozenset({"chrome", "chrome-extension", "about", "view-source", "edge", "moz-extension"})
# Elements dropped from a captured page before conversion.
STRIP_SELECTOR = "script, style[data-vite-dev-id], link[rel~=stylesheet]"


def read_html_file(path: Path, max_file_size_mb: int) -> str:
    if not path.exists() or not path.is_file():
        raise InputError(f"Input file does not exist: {path}", code="NOT_FOUND")
    size = path.stat().st_size
    if not size_within_limit(size, max_file_size_mb):
        raise InputError(
            f"{path.name} is larger than the {max_file_size_mb} MB limit; raise runtime.max_file_size_mb to convert it",
            code="SIZE_LIMIT",
        )
    text = path.read_text(encoding="utf-8", errors="replace")
    if not text.strip():
        raise InputError(f"{path.name} is empty; nothing to convert", code="EMPTY_INPUT")
    return text


def read_stream(stream: TextIO | None = None) -> str:
    text = (stream or sys.stdin).read()
    if not text.strip():
        raise InputError("No HTML received on standard input", code="EMPTY_INPUT")
    return text


def check_url_access(url: str) -> str:
    """Return the scheme of *url* or raise when the page cannot be captured."""

    scheme = urlsplit(url.strip()).scheme.lower()
    if not url.strip() or not scheme:
        raise InputError(f"Not an absolute URL: {url!r}", code="EMPTY_INPUT")
    if scheme in PRIVILEGED_SCHEMES:
        raise AccessError(f"Cannot access {scheme}: pages. Try a regular website or paste the HTML instead.")
    if scheme not in FETCHABLE_SCHEMES:
        raise AccessError(f"Cannot access {scheme}: URLs. Only http and https pages can be captured.")
    return scheme


def fetch_page(url: str, *, timeout: float = FETCH_TIMEOUT_S, session: requests.Session | None = None) -> str:
    check_url_access(url)
    client = session or requests
    try:
        response = client.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.RequestException as exc:
        raise InputError(f"Could not fetch {url}: {exc}", code="FETCH_FAILED") from exc
    if response.status_code in {401, 403}:
        raise AccessError(
            f"{url} answered {response.status_code}; the page needs a login. Save it locally and convert the file instead."
        )
    if response.status_code >= 400:
        raise InputError(f"Could not fetch {url}: HTTP {response.status_code}", code="FETCH_FAILED")
    if not response.text.strip():
        raise InputError(f"{url} returned an empty document", code="EMPTY_INPUT")
    return response.text


def clean_page(html: str, url: str) -> str:
    """Strip scripts and stylesheets, pin a ``<base>`` and absolutize references."""

    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(STRIP_SELECTOR):
        element.decompose()
    absolutize(soup, url)

    head = soup.head
    if head is None:
        head = soup.new_tag("head")
        if soup.html is not None:
            soup.html.insert(0, head)
        else:
            soup.insert(0, head)
    for existing in head.find_all("base"):
        existing.decompose()
    head.insert(0, soup.new_tag("base", attrs={"href": url}))
    return str(soup)


def select_fragment(html: str, selector: str, url: str | None = None) -> str:
    """Return the outer HTML of every element matching *selector*."""

    soup = BeautifulSoup(html, "html.parser")
    try:
        matches = soup.select(selector)
    except SelectorSyntaxError as exc:
        raise InputError(f"Invalid CSS selector {selector!r}: {exc}", code="SELECTION_EMPTY") from exc
    if not matches:
        raise InputError(f"Nothing on the page matches {selector!r}; pick a different selector", code="SELECTION_EMPTY")
    matched_ids = {id(match) for match in matches}
    selected = [match for match in matches if not any(id(parent) in matched_ids for parent in match.parents)]
    container = soup.new_tag("div")
    for match in selected:
        container.append(match.extract())
    if url:
        absolutize(container, url)
    fragment = container.decode_contents()
    if not fragment.strip():
        raise InputError(f"The elements matching {selector!r} are empty", code="SELECTION_EMPTY")
    return fragment


__all__ = [
    "check_url_access",
    "clean_page",
    "fetch_page",
    "read_html_file",
    "read_stream",
    "select_fragment",
]
