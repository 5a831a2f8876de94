"""Rewrite relative resource references against the page they came from."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

URL_ATTRIBUTES = ("src", "href")
CSS_URL_RE = re.compile(r"url\(\s*(['\"]?)([^'\")]+)\1\s*\)", re.IGNORECASE)


def is_absolute(url: str) -> bool:
    stripped = url.strip()
    if stripped.startswith("//"):
        return True
    return bool(urlsplit(stripped).scheme)


def resolve(url: str, base_url: str) -> str:
    """Resolve *url* against *base_url*, leaving absolute, data and fragment refs as-is."""

    stripped = url.strip()
    if not stripped or stripped.startswith("#") or is_absolute(stripped):
        return url
    return urljoin(base_url, stripped)


def _rewrite_css_urls(style: str, base_url: str) -> str:
    def replace(match: re.Match[str]) -> str:
        quote, target = match.group(1), match.group(2)
        resolved = resolve(target, base_url)
        if resolved == target:
            return match.group(0)
        return f'url("{resolved}")' if not quote else f"url({quote}{resolved}{quote})"

    return CSS_URL_RE.sub(replace, style)


def absolutize(subtree: BeautifulSoup | Tag, base_url: str) -> None:
    """Rewrite ``src``/``href`` attributes and inline ``url(...)`` values in place."""

    if not base_url:
        return
    for element in subtree.find_all(True):
        for attribute in URL_ATTRIBUTES:
            value = element.get(attribute)
            if isinstance(value, str):
                element[attribute] = resolve(value, base_url)
        style = element.get("style")
        if isinstance(style, str) and "url(" in style.lower():
            element["style"] = _rewrite_css_urls(style, base_url)


__all__ = ["absolutize", "is_absolute", "resolve"]
