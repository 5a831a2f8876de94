from pathlib import Path

import pytest
import requests
from bs4 import BeautifulSoup

from htmlpdf_converter.errors import AccessError, InputError
from htmlpdf_converter.extract import (
    check_url_access,
    clean_page,
    fetch_page,
    read_html_file,
    select_fragment,
)

PAGE = """<html><head>
<script src="app.js"></script>
<style data-vite-dev-id="x">body{}</style>
<link rel="stylesheet" href="site.css">
<link rel="icon" href="favicon.ico">
<style>.keep{}</style>
</head><body>
<article id="main"><h1>Title</h1><img src="img/a.png"></article>
<aside class="note">one</aside><aside class="note">two</aside>
<script>alert(1)</script>
</body></html>"""
URL = "https://example.com/blog/post.html"


class FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[str] = []

    def get(self, url: str, **kwargs: object) -> FakeResponse:
        self.calls.append(url)
        if self.error:
            raise self.error
        assert self.response is not None
        return self.response


@pytest.mark.parametrize(
    "url",
    ["chrome://settings", "chrome-extension://abc/popup.html", "about:blank", "view-source:https://x.org"],
)
def test_privileged_pages_are_refused(url: str) -> None:
    with pytest.raises(AccessError) as excinfo:
        check_url_access(url)
    assert excinfo.value.code == "ACCESS_DENIED"
    assert "regular website" in str(excinfo.value)


def test_non_http_schemes_and_relative_urls() -> None:
    assert check_url_access("https://example.com") == "https"
    with pytest.raises(AccessError):
        check_url_access("ftp://example.com/file")
    with pytest.raises(InputError):
        check_url_access("example.com/page")


def test_fetch_page_maps_statuses() -> None:
    assert fetch_page(URL, session=FakeSession(FakeResponse(200, PAGE))) == PAGE
    with pytest.raises(AccessError):
        fetch_page(URL, session=FakeSession(FakeResponse(403)))
    with pytest.raises(InputError) as excinfo:
        fetch_page(URL, session=FakeSession(FakeResponse(500)))
    assert excinfo.value.code == "FETCH_FAILED"
    with pytest.raises(InputError) as excinfo:
        fetch_page(URL, session=FakeSession(error=requests.ConnectionError("refused")))
    assert excinfo.value.code == "FETCH_FAILED"


def test_fetch_page_checks_scheme_before_network() -> None:
    session = FakeSession(FakeResponse(200, PAGE))
    with pytest.raises(AccessError):
        fetch_page("chrome://history", session=session)
    assert session.calls == []


def test_clean_page_strips_scripts_and_stylesheets() -> None:
    soup = BeautifulSoup(clean_page(PAGE, URL), "html.parser")
    assert soup.find("script") is None
    assert soup.find("style", attrs={"data-vite-dev-id": True}) is None
    assert soup.find("link", rel="stylesheet") is None
    assert soup.find("link", rel="icon")["href"] == "https://example.com/blog/favicon.ico"
    assert soup.find("style").string == ".keep{}"
    assert soup.head.contents[0].name == "base"
    assert soup.head.contents[0]["href"] == URL
    assert soup.img["src"] == "https://example.com/blog/img/a.png"


def test_select_fragment() -> None:
    fragment = select_fragment(PAGE, "#main", URL)
    assert fragment.startswith('<article id="main">')
    assert "https://example.com/blog/img/a.png" in fragment
    notes = select_fragment(PAGE, "aside.note")
    assert notes == '<aside class="note">one</aside><aside class="note">two</aside>'


def test_select_fragment_skips_nested_matches() -> None:
    html = "<div class='x'><div class='x'>inner</div></div>"
    assert select_fragment(html, ".x") == '<div class="x"><div class="x">inner</div></div>'


def test_select_fragment_errors() -> None:
    with pytest.raises(InputError) as excinfo:
        select_fragment(PAGE, ".missing")
    assert excinfo.value.code == "SELECTION_EMPTY"
    with pytest.raises(InputError):
        select_fragment(PAGE, "[[bad")


def test_read_html_file(tmp_path: Path) -> None:
    source = tmp_path / "page.html"
    source.write_text("<p>hi</p>", encoding="utf-8")
    assert read_html_file(source, 1) == "<p>hi</p>"

    with pytest.raises(InputError) as excinfo:
        read_html_file(tmp_path / "missing.html", 1)
    assert excinfo.value.code == "NOT_FOUND"

    empty = tmp_path / "empty.html"
    empty.write_text("  \n", encoding="utf-8")
    with pytest.raises(InputError) as excinfo:
        read_html_file(empty, 1)
    assert excinfo.value.code == "EMPTY_INPUT"

    large = tmp_path / "large.html"
    large.write_bytes(b"x" * (1024 * 1024 + 1))
    with pytest.raises(InputError) as excinfo:
        read_html_file(large, 1)
    assert excinfo.value.code == "SIZE_LIMIT"
