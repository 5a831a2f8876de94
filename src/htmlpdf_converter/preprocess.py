"""HTML preprocessing: wrapper fix, document shell, print stylesheet, code previews.

Every function here is total: malformed markup is tolerated and returned
wrapped or unchanged, never rejected.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .constants import DOCUMENT_TITLE, PREVIEW_CLASS, PREVIEW_LABEL, STYLE_BLOCK_ID
from .models import ConversionSettings
from .urls import absolutize

HTML_OPEN_RE = re.compile(r"<html(?:\s[^>]*)?>", re.IGNORECASE)
HEAD_OPEN_RE = re.compile(r"<head(?:\s[^>]*)?>", re.IGNORECASE)
HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
BODY_OPEN_RE = re.compile(r"<body(?:\s[^>]*)?>", re.IGNORECASE)
STYLE_MARKER_RE = re.compile(r"<style[^>]*\bid\s*=\s*[\"']" + re.escape(STYLE_BLOCK_ID) + r"[\"']", re.IGNORECASE)
MARKUP_RE = re.compile(r"</?[A-Za-z!][^<>]*>")

SERIF_STACK = "'Times New Roman', 'Georgia', serif"
FONT_STACK = "'Liberation Serif', " + SERIF_STACK
MONO_STACK = "'Courier New', 'Consolas', 'Monaco', monospace"
FONT_IMPORT = (
    "@import url('https://fonts.googleapis.com/css2?family=Liberation+Serif"
    ":ital,wght@0,400;0,700;1,400;1,700&display=swap');"
)

PREVIEW_STYLE = "border: 1px solid #ddd; padding: 10px; margin: 10px 0; background-color: #f9f9f9;"
PREVIEW_LABEL_STYLE = "font-weight: bold; margin-bottom: 5px; color: #666;"


def _meaningful_children(tag: Tag) -> list[object]:
    children: list[object] = []
    for child in tag.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString) and not child.strip():
            continue
        children.append(child)
    return children


def _has_horizontal_auto_margin(style: str) -> bool:
    for declaration in style.split(";"):
        prop, _, value = declaration.partition(":")
        prop = prop.strip().lower()
        parts = [part.lower() for part in value.replace("!important", "").split()]
        if not parts:
            continue
        if prop in {"margin-left", "margin-right"} and parts[0] == "auto":
            return True
        if prop == "margin":
            if len(parts) == 1:
                horizontal = parts
            elif len(parts) in {2, 3}:
                horizontal = [parts[1]]
            else:
                horizontal = [parts[1], parts[3]]
            if "auto" in horizontal:
                return True
    return False


def fix_centering(html: str) -> str:
    """Unwrap unstyled ``<div>`` containers around a single auto-margin ``<div>``.

    Only the wrapper is removed; the centered child keeps its attributes. A
    wrapper with its own non-empty style, more than one element child, or any
    sibling text is left alone. Input without a match is returned verbatim.
    """

    if "auto" not in html.lower():
        return html
    soup = BeautifulSoup(html, "html.parser")
    changed = False
    for wrapper in soup.find_all("div"):
        if wrapper.parent is None:
            continue
        if str(wrapper.get("style") or "").strip():
            continue
        children = _meaningful_children(wrapper)
        if len(children) != 1:
            continue
        child = children[0]
        if not isinstance(child, Tag) or child.name != "div":
            continue
        if not _has_horizontal_auto_margin(str(child.get("style") or "")):
            continue
        wrapper.replace_with(child.extract())
        changed = True
    return str(soup) if changed else html


def has_document_shell(html: str) -> bool:
    return bool(HTML_OPEN_RE.search(html) and HEAD_OPEN_RE.search(html) and BODY_OPEN_RE.search(html))


def generate_css(settings: ConversionSettings) -> str:
    body_font = FONT_STACK if settings.include_fonts else SERIF_STACK
    margin = f"{settings.margin_mm:g}mm"
    important = " !important" if settings.include_fonts else ""
    font_import = FONT_IMPORT if settings.include_fonts else ""
    font_rules = ""
    if settings.include_fonts:
        font_rules = f"""
        p, div, span, li, td, th {{ font-family: {body_font} !important; }}
        pre, code {{ font-family: {MONO_STACK} !important; }}"""
    return f"""<style id="{STYLE_BLOCK_ID}">
        {font_import}
        body {{
            font-family: {body_font}{important};
            font-size: 12pt;
            line-height: 1.4;
            margin: {margin};
            color: #333;
            background: white;
        }}
        h1, h2, h3, h4, h5, h6 {{
            font-family: {body_font}{important};
            color: #000000 !important;
            margin-top: 1.5em;
            margin-bottom: 0.5em;
            page-break-after: avoid;
        }}
        h1 {{ font-size: 24pt; font-weight: 700; }}
        h2 {{ font-size: 20pt; font-weight: 700; }}
        h3 {{ font-size: 16pt; font-weight: 600; }}{font_rules}
        pre, code {{
            background-color: #f8f9fa;
            padding: 8px;
            border-radius: 4px;
            border: 1px solid #e9ecef;
            white-space: pre-wrap;
            word-wrap: break-word;
        }}
        table {{ border-collapse: collapse; width: 100%; margin: 1em 0; page-break-inside: avoid; }}
        th, td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
        th {{ background-color: #f8f9fa; font-weight: bold; }}
        img {{ max-width: 100%; height: auto; page-break-inside: avoid; }}
        ul, ol {{ margin: 1em 0; padding-left: 2em; }}
        li {{ margin: 0.5em 0; }}
        blockquote {{
            border-left: 4px solid #007bff;
            margin: 1em 0;
            padding-left: 1em;
            font-style: italic;
            color: #666;
        }}
        .page-break {{ page-break-before: always; }}
        .no-break {{ page-break-inside: avoid; }}
        @media print {{
            * {{
                -webkit-print-color-adjust: exact !important;
                print-color-adjust: exact !important;
                color-adjust: exact !important;
            }}
        }}
    </style>"""


def inject_styles(html: str, settings: ConversionSettings) -> str:
    """Splice the stylesheet into a complete document or wrap a fragment in one."""

    if STYLE_MARKER_RE.search(html):
        return html
    css = generate_css(settings)
    if has_document_shell(html):
        closing = HEAD_CLOSE_RE.search(html)
        if closing:
            return f"{html[:closing.start()]}{css}\n{html[closing.start():]}"
        opening = HEAD_OPEN_RE.search(html)
        if opening:
            return f"{html[:opening.end()]}\n{css}{html[opening.end():]}"
    return "\n".join(
        [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '    <meta charset="UTF-8">',
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f"    <title>{DOCUMENT_TITLE}</title>",
            f"    {css}",
            "</head>",
            "<body>",
            html,
            "</body>",
            "</html>",
        ]
    )


def looks_like_markup(text: str) -> bool:
    return "<" in text and ">" in text and bool(MARKUP_RE.search(text))


def _sole_code_child(pre: Tag) -> Tag | None:
    children = _meaningful_children(pre)
    if len(children) == 1 and isinstance(children[0], Tag) and children[0].name == "code":
        return children[0]
    return None


def _has_preview(pre: Tag) -> bool:
    sibling = pre.find_next_sibling()
    return isinstance(sibling, Tag) and PREVIEW_CLASS in (sibling.get("class") or [])


def _build_preview(soup: BeautifulSoup, source: str) -> Tag:
    container = soup.new_tag("div", attrs={"class": PREVIEW_CLASS, "style": PREVIEW_STYLE})
    label = soup.new_tag("div", attrs={"style": PREVIEW_LABEL_STYLE})
    label.string = PREVIEW_LABEL
    container.append(label)
    rendered = soup.new_tag("div")
    fragment = BeautifulSoup(source, "html.parser")
    for node in list(fragment.contents):
        rendered.append(node.extract())
    container.append(rendered)
    return container


def render_code_blocks(html: str) -> str:
    """Append a live preview after each ``<pre><code>`` block holding markup."""

    if "<pre" not in html.lower():
        return html
    soup = BeautifulSoup(html, "html.parser")
    changed = False
    for pre in soup.find_all("pre"):
        code = _sole_code_child(pre)
        if code is None:
            continue
        source = code.get_text()
        if not looks_like_markup(source) or _has_preview(pre):
            continue
        pre.insert_after(_build_preview(soup, source))
        changed = True
    return str(soup) if changed else html


def absolutize_html(html: str, base_url: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    absolutize(soup, base_url)
    return str(soup)


def process(html: str, settings: ConversionSettings, base_url: str | None = None) -> str:
    """Turn arbitrary markup into a self-contained, print-styled document."""

    html = html or ""
    html = fix_centering(html)
    html = inject_styles(html, settings)
    if settings.render_code_blocks:
        html = render_code_blocks(html)
    if base_url:
        html = absolutize_html(html, base_url)
    return html


__all__ = [
    "absolutize_html",
    "fix_centering",
    "generate_css",
    "has_document_shell",
    "inject_styles",
    "looks_like_markup",
    "process",
    "render_code_blocks",
]
