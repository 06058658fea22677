"""HTML utility functions for Tessera.

This module provides the markup operations of a build: minifying the
assembled document and scanning it for images that request a specific size.

Functions:
    minify_markup: Minify HTML along with inline CSS and JavaScript.
    find_sized_images: Find <img> tags carrying src, width and height.
    is_external_url: Check whether a URL points outside the site sources.
    parse_dimension: Parse an HTML width/height attribute value.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import minify_html

logger = logging.getLogger(__name__)

# quoted values may contain ">"
_IMG_TAG_RE = re.compile(
    r"""<img\b(?P<attrs>(?:"[^"]*"|'[^']*'|[^'">])*)>""", re.IGNORECASE
)

# name=value pairs inside a tag; values may be double, single or unquoted
_ATTR_RE = re.compile(
    r"""(?P<name>[^\s"'>/=]+)"""
    r"""(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s"'=<>`]+)))?"""
)

_DIMENSION_RE = re.compile(r"\s*(?P<digits>\d+)(?P<unit>[^\d]*)")

# URL prefixes that never refer to a file in the source tree
_URL_SKIP_PREFIXES = (
    "http://",
    "https://",
    "//",
    "data:",
    "mailto:",
    "tel:",
    "#",
    "javascript:",
)


@dataclass(frozen=True)
class ImageRef:
    """An image tag that asks for an explicit rendered size.

    Attributes:
        src: Image path relative to the source directory.
        width: Requested width in pixels.
        height: Requested height in pixels.
    """

    src: str
    width: int
    height: int


def minify_markup(
    html: str,
    minify_css: bool = True,
    minify_js: bool = True,
    keep_comments: bool = False,
) -> str:
    """Minify an HTML document.

    Whitespace is collapsed and, unless disabled, comments are removed and
    inline <style> and <script> blocks are minified as well.

    Args:
        html: Markup to minify.
        minify_css: Minify inline stylesheets.
        minify_js: Minify inline scripts.
        keep_comments: Keep HTML comments in the output.

    Returns:
        The minified markup.
    """
    return minify_html.minify(
        html,
        minify_css=minify_css,
        minify_js=minify_js,
        keep_comments=keep_comments,
        keep_closing_tags=True,
        keep_html_and_head_opening_tags=True,
    )


def is_external_url(url: str) -> bool:
    """Check whether a URL points somewhere other than the source tree.

    Examples:
        >>> is_external_url("https://example.com/logo.png")
        True

        >>> is_external_url("images/logo.png")
        False
    """
    return url.lower().startswith(_URL_SKIP_PREFIXES)


def parse_dimension(value: str) -> int | None:
    """Parse a width or height attribute the way browsers read pixel values.

    Leading digits are taken and a trailing ``px`` is tolerated. Percentages,
    values without leading digits and zero are not pixel sizes.

    Examples:
        >>> parse_dimension("120")
        120

        >>> parse_dimension("64px")
        64

        >>> parse_dimension("50%") is None
        True
    """
    match = _DIMENSION_RE.match(value)
    if not match:
        return None
    if match.group("unit").strip().startswith("%"):
        return None
    number = int(match.group("digits"))
    return number or None


def _parse_attributes(body: str) -> dict[str, str]:
    body = body.rstrip()
    if body.endswith("/"):
        body = body[:-1]
    attrs: dict[str, str] = {}
    for match in _ATTR_RE.finditer(body):
        name = match.group("name").lower()
        value = match.group("dq")
        if value is None:
            value = match.group("sq")
        if value is None:
            value = match.group("bare") or ""
        # First occurrence wins, as in the HTML parser
        attrs.setdefault(name, value)
    return attrs


def _clean_src(src: str) -> str:
    for sep in ("?", "#"):
        src = src.split(sep, 1)[0]
    return src.lstrip("/")


def find_sized_images(html: str) -> list[ImageRef]:
    """Find every <img> tag that carries a source and an explicit size.

    Args:
        html: Markup to scan, usually the minified document.

    Returns:
        ImageRef entries in document order. Tags without src, width or
        height, tags pointing at external URLs and tags whose size is not a
        positive pixel value are left out.
    """
    refs: list[ImageRef] = []
    for match in _IMG_TAG_RE.finditer(html):
        attrs = _parse_attributes(match.group("attrs"))
        src = attrs.get("src", "").strip()
        if not src or "width" not in attrs or "height" not in attrs:
            continue
        if is_external_url(src):
            logger.debug("Skipping external image %s", src)
            continue
        width = parse_dimension(attrs["width"])
        height = parse_dimension(attrs["height"])
        if width is None or height is None:
            logger.debug(
                "Skipping %s: size %r x %r is not in pixels",
                src,
                attrs["width"],
                attrs["height"],
            )
            continue
        cleaned = _clean_src(src)
        if not cleaned:
            continue
        refs.append(ImageRef(src=cleaned, width=width, height=height))
    return refs
