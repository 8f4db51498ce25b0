"""Sitemap and robots.txt assembly."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from urllib.parse import quote
from xml.sax.saxutils import escape

# Static pages listed before the images, relative to the site root.
SITEMAP_PAGES: tuple[str, ...] = (
    "",
    "sitemap.xml",
    "robots.txt",
    "favicon.ico",
    "css/index.css",
)

_PREAMBLE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
)


def _url_entry(loc: str, lastmod: str) -> str:
    return f"<url>\n<loc>{escape(loc)}</loc>\n<lastmod>{lastmod}</lastmod>\n</url>\n"


def build_sitemap(
    site_name: str,
    image_paths: Iterable[str],
    lastmod: date,
    pages: Iterable[str] = SITEMAP_PAGES,
) -> str:
    """Build the sitemap XML document.

    Args:
        site_name: Host name used in every ``<loc>``.
        image_paths: Relative image paths; each becomes ``/image/<path>``.
        lastmod: Date written to every ``<lastmod>``.
        pages: Static pages listed before the images.

    Returns:
        The sitemap as a string.
    """
    modified = lastmod.isoformat()
    parts = [_PREAMBLE]
    for page in pages:
        parts.append(_url_entry(f"https://{site_name}/{page}", modified))
    for image_path in image_paths:
        parts.append(_url_entry(f"https://{site_name}/image/{quote(image_path)}", modified))
    parts.append("</urlset>")
    return "".join(parts)


def build_robots_txt(site_name: str) -> str:
    """Allow everything and point crawlers at the sitemap."""
    return f"User-agent: *\nAllow: /\nSitemap: https://{site_name}/sitemap.xml\n"
