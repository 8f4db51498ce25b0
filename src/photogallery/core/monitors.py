"""The three resource monitors behind the gallery.

SettingsMonitor
    Resource: raw text of the settings file. Content: parsed
    :class:`~photogallery.core.settings.Settings`.
WebpageResourceMonitor
    Resource: settings text, template text, the image list and a size and
    modification stamp per image. Content: the rendered gallery page.
    Staleness checks are rate limited by a cooldown.
SitemapResourceMonitor
    Resource: site name and the image list. Content: sitemap XML.

Each monitor embeds a :class:`~photogallery.core.resource_monitor.ContentCache`
and delegates ``get_content`` to it; see :mod:`photogallery.core.resource_monitor`
for the caching contract.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import astuple, dataclass, fields
from datetime import date, datetime, timezone
from pathlib import Path

from photogallery.core.hashing import fingerprint
from photogallery.core.image_index import ImageCollector
from photogallery.core.rendering import build_sections, render_page
from photogallery.core.resource_monitor import ContentCache
from photogallery.core.settings import Settings, parse_settings
from photogallery.core.sitemap import SITEMAP_PAGES, build_sitemap

logger = logging.getLogger(__name__)

IMAGE_PATH_SEPARATOR = ";"


def _hash_fields(resource) -> str:
    """Fingerprint a resource dataclass as ``key:value`` pairs in field order."""
    names = [f.name for f in fields(resource)]
    return fingerprint([f"{name}:{value}" for name, value in zip(names, astuple(resource))])


def _split_paths(joined: str) -> list[str]:
    return joined.split(IMAGE_PATH_SEPARATOR) if joined else []


def _file_stamp(path: Path) -> str:
    """``size:mtime_ns`` of a file, or an empty string if it vanished since the scan."""
    try:
        stat = path.stat()
    except OSError:
        return ""
    return f"{stat.st_size}:{stat.st_mtime_ns}"


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class SettingsMonitor:
    """Monitors the gallery settings file.

    Most callers read with ``check_update=False``; the file is only reread
    when someone explicitly asks for a check (the image collector does so on
    every directory scan).
    """

    def __init__(self, settings_file: Path):
        self.settings_file = Path(settings_file)
        self._cache: ContentCache[str, Settings] = ContentCache()

    def get_resource(self) -> str:
        return self.settings_file.read_text(encoding="utf-8")

    def compute_hash(self, resource: str) -> str:
        return fingerprint(resource)

    def transform_resource_to_content(self, resource: str) -> Settings:
        logger.info(f"Loading gallery settings from {self.settings_file}")
        return parse_settings(resource)

    def get_content(self, check_update: bool = True) -> Settings:
        return self._cache.get(self, check_update)


@dataclass(frozen=True)
class WebpageResource:
    settings: str
    index_html: str
    image_paths: str
    image_stamps: str


class WebpageResourceMonitor:
    """Monitors everything the gallery page is rendered from.

    To absorb bursts of requests, at most one staleness check is performed
    per ``rerender_interval`` seconds. Requests inside the window get the
    cached page without touching the filesystem.

    Args:
        settings_monitor: Source of the current settings.
        collector: Lists the gallery images.
        template_file: The Jinja2 page template.
        gallery_dir: Gallery root, used to read image dimensions.
        rerender_interval: Cooldown between staleness checks, in seconds.
        clock: Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        settings_monitor: SettingsMonitor,
        collector: ImageCollector,
        template_file: Path,
        gallery_dir: Path,
        rerender_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings_monitor = settings_monitor
        self.collector = collector
        self.template_file = Path(template_file)
        self.gallery_dir = Path(gallery_dir)
        self.rerender_interval = rerender_interval
        self._clock = clock
        self._last_check: float | None = None
        self._cooldown_lock = threading.Lock()
        self._cache: ContentCache[WebpageResource, str] = ContentCache()

    def get_resource(self) -> WebpageResource:
        paths = self.collector.collect()
        # Lightbox dimensions are read from the files, so a replaced image
        # must change the fingerprint even when its path stays the same.
        stamps = [_file_stamp(self.gallery_dir / path) for path in paths]
        return WebpageResource(
            settings=self.settings_monitor.get_resource(),
            index_html=self.template_file.read_text(encoding="utf-8"),
            image_paths=IMAGE_PATH_SEPARATOR.join(paths),
            image_stamps=IMAGE_PATH_SEPARATOR.join(stamps),
        )

    def compute_hash(self, resource: WebpageResource) -> str:
        return _hash_fields(resource)

    def transform_resource_to_content(self, resource: WebpageResource) -> str:
        logger.info("Modification detected. Rendering HTML content...")

        settings = self.settings_monitor.get_content(check_update=False)
        sections = build_sections(settings, _split_paths(resource.image_paths))
        return render_page(
            resource.index_html,
            sections,
            default_size=settings.default_size,
            gallery_dir=self.gallery_dir,
            site_name=settings.site_name,
        )

    def rerender_ready(self) -> bool:
        """Claim the current cooldown window.

        Returns True (and starts a new window) if no staleness check ran in
        the last ``rerender_interval`` seconds.
        """
        with self._cooldown_lock:
            now = self._clock()
            if self._last_check is None or now - self._last_check >= self.rerender_interval:
                self._last_check = now
                return True
            return False

    def get_content(self, check_update: bool = True) -> str:
        if check_update and self.rerender_ready():
            return self._cache.get(self, check_update=True)
        return self._cache.get(self, check_update=False)


@dataclass(frozen=True)
class SitemapResource:
    site_name: str
    image_paths: str


class SitemapResourceMonitor:
    """Monitors the image list the sitemap is built from.

    The site name is part of the resource, so renaming the site republishes
    the sitemap even if no image changed.
    """

    def __init__(
        self,
        settings_monitor: SettingsMonitor,
        collector: ImageCollector,
        pages: Iterable[str] = SITEMAP_PAGES,
        today: Callable[[], date] = _utc_today,
    ):
        self.settings_monitor = settings_monitor
        self.collector = collector
        self.pages = tuple(pages)
        self._today = today
        self._cache: ContentCache[SitemapResource, str] = ContentCache()

    def get_resource(self) -> SitemapResource:
        # Collect first: it refreshes the settings the site name is read from.
        image_paths = IMAGE_PATH_SEPARATOR.join(self.collector.collect())
        settings = self.settings_monitor.get_content(check_update=False)
        return SitemapResource(site_name=settings.site_name, image_paths=image_paths)

    def compute_hash(self, resource: SitemapResource) -> str:
        return _hash_fields(resource)

    def transform_resource_to_content(self, resource: SitemapResource) -> str:
        logger.info("Image list changed. Rebuilding sitemap...")
        return build_sitemap(
            resource.site_name,
            _split_paths(resource.image_paths),
            self._today(),
            self.pages,
        )

    def get_content(self, check_update: bool = True) -> str:
        return self._cache.get(self, check_update)
