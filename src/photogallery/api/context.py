"""Application context shared by the request handlers.

All long-lived state (the three monitors and the image cache) is owned by a
single :class:`GalleryContext`. The FastAPI app builds one at startup and
stores it on ``app.state.gallery``; tests build their own against
temporary directories.
"""

from __future__ import annotations

from dataclasses import dataclass

from photogallery.core.config import GalleryConfig
from photogallery.core.image_cache import ImageCacheService, JpegoptimCompressor
from photogallery.core.image_index import ImageCollector
from photogallery.core.monitors import (
    SettingsMonitor,
    SitemapResourceMonitor,
    WebpageResourceMonitor,
)
from photogallery.core.settings import Settings


@dataclass
class GalleryContext:
    config: GalleryConfig
    settings_monitor: SettingsMonitor
    collector: ImageCollector
    webpage_monitor: WebpageResourceMonitor
    sitemap_monitor: SitemapResourceMonitor
    image_cache: ImageCacheService

    @classmethod
    def from_config(cls, config: GalleryConfig) -> GalleryContext:
        """Wire up monitors and the image cache for a deployment configuration."""
        settings_monitor = SettingsMonitor(config.settings_file)
        collector = ImageCollector(config.gallery_dir, settings_monitor)
        return cls(
            config=config,
            settings_monitor=settings_monitor,
            collector=collector,
            webpage_monitor=WebpageResourceMonitor(
                settings_monitor,
                collector,
                template_file=config.template_file,
                gallery_dir=config.gallery_dir,
                rerender_interval=config.rerender_interval,
            ),
            sitemap_monitor=SitemapResourceMonitor(settings_monitor, collector),
            image_cache=ImageCacheService(
                config.gallery_dir,
                config.cache_dir,
                JpegoptimCompressor(
                    command=config.compressor_command,
                    timeout=config.compression_timeout,
                ),
            ),
        )

    def get_settings(self, check_update: bool = False) -> Settings:
        """Current gallery settings; reread from disk only when asked to."""
        return self.settings_monitor.get_content(check_update)
