"""Core functionality for the photo gallery.

This package holds everything that decides *what* the gallery serves; the
HTTP layer in :mod:`photogallery.api` only decides *how* it is delivered.

Architecture Overview
---------------------
The core package is built around resource monitors: small objects that
snapshot some external state (a file, a directory listing), fingerprint it,
and recompute an expensive derived artifact only when the fingerprint
changes.

1. **Configuration Layer** (config.py):
   - Environment-based deployment configuration using Pydantic Settings
   - All settings prefixed with PHOTOGALLERY_ in .env files

2. **Monitor Layer** (hashing.py, resource_monitor.py, monitors.py):
   - ``fingerprint`` - deterministic content hash
   - ``ContentCache`` - the shared check-and-recompute logic
   - ``SettingsMonitor``, ``WebpageResourceMonitor``,
     ``SitemapResourceMonitor`` - the three concrete monitors

3. **Derivation Layer** (image_index.py, rendering.py, sitemap.py):
   - Gallery directory scanning and exclusion filtering
   - Section grouping and HTML rendering (Jinja2)
   - Sitemap and robots.txt assembly

4. **Image Cache** (image_cache.py):
   - On-demand compression of originals keyed by (path, size)

See Also
--------
- :mod:`photogallery.api.main` - the FastAPI application that serves all of it
"""

from photogallery.core.config import GalleryConfig, config
from photogallery.core.errors import (
    CompressionError,
    GalleryError,
    ImageNotFoundError,
    SettingsParseError,
    TemplateRenderError,
)
from photogallery.core.image_cache import ImageCacheService, JpegoptimCompressor
from photogallery.core.monitors import (
    SettingsMonitor,
    SitemapResourceMonitor,
    WebpageResourceMonitor,
)
from photogallery.core.resource_monitor import ContentCache, ResourceMonitor

__all__ = [
    "GalleryConfig",
    "config",
    "CompressionError",
    "GalleryError",
    "ImageNotFoundError",
    "SettingsParseError",
    "TemplateRenderError",
    "ImageCacheService",
    "JpegoptimCompressor",
    "SettingsMonitor",
    "SitemapResourceMonitor",
    "WebpageResourceMonitor",
    "ContentCache",
    "ResourceMonitor",
]
