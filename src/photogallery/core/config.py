"""Configuration management for the photo gallery.

This module provides centralized deployment configuration using Pydantic
Settings. All configuration is loaded from environment variables with the
PHOTOGALLERY_ prefix, allowing the directory layout and tunables to change
without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PHOTOGALLERY_* prefix)
2. .env file in the working directory
3. Default values defined in GalleryConfig

Example .env file:
    PHOTOGALLERY_GALLERY_DIR=/srv/photos
    PHOTOGALLERY_CACHE_DIR=/var/cache/photogallery
    PHOTOGALLERY_SETTINGS_FILE=/etc/photogallery/gallery-settings.json
    PHOTOGALLERY_COMPRESSION_TIMEOUT=60

Deployment Configuration vs. Gallery Settings
---------------------------------------------
Two different things are called "settings" in this project:

- ``GalleryConfig`` (this module) describes the *deployment*: where the
  gallery, cache, template and settings file live, how long a compression
  may take, and so on. It is read once at startup.
- ``Settings`` (:mod:`photogallery.core.settings`) is the content of the
  ``gallery-settings.json`` file: site name, sections, featured images,
  cache sizes. It is runtime data, monitored for changes on every request.

Global Configuration Instance
------------------------------
A global ``config`` instance is created automatically at module import
time, mirroring the single source of truth the rest of the application
expects. Tests construct their own ``GalleryConfig`` pointing at temporary
directories.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Templates shipped inside the package (index.html, 404.html, css/).
PACKAGE_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class GalleryConfig(BaseSettings):
    """Deployment configuration for the photo gallery.

    Attributes
    ----------
    Paths:
        gallery_dir : Path
            Root of the original images; scanned recursively
        cache_dir : Path
            Flat directory holding compressed image variants
        settings_file : Path
            The monitored ``gallery-settings.json`` file
        templates_dir : Path
            Directory holding ``index.html``, ``404.html`` and ``css/``

    Server:
        server_host : str
            Bind address for uvicorn
        server_port : int | None
            Listen port override; when unset the ``port`` from the gallery
            settings file is used

    Caching:
        rerender_interval : float
            Minimum seconds between two staleness checks of the webpage
        compressor_command : str
            Executable used to compress images (jpegoptim compatible)
        compression_timeout : float
            Seconds before a running compression is killed

    Logging:
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]

    Notes
    -----
    - ``cache_dir`` is created automatically if it doesn't exist
    - The gallery directory is never created or written to

    Examples
    --------
        >>> from photogallery.core.config import config
        >>> config.template_file.name
        'index.html'

        >>> custom = GalleryConfig(gallery_dir="/srv/photos", rerender_interval=5)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PHOTOGALLERY_",
        case_sensitive=False,
    )

    # Paths
    gallery_dir: Path = Field(
        default=Path("gallery"),
        description="Directory containing the original images",
    )
    cache_dir: Path = Field(
        default=Path("cache"),
        description="Directory for compressed image variants",
    )
    settings_file: Path = Field(
        default=Path("gallery-settings.json"),
        description="Gallery settings JSON file (monitored for changes)",
    )
    templates_dir: Path = Field(
        default=PACKAGE_TEMPLATES_DIR,
        description="Directory holding index.html, 404.html and css/",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int | None = Field(
        default=None,
        description="Listen port override (defaults to the settings file port)",
        ge=1,
        le=65535,
    )

    # Caching
    rerender_interval: float = Field(
        default=1.0,
        description="Cooldown in seconds between webpage staleness checks",
        gt=0,
    )
    compressor_command: str = Field(
        default="jpegoptim",
        description="Image compression executable",
    )
    compression_timeout: float = Field(
        default=30.0,
        description="Seconds before a compression process is killed",
        gt=0,
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level used by the CLI entry point",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the cache directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.cache_dir.mkdir(parents=True, exist_ok=True)

    @property
    def template_file(self) -> Path:
        """The page template rendered by the webpage monitor."""
        return self.templates_dir / "index.html"

    @property
    def not_found_file(self) -> Path:
        """The page served for unknown routes."""
        return self.templates_dir / "404.html"


# Global configuration instance
# Loads values from environment variables (PHOTOGALLERY_* prefix) and .env file.
config = GalleryConfig()
