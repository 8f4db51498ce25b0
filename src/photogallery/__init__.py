"""Photogallery - a self-hosted photo gallery served as a rendered webpage."""

__version__ = "0.3.0"

from photogallery.core.config import GalleryConfig, config
from photogallery.core.settings import Section, Settings

__all__ = [
    "GalleryConfig",
    "config",
    "Section",
    "Settings",
]
