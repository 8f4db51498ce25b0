"""Pydantic models for the gallery settings file.

The settings file (``gallery-settings.json`` by default) is edited by hand
while the server runs. :class:`~photogallery.core.monitors.SettingsMonitor`
rereads it and, when its text changes, parses it into a fresh
:class:`Settings` snapshot with :func:`parse_settings`.

Example file::

    {
        "site-name": "photos.example.com",
        "port": 3000,
        "exclude": ["^\\\\.", "\\\\.txt$"],
        "featured": ["2023/iceland/falls.jpg"],
        "sections": {
            "travel": {
                "title": "Travel:",
                "description": "Places I have been",
                "includes": ["2023/iceland/road.jpg"]
            }
        },
        "cache-sz": ["100k", "500k"]
    }

Snapshots are frozen: a change to the file produces a new ``Settings``
object, never an in-place mutation of the old one.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from photogallery.core.errors import SettingsParseError


class Section(BaseModel):
    """A titled group of images shown together on the gallery page.

    Attributes:
        title: Heading text.
        description: Text shown under the heading.
        includes: Relative image paths, in display order.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    includes: list[str] = Field(default_factory=list)


class Settings(BaseModel):
    """Parsed snapshot of the gallery settings file.

    Attributes:
        site_name: Public host name, used for absolute sitemap URLs
            (``site-name`` in the file).
        port: Port the server listens on.
        exclude: Regular expressions matched against image basenames;
            matching files are left out of the gallery.
        featured: Relative paths of images shown in the Featured section.
        sections: Named sections in display order.
        cache_sizes: Supported compression targets (``cache-sz`` in the
            file). The first one is the thumbnail size.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    site_name: str = Field(..., alias="site-name")
    port: int = Field(default=3000, ge=1, le=65535)
    exclude: list[str] = Field(default_factory=list)
    featured: list[str] = Field(default_factory=list)
    sections: dict[str, Section] = Field(default_factory=dict)
    cache_sizes: list[str] = Field(..., alias="cache-sz", min_length=1)

    @field_validator("exclude")
    @classmethod
    def _check_patterns(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid exclusion pattern {pattern!r}: {e}") from e
        return patterns

    @property
    def default_size(self) -> str:
        """The size used for thumbnails on the gallery page."""
        return self.cache_sizes[0]

    def is_excluded(self, image_path: str) -> bool:
        """Return True if the basename of *image_path* matches any exclusion pattern."""
        basename = image_path.rsplit("/", 1)[-1]
        return any(re.search(pattern, basename) for pattern in self.exclude)


def parse_settings(text: str) -> Settings:
    """Parse the raw settings file text.

    Args:
        text: Contents of the settings file.

    Returns:
        A frozen :class:`Settings` snapshot.

    Raises:
        SettingsParseError: If the text is not JSON or does not describe
            valid settings.
    """
    try:
        return Settings.model_validate_json(text)
    except ValidationError as e:
        raise SettingsParseError(f"Invalid gallery settings: {e}") from e
