"""Gallery page rendering.

Rendering happens in two steps:

1. :func:`build_sections` groups the collected image paths into the sections
   shown on the page: **Featured** first, then every configured section in
   declaration order, then **Photos** with everything nobody else claimed.
2. :func:`render_page` feeds those sections to the page template, a Jinja2
   template stored as ``index.html`` in the templates directory.

Only images that currently exist in the gallery (and are not excluded) are
rendered; stale entries in ``featured`` or a section's ``includes`` are
skipped silently.

Template Context
----------------
``site_name``
    The configured site name.
``sections``
    List of :class:`RenderedSection`, each with ``name``, ``title``,
    ``description`` and ``images`` (a list of :class:`ImageTile`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import quote

from jinja2 import Environment, TemplateError
from PIL import Image

from photogallery.core.errors import TemplateRenderError
from photogallery.core.settings import Settings

logger = logging.getLogger(__name__)

FEATURED_SECTION = "featured"
GLOBAL_SECTION = "global"

# Lightbox size used when an image's header cannot be read.
DEFAULT_IMAGE_WIDTH = 6000
DEFAULT_IMAGE_HEIGHT = 3376

_environment = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)


@dataclass(frozen=True)
class GallerySection:
    """A section after grouping: which images it shows, in which order."""

    name: str
    title: str
    description: str
    images: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ImageTile:
    """Everything the template needs to render one thumbnail."""

    path: str
    href: str
    thumbnail_src: str
    width: int
    height: int


@dataclass(frozen=True)
class RenderedSection:
    name: str
    title: str
    description: str
    images: list[ImageTile]


def build_sections(settings: Settings, image_paths: list[str]) -> list[GallerySection]:
    """Group image paths into the sections shown on the gallery page.

    Args:
        settings: Current gallery settings.
        image_paths: Relative paths of the images currently in the gallery.

    Returns:
        Featured section, configured sections in declaration order, then the
        global Photos section.
    """
    existing = set(image_paths)
    claimed = set(settings.featured)

    sections = [
        GallerySection(
            name=FEATURED_SECTION,
            title="Featured:",
            description="",
            images=[path for path in settings.featured if path in existing],
        )
    ]

    for name, section in settings.sections.items():
        sections.append(
            GallerySection(
                name=name,
                title=section.title,
                description=section.description,
                images=[path for path in section.includes if path in existing],
            )
        )
        claimed.update(section.includes)

    sections.append(
        GallerySection(
            name=GLOBAL_SECTION,
            title="Photos:",
            description="",
            images=[path for path in image_paths if path not in claimed],
        )
    )
    return sections


def image_url(image_path: str) -> str:
    """Relative URL of an original image."""
    return f"image/{quote(image_path)}"


def read_image_size(image_file: Path) -> tuple[int, int]:
    """Return the pixel size of an image, reading only its header.

    Falls back to a fixed landscape size when the file is not a readable
    image, so one broken file cannot break the page.
    """
    try:
        with Image.open(image_file) as image:
            return image.size
    except OSError as e:
        logger.warning(f"Could not read image size of {image_file}: {e}")
        return DEFAULT_IMAGE_WIDTH, DEFAULT_IMAGE_HEIGHT


def make_tile(image_path: str, size: str, gallery_dir: Path) -> ImageTile:
    href = image_url(image_path)
    width, height = read_image_size(gallery_dir / image_path)
    return ImageTile(
        path=image_path,
        href=href,
        thumbnail_src=f"{href}?sz={quote(size)}",
        width=width,
        height=height,
    )


def render_page(
    template_text: str,
    sections: list[GallerySection],
    *,
    default_size: str,
    gallery_dir: Path,
    site_name: str = "",
) -> str:
    """Render the gallery page.

    Args:
        template_text: Source of the Jinja2 page template.
        sections: Output of :func:`build_sections`.
        default_size: Cache size used for thumbnail URLs.
        gallery_dir: Gallery root, used to read image dimensions.
        site_name: Exposed to the template as ``site_name``.

    Returns:
        The complete HTML document.

    Raises:
        TemplateRenderError: If the template has a syntax error or fails
            while rendering.
    """
    rendered_sections = [
        RenderedSection(
            name=section.name,
            title=section.title,
            description=section.description,
            images=[make_tile(path, default_size, gallery_dir) for path in section.images],
        )
        for section in sections
    ]

    try:
        template = _environment.from_string(template_text)
        return template.render(site_name=site_name, sections=rendered_sections)
    except TemplateError as e:
        raise TemplateRenderError(f"Could not render page template: {e}") from e
