"""Gallery directory scanning.

The gallery directory is an arbitrary tree of image files that the owner
edits by hand. These helpers turn it into the sorted list of relative image
paths that every monitor works from.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from photogallery.core.monitors import SettingsMonitor

logger = logging.getLogger(__name__)


def collect_file_paths(root_dir: Path, relative_dir: str = "") -> list[str]:
    """Recursively collect file paths below *root_dir*.

    A directory that cannot be listed is logged and contributes nothing;
    the rest of the tree is still collected. An unreadable gallery should
    degrade the page, not take the service down.

    Symlinked directories are not descended into.

    Args:
        root_dir: Directory to scan.
        relative_dir: Sub-directory of *root_dir* to start from (POSIX form).

    Returns:
        Paths relative to *root_dir*, using ``/`` as separator, in
        directory-listing order.
    """
    absolute_dir = Path(root_dir) / relative_dir if relative_dir else Path(root_dir)
    collected: list[str] = []

    try:
        with os.scandir(absolute_dir) as entries:
            for entry in entries:
                relative_path = f"{relative_dir}/{entry.name}" if relative_dir else entry.name
                if entry.is_dir(follow_symlinks=False):
                    collected.extend(collect_file_paths(root_dir, relative_path))
                elif entry.is_file():
                    collected.append(relative_path)
    except OSError as e:
        logger.error(f"Error while collecting file paths in {absolute_dir}: {e}")
        return []

    return collected


class ImageCollector:
    """Lists the gallery images that survive the settings' exclusion patterns.

    Every call to :meth:`collect` checks the settings file for changes first,
    so an edited exclusion list takes effect on the next scan.
    """

    def __init__(self, gallery_dir: Path, settings_monitor: SettingsMonitor):
        self.gallery_dir = Path(gallery_dir)
        self.settings_monitor = settings_monitor

    def collect(self) -> list[str]:
        """Return the sorted relative paths of all included images."""
        settings = self.settings_monitor.get_content()
        return sorted(
            path
            for path in collect_file_paths(self.gallery_dir)
            if not settings.is_excluded(path)
        )
