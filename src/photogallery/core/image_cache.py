"""On-demand compressed image variants.

The gallery page asks for thumbnails as ``image/<path>?sz=<size>``. The first
request for a given ``(path, size)`` pair compresses the original with an
external tool and stores the result as a flat file in the cache directory;
every later request is served straight from that file.

Cache Layout
------------
``<cache_dir>/<flattened dir>_<size>_<file name>``, where the image's
directory is flattened by joining its components with ``_``::

    x/y.jpg, 100k          ->  x_100k_y.jpg
    2023/iceland/a.jpg, 1m ->  2023_iceland_1m_a.jpg
    a.jpg, 100k            ->  _100k_a.jpg

Cache files are never revalidated against their original. To refresh a
variant after editing an original, delete the cache file.

Guarantees
----------
- At most one compression runs per cache file at any time. Concurrent
  requests for the same pair wait on the same in-flight task.
- A cache file only appears once it is complete and non-empty: the tool
  writes to a hidden temporary file which is renamed into place.
- A failing, missing or hung tool raises :class:`CompressionError` and
  leaves nothing behind.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import uuid
from functools import partial
from pathlib import Path
from typing import Protocol

from photogallery.core.errors import CompressionError, ImageNotFoundError

logger = logging.getLogger(__name__)


class Compressor(Protocol):
    async def compress(self, source: Path, size: str, destination: Path) -> None: ...


class JpegoptimCompressor:
    """Compresses images with ``jpegoptim`` to a target file size.

    The size identifier is passed through verbatim as ``-S<size>`` (for
    example ``100k`` for a 100 kilobyte budget).

    Args:
        command: Executable to run; any tool accepting jpegoptim's
            ``--stdout -sqf -S<size> <file>`` arguments will do.
        timeout: Seconds before the process is killed.
    """

    def __init__(self, command: str = "jpegoptim", timeout: float = 30.0):
        self.command = command
        self.timeout = timeout

    def build_args(self, source: Path, size: str) -> list[str]:
        return [self.command, "--stdout", "-sqf", f"-S{size}", str(source)]

    async def compress(self, source: Path, size: str, destination: Path) -> None:
        """Write a compressed copy of *source* to *destination*.

        Raises:
            CompressionError: If the tool cannot be started, exits with an
                error, or exceeds the timeout.
        """
        output = await asyncio.to_thread(open, destination, "wb")
        with output:
            try:
                process = await asyncio.create_subprocess_exec(
                    *self.build_args(source, size),
                    stdout=output,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise CompressionError(f"Could not start {self.command}: {e}") from e

            try:
                _, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                raise CompressionError(
                    f"{self.command} timed out after {self.timeout}s compressing {source}"
                ) from None

        if process.returncode != 0:
            raise CompressionError(
                f"{self.command} exited with status {process.returncode} compressing {source}",
                diagnostics=stderr.decode("utf-8", errors="replace"),
            )


def normalize_image_path(image_path: str) -> str:
    """Normalize a relative image path and reject paths escaping the gallery.

    Raises:
        ImageNotFoundError: If the path is empty or points outside the gallery.
    """
    normalized = posixpath.normpath(image_path.replace("\\", "/").lstrip("/"))
    if normalized in ("", ".") or normalized == ".." or normalized.startswith("../"):
        raise ImageNotFoundError(f"Image not found: {image_path}")
    return normalized


def cache_file_name(image_path: str, size: str) -> str:
    """Return the flat cache file name for an image at a given size.

    Raises:
        ValueError: If *size* contains a path separator.
        ImageNotFoundError: If *image_path* escapes the gallery.
    """
    if "/" in size or "\\" in size:
        raise ValueError(f"Invalid cache size: {size!r}")

    normalized = normalize_image_path(image_path)
    directory, file_name = posixpath.split(normalized)
    flattened_dir = directory.replace("/", "_")
    return f"{flattened_dir}_{size}_{file_name}"


class ImageCacheService:
    """Creates and serves compressed variants of gallery images.

    Args:
        gallery_dir: Root of the original images.
        cache_dir: Flat directory for compressed variants (created if missing).
        compressor: Tool that writes a compressed image.
    """

    def __init__(self, gallery_dir: Path, cache_dir: Path, compressor: Compressor):
        self.gallery_dir = Path(gallery_dir)
        self.cache_dir = Path(cache_dir)
        self.compressor = compressor
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._in_flight: dict[str, asyncio.Task] = {}

    def cache_path_for(self, image_path: str, size: str) -> Path:
        return self.cache_dir / cache_file_name(image_path, size)

    def resolve_original(self, image_path: str) -> Path:
        """Return the original image file for a relative gallery path.

        Raises:
            ImageNotFoundError: If the file does not exist or lies outside
                the gallery directory.
        """
        original = (self.gallery_dir / normalize_image_path(image_path)).resolve()
        if not original.is_relative_to(self.gallery_dir.resolve()):
            logger.warning(f"Path traversal attempt detected: {image_path}")
            raise ImageNotFoundError(f"Image not found: {image_path}")
        if not original.is_file():
            raise ImageNotFoundError(f"Image not found: {image_path}")
        return original

    async def get_or_create(self, image_path: str, size: str) -> Path:
        """Return the cache file for ``(image_path, size)``, compressing on first use.

        Args:
            image_path: Image path relative to the gallery directory.
            size: Size identifier passed to the compressor.

        Returns:
            Path of the cache file.

        Raises:
            ImageNotFoundError: If the original image does not exist.
            CompressionError: If compression fails.
        """
        cache_path = self.cache_path_for(image_path, size)
        if await asyncio.to_thread(cache_path.is_file):
            logger.debug(f"Cache hit: {cache_path.name}")
            return cache_path

        original = await asyncio.to_thread(self.resolve_original, image_path)

        key = cache_path.name
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._create(original, size, cache_path))
            self._in_flight[key] = task
            task.add_done_callback(partial(self._finish, key))

        # Shielded so a cancelled request does not abort a compression that
        # other requests may be waiting on.
        await asyncio.shield(task)
        return cache_path

    def _finish(self, key: str, task: asyncio.Task) -> None:
        self._in_flight.pop(key, None)
        if task.cancelled():
            return
        # Retrieved here so a failure nobody is waiting on still gets logged.
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Compression failed for {key}: {exc}")

    async def _create(self, original: Path, size: str, cache_path: Path) -> None:
        if await asyncio.to_thread(cache_path.is_file):
            return

        temp_path = cache_path.with_name(f".{cache_path.name}.{uuid.uuid4().hex}.tmp")
        try:
            await self.compressor.compress(original, size, temp_path)
            await asyncio.to_thread(_publish, temp_path, cache_path, original)
        finally:
            await asyncio.to_thread(temp_path.unlink, missing_ok=True)

        logger.info(f"Created cache file {cache_path.name}")


def _publish(temp_path: Path, cache_path: Path, original: Path) -> None:
    """Rename a finished temporary file into place.

    Raises:
        CompressionError: If the compressor produced no output.
    """
    if not temp_path.is_file() or temp_path.stat().st_size == 0:
        raise CompressionError(f"Compression of {original} produced no output")
    os.replace(temp_path, cache_path)
