"""Shared pytest fixtures for Photogallery tests."""

import asyncio
import json
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from photogallery.api.main import create_app
from photogallery.core.config import GalleryConfig
from photogallery.core.errors import CompressionError
from photogallery.core.image_index import ImageCollector
from photogallery.core.monitors import SettingsMonitor


def create_test_image(path: Path, width: int = 64, height: int = 48) -> Path:
    """Create a minimal valid JPEG at *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (width, height), color=(128, 128, 128)).save(path, format="JPEG")
    return path


def write_settings(path: Path, data: dict) -> Path:
    """Write a settings dictionary to *path* as JSON."""
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


class LoopRecorder:
    """Wraps a callable and records whether each call ran on the event loop."""

    def __init__(self, func):
        self.func = func
        self.on_loop: list[bool] = []

    def __call__(self, *args, **kwargs):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.on_loop.append(False)
        else:
            self.on_loop.append(True)
        return self.func(*args, **kwargs)


class FakeCompressor:
    """Stand-in for jpegoptim that records calls and writes a fixed payload."""

    def __init__(self, payload: bytes = b"compressed", delay: float = 0.0):
        self.payload = payload
        self.delay = delay
        self.fail = False
        self.calls: list[tuple[Path, str, Path]] = []

    async def compress(self, source: Path, size: str, destination: Path) -> None:
        self.calls.append((source, size, destination))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            destination.write_bytes(b"partial")
            raise CompressionError("fake compressor failed", diagnostics="corrupt input")
        destination.write_bytes(self.payload)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def settings_data() -> dict:
    """Settings with one featured image, one section and a text-file exclusion."""
    return {
        "site-name": "example.com",
        "port": 3000,
        "exclude": [r"\.txt$"],
        "featured": ["a.jpg"],
        "sections": {
            "travel": {
                "title": "Travel:",
                "description": "Places I have been",
                "includes": ["b.jpg"],
            }
        },
        "cache-sz": ["100k", "500k"],
    }


@pytest.fixture
def gallery_dir(temp_dir: Path) -> Path:
    """Gallery with three images and one excluded text file."""
    gallery = temp_dir / "gallery"
    for name in ("a.jpg", "b.jpg", "c.jpg"):
        create_test_image(gallery / name)
    (gallery / "notes.txt").write_text("not an image")
    return gallery


@pytest.fixture
def settings_file(temp_dir: Path, settings_data: dict) -> Path:
    return write_settings(temp_dir / "gallery-settings.json", settings_data)


@pytest.fixture
def test_config(temp_dir: Path, gallery_dir: Path, settings_file: Path) -> GalleryConfig:
    """Create a test configuration with temporary directories.

    The bundled templates are used as-is.
    """
    return GalleryConfig(
        gallery_dir=gallery_dir,
        cache_dir=temp_dir / "cache",
        settings_file=settings_file,
        _env_file=None,
    )


@pytest.fixture
def settings_monitor(settings_file: Path) -> SettingsMonitor:
    return SettingsMonitor(settings_file)


@pytest.fixture
def collector(gallery_dir: Path, settings_monitor: SettingsMonitor) -> ImageCollector:
    return ImageCollector(gallery_dir, settings_monitor)


@pytest.fixture
def fake_compressor() -> FakeCompressor:
    return FakeCompressor()


@pytest.fixture
def test_client(test_config: GalleryConfig, fake_compressor: FakeCompressor):
    """TestClient with the lifespan started and jpegoptim replaced by a fake."""
    with TestClient(create_app(test_config)) as client:
        client.app.state.gallery.image_cache.compressor = fake_compressor
        yield client
