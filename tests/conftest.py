"""
Pytest configuration and fixtures.
"""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from crop_review.config import settings
from crop_review.main import app
from crop_review.services.lifecycle import CropLifecycleManager


def make_image_bytes(width: int, height: int, format: str = "JPEG", mode: str = "RGB") -> bytes:
    """Encode a solid-color image of the given size."""
    colors = {"RGBA": (200, 30, 30, 128), "RGB": (200, 30, 30)}
    color = colors.get(mode, 128)
    image = Image.new(mode, (width, height), color)
    output = io.BytesIO()
    image.save(output, format=format)
    return output.getvalue()


@pytest.fixture
def storage_dirs(tmp_path, monkeypatch):
    """Point upload/cropped directories at a per-test temp dir."""
    upload_dir = tmp_path / "uploads"
    cropped_dir = tmp_path / "cropped"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(upload_dir))
    monkeypatch.setattr(settings, "CROPPED_DIR", str(cropped_dir))
    return upload_dir, cropped_dir


@pytest.fixture
def client(storage_dirs):
    """Create a test client with the app lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def manager(storage_dirs):
    """Lifecycle manager over temp directories."""
    upload_dir, cropped_dir = storage_dirs
    lifecycle = CropLifecycleManager(upload_dir=upload_dir, cropped_dir=cropped_dir)
    lifecycle.ensure_directories()
    return lifecycle


@pytest.fixture
def image_factory():
    """Factory for encoded test images: image_factory(width, height, format, mode)."""
    return make_image_bytes


@pytest.fixture
def sample_image_jpeg():
    """A 640x480 JPEG."""
    return make_image_bytes(640, 480, "JPEG")


@pytest.fixture
def sample_image_png():
    """A 300x900 PNG with transparency."""
    return make_image_bytes(300, 900, "PNG", mode="RGBA")
