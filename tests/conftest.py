from __future__ import annotations

import logging
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from dtfprint.canvas.types import PhysicalSpec, RasterBuffer
from dtfprint.providers.base import VectorizeResult


def solid_pixels(width: int, height: int, rgba: tuple[int, int, int, int]) -> np.ndarray:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :] = rgba
    return pixels


def encode(pixels: np.ndarray, fmt: str = "PNG") -> bytes:
    buffer = BytesIO()
    image = Image.fromarray(pixels)
    if fmt in {"JPEG", "BMP"}:
        image = image.convert("RGB")
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def red_raster() -> RasterBuffer:
    return RasterBuffer(solid_pixels(100, 100, (255, 0, 0, 255)))


@pytest.fixture
def subject_png() -> bytes:
    """A 40x30 transparent image with an opaque blue block in the middle."""
    pixels = np.zeros((30, 40, 4), dtype=np.uint8)
    pixels[10:20, 10:30] = (0, 0, 255, 255)
    return encode(pixels)


@pytest.fixture
def small_spec() -> PhysicalSpec:
    # 1in x 0.5in at 40dpi: trim 40x20, final 48x28, bleed 4px, safe 2px
    return PhysicalSpec(
        width_in=1.0,
        height_in=0.5,
        dpi=40,
        bleed_in=0.1,
        margin_fraction=0.12,
        safety_margin_in=0.05,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class ListGenerator:
    """Returns up to ``per_call`` images per call from a fixed supply."""

    def __init__(self, image: bytes, per_call: int | None = None) -> None:
        self.image = image
        self.per_call = per_call
        self.calls: list[int] = []

    def generate(self, prompt: str, count: int, size_hint: str) -> list[bytes]:
        self.calls.append(count)
        n = count if self.per_call is None else min(count, self.per_call)
        return [self.image] * n


class FailingRemover:
    def __init__(self) -> None:
        self.calls = 0

    def remove(self, png_bytes: bytes) -> bytes:
        self.calls += 1
        raise RuntimeError("remover quota exceeded")


class RecordingStore:
    def __init__(self) -> None:
        self.puts: list[tuple[str, bytes, str]] = []

    def put(self, name: str, data: bytes, content_type: str) -> str:
        self.puts.append((name, data, content_type))
        return f"https://blobs.example/{name}"


class StaticVectorizer:
    def __init__(self, rendition: bytes | None = None, token: str | None = None) -> None:
        self.rendition = rendition
        self.token = token
        self.downloads: list[tuple[str, str]] = []

    def vectorize(self, png_bytes: bytes) -> VectorizeResult:
        return VectorizeResult(vector_bytes=b"<svg/>", continuation_token=self.token)

    def download(self, token: str, output_format: str) -> bytes:
        self.downloads.append((token, output_format))
        if self.rendition is None:
            raise RuntimeError("rendition expired")
        return self.rendition
