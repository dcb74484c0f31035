from __future__ import annotations

import math
from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image

from dtfprint.errors import InvalidDimensions


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (Python's round() ties to even)."""
    magnitude = math.floor(abs(value) + 0.5)
    return int(magnitude if value >= 0 else -magnitude)


@dataclass(slots=True)
class RasterBuffer:
    """Tightly packed straight-alpha RGBA pixels, shape (height, width, 4), uint8.

    A buffer is owned by the stage that produced it. Stages never write into a
    buffer they received; they return a new one.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise InvalidDimensions(f"expected (h, w, 4) RGBA pixels, got shape={pixels.shape}")
        if pixels.shape[0] < 1 or pixels.shape[1] < 1:
            raise InvalidDimensions(f"raster must be at least 1x1, got shape={pixels.shape}")
        if pixels.dtype != np.uint8:
            raise InvalidDimensions(f"expected uint8 pixels, got dtype={pixels.dtype}")
        self.pixels = np.ascontiguousarray(pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @classmethod
    def transparent(cls, width: int, height: int) -> RasterBuffer:
        if width < 1 or height < 1:
            raise InvalidDimensions(f"canvas must be at least 1x1, got {width}x{height}")
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    def to_png_bytes(self, *, dpi: int | None = None, compress_level: int = 9) -> bytes:
        buffer = BytesIO()
        image = Image.fromarray(self.pixels)
        save_kwargs: dict[str, object] = {"format": "PNG", "compress_level": compress_level}
        if dpi is not None:
            save_kwargs["dpi"] = (dpi, dpi)
        image.save(buffer, **save_kwargs)
        return buffer.getvalue()


@dataclass(slots=True, frozen=True)
class UnverifiedImage:
    """Input bytes no decoder could parse. Carries no pixels."""

    data: bytes
    reason: str


@dataclass(slots=True, frozen=True)
class DerivedDimensions:
    trim_width: int
    trim_height: int
    final_width: int
    final_height: int
    bleed_px: int
    safety_margin_px: int

    @property
    def trim_offset(self) -> tuple[int, int]:
        """Top-left position of the trim area inside the final bleed canvas."""
        return (
            round_half_away((self.final_width - self.trim_width) / 2),
            round_half_away((self.final_height - self.trim_height) / 2),
        )


@dataclass(slots=True, frozen=True)
class PhysicalSpec:
    width_in: float
    height_in: float
    dpi: int
    bleed_in: float
    margin_fraction: float
    safety_margin_in: float = 0.125

    def __post_init__(self) -> None:
        for name in ("width_in", "height_in", "dpi", "bleed_in"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise InvalidDimensions(f"{name} must be > 0, got {value!r}")
        if not 0 <= self.margin_fraction < 1:
            raise InvalidDimensions(f"margin_fraction must be in [0, 1), got {self.margin_fraction!r}")
        if not math.isfinite(self.safety_margin_in) or self.safety_margin_in < 0:
            raise InvalidDimensions(f"safety_margin_in must be >= 0, got {self.safety_margin_in!r}")

    def inches_to_px(self, inches: float) -> int:
        return round_half_away(inches * self.dpi)

    def derive(self) -> DerivedDimensions:
        # Each axis is rounded on its own product; no shared remainder.
        dims = DerivedDimensions(
            trim_width=self.inches_to_px(self.width_in),
            trim_height=self.inches_to_px(self.height_in),
            final_width=self.inches_to_px(self.width_in + 2 * self.bleed_in),
            final_height=self.inches_to_px(self.height_in + 2 * self.bleed_in),
            bleed_px=self.inches_to_px(self.bleed_in),
            safety_margin_px=self.inches_to_px(self.safety_margin_in),
        )
        if dims.trim_width < 1 or dims.trim_height < 1:
            raise InvalidDimensions(
                f"invalid trim dims: trim_w={dims.trim_width}, trim_h={dims.trim_height}"
            )
        return dims
