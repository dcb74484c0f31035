from __future__ import annotations

import enum

import numpy as np

from dtfprint.canvas.compose import composite_onto
from dtfprint.canvas.types import RasterBuffer, round_half_away
from dtfprint.errors import InvalidDimensions

# Output rows interpolated per block; bounds the float32 working set on print-sized targets.
_ROW_BLOCK = 256


class FitMode(str, enum.Enum):
    CONTAIN = "contain"
    COVER = "cover"


def _axis_taps(
    dst_start: int,
    dst_count: int,
    scale: float,
    src_size: int,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    dst = np.arange(dst_start, dst_start + dst_count, dtype=np.float64)
    # Half-pixel centers, clamped so neither tap leaves the source.
    coord = np.clip((dst + 0.5) / scale - 0.5, 0.0, float(src_size - 1))
    i0 = np.floor(coord).astype(np.intp)
    i1 = np.minimum(i0 + 1, src_size - 1)
    w1 = (coord - i0).astype(np.float32)
    return i0, i1, w1


def bilinear_scale(
    source: RasterBuffer,
    scale: float,
    out_width: int,
    out_height: int,
    *,
    offset_x: int = 0,
    offset_y: int = 0,
) -> RasterBuffer:
    """Sample ``out_width`` x ``out_height`` pixels of the source scaled by ``scale``.

    ``offset_x``/``offset_y`` select a window of the (virtual) scaled image,
    which is how cover-fit crops without materializing the full scale.
    All four channels share the same weights; alpha is not premultiplied.
    """
    if out_width < 1 or out_height < 1:
        raise InvalidDimensions(f"output must be at least 1x1, got {out_width}x{out_height}")
    if scale <= 0 or not np.isfinite(scale):
        raise InvalidDimensions(f"scale must be > 0, got {scale!r}")

    src = source.pixels.astype(np.float32)
    x0, x1, wx = _axis_taps(offset_x, out_width, scale, source.width)
    y0, y1, wy = _axis_taps(offset_y, out_height, scale, source.height)
    wx = wx[None, :, None]

    out = np.empty((out_height, out_width, 4), dtype=np.uint8)
    for start in range(0, out_height, _ROW_BLOCK):
        stop = min(start + _ROW_BLOCK, out_height)
        top_rows = src[y0[start:stop]]
        bottom_rows = src[y1[start:stop]]
        top = top_rows[:, x0] * (1.0 - wx) + top_rows[:, x1] * wx
        bottom = bottom_rows[:, x0] * (1.0 - wx) + bottom_rows[:, x1] * wx
        weight = wy[start:stop, None, None]
        block = top * (1.0 - weight) + bottom * weight
        # values are non-negative, so floor(v + 0.5) rounds half away from zero
        out[start:stop] = np.clip(np.floor(block + 0.5), 0, 255).astype(np.uint8)
    return RasterBuffer(out)


def scaled_size(src_width: int, src_height: int, scale: float) -> tuple[int, int]:
    return (
        max(1, round_half_away(src_width * scale)),
        max(1, round_half_away(src_height * scale)),
    )


def _validate(source: RasterBuffer, target_width: int, target_height: int) -> None:
    if source.width < 1 or source.height < 1:
        raise InvalidDimensions(f"source must be at least 1x1, got {source.width}x{source.height}")
    if target_width < 1 or target_height < 1:
        raise InvalidDimensions(f"target must be at least 1x1, got {target_width}x{target_height}")


def resize_contain(source: RasterBuffer, target_width: int, target_height: int) -> RasterBuffer:
    """Fit inside the target box, centered on a transparent canvas. Never crops."""
    _validate(source, target_width, target_height)
    scale = min(target_width / source.width, target_height / source.height)
    w1, h1 = scaled_size(source.width, source.height, scale)
    # rounding can overshoot by a pixel on degenerate aspect ratios
    w1, h1 = min(w1, target_width), min(h1, target_height)

    scaled = bilinear_scale(source, scale, w1, h1)
    if (w1, h1) == (target_width, target_height):
        return scaled

    offset_x = (target_width - w1) // 2
    offset_y = (target_height - h1) // 2
    canvas = RasterBuffer.transparent(target_width, target_height)
    return composite_onto(canvas, scaled, offset_x, offset_y)


def resize_cover(source: RasterBuffer, target_width: int, target_height: int) -> RasterBuffer:
    """Fill the target box, center-cropping whatever overflows."""
    _validate(source, target_width, target_height)
    scale = max(target_width / source.width, target_height / source.height)
    cover_w, cover_h = scaled_size(source.width, source.height, scale)
    cover_w, cover_h = max(cover_w, target_width), max(cover_h, target_height)

    left = (cover_w - target_width) // 2
    top = (cover_h - target_height) // 2
    return bilinear_scale(source, scale, target_width, target_height, offset_x=left, offset_y=top)


def resize(
    source: RasterBuffer,
    target_width: int,
    target_height: int,
    fit: FitMode = FitMode.CONTAIN,
) -> RasterBuffer:
    if FitMode(fit) is FitMode.COVER:
        return resize_cover(source, target_width, target_height)
    return resize_contain(source, target_width, target_height)
