from __future__ import annotations

import math
from dataclasses import dataclass

from dtfprint.canvas.types import DerivedDimensions, RasterBuffer
from dtfprint.errors import InvalidDimensions


@dataclass(slots=True)
class Placement:
    x: int
    y: int
    width: int
    height: int


def composite_onto(
    background: RasterBuffer,
    foreground: RasterBuffer,
    offset_x: int,
    offset_y: int,
) -> RasterBuffer:
    """Overwrite-copy ``foreground`` into a copy of ``background`` at the offset.

    No alpha blending: the target region is replaced verbatim. Callers only
    composite onto canvas regions nothing else has painted.
    """
    placement = Placement(x=offset_x, y=offset_y, width=foreground.width, height=foreground.height)
    if (
        placement.x < 0
        or placement.y < 0
        or placement.x + placement.width > background.width
        or placement.y + placement.height > background.height
    ):
        raise InvalidDimensions(
            f"foreground {foreground.width}x{foreground.height} at ({offset_x}, {offset_y}) "
            f"does not fit canvas {background.width}x{background.height}"
        )

    canvas = background.pixels.copy()
    canvas[
        placement.y : placement.y + placement.height,
        placement.x : placement.x + placement.width,
    ] = foreground.pixels
    return RasterBuffer(canvas)


def margin_px(width: int, height: int, margin_fraction: float) -> int:
    base = min(width, height)
    return max(1, math.floor(base * max(0.0, margin_fraction)))


def pad_margin(raster: RasterBuffer, margin_fraction: float) -> RasterBuffer:
    """Surround the raster with a fully transparent border.

    The border width is ``margin_fraction`` of the shorter side, at least 1px.
    """
    pad = margin_px(raster.width, raster.height, margin_fraction)
    canvas = RasterBuffer.transparent(raster.width + 2 * pad, raster.height + 2 * pad)
    return composite_onto(canvas, raster, pad, pad)


def build_bleed_canvas(trim: RasterBuffer, dims: DerivedDimensions) -> RasterBuffer:
    if trim.size != (dims.trim_width, dims.trim_height):
        raise InvalidDimensions(
            f"trim raster is {trim.width}x{trim.height}, expected {dims.trim_width}x{dims.trim_height}"
        )
    canvas = RasterBuffer.transparent(dims.final_width, dims.final_height)
    offset_x, offset_y = dims.trim_offset
    return composite_onto(canvas, trim, offset_x, offset_y)
