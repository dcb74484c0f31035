from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from dtfprint.canvas.types import RasterBuffer

TRIM_COLOR = (255, 0, 0)
SAFE_COLOR = (0, 255, 0)


@dataclass(slots=True)
class GuideRect:
    x: int
    y: int
    width: int
    height: int
    color: tuple[int, int, int]


def guide_rects(
    width: int,
    height: int,
    bleed_px: int,
    safety_margin_px: int,
    *,
    line_px: int = 2,
) -> list[GuideRect]:
    """Trim lines (red) then safe lines (green), in compositing order.

    Trim lines span the full canvas; safe lines span only the safe box.
    """
    b = bleed_px
    s = bleed_px + safety_margin_px
    return [
        GuideRect(0, b, width, line_px, TRIM_COLOR),
        GuideRect(0, height - b - line_px, width, line_px, TRIM_COLOR),
        GuideRect(b, 0, line_px, height, TRIM_COLOR),
        GuideRect(width - b - line_px, 0, line_px, height, TRIM_COLOR),
        GuideRect(s, s, width - 2 * s, line_px, SAFE_COLOR),
        GuideRect(s, height - s - line_px, width - 2 * s, line_px, SAFE_COLOR),
        GuideRect(s, s, line_px, height - 2 * s, SAFE_COLOR),
        GuideRect(width - s - line_px, s, line_px, height - 2 * s, SAFE_COLOR),
    ]


def _blend_rect(canvas: np.ndarray, rect: GuideRect, alpha: float) -> None:
    h, w = canvas.shape[:2]
    x1, y1 = max(0, rect.x), max(0, rect.y)
    x2, y2 = min(w, rect.x + rect.width), min(h, rect.y + rect.height)
    if x2 <= x1 or y2 <= y1:
        return

    region = canvas[y1:y2, x1:x2].astype(np.float32)
    dst_rgb = region[:, :, :3]
    dst_a = region[:, :, 3:4] / 255.0
    src_rgb = np.array(rect.color, dtype=np.float32)

    # Source-over with straight alpha on both sides.
    out_a = alpha + dst_a * (1.0 - alpha)
    safe_a = np.where(out_a > 0, out_a, 1.0)
    out_rgb = (src_rgb * alpha + dst_rgb * dst_a * (1.0 - alpha)) / safe_a

    region[:, :, :3] = out_rgb
    region[:, :, 3:4] = out_a * 255.0
    canvas[y1:y2, x1:x2] = np.clip(np.floor(region + 0.5), 0, 255).astype(np.uint8)


def render_proof(
    final: RasterBuffer,
    bleed_px: int,
    safety_margin_px: int,
    *,
    line_px: int = 2,
    alpha: float = 0.7,
) -> RasterBuffer:
    """Copy of ``final`` with trim and safe guide lines composited on top."""
    canvas = final.pixels.copy()
    for rect in guide_rects(final.width, final.height, bleed_px, safety_margin_px, line_px=line_px):
        _blend_rect(canvas, rect, alpha)
    return RasterBuffer(canvas)
