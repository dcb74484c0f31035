"""Tests for raster types, physical dimensions, compositing and margin padding.

Run: pytest tests/test_geometry.py -v
"""
import numpy as np
import pytest

from conftest import solid_pixels
from dtfprint.canvas.compose import build_bleed_canvas, composite_onto, margin_px, pad_margin
from dtfprint.canvas.types import PhysicalSpec, RasterBuffer, round_half_away
from dtfprint.errors import InvalidDimensions


class TestRounding:
    def test_ties_round_away_from_zero(self):
        assert round_half_away(2.5) == 3
        assert round_half_away(37.5) == 38
        assert round_half_away(-2.5) == -3

    def test_non_ties_round_to_nearest(self):
        assert round_half_away(0.49) == 0
        assert round_half_away(299.51) == 300


class TestPhysicalSpec:
    def test_print_size_at_300_dpi(self):
        spec = PhysicalSpec(width_in=11, height_in=11, dpi=300, bleed_in=0.125, margin_fraction=0.12)
        dims = spec.derive()
        assert (dims.trim_width, dims.trim_height) == (3300, 3300)
        assert (dims.final_width, dims.final_height) == (3375, 3375)
        assert dims.bleed_px == 38  # 37.5 rounds up
        assert dims.trim_offset == (38, 38)

    def test_axes_are_rounded_independently(self):
        spec = PhysicalSpec(width_in=1.0017, height_in=1.0015, dpi=300, bleed_in=0.1, margin_fraction=0.1)
        dims = spec.derive()
        assert dims.trim_width == 301  # 300.51
        assert dims.trim_height == 300  # 300.45

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"width_in": 0},
            {"height_in": -1},
            {"dpi": 0},
            {"bleed_in": 0},
            {"margin_fraction": 1.0},
            {"margin_fraction": -0.1},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        base = dict(width_in=2, height_in=3, dpi=100, bleed_in=0.1, margin_fraction=0.1)
        base.update(kwargs)
        with pytest.raises(InvalidDimensions):
            PhysicalSpec(**base)

    def test_trim_rounding_to_zero_rejected(self):
        spec = PhysicalSpec(width_in=0.001, height_in=1, dpi=100, bleed_in=0.1, margin_fraction=0.1)
        with pytest.raises(InvalidDimensions):
            spec.derive()


class TestRasterBuffer:
    def test_rejects_non_rgba(self):
        with pytest.raises(InvalidDimensions):
            RasterBuffer(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_rejects_empty(self):
        with pytest.raises(InvalidDimensions):
            RasterBuffer(np.zeros((0, 4, 4), dtype=np.uint8))

    def test_transparent_canvas(self):
        canvas = RasterBuffer.transparent(5, 3)
        assert canvas.size == (5, 3)
        assert not canvas.pixels.any()


class TestCompositeOnto:
    def test_overwrites_region_without_blending(self):
        background = RasterBuffer(solid_pixels(6, 6, (9, 9, 9, 9)))
        foreground = RasterBuffer(solid_pixels(2, 3, (200, 100, 50, 0)))

        out = composite_onto(background, foreground, 1, 2)

        assert (out.pixels[2:5, 1:3] == (200, 100, 50, 0)).all()
        assert (out.pixels[0:2] == 9).all()
        assert (background.pixels == 9).all()  # input untouched

    @pytest.mark.parametrize("offset", [(-1, 0), (0, -1), (5, 0), (0, 4)])
    def test_out_of_bounds_rejected(self, offset):
        background = RasterBuffer.transparent(6, 6)
        foreground = RasterBuffer(solid_pixels(2, 3, (1, 1, 1, 1)))
        with pytest.raises(InvalidDimensions):
            composite_onto(background, foreground, *offset)


class TestMarginPadding:
    @pytest.mark.parametrize(
        "width,height,fraction,expected_pad",
        [
            (10, 4, 0.12, 1),
            (100, 50, 0.25, 12),
            (7, 7, 0.5, 3),
            (1, 1, 0.9, 1),
            (30, 80, 0.0, 1),
        ],
    )
    def test_size_and_transparent_border(self, width, height, fraction, expected_pad):
        assert margin_px(width, height, fraction) == expected_pad
        source = RasterBuffer(solid_pixels(width, height, (10, 20, 30, 255)))

        out = pad_margin(source, fraction)
        pad = expected_pad

        assert out.size == (width + 2 * pad, height + 2 * pad)
        interior = out.pixels[pad : pad + height, pad : pad + width]
        assert np.array_equal(interior, source.pixels)

        border = np.ones(out.pixels.shape[:2], dtype=bool)
        border[pad : pad + height, pad : pad + width] = False
        assert not out.pixels[border].any()

    def test_pad_grows_with_shorter_side(self):
        pads = [margin_px(n, n * 2, 0.12) for n in range(1, 200)]
        assert all(a <= b for a, b in zip(pads, pads[1:]))
        assert min(pads) >= 1


class TestBleedCanvas:
    def test_trim_centered_in_final(self, small_spec):
        dims = small_spec.derive()
        trim = RasterBuffer(solid_pixels(dims.trim_width, dims.trim_height, (1, 2, 3, 255)))

        final = build_bleed_canvas(trim, dims)

        assert final.size == (48, 28)
        x, y = dims.trim_offset
        assert (x, y) == (4, 4)
        assert (final.pixels[y : y + 20, x : x + 40] == (1, 2, 3, 255)).all()
        assert not final.pixels[:y].any()
        assert not final.pixels[:, :x].any()

    def test_wrong_trim_size_rejected(self, small_spec):
        with pytest.raises(InvalidDimensions):
            build_bleed_canvas(RasterBuffer.transparent(10, 10), small_spec.derive())
