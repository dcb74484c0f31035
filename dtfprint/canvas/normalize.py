from __future__ import annotations

import logging
from io import BytesIO
from typing import Protocol, Sequence

import numpy as np
from PIL import Image

from dtfprint.canvas.types import RasterBuffer, UnverifiedImage
from dtfprint.errors import DecodeFailure

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def is_png(data: bytes) -> bool:
    return data[:8] == PNG_SIGNATURE


# Pillow's convert() clips wide integer samples to 255 instead of rescaling them.
_WIDE_INT_MODES = {"I", "I;16", "I;16B", "I;16L", "I;16N"}


def _pillow_to_rgba(img: Image.Image) -> np.ndarray:
    if img.mode in _WIDE_INT_MODES:
        samples = np.clip(np.asarray(img, dtype=np.int64), 0, 65535)
        gray = (samples >> 8).astype(np.uint8)
        return np.dstack([gray, gray, gray, np.full_like(gray, 255)])
    if img.mode == "F":
        raise ValueError("floating point samples are not supported")
    return np.array(img.convert("RGBA"), dtype=np.uint8)


class Decoder(Protocol):
    name: str

    def decode(self, data: bytes) -> np.ndarray:
        """Return straight-alpha RGBA pixels, shape (h, w, 4), uint8.

        Raise on bytes the decoder cannot parse.
        """


class PngDecoder:
    """Pillow restricted to the PNG plugin. Used when the signature says PNG."""

    name = "png"

    def decode(self, data: bytes) -> np.ndarray:
        with Image.open(BytesIO(data), formats=["PNG"]) as img:
            return _pillow_to_rgba(img)


class PillowDecoder:
    name = "pillow"

    def decode(self, data: bytes) -> np.ndarray:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return _pillow_to_rgba(img)


class OpenCVDecoder:
    name = "opencv"

    def decode(self, data: bytes) -> np.ndarray:
        import cv2  # noqa: PLC0415 - secondary decoder, loaded on demand

        arr = np.frombuffer(data, dtype=np.uint8)
        decoded = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
        if decoded is None:
            raise ValueError("cv2.imdecode could not parse buffer")

        if decoded.dtype == np.uint16:
            decoded = (decoded >> 8).astype(np.uint8)
        elif decoded.dtype != np.uint8:
            raise ValueError(f"unsupported sample type: {decoded.dtype}")

        if decoded.ndim == 2:
            return cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGBA)
        channels = decoded.shape[2]
        if channels == 1:
            return cv2.cvtColor(decoded[:, :, 0], cv2.COLOR_GRAY2RGBA)
        if channels == 3:
            return cv2.cvtColor(decoded, cv2.COLOR_BGR2RGBA)
        if channels == 4:
            return cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)
        raise ValueError(f"unsupported channel count: {channels}")


DEFAULT_DECODERS: tuple[Decoder, ...] = (PillowDecoder(), OpenCVDecoder())


def normalize_image(
    data: bytes,
    *,
    decoders: Sequence[Decoder] | None = None,
) -> RasterBuffer | UnverifiedImage:
    """Decode arbitrary image bytes into RGBA.

    PNG input is read with the PNG decoder first. Everything else (and PNG that
    fails to parse) goes through ``decoders`` in order; the first success wins.
    When every decoder fails the bytes come back as ``UnverifiedImage``.
    """
    chain: list[Decoder] = list(DEFAULT_DECODERS if decoders is None else decoders)
    if is_png(data):
        chain.insert(0, PngDecoder())

    failures: list[str] = []
    for decoder in chain:
        try:
            pixels = decoder.decode(data)
            raster = RasterBuffer(pixels)
        except Exception as exc:  # noqa: BLE001 - any decoder error moves on to the next decoder
            logger.debug("decoder %s rejected %d bytes: %s", decoder.name, len(data), exc)
            failures.append(f"{decoder.name}: {exc}")
            continue
        logger.info("decoded %dx%d image via %s", raster.width, raster.height, decoder.name)
        return raster

    reason = "; ".join(failures) or "no decoders configured"
    logger.warning("all decoders failed for %d bytes, returning unverified: %s", len(data), reason)
    return UnverifiedImage(data=data, reason=reason)


def require_raster(result: RasterBuffer | UnverifiedImage) -> RasterBuffer:
    if isinstance(result, UnverifiedImage):
        raise DecodeFailure(f"undecodable image ({len(result.data)} bytes): {result.reason}")
    return result


def decode_raster(data: bytes, *, decoders: Sequence[Decoder] | None = None) -> RasterBuffer:
    return require_raster(normalize_image(data, decoders=decoders))
