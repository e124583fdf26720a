"""Square frame compositor.

Draws one source image, uniformly scaled and centred, inside a solid border on
a fixed-size square canvas and encodes the canvas with pyvips.

Every call allocates its own canvas, so calls are safe to run concurrently
from a thread pool.
"""

from __future__ import annotations

import contextlib
import math
from typing import Any

import numpy as np

from photo_frame import config
from photo_frame.errors import DecodeError, EncodeError, ValidationError
from photo_frame.logger import get_logger
from photo_frame.models import EncodedBuffer, LayoutParams, OutputFormat, Placement, RasterImage

from .metrics import metrics

_logger = get_logger("compositor")

_RGB_CHANNELS = 3

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Canvases are built once and thrown away; vips' operation cache only grows memory
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def frame_geometry(params: LayoutParams) -> tuple[int, int]:
    """Return ``(border, interior)`` in pixels for ``params``."""
    border = _round_half_up(params.frame_percent / 100 * params.output_size)
    interior = params.output_size - 2 * border
    if interior <= 0:
        raise ValidationError(
            f"frame of {params.frame_percent}% leaves no interior on a {params.output_size}px canvas"
        )
    return border, interior


def compute_placement(width: int, height: int, params: LayoutParams) -> Placement:
    """Fit a ``width`` x ``height`` source inside the interior without cropping."""
    if width <= 0 or height <= 0:
        raise ValidationError(f"source image must have positive size, got {width}x{height}")
    border, interior = frame_geometry(params)
    scale = min(interior / width, interior / height)
    w = width * scale
    h = height * scale
    x = border + (interior - w) / 2
    y = border + (interior - h) / 2
    return Placement(border=border, interior=interior, scale=scale, x=x, y=y, width=w, height=h)


def _pixel_rect(placement: Placement) -> tuple[int, int, int, int]:
    """Integer (left, top, width, height) of the drawn image, clamped to the interior."""
    interior = placement.interior
    dw = min(interior, max(1, _round_half_up(placement.width)))
    dh = min(interior, max(1, _round_half_up(placement.height)))
    left = placement.border + (interior - dw) // 2
    top = placement.border + (interior - dh) // 2
    return left, top, dw, dh


def _resample(image: RasterImage, width: int, height: int) -> np.ndarray:
    if width == image.width and height == image.height:
        return image.pixels

    try:
        pyvips = _get_pyvips_module()
        src = pyvips.Image.new_from_memory(
            image.pixels.tobytes(), image.width, image.height, _RGB_CHANNELS, "uchar"
        )
        resized = src.resize(width / image.width, vscale=height / image.height)
        if resized.width != width or resized.height != height:
            # vips rounds the output size itself; pin it to the computed rect
            resized = resized.gravity("centre", width, height, extend="copy")
        if resized.format != "uchar":
            resized = resized.cast("uchar")
        mem = resized.write_to_memory()
    except Exception as e:
        raise EncodeError(f"resample to {width}x{height} failed: {e}") from e

    return np.frombuffer(mem, dtype=np.uint8).reshape(height, width, _RGB_CHANNELS)


def render(image: RasterImage, params: LayoutParams) -> np.ndarray:
    """Draw ``image`` onto a fresh square canvas and return it as an RGB array."""
    placement = compute_placement(image.width, image.height, params)
    size = params.output_size

    canvas = np.empty((size, size, _RGB_CHANNELS), dtype=np.uint8)
    canvas[:, :] = np.asarray(params.background, dtype=np.uint8)

    left, top, dw, dh = _pixel_rect(placement)
    canvas[top : top + dh, left : left + dw] = _resample(image, dw, dh)
    return canvas


def encode(canvas: np.ndarray, fmt: OutputFormat) -> EncodedBuffer:
    """Encode an RGB canvas; JPEG at a fixed quality, PNG lossless."""
    if canvas.ndim != 3 or canvas.shape[2] != _RGB_CHANNELS:
        raise EncodeError("expected RGB canvas with shape (h, w, 3)")

    h, w, _ = canvas.shape
    try:
        pyvips = _get_pyvips_module()
        img: Any = pyvips.Image.new_from_memory(canvas.tobytes(), w, h, _RGB_CHANNELS, "uchar")
        with contextlib.suppress(Exception):
            img = img.copy(interpretation="srgb")
        if fmt is OutputFormat.JPEG:
            out = img.write_to_buffer(".jpg", Q=config.JPEG_QUALITY)
        else:
            out = img.write_to_buffer(".png")
    except Exception as e:
        raise EncodeError(f"{fmt.value} encode failed: {e}") from e

    data = out if isinstance(out, bytes) else bytes(out)
    if not data:
        raise EncodeError(f"{fmt.value} encoder produced no data")
    return EncodedBuffer(data=data, format=fmt)


def compose(image: RasterImage | None, params: LayoutParams) -> EncodedBuffer:
    """Frame ``image`` according to ``params`` and return the encoded result."""
    metrics.inc("compose.calls")
    try:
        if image is None:
            raise DecodeError("no decoded image supplied")
        params.validate()
        with metrics.timed("compose.duration"):
            canvas = render(image, params)
            buf = encode(canvas, params.format)
    except Exception:
        metrics.inc("compose.failures")
        raise
    _logger.debug(
        "composed %dx%d -> %dpx %s (%d bytes)",
        image.width,
        image.height,
        params.output_size,
        params.format.value,
        len(buf.data),
    )
    return buf
