"""Image decoding for the UI shell, using pyvips.

The frame engine only accepts decoded RasterImages; this module turns the
files or bytes a user picked into those, reporting failures as DecodeError.
"""

import contextlib
import os
from collections.abc import Iterable
from typing import Any

import numpy as np

from photo_frame.errors import DecodeError
from photo_frame.logger import get_logger
from photo_frame.models import ExportItem, RasterImage

_logger = get_logger("decoder")

RGB_CHANNELS = 3
_WHITE = [255, 255, 255]

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        _pyvips = pyvips
    return _pyvips


def _to_raster(image: Any) -> RasterImage:
    """Normalize a pyvips image to an upright 8-bit sRGB RasterImage."""
    pyvips = _get_pyvips_module()
    # autorot of a 90/270 orientation reads out of order; decode fully first
    image = image.copy_memory()
    image = image.autorot()
    with contextlib.suppress(Exception):
        image = image.colourspace("srgb")
    if image.hasalpha():
        image = image.flatten(background=_WHITE)
    if image.bands > RGB_CHANNELS:
        image = image.extract_band(0, n=RGB_CHANNELS)
    elif image.bands < RGB_CHANNELS:
        image = pyvips.Image.bandjoin([image] * RGB_CHANNELS)
    if image.format != "uchar":
        image = image.cast("uchar")

    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    return RasterImage.from_array(array)


def decode_bytes(data: bytes) -> RasterImage:
    """Decode encoded image bytes (JPEG, PNG, ...) into a RasterImage."""
    if not data:
        raise DecodeError("empty image data")
    try:
        pyvips = _get_pyvips_module()
        image = pyvips.Image.new_from_buffer(data, "")
        return _to_raster(image)
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"cannot decode image data: {e}") from e


def decode_image(file_path: str) -> tuple[str, RasterImage | None, str | None]:
    """Decode image from file path.

    Returns (path, image|None, error|None) and never raises, so it can be
    handed to an executor like any other worker function.
    """
    try:
        pyvips = _get_pyvips_module()
        image = pyvips.Image.new_from_file(file_path)
        return file_path, _to_raster(image), None
    except Exception as e:
        _logger.debug("decode failed: %s: %s", file_path, e)
        return file_path, None, str(e)


def load_items(paths: Iterable[str]) -> list[ExportItem]:
    """Decode ``paths`` into ExportItems; failed decodes keep their error."""
    items: list[ExportItem] = []
    for p in paths:
        path, image, err = decode_image(p)
        items.append(ExportItem(display_name=os.path.basename(path), image=image, error=err))
    return items
