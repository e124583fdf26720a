"""Fixed layout and export constants."""

from __future__ import annotations

import os

from .logger import get_logger

_logger = get_logger("config")

MIN_FRAME_PERCENT = 2
MAX_FRAME_PERCENT = 20
ALLOWED_OUTPUT_SIZES = (1200, 1600, 2000, 3000)

DEFAULT_FRAME_PERCENT = 8
DEFAULT_OUTPUT_SIZE = 2000
DEFAULT_FORMAT = "jpeg"
DEFAULT_BACKGROUND = (255, 255, 255)

JPEG_QUALITY = 95

ARCHIVE_NAME = "framed-images.zip"
FALLBACK_STEM = "framed-image"
# Fixed member timestamp so identical batches produce identical archives
ARCHIVE_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def default_max_workers() -> int:
    """Worker bound for batch composing (env PHOTO_FRAME_MAX_WORKERS wins)."""
    env = (os.getenv("PHOTO_FRAME_MAX_WORKERS") or "").strip()
    if env:
        try:
            value = int(env)
            if value > 0:
                return value
        except ValueError:
            pass
        _logger.warning("ignoring invalid PHOTO_FRAME_MAX_WORKERS=%r", env)
    return max(2, min(4, (os.cpu_count() or 2)))
