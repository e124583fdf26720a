"""Value types shared by the compositor, the exporter and the UI shell."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from . import config
from .errors import DecodeError, PhotoFrameError, ValidationError

_RGB_CHANNELS = 3
_RGBA_CHANNELS = 4


class OutputFormat(Enum):
    JPEG = "jpeg"
    PNG = "png"

    @property
    def mime_type(self) -> str:
        return "image/jpeg" if self is OutputFormat.JPEG else "image/png"

    @property
    def extension(self) -> str:
        return "jpg" if self is OutputFormat.JPEG else "png"

    @classmethod
    def parse(cls, value: OutputFormat | str) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ("jpeg", "jpg"):
                return cls.JPEG
            if key == "png":
                return cls.PNG
        raise ValidationError(f"unsupported output format: {value!r}")


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded sRGB bitmap, shape (height, width, 3), dtype uint8, read-only."""

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_array(cls, array: np.ndarray) -> RasterImage:
        """Copy ``array`` into a RasterImage.

        Grey (h, w) / (h, w, 1) arrays are expanded to RGB and RGBA arrays are
        flattened over white. Anything without pixels raises DecodeError.
        """
        arr = np.asarray(array)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        if arr.ndim != 3 or arr.shape[0] == 0 or arr.shape[1] == 0:
            raise DecodeError(f"not a usable image array: shape={arr.shape}")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)

        bands = arr.shape[2]
        if bands == 1:
            rgb = np.repeat(arr, _RGB_CHANNELS, axis=2)
        elif bands == _RGB_CHANNELS:
            rgb = arr.copy()
        elif bands == _RGBA_CHANNELS:
            alpha = arr[:, :, 3:4].astype(np.float32) / 255.0
            flat = arr[:, :, :3].astype(np.float32) * alpha + 255.0 * (1.0 - alpha)
            rgb = np.rint(flat).astype(np.uint8)
        else:
            raise DecodeError(f"unsupported band count: {bands}")

        rgb = np.ascontiguousarray(rgb)
        rgb.setflags(write=False)
        return cls(rgb)


@dataclass(frozen=True)
class LayoutParams:
    frame_percent: float = config.DEFAULT_FRAME_PERCENT
    output_size: int = config.DEFAULT_OUTPUT_SIZE
    format: OutputFormat = OutputFormat.JPEG
    background: tuple[int, int, int] = config.DEFAULT_BACKGROUND

    def __post_init__(self) -> None:
        object.__setattr__(self, "format", OutputFormat.parse(self.format))
        try:
            background = tuple(self.background)
        except TypeError:
            raise ValidationError(f"background must be three 0-255 ints, got {self.background!r}") from None
        object.__setattr__(self, "background", background)

    def validate(self) -> LayoutParams:
        fp = self.frame_percent
        if isinstance(fp, bool) or not isinstance(fp, numbers.Real):
            raise ValidationError(f"frame_percent must be a number, got {fp!r}")
        if not config.MIN_FRAME_PERCENT <= fp <= config.MAX_FRAME_PERCENT:
            raise ValidationError(
                f"frame_percent {fp} outside {config.MIN_FRAME_PERCENT}-{config.MAX_FRAME_PERCENT}"
            )

        size = self.output_size
        if isinstance(size, bool) or not isinstance(size, numbers.Integral):
            raise ValidationError(f"output_size must be an integer, got {size!r}")
        if size not in config.ALLOWED_OUTPUT_SIZES:
            raise ValidationError(f"output_size {size} not in {config.ALLOWED_OUTPUT_SIZES}")

        bg = self.background
        if len(bg) != 3 or not all(
            isinstance(c, numbers.Integral) and not isinstance(c, bool) and 0 <= c <= 255 for c in bg
        ):
            raise ValidationError(f"background must be three 0-255 ints, got {bg!r}")
        return self


@dataclass(frozen=True)
class Placement:
    """Where the scaled source lands on the square canvas (float pixels)."""

    border: int
    interior: int
    scale: float
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class EncodedBuffer:
    data: bytes
    format: OutputFormat

    @property
    def mime_type(self) -> str:
        return self.format.mime_type

    @property
    def extension(self) -> str:
        return self.format.extension


@dataclass(frozen=True, eq=False)
class ExportItem:
    display_name: str
    image: RasterImage | None
    error: str | None = None


@dataclass(frozen=True)
class ExportFailure:
    display_name: str
    error: PhotoFrameError

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class SingleResult:
    file_name: str
    buffer: EncodedBuffer


@dataclass(frozen=True)
class ArchiveResult:
    file_name: str
    data: bytes
    entries: tuple[str, ...]
    failures: tuple[ExportFailure, ...] = field(default=())

    mime_type = "application/zip"

    @property
    def complete(self) -> bool:
        return not self.failures
