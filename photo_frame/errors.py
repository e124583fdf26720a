"""Exception hierarchy for framing and export.

Every failure is scoped to one export call; none of them leaves shared state
behind, so callers can simply retry with different input.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ExportFailure


class PhotoFrameError(Exception):
    """Base class for all photo_frame errors."""


class ValidationError(PhotoFrameError, ValueError):
    """Layout parameters or image dimensions cannot produce a framed image."""


class DecodeError(PhotoFrameError):
    """A source image is missing or could not be decoded."""


class EncodeError(PhotoFrameError):
    """The composed canvas could not be encoded to the requested format."""


class ArchiveError(PhotoFrameError):
    """Writing the batch zip archive failed."""


class ExportCancelled(PhotoFrameError):
    """A batch export was cancelled before it completed."""


class BatchExportError(PhotoFrameError):
    """No item of a multi-image export could be composed."""

    def __init__(self, failures: tuple[ExportFailure, ...]):
        self.failures = failures
        names = ", ".join(f.display_name for f in failures)
        super().__init__(f"all {len(failures)} images failed: {names}")
