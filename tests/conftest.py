"""Pytest configuration.

The export controller tests run QThreads, which need a QCoreApplication.
We create a single one for the entire session as early as possible
(offscreen, so no display is required) and shut it down at the end.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import numpy as np
import pytest

from photo_frame.models import RasterImage

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QCoreApplication exists before collecting/running tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return

    global _APP

    app = QCoreApplication.instance()
    # Keep a strong ref so it isn't GC'd mid-session.
    _APP = app if app is not None else QCoreApplication([])


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return

    app = QCoreApplication.instance()
    if app is None:
        return
    app.quit()
    app.processEvents()


@pytest.fixture
def solid_image() -> Callable[..., RasterImage]:
    """Factory: solid_image(width, height, color=(20, 40, 200))."""

    def _make(width: int, height: int, color: tuple[int, int, int] = (20, 40, 200)) -> RasterImage:
        arr = np.empty((height, width, 3), dtype=np.uint8)
        arr[:, :] = color
        return RasterImage.from_array(arr)

    return _make
