from __future__ import annotations

import json
import os
from typing import Any

from PySide6.QtGui import QColor

from . import config
from .errors import ValidationError
from .logger import get_logger
from .models import LayoutParams

_logger = get_logger("settings")


class SettingsManager:
    """Layout defaults, optionally overridden by a JSON file. Never written back."""

    def __init__(self, settings_path: str | None = None):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "frame_percent": config.DEFAULT_FRAME_PERCENT,
        "output_size": config.DEFAULT_OUTPUT_SIZE,
        "format": config.DEFAULT_FORMAT,
        "background": "#ffffff",
        "max_workers": None,
    }

    def load(self) -> None:
        self._settings = {}
        if not self.settings_path:
            return
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    self._settings = data
                    _logger.debug("settings loaded: %s", self.settings_path)
                else:
                    _logger.warning("settings ignored, not an object: %s", self.settings_path)
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._settings)

    @property
    def max_workers(self) -> int:
        val = self.get("max_workers")
        if isinstance(val, int) and not isinstance(val, bool) and val > 0:
            return val
        return config.default_max_workers()

    def background_rgb(self) -> tuple[int, int, int]:
        hexcol = self.get("background")
        if isinstance(hexcol, str):
            color = QColor(hexcol)
            if color.isValid():
                return color.red(), color.green(), color.blue()
        raise ValidationError(f"invalid background colour: {hexcol!r}")

    def layout_params(self) -> LayoutParams:
        """Build validated LayoutParams from the current settings."""
        params = LayoutParams(
            frame_percent=self.get("frame_percent"),
            output_size=self.get("output_size"),
            format=self.get("format"),
            background=self.background_rgb(),
        )
        return params.validate()
