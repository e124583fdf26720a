"""Frame Engine - compositing and batch export core.

This package has no UI or filesystem dependencies:
- Square frame compositing and encoding (compositor)
- Output naming and collision handling (naming)
- Single/zip batch export with partial-success reporting (exporter)
- Counters and timings (metrics)

Usage:
    from photo_frame.frame_engine import compose, export_all
    from photo_frame.models import LayoutParams

    buf = compose(image, LayoutParams(frame_percent=8, output_size=2000, format="png"))
    result = export_all(items, params)
"""

from .compositor import compose, compute_placement, frame_geometry
from .exporter import CancelToken, export_all

__all__ = ["CancelToken", "compose", "compute_placement", "export_all", "frame_geometry"]
