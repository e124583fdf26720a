"""Batch export of framed images.

One image yields a single encoded file; several images are composed on a
thread pool and bundled into one zip archive. Failed images are reported
alongside the archive instead of being dropped.
"""

from __future__ import annotations

import io
import threading
import zipfile
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from photo_frame import config
from photo_frame.errors import (
    ArchiveError,
    BatchExportError,
    DecodeError,
    ExportCancelled,
    PhotoFrameError,
)
from photo_frame.logger import get_logger
from photo_frame.models import (
    ArchiveResult,
    EncodedBuffer,
    ExportFailure,
    ExportItem,
    LayoutParams,
    SingleResult,
)

from .compositor import compose
from .metrics import metrics
from .naming import output_name, unique_names

_logger = get_logger("exporter")

BusyCallback = Callable[[bool], None]
ProgressCallback = Callable[[int, int, str], None]  # done, total, display_name


class CancelToken:
    """Thread-safe flag a caller sets to abandon a running export."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _check_cancel(cancel: CancelToken | None, done: int, total: int) -> None:
    if cancel is not None and cancel.cancelled:
        raise ExportCancelled(f"export cancelled after {done} of {total} images")


def _compose_item(item: ExportItem, params: LayoutParams) -> EncodedBuffer:
    if item.image is None:
        raise DecodeError(item.error or f"{item.display_name} was not decoded")
    return compose(item.image, params)


def _as_failure(item: ExportItem, exc: Exception) -> ExportFailure:
    if not isinstance(exc, PhotoFrameError):
        # Unexpected backend errors still only fail this one item
        wrapped = PhotoFrameError(f"{type(exc).__name__}: {exc}")
        wrapped.__cause__ = exc
        exc = wrapped
    return ExportFailure(display_name=item.display_name, error=exc)


def build_archive(entries: Sequence[tuple[str, EncodedBuffer]]) -> bytes:
    """Zip ``(name, buffer)`` pairs in order. Not thread-safe: call from one thread."""
    out = io.BytesIO()
    try:
        with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, buf in entries:
                info = zipfile.ZipInfo(name, date_time=config.ARCHIVE_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                zf.writestr(info, buf.data)
    except (OSError, TypeError, ValueError, zipfile.LargeZipFile) as e:
        raise ArchiveError(f"failed to write archive: {e}") from e
    return out.getvalue()


def _compose_all(
    items: Sequence[ExportItem],
    params: LayoutParams,
    max_workers: int,
    cancel: CancelToken | None,
    on_progress: ProgressCallback | None,
) -> tuple[list[EncodedBuffer | None], list[ExportFailure | None]]:
    total = len(items)
    buffers: list[EncodedBuffer | None] = [None] * total
    failures: list[ExportFailure | None] = [None] * total
    done = 0
    _check_cancel(cancel, done, total)

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="photo-frame") as executor:
        future_to_index: dict[Future, int] = {
            executor.submit(_compose_item, item, params): idx for idx, item in enumerate(items)
        }
        for future in as_completed(future_to_index):
            if cancel is not None and cancel.cancelled:
                for f in future_to_index:
                    f.cancel()
                _check_cancel(cancel, done, total)

            idx = future_to_index[future]
            item = items[idx]
            try:
                buffers[idx] = future.result()
            except Exception as ex:
                failures[idx] = _as_failure(item, ex)
                metrics.inc("export.failures")
                _logger.warning("frame failed for %s: %s", item.display_name, ex)

            done += 1
            if on_progress is not None:
                on_progress(done, total, item.display_name)

    return buffers, failures


def export_all(
    items: Sequence[ExportItem],
    params: LayoutParams,
    *,
    max_workers: int | None = None,
    cancel: CancelToken | None = None,
    on_busy: BusyCallback | None = None,
    on_progress: ProgressCallback | None = None,
) -> SingleResult | ArchiveResult | None:
    """Frame every item with ``params``.

    Returns None for no items, a SingleResult for one item (errors raise),
    and an ArchiveResult listing per-item failures for several items.
    Raises BatchExportError when no item of a batch succeeds and
    ExportCancelled when ``cancel`` is triggered.
    """
    if not items:
        return None

    params.validate()
    metrics.inc("export.items", len(items))

    if len(items) == 1:
        item = items[0]
        buf = _compose_item(item, params)
        if on_progress is not None:
            on_progress(1, 1, item.display_name)
        return SingleResult(file_name=output_name(item.display_name, params.format), buffer=buf)

    if on_busy is not None:
        on_busy(True)
    try:
        workers = max_workers or config.default_max_workers()
        _logger.info("framing %d images (%d workers)", len(items), workers)
        buffers, failures = _compose_all(items, params, workers, cancel, on_progress)
        _check_cancel(cancel, len(items), len(items))

        ok = [(item, buf) for item, buf in zip(items, buffers) if buf is not None]
        failed = tuple(f for f in failures if f is not None)
        if not ok:
            raise BatchExportError(failed)

        names = unique_names(output_name(item.display_name, params.format) for item, _ in ok)
        with metrics.timed("archive.duration"):
            data = build_archive(list(zip(names, (buf for _, buf in ok))))
        metrics.inc("archive.entries", len(names))

        if failed:
            _logger.warning("archive written with %d of %d images", len(names), len(items))
        return ArchiveResult(
            file_name=config.ARCHIVE_NAME,
            data=data,
            entries=tuple(names),
            failures=failed,
        )
    finally:
        if on_busy is not None:
            on_busy(False)
