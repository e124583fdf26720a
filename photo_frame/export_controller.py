"""Qt front for batch export.

ExportWorker runs export_all on a QThread and re-emits its busy/progress
callbacks as signals, so a UI can show a busy indicator without blocking.
"""

from __future__ import annotations

from collections.abc import Sequence

from PySide6.QtCore import QObject, QThread, Signal, Slot

from photo_frame.errors import ExportCancelled, PhotoFrameError
from photo_frame.frame_engine.exporter import CancelToken, export_all
from photo_frame.logger import get_logger
from photo_frame.models import ExportItem, LayoutParams

_logger = get_logger("export_controller")


class ExportWorker(QThread):
    """Worker thread that frames a selection and reports the outcome by signal."""

    busy = Signal(bool)
    progress = Signal(int, int, str)  # completed, total, display name
    exported = Signal(object)  # SingleResult | ArchiveResult | None
    failed = Signal(str)
    canceled = Signal()

    def __init__(
        self,
        items: Sequence[ExportItem],
        params: LayoutParams,
        max_workers: int | None = None,
    ):
        super().__init__()
        self.items = list(items)
        self.params = params
        self.max_workers = max_workers
        self._token = CancelToken()

    def run(self) -> None:
        try:
            result = export_all(
                self.items,
                self.params,
                max_workers=self.max_workers,
                cancel=self._token,
                on_busy=self.busy.emit,
                on_progress=self.progress.emit,
            )
        except ExportCancelled:
            self.canceled.emit()
            return
        except PhotoFrameError as ex:
            _logger.warning("export failed: %s", ex)
            self.failed.emit(str(ex))
            return
        self.exported.emit(result)

    def cancel(self) -> None:
        self._token.cancel()


class ExportController(QObject):
    """Owns at most one active ExportWorker.

    Worker signals are relayed through slots that drop anything coming from a
    worker other than the current one, so a cancelled export that is still
    winding down cannot report over its replacement.
    """

    busy = Signal(bool)
    progress = Signal(int, int, str)
    exported = Signal(object)
    failed = Signal(str)
    canceled = Signal()

    def __init__(self):
        super().__init__()
        self._worker: ExportWorker | None = None
        self._busy_shown = False
        # Replaced workers stay referenced until their finished signal is handled
        self._retired: set[ExportWorker] = set()

    @property
    def is_busy(self) -> bool:
        return self._worker is not None and self._worker.isRunning()

    def start(
        self,
        items: Sequence[ExportItem],
        params: LayoutParams,
        max_workers: int | None = None,
    ) -> None:
        """Start framing ``items``; a running export is cancelled first."""
        self.cancel()

        worker = ExportWorker(items, params, max_workers=max_workers)

        worker.busy.connect(self._on_busy)
        worker.progress.connect(self._on_progress)
        worker.exported.connect(self._on_exported)
        worker.failed.connect(self._on_failed)
        worker.canceled.connect(self._on_canceled)
        worker.finished.connect(self._on_thread_finished)

        self._worker = worker
        worker.start()

    def cancel(self) -> None:
        """Cancel the current export, if any.

        The controller reports the cancellation itself; late signals from the
        cancelled worker are ignored.
        """
        worker = self._worker
        self._worker = None
        if worker is None:
            return
        # Queued signals may still be pending; its finished slot releases it
        self._retired.add(worker)
        if not worker.isRunning():
            return
        worker.cancel()
        worker.wait(1000)  # Wait up to 1 second
        if self._busy_shown:
            self._busy_shown = False
            self.busy.emit(False)
        self.canceled.emit()

    def _is_current(self) -> bool:
        sender = self.sender()
        return sender is not None and sender is self._worker

    @Slot(bool)
    def _on_busy(self, flag: bool) -> None:
        if self._is_current():
            self._busy_shown = flag
            self.busy.emit(flag)

    @Slot(int, int, str)
    def _on_progress(self, done: int, total: int, name: str) -> None:
        if self._is_current():
            self.progress.emit(done, total, name)

    @Slot(object)
    def _on_exported(self, result: object) -> None:
        if self._is_current():
            self.exported.emit(result)

    @Slot(str)
    def _on_failed(self, message: str) -> None:
        if self._is_current():
            self.failed.emit(message)

    @Slot()
    def _on_canceled(self) -> None:
        if self._is_current():
            self.canceled.emit()

    @Slot()
    def _on_thread_finished(self) -> None:
        sender = self.sender()
        self._retired.discard(sender)
        if sender is not None and sender is self._worker:
            self._worker = None
