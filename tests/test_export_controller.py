from __future__ import annotations

import time

import pytest

pytest.importorskip("PySide6")
from PySide6.QtCore import QCoreApplication

from photo_frame.errors import EncodeError
from photo_frame.export_controller import ExportController, ExportWorker
from photo_frame.frame_engine import exporter
from photo_frame.models import ArchiveResult, EncodedBuffer, ExportItem, LayoutParams, OutputFormat, SingleResult

PNG = LayoutParams(frame_percent=8, output_size=1200, format=OutputFormat.PNG)


@pytest.fixture(autouse=True)
def fake_compose(monkeypatch):
    def _compose(image, params):
        if image.width == 13:
            raise EncodeError("encoder refused")
        if image.width == 99:
            # Outlasts ExportController.cancel()'s one second wait
            time.sleep(1.5)
        return EncodedBuffer(data=b"framed", format=params.format)

    monkeypatch.setattr(exporter, "compose", _compose)


def _collect(worker) -> dict[str, list]:
    got: dict[str, list] = {"busy": [], "progress": [], "exported": [], "failed": [], "canceled": []}
    worker.busy.connect(lambda b: got["busy"].append(b))
    worker.progress.connect(lambda d, t, n: got["progress"].append((d, t, n)))
    worker.exported.connect(lambda r: got["exported"].append(r))
    worker.failed.connect(lambda msg: got["failed"].append(msg))
    worker.canceled.connect(lambda: got["canceled"].append(True))
    return got


def test_worker_run_emits_archive_result(solid_image):
    items = [ExportItem("a.jpg", solid_image(1, 1)), ExportItem("b.jpg", solid_image(2, 1))]
    worker = ExportWorker(items, PNG, max_workers=2)
    got = _collect(worker)

    worker.run()

    assert got["busy"] == [True, False]
    assert [p[0] for p in got["progress"]] == [1, 2]
    (result,) = got["exported"]
    assert isinstance(result, ArchiveResult)
    assert result.entries == ("a.png", "b.png")
    assert got["failed"] == [] and got["canceled"] == []


def test_worker_run_single_item(solid_image):
    worker = ExportWorker([ExportItem("only.heic", solid_image(3, 3))], PNG)
    got = _collect(worker)

    worker.run()

    (result,) = got["exported"]
    assert isinstance(result, SingleResult)
    assert result.file_name == "only.png"


def test_worker_run_reports_failure(solid_image):
    worker = ExportWorker([ExportItem("bad.jpg", solid_image(13, 1))], PNG)
    got = _collect(worker)

    worker.run()

    assert got["exported"] == []
    assert got["failed"] == ["encoder refused"]


def test_worker_cancelled_before_run(solid_image):
    items = [ExportItem("a.jpg", solid_image(1, 1)), ExportItem("b.jpg", solid_image(2, 1))]
    worker = ExportWorker(items, PNG)
    got = _collect(worker)

    worker.cancel()
    worker.run()

    assert got["canceled"] == [True]
    assert got["exported"] == []
    assert got["busy"] == [True, False]


def test_controller_runs_worker_thread(solid_image):
    controller = ExportController()
    got = _collect(controller)
    items = [ExportItem("a.jpg", solid_image(1, 1)), ExportItem("b.jpg", solid_image(2, 1))]

    controller.start(items, PNG, max_workers=1)
    worker = controller._worker
    assert worker is not None
    assert worker.wait(10000)
    QCoreApplication.processEvents()

    assert not controller.is_busy
    (result,) = got["exported"]
    assert isinstance(result, ArchiveResult)
    assert got["busy"] == [True, False]


def test_controller_cancel_without_worker_is_noop():
    controller = ExportController()

    controller.cancel()

    assert not controller.is_busy


def _pump_until(predicate, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        QCoreApplication.processEvents()
        time.sleep(0.01)


def test_restart_ignores_signals_from_replaced_worker(solid_image):
    controller = ExportController()
    got = _collect(controller)
    slow = [ExportItem("slow1.jpg", solid_image(99, 1)), ExportItem("slow2.jpg", solid_image(99, 2))]
    fast = [ExportItem("new1.jpg", solid_image(1, 1)), ExportItem("new2.jpg", solid_image(2, 1))]

    controller.start(slow, PNG, max_workers=1)
    old = controller._worker
    _pump_until(lambda: got["busy"] == [True])
    assert got["busy"] == [True]

    controller.start(fast, PNG, max_workers=1)
    new = controller._worker
    assert new is not old
    assert old.wait(10000)
    assert new.wait(10000)
    _pump_until(lambda: len(got["exported"]) == 1)
    QCoreApplication.processEvents()

    assert got["busy"] == [True, False, True, False]
    assert got["canceled"] == [True]
    (result,) = got["exported"]
    assert result.entries == ("new1.png", "new2.png")
    assert all(name.startswith("new") for _, _, name in got["progress"])
    assert not controller.is_busy


def test_cancel_reports_idle_and_cancelled(solid_image):
    controller = ExportController()
    got = _collect(controller)
    slow = [ExportItem("slow1.jpg", solid_image(99, 1)), ExportItem("slow2.jpg", solid_image(99, 2))]

    controller.start(slow, PNG, max_workers=1)
    worker = controller._worker
    _pump_until(lambda: got["busy"] == [True])

    controller.cancel()
    assert worker.wait(10000)
    QCoreApplication.processEvents()

    assert got["busy"] == [True, False]
    assert got["canceled"] == [True]
    assert got["exported"] == []
    assert not controller.is_busy
