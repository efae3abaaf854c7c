import logging
import queue
import threading
from typing import Callable, Optional

from fan_monitor_core.application.record_history import record_status_change
from fan_monitor_core.domain.models import StatusSnapshot
from fan_monitor_core.domain.ports import UnitOfWork

logger = logging.getLogger(__name__)


class HistoryWriter(threading.Thread):
    """Thread that stores state-change snapshots handed over by the aggregate."""

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        device_id: str,
        q: Optional["queue.Queue[StatusSnapshot]"] = None,
    ):
        super().__init__(name="history-writer", daemon=True)
        self._uow_factory = uow_factory
        self._device_id = device_id
        self._q = q if q is not None else queue.Queue()
        self._stop_event = threading.Event()
        logger.info("HistoryWriter initialized for device %s", device_id)

    def __call__(self, snapshot: StatusSnapshot) -> None:
        self.submit(snapshot)

    def submit(self, snapshot: StatusSnapshot) -> None:
        """Queue *snapshot* for writing. Never blocks the caller."""
        self._q.put_nowait(snapshot)

    def pending(self) -> int:
        return self._q.qsize()

    def stop(self) -> None:
        """Signal the writer to stop once the queue is drained."""
        logger.info("Stopping history writer")
        self._stop_event.set()

    def write_one(self, snapshot: StatusSnapshot) -> bool:
        """Store one snapshot. Failures are logged and the snapshot is dropped."""
        try:
            uow = self._uow_factory()
            record_status_change(snapshot, self._device_id, uow)
        except Exception as exc:
            logger.exception("Error inserting device status into history: %s", exc)
            return False
        logger.info("Device status history saved successfully")
        return True

    def run(self) -> None:
        logger.info("Starting history writer")

        while True:
            try:
                snapshot = self._q.get(timeout=0.5)
            except queue.Empty:
                if self._stop_event.is_set():
                    break
                continue
            self.write_one(snapshot)
            self._q.task_done()

        logger.info("History writer stopped")
