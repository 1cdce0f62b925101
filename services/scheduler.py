from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import schedule

from services.reconciliation import CycleReport, ReconciliationLoop

LOGGER = logging.getLogger(__name__)


class Scheduler:
    """Re-run the reconciliation loop at a random interval after each cycle ends.

    ``schedule`` computes a job's next run only once the job has returned, so
    two cycles never overlap and every gap is drawn afresh from the range.
    """

    def __init__(
        self,
        loop: ReconciliationLoop,
        min_seconds: int = 45,
        max_seconds: int = 120,
        stop_event: threading.Event | None = None,
        on_report: Optional[Callable[[CycleReport], None]] = None,
        poll_interval: float = 1.0,
    ):
        if min_seconds <= 0 or max_seconds < min_seconds:
            raise ValueError(f"Invalid interval range {min_seconds}-{max_seconds}")
        self._loop = loop
        self._stop_event = stop_event or threading.Event()
        self._on_report = on_report
        self._poll_interval = poll_interval
        self._schedule = schedule.Scheduler()
        self.job = self._schedule.every(min_seconds).to(max_seconds).seconds.do(self.run_once)

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def run_once(self) -> CycleReport | None:
        """Run one cycle; nothing it raises may stop the service."""

        try:
            report = self._loop.run()
            if self._on_report:
                self._on_report(report)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Reconciliation cycle crashed: %s", exc)
            return None
        return report

    def run_forever(self) -> None:
        LOGGER.info("Scheduler started; next cycle at %s", self.job.next_run)
        while not self._stop_event.is_set():
            self._schedule.run_pending()
            self._stop_event.wait(self._poll_interval)
        self._schedule.clear()
        LOGGER.info("Scheduler stopped")

    def stop(self) -> None:
        self._stop_event.set()
