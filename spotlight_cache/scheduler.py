from __future__ import annotations

import logging
import threading
from typing import Optional

from spotlight_cache.refresh import RefreshOrchestrator


log = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Background thread: grace delay, one cycle, then one cycle per interval.

    `stop_event` doubles as the cancellation token handed to every
    `refresh()` call, so stopping also aborts in-flight downloads.
    """

    def __init__(
        self,
        orchestrator: RefreshOrchestrator,
        interval_s: float,
        startup_delay_s: float = 5.0,
    ):
        self.orchestrator = orchestrator
        self.interval_s = float(interval_s)
        self.startup_delay_s = float(startup_delay_s)
        self.stop_event = threading.Event()
        self.cycles = 0
        self._thread: Optional[threading.Thread] = None
        log.info("Cache update scheduler configured with %.1f hour interval.", self.interval_s / 3600.0)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self.stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="spotlight-refresh", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        """Signal shutdown and wait for the loop. Safe to call more than once."""
        self.stop_event.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=timeout)
            if t.is_alive():
                log.warning("Refresh thread did not stop within %.1fs", timeout or 0.0)

    def run(self) -> None:
        """Loop body; blocks until `stop_event` is set."""
        log.info("Cache update scheduler starting.")
        # Event.wait returns True once shutdown is signalled
        if not self.stop_event.wait(self.startup_delay_s):
            self._run_cycle()
            while not self.stop_event.is_set():
                log.info("Waiting for next update cycle (%.0fs)...", self.interval_s)
                if self.stop_event.wait(self.interval_s):
                    break
                self._run_cycle()
        log.info("Cache update scheduler stopping.")

    def _run_cycle(self) -> None:
        log.info("Triggering cache update.")
        try:
            self.orchestrator.refresh(self.stop_event)
        except Exception:
            log.exception("Error occurred during scheduled cache update.")
        self.cycles += 1
