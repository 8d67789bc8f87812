"""
Unit tests for the refresh scheduler
"""

import os
import sys
import threading
import time
from unittest.mock import Mock

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from spotlight_cache.scheduler import RefreshScheduler


def _wait_for(pred, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.01)
    return False


class TestRefreshScheduler:
    """Loop timing and shutdown"""

    def test_runs_after_grace_then_on_interval(self):
        """First cycle after the delay, then repeated cycles"""
        orch = Mock()
        sched = RefreshScheduler(orch, interval_s=0.05, startup_delay_s=0.01)
        sched.start()
        try:
            assert _wait_for(lambda: orch.refresh.call_count >= 3)
        finally:
            sched.stop()
        assert not sched.running
        # the stop event is the cancellation token for each cycle
        orch.refresh.assert_called_with(sched.stop_event)

    def test_stop_during_grace_runs_nothing(self):
        """Shutdown before the first cycle skips it entirely"""
        orch = Mock()
        sched = RefreshScheduler(orch, interval_s=3600, startup_delay_s=30)
        sched.start()
        sched.stop(timeout=2.0)

        assert not sched.running
        orch.refresh.assert_not_called()

    def test_stop_interrupts_long_wait(self):
        """A 1h interval does not delay shutdown"""
        orch = Mock()
        sched = RefreshScheduler(orch, interval_s=3600, startup_delay_s=0)
        sched.start()
        assert _wait_for(lambda: orch.refresh.call_count == 1)

        t0 = time.monotonic()
        sched.stop(timeout=2.0)
        assert time.monotonic() - t0 < 2.0
        assert orch.refresh.call_count == 1

    def test_cycle_exception_does_not_kill_loop(self):
        """An escaping error is logged and the next cycle still runs"""
        orch = Mock()
        orch.refresh.side_effect = [RuntimeError("boom"), None, None, None, None, None]
        sched = RefreshScheduler(orch, interval_s=0.01, startup_delay_s=0)
        sched.start()
        try:
            assert _wait_for(lambda: orch.refresh.call_count >= 2)
        finally:
            sched.stop()

    def test_stop_twice_and_in_flight_cancel(self):
        """Stopping signals the running cycle; a second stop is harmless"""
        seen = threading.Event()

        def slow_refresh(cancel):
            seen.set()
            cancel.wait(5.0)

        orch = Mock()
        orch.refresh.side_effect = slow_refresh
        sched = RefreshScheduler(orch, interval_s=3600, startup_delay_s=0)
        sched.start()
        assert seen.wait(2.0)

        sched.stop(timeout=2.0)
        sched.stop(timeout=2.0)
        assert not sched.running
        assert sched.cycles == 1

    def test_run_inline(self):
        """run() can be driven on the caller's thread"""
        orch = Mock()
        sched = RefreshScheduler(orch, interval_s=3600, startup_delay_s=0)
        orch.refresh.side_effect = lambda cancel: cancel.set()

        sched.run()

        assert orch.refresh.call_count == 1
