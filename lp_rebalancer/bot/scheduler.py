"""Fixed-interval cycle loop"""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class CycleScheduler:
    """
    Run orchestrator cycles every `interval` seconds, measured from cycle start.

    Cycles run on the calling thread, so two are never in flight. When a
    cycle overruns, the missed starts are dropped and the next one begins
    at the following interval boundary.
    """

    def __init__(self, orchestrator, interval, clock=time.monotonic):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.orchestrator = orchestrator
        self.interval = interval
        self.clock = clock
        self._stop = threading.Event()

    def stop(self):
        self._stop.set()

    @property
    def stopped(self):
        return self._stop.is_set()

    def next_start(self, started_at, now):
        """First interval boundary after `now` on the grid anchored at started_at"""
        elapsed = now - started_at
        if elapsed < self.interval:
            return started_at + self.interval
        skipped = int(elapsed // self.interval)
        logger.warning("Cycle overran by %d interval(s), skipping to the next boundary", skipped)
        return started_at + (skipped + 1) * self.interval

    def run(self, max_cycles=None):
        """
        Loop until stop() is called (or max_cycles cycles have run).

        Returns:
            Number of cycles run
        """
        cycles = 0
        logger.info("Scheduler started, interval %ss", self.interval)
        while not self._stop.is_set():
            started_at = self.clock()
            self.orchestrator.run_cycle()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

            now = self.clock()
            wait = self.next_start(started_at, now) - now
            if wait > 0 and self._stop.wait(wait):
                break

        logger.info("Scheduler stopped after %d cycle(s)", cycles)
        return cycles
