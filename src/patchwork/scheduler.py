"""
Fixed-cadence tick driver for the patch extractor.

Ticks never overlap: a tick requested while another is still running is
dropped (reported as skipped), not queued. The loop can run inline or on a
dedicated background thread; rendering reads the accumulator independently.
"""

import threading
import time

from patchwork.models import TickOutcome, TickResult
from patchwork.tracer import get_tracer


class TickScheduler:
    """
    Drives a PatchExtractor at a fixed period.

    Args:
        extractor: the PatchExtractor to drive
        period: seconds between tick starts; 0 runs ticks back to back
        max_ticks: optional cap on the number of ticks attempted
        max_idle_ticks: optional cap on consecutive ticks that produce no
            patch; a nearly used-up cloud can otherwise idle forever
        stop_when_exhausted: end the loop once the cloud can no longer be
            clustered, instead of idling with no-op ticks
        on_tick: optional callback receiving each TickResult
    """

    def __init__(self, extractor, period=1.0 / 30.0, max_ticks=None, max_idle_ticks=None,
                 stop_when_exhausted=True, on_tick=None, clock=time.monotonic):
        if period < 0:
            raise ValueError(f"period must be non-negative, got {period}")
        self.extractor = extractor
        self.period = period
        self.max_ticks = max_ticks
        self.max_idle_ticks = max_idle_ticks
        self.stop_when_exhausted = stop_when_exhausted
        self.on_tick = on_tick
        self.results = []
        self.idle_ticks = 0

        self._clock = clock
        self._in_flight = threading.Lock()
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def is_exhausted(self):
        return self.extractor.is_exhausted()

    @property
    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    @property
    def patch_count(self):
        return sum(1 for r in self.results if r.outcome == TickOutcome.EXTRACTED)

    def tick(self):
        """
        Run one tick unless another is in flight.

        Returns the extractor's TickResult, or a SKIPPED_BUSY result if the
        previous tick has not finished.
        """
        if not self._in_flight.acquire(blocking=False):
            size = self.extractor.cloud.size()
            result = TickResult(
                tick=self.extractor.ticks_run,
                outcome=TickOutcome.SKIPPED_BUSY,
                points_before=size,
                points_after=size,
            )
            get_tracer().event("tick dropped, previous tick still running", level="DEBUG")
        else:
            try:
                result = self.extractor.tick()
            finally:
                self._in_flight.release()

        self.results.append(result)
        if result.outcome == TickOutcome.EXTRACTED:
            self.idle_ticks = 0
        elif result.outcome != TickOutcome.SKIPPED_BUSY:
            self.idle_ticks += 1
        if self.on_tick:
            self.on_tick(result)
        return result

    def _should_continue(self, attempted):
        if self._stop_event.is_set():
            return False
        if self.max_ticks is not None and attempted >= self.max_ticks:
            return False
        if self.max_idle_ticks is not None and self.idle_ticks >= self.max_idle_ticks:
            return False
        if self.stop_when_exhausted and self.is_exhausted:
            return False
        return True

    def run(self):
        """
        Tick at the configured cadence until stopped, capped or exhausted.

        Returns the list of TickResults produced by this call.
        """
        tracer = get_tracer()
        first = len(self.results)
        attempted = 0
        deadline = self._clock()

        with tracer.span("tick_loop", module="scheduler", period=self.period,
                         max_ticks=self.max_ticks):
            while self._should_continue(attempted):
                self.tick()
                attempted += 1

                if self.period > 0:
                    deadline += self.period
                    delay = deadline - self._clock()
                    if delay > 0:
                        # wakes early on stop()
                        self._stop_event.wait(delay)
                    else:
                        # running behind; do not try to catch up
                        deadline = self._clock()

            tracer.event(f"Loop ended after {attempted} ticks", patches=self.patch_count,
                         remaining=self.extractor.cloud.size(), exhausted=self.is_exhausted)

        return self.results[first:]

    def start(self):
        """Run the loop on a background daemon thread."""
        if self.is_running:
            raise RuntimeError("scheduler is already running")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="patchwork-ticks", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self):
        """Ask the loop to end after the current tick."""
        self._stop_event.set()

    def join(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)
