"""Presentation pacing for orchestrator events.

Very fast cleans make a progress display flash from 0% to "done". PacedListener
wraps another listener and holds back the completion announcement until a
minimum time has passed since cleaning started. It only delays delivery; the
values it forwards are never changed.
"""

import time
from collections.abc import Callable

from cleanslim.models import CategoryReport, ScanState, StateChange
from cleanslim.orchestrator import OrchestratorListener


class PacedListener(OrchestratorListener):
    """Forward events to ``inner`` with optional pacing delays."""

    def __init__(
        self,
        inner: OrchestratorListener,
        min_clean_seconds: float = 0.0,
        scan_step_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.inner = inner
        self.min_clean_seconds = max(0.0, min_clean_seconds)
        self.scan_step_delay = max(0.0, scan_step_delay)
        self._clock = clock
        self._sleep = sleep
        self._clean_started_at: float | None = None

    def on_state_change(self, change: StateChange) -> None:
        if change.current == ScanState.CLEANING:
            self._clean_started_at = self._clock()
        elif change.current == ScanState.COMPLETED:
            # on_clean_complete already waited out the floor
            self._clean_started_at = None
        self.inner.on_state_change(change)

    def on_scan_progress(self, fraction: float) -> None:
        self.inner.on_scan_progress(fraction)
        if self.scan_step_delay:
            self._sleep(self.scan_step_delay)

    def on_scan_complete(self, categories: list[CategoryReport]) -> None:
        self.inner.on_scan_complete(categories)

    def on_clean_progress(self, fraction: float) -> None:
        self.inner.on_clean_progress(fraction)

    def on_clean_complete(self, bytes_freed: int) -> None:
        if self._clean_started_at is not None and self.min_clean_seconds:
            remaining = self.min_clean_seconds - (self._clock() - self._clean_started_at)
            if remaining > 0:
                self._sleep(remaining)
        self.inner.on_clean_complete(bytes_freed)
