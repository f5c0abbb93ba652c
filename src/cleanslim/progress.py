"""
Progress aggregation for scan and clean runs.

Scanning is sequential, so its progress is simply the share of categories
inspected so far. Cleaning runs one task per category concurrently; overall
progress is the size-weighted sum of each category's own progress, and the
run is complete once every category has reported its terminal event.

All mutable state lives behind a single lock. Callbacks are queued while it
is held and delivered after it is released, one thread at a time and in
queue order, so listeners see one totally ordered stream of overall values
and exactly one completion per clean run, and may call back into the
aggregator's owner without deadlocking.
"""

import logging
import threading
from collections import deque
from collections.abc import Callable

from cleanslim.models import CleanOutcome

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
CompleteCallback = Callable[[int, list[CleanOutcome]], None]


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def scan_fraction(index: int, total: int) -> float:
    """Progress after inspecting the item at ``index`` (0-based) of ``total``."""
    if total <= 0:
        return 1.0
    return _clamp((index + 1) / total)


def compute_weights(sizes: dict[str, int]) -> dict[str, float]:
    """Each category's share of the total size; empty if the total is zero."""
    total = sum(sizes.values())
    if total <= 0:
        return {}
    return {category_id: size / total for category_id, size in sizes.items()}


def weighted_progress(weights: dict[str, float], fractions: dict[str, float]) -> float:
    """Overall progress from per-category fractions, clamped to [0, 1]."""
    return _clamp(
        sum(weight * _clamp(fractions.get(category_id, 0.0)) for category_id, weight in weights.items())
    )


class ProgressAggregator:
    """
    Thread-safe progress state for one scan and one clean run at a time.

    Example:
        aggregator = ProgressAggregator()
        aggregator.begin_clean({"a": 10, "b": 30}, on_progress=print, on_complete=done)
        aggregator.report("a", 0.5)       # prints 0.125
        aggregator.finish("a", outcome)   # prints 0.25
    """

    def __init__(self):
        self._lock = threading.Lock()

        # Scan state
        self._scan_total = 0
        self._scan_done = 0
        self._scan_progress = 0.0

        # Clean state
        self._sizes: dict[str, int] = {}
        self._weights: dict[str, float] = {}
        self._fractions: dict[str, float] = {}
        self._outcomes: dict[str, CleanOutcome] = {}
        self._bytes_freed = 0
        self._clean_progress = 0.0
        self._clean_finished = False
        self._on_progress: ProgressCallback | None = None
        self._on_complete: CompleteCallback | None = None

        # Pending callbacks, appended under the lock and run outside it
        self._pending: deque[tuple[Callable, tuple]] = deque()
        self._delivering = False

    # ------------------------------------------------------------------
    # Scan phase
    # ------------------------------------------------------------------

    def begin_scan(self, total: int) -> None:
        """Start a scan over ``total`` categories."""
        with self._lock:
            self._scan_total = max(0, total)
            self._scan_done = 0
            self._scan_progress = 0.0

    def advance_scan(self) -> float:
        """Record one more inspected category and return the scan progress."""
        with self._lock:
            if self._scan_done < self._scan_total:
                self._scan_progress = scan_fraction(self._scan_done, self._scan_total)
                self._scan_done += 1
            elif self._scan_total == 0:
                self._scan_progress = 1.0
            return self._scan_progress

    @property
    def scan_progress(self) -> float:
        with self._lock:
            return self._scan_progress

    # ------------------------------------------------------------------
    # Clean phase
    # ------------------------------------------------------------------

    def begin_clean(
        self,
        sizes: dict[str, int],
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> bool:
        """
        Start a clean run over the given categories.

        When the sizes add up to zero, progress jumps straight to 1.0 and
        stays there; completion still waits for every category to finish, so
        directories holding only empty files are emptied too.

        Args:
            sizes: Pre-scan size of every selected category, keyed by id
            on_progress: Called with each new overall value
            on_complete: Called once with (bytes_freed, outcomes)

        Returns:
            True if the run finished immediately (no categories given)
        """
        with self._lock:
            self._sizes = {category_id: max(0, size) for category_id, size in sizes.items()}
            self._weights = compute_weights(self._sizes)
            self._fractions = {category_id: 0.0 for category_id in self._sizes}
            self._outcomes = {}
            self._bytes_freed = 0
            self._clean_progress = 0.0
            self._clean_finished = False
            self._on_progress = on_progress
            self._on_complete = on_complete

            finished = False
            if not self._weights:
                self._clean_progress = 1.0
                self._queue_progress(1.0)
                if not self._sizes:
                    self._clean_finished = True
                    self._queue_complete()
                    finished = True

        self._deliver()
        return finished

    def report(self, category_id: str, fraction: float) -> float:
        """
        Record a progress event from one category's cleaner.

        Returns:
            The overall clean progress after the event
        """
        with self._lock:
            if self._clean_finished or category_id not in self._fractions:
                return self._clean_progress
            if category_id in self._outcomes:
                return self._clean_progress

            fraction = _clamp(fraction)
            if fraction > self._fractions[category_id]:
                self._fractions[category_id] = fraction
                self._recompute()
            overall = self._clean_progress

        self._deliver()
        return overall

    def finish(
        self,
        category_id: str,
        outcome: CleanOutcome,
        credited_bytes: int | None = None,
    ) -> bool:
        """
        Record the terminal event of one category's cleaner.

        Args:
            category_id: Category that finished
            outcome: Its clean outcome
            credited_bytes: Bytes to credit instead of the pre-scan size;
                ignored for structural failures

        Returns:
            True if this call completed the run
        """
        with self._lock:
            if self._clean_finished or category_id not in self._sizes:
                return False
            if category_id in self._outcomes:
                logger.debug(f"Ignoring duplicate finish for {category_id}")
                return False

            credited = 0
            if outcome.success:
                credited = self._sizes[category_id] if credited_bytes is None else max(0, credited_bytes)
            self._outcomes[category_id] = outcome.model_copy(update={"bytes_freed": credited})
            self._bytes_freed += credited
            self._fractions[category_id] = 1.0

            if len(self._outcomes) < len(self._sizes):
                self._recompute()
                completed = False
            else:
                self._clean_finished = True
                if self._clean_progress < 1.0:
                    self._clean_progress = 1.0
                    self._queue_progress(1.0)
                self._queue_complete()
                completed = True

        self._deliver()
        return completed

    @property
    def clean_progress(self) -> float:
        with self._lock:
            return self._clean_progress

    @property
    def bytes_freed(self) -> int:
        with self._lock:
            return self._bytes_freed

    @property
    def completed_count(self) -> int:
        with self._lock:
            return len(self._outcomes)

    @property
    def is_clean_finished(self) -> bool:
        with self._lock:
            return self._clean_finished

    def outcomes(self) -> list[CleanOutcome]:
        """Outcomes recorded so far, in selection order."""
        with self._lock:
            return [self._outcomes[c] for c in self._sizes if c in self._outcomes]

    # ------------------------------------------------------------------
    # Internals (lock held)
    # ------------------------------------------------------------------

    def _recompute(self) -> None:
        overall = weighted_progress(self._weights, self._fractions)
        # Float sums of 1.0-weighted terms can land a hair under 1.0; the
        # terminal value is emitted by finish()
        overall = min(overall, 1.0 - 1e-12) if len(self._outcomes) < len(self._sizes) else overall
        if overall > self._clean_progress:
            self._clean_progress = overall
            self._queue_progress(overall)

    def _queue_progress(self, value: float) -> None:
        if self._on_progress:
            self._pending.append((self._on_progress, (value,)))

    def _queue_complete(self) -> None:
        if self._on_complete:
            outcomes = [self._outcomes[c] for c in self._sizes if c in self._outcomes]
            self._pending.append((self._on_complete, (self._bytes_freed, outcomes)))

    # ------------------------------------------------------------------
    # Delivery (lock released)
    # ------------------------------------------------------------------

    def _deliver(self) -> None:
        """Run queued callbacks unless another thread is already doing so."""
        with self._lock:
            if self._delivering:
                return
            self._delivering = True

        while True:
            with self._lock:
                if not self._pending:
                    self._delivering = False
                    return
                callback, args = self._pending.popleft()
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Progress callback failed: {e}", exc_info=True)
