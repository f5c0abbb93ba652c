"""
Scan/clean state machine for cleanslim.

The orchestrator owns the session's categories and the current ScanState:

    idle -> scanning -> scanned -> cleaning -> completed -> (reset) idle -> scanning

Scanning runs on one background worker, inspecting categories one at a time.
Cleaning fans out one task per selected category on a thread pool and folds
their progress through a ProgressAggregator. Consumers observe everything
through OrchestratorListener callbacks.

Events are queued in the same critical section that changes the state they
describe, and delivered outside every lock by one thread at a time, so
listeners see transitions in the order they happened and may call back into
the orchestrator (e.g. reset() from on_clean_complete).
"""

import logging
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from cleanslim.categories import build_categories
from cleanslim.cleaner import clean_directory
from cleanslim.models import Category, CategoryReport, CleanOutcome, ScanState, StateChange
from cleanslim.progress import ProgressAggregator
from cleanslim.scanner import inspect_directory
from cleanslim.selection import MemorySelectionStore, SelectionStore
from cleanslim.triggers import CLEAN_ALL, SCAN_NOW, RequestBus

logger = logging.getLogger(__name__)

Inspector = Callable[[Path], tuple[int, int]]
Cleaner = Callable[..., CleanOutcome]

BUSY_STATES = (ScanState.SCANNING, ScanState.CLEANING)
CREDIT_POLICIES = ("pre_scan", "remeasure")


class OrchestratorListener:
    """Observer of an orchestrator; override the events you care about."""

    def on_state_change(self, change: StateChange) -> None:
        pass

    def on_scan_progress(self, fraction: float) -> None:
        pass

    def on_scan_complete(self, categories: list[CategoryReport]) -> None:
        pass

    def on_clean_progress(self, fraction: float) -> None:
        pass

    def on_clean_complete(self, bytes_freed: int) -> None:
        pass


class ScanCleanOrchestrator:
    """
    Drives scan-then-select-then-clean over a fixed set of categories.

    Example:
        orchestrator = ScanCleanOrchestrator(selection_store=JsonSelectionStore())
        orchestrator.subscribe(my_listener)
        orchestrator.start_scan()
        orchestrator.wait()
        orchestrator.clean_selected()
        orchestrator.wait()
        print(orchestrator.cleaned_size)
    """

    def __init__(
        self,
        categories: Optional[list[Category]] = None,
        selection_store: Optional[SelectionStore] = None,
        inspector: Inspector = inspect_directory,
        cleaner: Cleaner = clean_directory,
        max_clean_workers: Optional[int] = None,
        dry_run: bool = False,
        credit_policy: str = "pre_scan",
        request_bus: Optional[RequestBus] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            categories: Session categories (default: built from the registry)
            selection_store: Persisted selection, read here and written on toggles
            inspector: Callable(path) -> (size_bytes, file_count)
            cleaner: Callable(path, on_progress=, dry_run=, category_id=) -> CleanOutcome
            max_clean_workers: Optional cap on concurrent clean tasks
            dry_run: If True, cleaners are asked not to delete anything
            credit_policy: "pre_scan" credits each cleaned category's scanned
                size; "remeasure" credits only what disappeared
            request_bus: If given, SCAN_NOW and CLEAN_ALL signals are handled
        """
        if credit_policy not in CREDIT_POLICIES:
            raise ValueError(f"Unknown credit policy: {credit_policy}")

        self._selection_store = selection_store if selection_store is not None else MemorySelectionStore()
        self._categories = categories if categories is not None else build_categories(self._selection_store)
        self._inspect = inspector
        self._clean = cleaner
        self.max_clean_workers = max_clean_workers
        self.dry_run = dry_run
        self.credit_policy = credit_policy

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

        self._state = ScanState.IDLE
        self._total_cache_size = 0
        self._cleaned_size = 0
        self._clean_progress = 0.0
        self._cleaning_ids: list[str] = []
        self._last_outcomes: list[CleanOutcome] = []

        self._aggregator = ProgressAggregator()
        self._listeners: list[OrchestratorListener] = []
        self._events: deque[tuple[str | None, tuple]] = deque()
        self._delivering = False
        self._scan_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cleanslim-scan")
        self._clean_executor: ThreadPoolExecutor | None = None

        if request_bus is not None:
            request_bus.subscribe(SCAN_NOW, self.start_scan)
            request_bus.subscribe(CLEAN_ALL, self.clean_all)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: OrchestratorListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: OrchestratorListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _post(self, event: str, *args) -> None:
        """Queue a listener event. Caller holds the lock."""
        self._events.append((event, args))

    def _post_state(self, previous: ScanState, current: ScanState) -> None:
        """Switch state and queue the matching event. Caller holds the lock."""
        self._state = current
        logger.info(f"State {previous.value} -> {current.value}")
        self._post("on_state_change", StateChange(previous=previous, current=current))

    def _post_settle(self) -> None:
        """Queue the idle check behind the events of the phase that just ended."""
        self._events.append((None, ()))

    def _flush(self) -> None:
        """Deliver queued events unless another thread is already delivering."""
        with self._lock:
            if self._delivering:
                return
            self._delivering = True

        while True:
            with self._lock:
                if not self._events:
                    self._delivering = False
                    return
                event, args = self._events.popleft()
                listeners = list(self._listeners)

            if event is None:
                self._settle()
                continue
            for listener in listeners:
                try:
                    getattr(listener, event)(*args)
                except Exception as e:
                    logger.error(f"Listener {event} error: {e}", exc_info=True)

    def _settle(self) -> None:
        """Mark the orchestrator idle unless another phase has already started."""
        with self._lock:
            if self._state not in BUSY_STATES:
                self._idle.set()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScanState:
        with self._lock:
            return self._state

    @property
    def categories(self) -> list[Category]:
        """Copies of the session categories."""
        with self._lock:
            return [c.model_copy() for c in self._categories]

    @property
    def selected_categories(self) -> list[Category]:
        with self._lock:
            return [c.model_copy() for c in self._categories if c.is_selected]

    @property
    def is_all_selected(self) -> bool:
        with self._lock:
            return all(c.is_selected for c in self._categories)

    @property
    def total_cache_size(self) -> int:
        with self._lock:
            return self._total_cache_size

    @property
    def cleaned_size(self) -> int:
        with self._lock:
            return self._cleaned_size

    @property
    def scan_progress(self) -> float:
        return self._aggregator.scan_progress

    @property
    def clean_progress(self) -> float:
        with self._lock:
            return self._clean_progress

    @property
    def last_outcomes(self) -> list[CleanOutcome]:
        """Per-category outcomes of the most recent clean run."""
        with self._lock:
            return list(self._last_outcomes)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no scan or clean is running.

        Returns:
            False if the timeout expired first
        """
        return self._idle.wait(timeout)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _find(self, category_id: str) -> Category | None:
        for category in self._categories:
            if category.id == category_id:
                return category
        return None

    def set_selection(self, category_id: str, selected: bool) -> bool:
        """
        Select or deselect a category and persist the choice.

        Returns:
            False if the category is unknown
        """
        with self._lock:
            category = self._find(category_id)
            if category is None:
                return False
            category.is_selected = selected
        self._selection_store.set(category_id, selected)
        return True

    def toggle_selection(self, category_id: str) -> Optional[bool]:
        """
        Flip a category's selection.

        Returns:
            The new selection, or None if the category is unknown
        """
        with self._lock:
            category = self._find(category_id)
            if category is None:
                return None
            category.is_selected = not category.is_selected
            selected = category.is_selected
        self._selection_store.set(category_id, selected)
        return selected

    def toggle_all(self) -> bool:
        """Select everything, or deselect everything if all are selected."""
        new_value = not self.is_all_selected
        with self._lock:
            ids = [c.id for c in self._categories]
        for category_id in ids:
            self.set_selection(category_id, new_value)
        return new_value

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def start_scan(self) -> bool:
        """
        Start measuring every category in the background.

        Returns:
            False if a scan or clean is already running
        """
        with self._lock:
            if self._state in BUSY_STATES:
                logger.debug(f"Scan request ignored while {self._state.value}")
                return False
            self._post_state(self._state, ScanState.SCANNING)
            self._total_cache_size = 0
            self._idle.clear()
            targets = [(c.id, c.path) for c in self._categories]

        self._aggregator.begin_scan(len(targets))
        self._flush()
        self._scan_executor.submit(self._run_scan, targets)
        return True

    def _run_scan(self, targets: list[tuple[str, Path]]) -> None:
        for category_id, path in targets:
            measured = True
            try:
                size, file_count = self._inspect(path)
            except Exception as e:
                logger.error(f"Inspecting {path} failed: {e}", exc_info=True)
                size, file_count, measured = 0, 0, False

            fraction = self._aggregator.advance_scan()
            with self._lock:
                category = self._find(category_id)
                if category is not None:
                    category.size_bytes = size
                    category.file_count = file_count
                    category.measured = measured
                self._post("on_scan_progress", fraction)

            logger.debug(f"Scanned {category_id}: {size} bytes in {file_count} files")
            self._flush()

        with self._lock:
            self._total_cache_size = sum(c.size_bytes for c in self._categories)
            reports = [c.to_report() for c in self._categories]
            logger.info(f"Scan complete: {self._total_cache_size} bytes in {len(reports)} categories")
            self._post("on_scan_complete", reports)
            self._post_state(ScanState.SCANNING, ScanState.SCANNED)
            self._post_settle()

        self._flush()

    # ------------------------------------------------------------------
    # Clean
    # ------------------------------------------------------------------

    def clean_selected(self) -> bool:
        """
        Clean every selected category concurrently.

        Only accepted right after a scan, so the sizes used for weighting and
        crediting are fresh. The selection is snapshotted here; later toggles
        do not affect the running clean.

        Returns:
            False if the request was ignored
        """
        with self._lock:
            if self._state != ScanState.SCANNED:
                logger.debug(f"Clean request ignored while {self._state.value}")
                return False
            jobs = [(c.id, c.path, c.size_bytes) for c in self._categories if c.is_selected]
            if not jobs:
                logger.debug("Clean request ignored: nothing selected")
                return False
            self._post_state(ScanState.SCANNED, ScanState.CLEANING)
            self._clean_progress = 0.0
            self._cleaned_size = 0
            self._last_outcomes = []
            self._cleaning_ids = [job[0] for job in jobs]
            self._idle.clear()

        self._flush()

        # Every selected category is cleaned, even when the total is zero
        # (empty files and directories still scan as 0 bytes)
        sizes = {category_id: size for category_id, _, size in jobs}
        self._aggregator.begin_clean(
            sizes,
            on_progress=self._handle_clean_progress,
            on_complete=self._handle_clean_complete,
        )

        workers = len(jobs) if self.max_clean_workers is None else min(self.max_clean_workers, len(jobs))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cleanslim-clean")
        self._clean_executor = executor
        for category_id, path, size in jobs:
            executor.submit(self._run_clean_task, category_id, path, size)
        executor.shutdown(wait=False)
        return True

    def clean_all(self) -> bool:
        """Select every category, then clean. Only accepted after a scan."""
        if self.state != ScanState.SCANNED:
            logger.debug("Clean-all request ignored: no fresh scan")
            return False
        with self._lock:
            ids = [c.id for c in self._categories]
        for category_id in ids:
            self.set_selection(category_id, True)
        return self.clean_selected()

    def _run_clean_task(self, category_id: str, path: Path, size: int) -> None:
        outcome = None
        credited = None
        try:
            outcome = self._clean(
                path,
                on_progress=lambda fraction: self._aggregator.report(category_id, fraction),
                dry_run=self.dry_run,
                category_id=category_id,
            )
            if self.credit_policy == "remeasure" and outcome.success and not self.dry_run:
                remaining, _ = self._inspect(path)
                credited = max(0, size - remaining)
        except Exception as e:
            logger.error(f"Cleaning {category_id} failed: {e}", exc_info=True)
            if outcome is None:
                outcome = CleanOutcome(
                    category_id=category_id,
                    path=str(path),
                    success=False,
                    error=str(e),
                    dry_run=self.dry_run,
                )

        self._aggregator.finish(category_id, outcome, credited)

    def _handle_clean_progress(self, fraction: float) -> None:
        with self._lock:
            self._clean_progress = fraction
            self._post("on_clean_progress", fraction)
        self._flush()

    def _handle_clean_complete(self, bytes_freed: int, outcomes: list[CleanOutcome]) -> None:
        with self._lock:
            self._cleaned_size = bytes_freed
            self._clean_progress = 1.0
            self._last_outcomes = list(outcomes)
            if not self.dry_run:
                for category in self._categories:
                    if category.id in self._cleaning_ids:
                        category.invalidate()
            logger.info(f"Clean complete: {bytes_freed} bytes freed")
            self._post("on_clean_complete", bytes_freed)
            self._post_state(ScanState.CLEANING, ScanState.COMPLETED)
            self._post_settle()

        self._flush()

    # ------------------------------------------------------------------
    # Reset / lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> bool:
        """
        Return to idle and immediately rescan.

        Returns:
            False if a scan or clean is running
        """
        with self._lock:
            if self._state in BUSY_STATES:
                logger.debug(f"Reset ignored while {self._state.value}")
                return False
            if self._state != ScanState.IDLE:
                self._post_state(self._state, ScanState.IDLE)

        self._flush()
        return self.start_scan()

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pools."""
        self._scan_executor.shutdown(wait=wait)
        if self._clean_executor is not None:
            self._clean_executor.shutdown(wait=wait)

    def __enter__(self) -> "ScanCleanOrchestrator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
