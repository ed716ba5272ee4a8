# continuity_sync/Sync/scheduler.py
# Description: Per-category debounce of remote saves, with flush and failure accounting.
#
"""
scheduler.py
------------

`DebounceScheduler.schedule(key, save_fn)` delays `save_fn` until `key` has been quiet for
`debounce_seconds`. A later call for the same key cancels the pending timer and replaces the
remembered function, so a burst of edits ends in a single save using the latest snapshot.

When a timer fires the bookkeeping for the key is cleared first, then the session guard is
asked, then the save runs. Its outcome is recorded as a `SaveResult`. Saves started by a timer
never raise; failures show up in `failure_count`, `last_failure_message` and `results`.
Nothing is retried: the next mutation of the category schedules a fresh save.

Time comes from an injectable clock (anything with `call_later(delay, callback)` returning a
handle with `cancel()`), the running event loop by default.
"""
# Imports
import asyncio
import functools
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Protocol, Set
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import DEFAULT_DEBOUNCE_SECONDS
from continuity_sync.Metrics.metrics_logger import log_counter, log_histogram
from .session_guard import SessionGuard
#
#######################################################################################################################
#
# Functions:

SaveFn = Callable[[], Awaitable[object]]

TRIGGER_DEBOUNCE = "debounce"
TRIGGER_FLUSH = "flush"
TRIGGER_FULL_SAVE = "full_save"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class EventLoopClock:
    """Clock backed by the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class SaveResult:
    key: str
    success: bool
    trigger: str = TRIGGER_DEBOUNCE
    skipped: bool = False  # no active session; nothing was attempted
    error: Optional[str] = None
    duration_seconds: float = 0.0
    finished_at: float = field(default_factory=time.time)


class DebounceScheduler:
    def __init__(
        self,
        session_guard: Optional[SessionGuard],
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Optional[Clock] = None,
        max_results: int = 200,
    ):
        self.session_guard = session_guard
        self.debounce_seconds = debounce_seconds
        self.clock: Clock = clock or EventLoopClock()
        self._timers: Dict[str, TimerHandle] = {}
        self._pending: Dict[str, SaveFn] = {}
        self._in_flight: Set[asyncio.Future] = set()
        self._consecutive_failures: Dict[str, int] = {}
        self.last_failure_message: Optional[str] = None
        self.results: Deque[SaveResult] = deque(maxlen=max_results)
        self._result_listeners: List[Callable[[SaveResult], None]] = []

    # --- Diagnostics ---
    @property
    def pending_keys(self) -> List[str]:
        return list(self._pending)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def failure_count(self) -> int:
        """Consecutive failures summed over all keys; 0 once every key's latest save succeeded."""
        return sum(self._consecutive_failures.values())

    def failure_count_for(self, key: str) -> int:
        return self._consecutive_failures.get(key, 0)

    def add_result_listener(self, listener: Callable[[SaveResult], None]):
        self._result_listeners.append(listener)

    # --- Scheduling ---
    def schedule(self, key: str, save_fn: SaveFn):
        existing = self._timers.pop(key, None)
        if existing is not None:
            existing.cancel()
            logger.trace(f"[AutoSave] {key}: superseded pending save")
        self._pending[key] = save_fn
        self._timers[key] = self.clock.call_later(self.debounce_seconds, functools.partial(self._on_timer, key))

    def _on_timer(self, key: str):
        self._timers.pop(key, None)
        save_fn = self._pending.pop(key, None)
        if save_fn is None:
            return
        task = asyncio.ensure_future(self._guarded_run(key, save_fn, TRIGGER_DEBOUNCE))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def cancel_all(self) -> int:
        """Drops every pending save without running it. Returns how many were dropped."""
        for handle in self._timers.values():
            handle.cancel()
        dropped = len(self._pending)
        self._timers.clear()
        self._pending.clear()
        if dropped:
            logger.debug(f"[AutoSave] Cancelled {dropped} pending saves")
        return dropped

    async def flush_all(self) -> List[SaveResult]:
        """
        Runs every pending save now, one after the other, instead of waiting for its timer.
        Errors are recorded per key and never stop the remaining saves.
        """
        pending = list(self._pending.items())
        self.cancel_all()
        if pending:
            logger.info(f"[AutoSave] Flushing {len(pending)} pending saves: {[key for key, _ in pending]}")
        results = []
        for key, save_fn in pending:
            results.append(await self._guarded_run(key, save_fn, TRIGGER_FLUSH))
        return results

    async def wait_idle(self):
        """Waits until every timer-started save has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    # --- Execution ---
    async def _guarded_run(self, key: str, save_fn: SaveFn, trigger: str) -> SaveResult:
        if self.session_guard is not None and not await self.session_guard.has_active_session():
            logger.warning(f"[AutoSave] {key} skipped, no active session")
            result = SaveResult(key=key, success=False, trigger=trigger, skipped=True)
            self._record(result)
            return result
        return await self.run_save(key, save_fn, trigger)

    async def run_save(self, key: str, save_fn: SaveFn, trigger: str = TRIGGER_DEBOUNCE) -> SaveResult:
        """Runs `save_fn` immediately and records the outcome. Never raises for save errors."""
        start = time.perf_counter()
        try:
            await save_fn()
        except Exception as e:
            count = self._consecutive_failures.get(key, 0) + 1
            self._consecutive_failures[key] = count
            self.last_failure_message = str(e) or type(e).__name__
            logger.error(f"[AutoSave] {key} failed (failure #{count}): {type(e).__name__} - {e}")
            result = SaveResult(key=key, success=False, trigger=trigger, error=self.last_failure_message,
                                duration_seconds=time.perf_counter() - start)
            self._record(result)
            return result

        self._consecutive_failures[key] = 0
        result = SaveResult(key=key, success=True, trigger=trigger, duration_seconds=time.perf_counter() - start)
        logger.debug(f"[AutoSave] {key} saved in {result.duration_seconds:.3f}s ({trigger})")
        self._record(result)
        return result

    def _record(self, result: SaveResult):
        self.results.append(result)
        outcome = "skipped" if result.skipped else ("success" if result.success else "failure")
        log_counter("sync_save_total", labels={"category": result.key, "trigger": result.trigger, "outcome": outcome})
        if not result.skipped:
            log_histogram("sync_save_seconds", result.duration_seconds, labels={"category": result.key})
        for listener in list(self._result_listeners):
            try:
                listener(result)
            except Exception as e:
                logger.warning(f"[AutoSave] Result listener raised: {e}")

#
# End of scheduler.py
#######################################################################################################################
