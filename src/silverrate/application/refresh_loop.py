"""
Refresh Loop - Periodic Price Refresh With Last-Known Value

An explicit, cancellable asyncio task that calls a fetch coroutine on a
fixed interval and keeps the last successful value for display.

State machine:

    IDLE --tick--> REFRESHING --success--> IDLE (value replaced)
                              --failure--> IDLE (value kept, marked stale)

- A failed fetch (``Unavailable`` or an exception) never replaces the last
  good value and never produces a number of its own.
- ``stop()`` cancels and awaits the task. A generation counter makes any
  fetch still in flight when the loop stops discard its result.
- ``pause()`` / ``resume()`` skip ticks while nobody is watching and
  refresh immediately on resume.
- Concurrent ``refresh_once()`` calls share one upstream fetch.

The loop is the single writer of its state; readers call ``view()``.

Files that USE this module:
- silverrate.app (domestic and Shanghai loops, started/stopped with the bot)
- silverrate.adapters.telegram.handlers (reads view() for /price and /shanghai)
- silverrate.application.health (loop freshness)
- tests.test_refresh_loop (unit tests)

Files that this module USES:
- silverrate.domain.models (Unavailable)
- silverrate.shared.clock (utcnow)
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, Tuple, TypeVar, Union

from silverrate.domain.models import Unavailable
from silverrate.shared.clock import seconds_since, utcnow

log = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_MESSAGE = "Unable to fetch live prices"


class LoopState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class DisplayState(Generic[T]):
    """
    What a reader should show.

    Exactly one of ``value`` / ``error`` is set once the first fetch has
    completed; both are None before that (loading).
    """
    value: Optional[T]
    as_of: Optional[datetime]
    is_stale: bool
    error: Optional[str]
    last_error: Optional[str]
    state: LoopState

    @property
    def is_loading(self) -> bool:
        return self.value is None and self.error is None


class RefreshLoop(Generic[T]):
    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[Union[T, Unavailable]]],
        interval: float,
        on_update: Optional[Callable[[T], object]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._fetch = fetch
        self._on_update = on_update

        self.state = LoopState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._paused = False
        self._wake = asyncio.Event()
        self._inflight: Optional[Tuple[int, asyncio.Event]] = None

        self._value: Optional[T] = None
        self._value_ts: Optional[datetime] = None
        self._fetched_at: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._attempts = 0
        self._failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def value(self) -> Optional[T]:
        return self._value

    def start(self) -> None:
        """Fetch immediately, then every ``interval`` seconds. Must be called from a running loop."""
        if self.running:
            return
        self._generation += 1
        self._paused = False
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._generation), name=f"refresh-{self.name}")
        log.info("Refresh loop %s started (interval=%ss)", self.name, self.interval)

    async def stop(self) -> None:
        """Cancel the task and wait for it; an in-flight result is discarded."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            log.info("Refresh loop %s stopped", self.name)
        self.state = LoopState.IDLE

    def pause(self) -> None:
        if not self._paused:
            log.debug("Refresh loop %s paused", self.name)
        self._paused = True

    def resume(self, refresh_now: bool = True) -> None:
        self._paused = False
        if refresh_now:
            self._wake.set()

    def refresh_now(self) -> None:
        """Wake the loop for an immediate tick."""
        self._wake.set()

    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            self._wake.clear()
            if not self._paused:
                await self.refresh_once(generation)
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def refresh_once(self, generation: Optional[int] = None) -> None:
        """
        Run a single fetch and apply its result (used by the loop and on demand).

        If a fetch for the current run is already in flight, wait for it
        instead of starting a second one.
        """
        if generation is None:
            generation = self._generation
        inflight = self._inflight
        if inflight is not None and inflight[0] == generation:
            log.debug("Refresh loop %s joining in-flight fetch", self.name)
            await inflight[1].wait()
            return

        done = asyncio.Event()
        self._inflight = (generation, done)
        try:
            await self._refresh(generation)
        finally:
            if self._inflight is not None and self._inflight[1] is done:
                self._inflight = None
            done.set()

    async def _refresh(self, generation: int) -> None:
        self.state = LoopState.REFRESHING
        try:
            result = await self._fetch()
        except asyncio.CancelledError:
            self.state = LoopState.IDLE
            raise
        except Exception as e:
            log.exception("Refresh loop %s fetch raised", self.name)
            result = Unavailable(f"unexpected error: {e}")

        if generation != self._generation:
            log.debug("Refresh loop %s discarding result from a stopped run", self.name)
            return

        self.state = LoopState.IDLE
        self._attempts += 1
        if isinstance(result, Unavailable):
            self._failures += 1
            self._last_error = result.reason
            if self._value is None:
                log.warning("Refresh loop %s: no value yet (%s)", self.name, result.reason)
            else:
                log.warning("Refresh loop %s: keeping last value from %s (%s)",
                            self.name, self._value_ts, result.reason)
            return

        self._value = result
        self._fetched_at = utcnow()
        self._value_ts = getattr(result, "as_of", None) or self._fetched_at
        self._last_error = None
        if self._on_update is not None:
            try:
                outcome = self._on_update(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                log.exception("Refresh loop %s on_update callback failed", self.name)

    def view(self, now: Optional[datetime] = None) -> DisplayState[T]:
        stale = False
        if self._value is not None:
            age = seconds_since(self._fetched_at, now) if self._fetched_at else 0.0
            stale = self._last_error is not None or age > 2 * self.interval
        error = ERROR_MESSAGE if self._value is None and self._last_error is not None else None
        return DisplayState(
            value=self._value,
            as_of=self._value_ts,
            is_stale=stale,
            error=error,
            last_error=self._last_error,
            state=self.state,
        )

    def stats(self) -> dict:
        return {
            "running": self.running,
            "paused": self._paused,
            "attempts": self._attempts,
            "failures": self._failures,
            "last_error": self._last_error,
            "as_of": self._value_ts.isoformat() if self._value_ts else None,
        }
