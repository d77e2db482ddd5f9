"""
Refresh Scheduler

Polls a fetch coroutine on a fixed interval for one consumer session.

    IDLE ──trigger──> FETCHING ──ok──> SETTLED ──> IDLE
                          │
                          └─error──> RETRYING ──2^n s──> FETCHING
                                        (after 3 retries: error surfaced,
                                         wait for the next interval tick)

Every cycle gets a sequence number and its own CancellationToken. Starting
a cycle cancels the previous cycle's token, and stop() cancels the session,
so a slow cycle that finishes late is recognised and its result dropped.
In-flight fetches are never killed; they observe the token.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from news_aggregator.core.types import BackoffPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEWS_INTERVAL_S = 60.0
MARKET_INTERVAL_S = 30.0

ResultCallback = Callable[[T], Awaitable[None]]
ErrorCallback = Callable[[Exception, Optional[float]], Awaitable[None]]


class CancellationToken:
    """Cooperative cancellation flag handed to each fetch cycle."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class SchedulerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SETTLED = "settled"
    RETRYING = "retrying"
    STOPPED = "stopped"


class RefreshScheduler(Generic[T]):
    """
    Interval polling with superseded-result discarding and retry/backoff.

    on_error(exc, retry_in) receives the delay of the scheduled retry, or
    None once the retry budget is spent and the error is surfaced.
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[CancellationToken], Awaitable[T]],
        *,
        interval_s: float = NEWS_INTERVAL_S,
        on_result: Optional[ResultCallback[T]] = None,
        on_error: Optional[ErrorCallback] = None,
        backoff: BackoffPolicy = BackoffPolicy(),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._name = name
        self._fetch = fetch
        self._interval_s = interval_s
        self._on_result = on_result
        self._on_error = on_error
        self._backoff = backoff
        self._sleep = sleep

        self._state = SchedulerState.IDLE
        self._active = False
        self._sequence = 0
        self._retry_count = 0
        self._last_error: Optional[Exception] = None
        self._cycle_token = CancellationToken()

        # Task management
        self._interval_task: Optional[asyncio.Task[None]] = None
        self._retry_task: Optional[asyncio.Task[None]] = None
        self._cycles: set[asyncio.Task[None]] = set()

        # Stats
        self._cycles_settled = 0
        self._cycles_discarded = 0
        self._cycles_failed = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def active(self) -> bool:
        return self._active

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Run one cycle now, then one every interval."""
        if self._active:
            raise RuntimeError(f"Scheduler '{self._name}' is already running")
        self._active = True
        self._state = SchedulerState.IDLE
        self._interval_task = asyncio.create_task(self._interval_loop())
        logger.info(
            f"Scheduler '{self._name}' started",
            extra={"interval_seconds": self._interval_s},
        )

    async def stop(self) -> None:
        """
        Tear the session down.

        Timers are cancelled; cycles still in flight run to completion but
        their results are ignored.
        """
        if not self._active:
            return
        self._active = False
        self._cycle_token.cancel()

        for task in (self._interval_task, self._retry_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._interval_task = None
        self._retry_task = None
        self._state = SchedulerState.STOPPED
        logger.info(
            f"Scheduler '{self._name}' stopped",
            extra=self.get_stats(),
        )

    async def __aenter__(self) -> RefreshScheduler[T]:
        self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.stop()

    async def wait_idle(self) -> None:
        """Wait for every cycle currently in flight."""
        while self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)

    # ── Cycles ───────────────────────────────────────────────────────────────

    def trigger(self, *, reset_retries: bool = False) -> asyncio.Task[None]:
        """Start a new cycle, superseding any cycle still in flight."""
        if reset_retries:
            self._retry_count = 0
            if self._retry_task is not None and not self._retry_task.done():
                self._retry_task.cancel()

        self._cycle_token.cancel()
        self._cycle_token = CancellationToken()
        self._sequence += 1

        task = asyncio.create_task(self._run_cycle(self._sequence, self._cycle_token))
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)
        return task

    def _is_current(self, sequence: int, token: CancellationToken) -> bool:
        return self._active and not token.cancelled and sequence == self._sequence

    async def _interval_loop(self) -> None:
        while self._active:
            self.trigger(reset_retries=True)
            await self._sleep(self._interval_s)

    async def _run_cycle(self, sequence: int, token: CancellationToken) -> None:
        self._state = SchedulerState.FETCHING
        try:
            result = await self._fetch(token)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self._is_current(sequence, token):
                self._cycles_discarded += 1
                logger.debug(f"Discarding error from superseded cycle {sequence}")
                return
            await self._handle_failure(exc)
            return

        if not self._is_current(sequence, token):
            self._cycles_discarded += 1
            logger.debug(
                f"Discarding result from superseded cycle {sequence}",
                extra={"current_sequence": self._sequence},
            )
            return

        self._retry_count = 0
        self._last_error = None
        self._cycles_settled += 1
        self._state = SchedulerState.SETTLED

        if self._on_result is not None:
            try:
                await self._on_result(result)
            except Exception as e:
                logger.error(
                    "Result callback failed",
                    extra={"scheduler": self._name, "error": str(e)},
                    exc_info=True,
                )

        if self._is_current(sequence, token):
            self._state = SchedulerState.IDLE

    async def _handle_failure(self, exc: Exception) -> None:
        self._last_error = exc
        self._cycles_failed += 1

        retry_in: Optional[float] = None
        if self._backoff.should_retry(self._retry_count):
            retry_in = self._backoff.delay_for(self._retry_count)
            self._retry_count += 1
            self._state = SchedulerState.RETRYING
            logger.warning(
                f"Scheduler '{self._name}' cycle failed, retrying",
                extra={
                    "attempt": self._retry_count,
                    "delay_seconds": retry_in,
                    "error": str(exc),
                },
            )
            self._retry_task = asyncio.create_task(self._retry_after(retry_in))
        else:
            self._state = SchedulerState.IDLE
            logger.error(
                f"Scheduler '{self._name}' giving up until next interval",
                extra={"error": str(exc), "retries": self._retry_count},
            )

        if self._on_error is not None:
            try:
                await self._on_error(exc, retry_in)
            except Exception as e:
                logger.error(
                    "Error callback failed",
                    extra={"scheduler": self._name, "error": str(e)},
                )

    async def _retry_after(self, delay: float) -> None:
        await self._sleep(delay)
        if self._active:
            self.trigger()

    def get_stats(self) -> dict[str, int]:
        return {
            "sequence": self._sequence,
            "settled": self._cycles_settled,
            "discarded": self._cycles_discarded,
            "failed": self._cycles_failed,
        }
