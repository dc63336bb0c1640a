"""Retrying execution of single-page operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..browser.session_store import SessionStore
from ..config import ExecutorConfig
from ..events.base import EventSink, NullEventSink
from ..models import EventKind, EventLevel, RunnerEvent

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

PageOperation = Callable[[Any], Awaitable[T]]
Sleeper = Callable[[float], Awaitable[Any]]


class ActionExecutor:
    """Run an operation against the session page with bounded retries.

    Each attempt re-acquires the session, so a browser that died in the
    middle of an operation is relaunched before the next attempt.
    """

    def __init__(
        self,
        store: SessionStore,
        config: Optional[ExecutorConfig] = None,
        *,
        events: Optional[EventSink] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._store = store
        self._config = config or ExecutorConfig()
        self._events = events or NullEventSink()
        self._sleep = sleep

    @property
    def store(self) -> SessionStore:
        return self._store

    async def execute(
        self,
        operation: PageOperation[T],
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> T:
        """Run ``operation(page)``, retrying up to ``max_retries`` extra times.

        ``timeout`` (seconds) bounds a single attempt; an attempt that runs
        past it is abandoned and counts as a failure.
        """

        retries = self._config.max_retries if max_retries is None else max_retries
        attempt = 0
        while True:
            try:
                handle = await self._store.acquire()
                await self._wait_until_stable(handle.page)
                return await self._run_attempt(operation, handle.page, timeout)
            except Exception as exc:
                attempt += 1
                LOGGER.error("Browser operation failed (attempt %s): %s", attempt, exc)
                self._events.emit(
                    RunnerEvent(
                        kind=EventKind.TOOL_RETRY,
                        message=str(exc),
                        level=EventLevel.WARNING,
                        data={"attempt": attempt, "max_retries": retries},
                    )
                )
                if attempt > retries:
                    raise
            LOGGER.info("Retrying operation (%s/%s)...", attempt, retries)
            await self._sleep(self._config.retry_delay_seconds)

    @staticmethod
    async def _run_attempt(
        operation: PageOperation[T],
        page: Any,
        timeout: Optional[float],
    ) -> T:
        if timeout is None:
            return await operation(page)
        try:
            return await asyncio.wait_for(operation(page), timeout)
        except asyncio.TimeoutError as exc:
            raise TimeoutError(f"Operation timed out after {timeout}s") from exc

    async def _wait_until_stable(self, page: Any) -> None:
        try:
            await page.wait_for_load_state(self._config.load_state)
        except Exception as exc:
            LOGGER.warning(
                "Page did not reach %s state, continuing anyway: %s",
                self._config.load_state,
                exc,
            )
