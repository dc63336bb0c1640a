"""Ownership of the single live browser session."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..events.base import EventSink, NullEventSink
from ..models import EventKind, EventLevel, RunnerEvent, SessionState
from .base import BrowserLauncher, SessionHandle, SessionInitializationError

LOGGER = logging.getLogger(__name__)

LaunchHook = Callable[[SessionHandle], Awaitable[None]]


class SessionStore:
    """Hand out the one browser session shared by every action.

    The store is the only component that creates or destroys browser
    resources. Concurrent ``acquire`` calls made while a launch is in flight
    all await the same future, so at most one browser is ever started.
    """

    def __init__(
        self,
        launcher: BrowserLauncher,
        *,
        events: Optional[EventSink] = None,
        on_launch: Optional[LaunchHook] = None,
    ) -> None:
        self._launcher = launcher
        self._events = events or NullEventSink()
        self._on_launch = on_launch
        self._state = SessionState.UNINITIALIZED
        self._handle: Optional[SessionHandle] = None
        self._initializing: Optional[asyncio.Future[SessionHandle]] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def has_session(self) -> bool:
        return self._handle is not None or self._state is SessionState.INITIALIZING

    async def acquire(self) -> SessionHandle:
        """Return the live session, launching it if needed."""

        handle = self._handle
        if self._state is SessionState.READY and handle is not None:
            if handle.is_open():
                LOGGER.debug("Reusing existing browser instance")
                return handle
            LOGGER.warning("Browser page was closed, relaunching session")
            await self._teardown(SessionState.UNINITIALIZED)

        if self._state is SessionState.INITIALIZING and self._initializing is not None:
            LOGGER.info("Browser initialization in progress, waiting...")
            return await asyncio.shield(self._initializing)

        return await self._launch()

    async def reset(self) -> None:
        """Tear down the session; the next ``acquire`` launches a new one."""

        await self._wait_for_launch()
        await self._teardown(SessionState.UNINITIALIZED)
        LOGGER.info("Browser state reset")

    async def close(self) -> bool:
        """Tear down the session and mark it closed.

        Returns ``False`` when there was no session to close.
        """

        await self._wait_for_launch()
        existed = self._handle is not None
        await self._teardown(SessionState.CLOSED)
        return existed

    async def _launch(self) -> SessionHandle:
        # State and future are set before the first await so concurrent
        # callers see the launch as in flight.
        self._state = SessionState.INITIALIZING
        future: asyncio.Future[SessionHandle] = asyncio.get_running_loop().create_future()
        self._initializing = future
        try:
            handle = await self._launcher.launch()
            if self._on_launch is not None:
                try:
                    await self._on_launch(handle)
                except Exception as exc:
                    LOGGER.warning("Post-launch hook failed: %s", exc)
        except asyncio.CancelledError:
            self._state = SessionState.UNINITIALIZED
            self._initializing = None
            future.cancel()
            raise
        except Exception as exc:
            LOGGER.error("Failed to initialize browser: %s", exc)
            self._state = SessionState.UNINITIALIZED
            self._initializing = None
            error = SessionInitializationError(f"Failed to initialize browser: {exc}")
            future.set_exception(error)
            # Mark retrieved; waiters (if any) re-raise it themselves.
            future.exception()
            self._events.emit(
                RunnerEvent(
                    kind=EventKind.SESSION_ERROR,
                    message=str(error),
                    level=EventLevel.ERROR,
                )
            )
            raise error from exc

        self._handle = handle
        self._state = SessionState.READY
        self._initializing = None
        future.set_result(handle)
        self._events.emit(
            RunnerEvent(kind=EventKind.SESSION_START, message="Browser session ready")
        )
        return handle

    async def _wait_for_launch(self) -> None:
        pending = self._initializing
        if pending is None:
            return
        try:
            await asyncio.shield(pending)
        except SessionInitializationError:
            LOGGER.debug("Pending browser launch failed before teardown")

    async def _teardown(self, final_state: SessionState) -> None:
        # Detach before the first await so a concurrent acquire never sees
        # the handle being closed.
        handle = self._handle
        self._handle = None
        self._state = final_state
        if handle is None:
            return
        if handle.page is not None:
            await _close_quietly("page", _close_page, handle.page)
        if handle.context is not None:
            await _close_quietly("context", _close_resource, handle.context)
        if handle.browser is not None:
            await _close_quietly("browser", _close_resource, handle.browser)
        if handle.driver is not None:
            await _close_quietly("driver", _stop_driver, handle.driver)
        self._events.emit(
            RunnerEvent(kind=EventKind.SESSION_END, message="Browser session closed")
        )


async def _close_page(page: Any) -> None:
    if not page.is_closed():
        await page.close()


async def _close_resource(resource: Any) -> None:
    await resource.close()


async def _stop_driver(driver: Any) -> None:
    await driver.stop()


async def _close_quietly(
    name: str,
    closer: Callable[[Any], Awaitable[None]],
    resource: Any,
) -> None:
    try:
        await closer(resource)
    except Exception as exc:
        LOGGER.error("Error while closing browser %s: %s", name, exc)
