"""Session teardown and failure classification for the runner."""

from __future__ import annotations

import enum
import logging
import sys
from typing import Callable, NoReturn, Optional

from ..browser.base import SessionInitializationError
from ..browser.session_store import SessionStore
from ..config import RecoveryConfig
from ..events.base import EventSink, NullEventSink
from ..models import EventKind, EventLevel, RunnerEvent

LOGGER = logging.getLogger(__name__)

ExitFunc = Callable[[int], NoReturn]


class FailureClass(str, enum.Enum):
    """How a failure affects the rest of the run."""

    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class FailureRecoveryHandler:
    """Close the session on failures and decide whether the process survives."""

    def __init__(
        self,
        store: SessionStore,
        config: Optional[RecoveryConfig] = None,
        *,
        events: Optional[EventSink] = None,
        exit_process: ExitFunc = sys.exit,
    ) -> None:
        self._store = store
        self._config = config or RecoveryConfig()
        self._events = events or NullEventSink()
        self._exit_process = exit_process

    def classify(self, error: BaseException) -> FailureClass:
        if isinstance(error, SessionInitializationError):
            return FailureClass.FATAL
        message = str(error)
        if any(keyword in message for keyword in self._config.fatal_keywords):
            return FailureClass.FATAL
        return FailureClass.RECOVERABLE

    async def force_close(self) -> bool:
        """Close the session whatever state it claims to be in; never raises."""

        try:
            closed = await self._store.close()
        except Exception as exc:
            LOGGER.error("Failed to force close browser: %s", exc)
            return False
        LOGGER.info("Browser force closed successfully")
        return closed

    async def on_tool_error(self, error: BaseException) -> FailureClass:
        """Handle an action that failed after all retries.

        The session is closed so a poisoned page is never reused. Fatal
        failures terminate the process; recoverable ones are returned to the
        caller to report back to the planner.
        """

        LOGGER.warning("Attempting to close browser due to action failure")
        await self.force_close()
        failure = self.classify(error)
        if failure is FailureClass.FATAL:
            LOGGER.critical("Critical action failure, exiting process: %s", error)
            self._events.emit(
                RunnerEvent(
                    kind=EventKind.SESSION_ERROR,
                    message=f"Critical action failure: {error}",
                    level=EventLevel.ERROR,
                )
            )
            self._exit_process(self._config.exit_code)
        return failure

    async def on_chain_error(self, error: BaseException) -> None:
        """Handle a failure of the control loop itself; always fatal."""

        LOGGER.error("Closing browser due to run error: %s", error)
        await self.force_close()
        self._exit_process(self._config.exit_code)

    async def on_completion(self) -> None:
        """Close the session after the planner reports it is done."""

        try:
            await self._store.close()
        except Exception as exc:
            LOGGER.warning("Browser might already be closed: %s", exc)
            return
        LOGGER.info("Browser closed after run completion")
