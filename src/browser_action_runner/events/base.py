"""Event sinks observing tool, chain and session activity."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from rich.console import Console

from ..models import EventLevel, RunnerEvent

LOGGER = logging.getLogger(__name__)

_LOG_LEVELS = {
    EventLevel.INFO: logging.INFO,
    EventLevel.SUCCESS: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


class EventSink(ABC):
    """Interface for receiving runner events."""

    @abstractmethod
    def emit(self, event: RunnerEvent) -> None:
        """Deliver a runner event."""


class NullEventSink(EventSink):
    """Discard every event."""

    def emit(self, event: RunnerEvent) -> None:
        return


class LoggingEventSink(EventSink):
    """Forward events to the standard logging system."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or LOGGER

    def emit(self, event: RunnerEvent) -> None:
        if event.data:
            self._logger.log(
                _LOG_LEVELS[event.level],
                "%s: %s %s",
                event.kind.value.upper(),
                event.message,
                event.data,
            )
        else:
            self._logger.log(
                _LOG_LEVELS[event.level],
                "%s: %s",
                event.kind.value.upper(),
                event.message,
            )


class ConsoleEventSink(EventSink):
    """Print events to the console using Rich."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    def emit(self, event: RunnerEvent) -> None:
        style = {
            "info": "cyan",
            "warning": "yellow",
            "error": "red",
            "success": "green",
        }.get(event.level.value, "white")
        # Messages carry selectors and page text, never Rich markup.
        self._console.print(
            f"[{event.kind.value.upper()}] {event.message}",
            style=style,
            markup=False,
            highlight=False,
        )
        if event.data:
            self._console.print(event.data, style="dim", markup=False)


class CompositeEventSink(EventSink):
    """Fan-out sink that propagates events to multiple sinks."""

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self._sinks = list(sinks)

    def emit(self, event: RunnerEvent) -> None:
        for sink in self._sinks:
            sink.emit(event)
