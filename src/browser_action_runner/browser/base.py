"""Browser session abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


class BrowserActionError(RuntimeError):
    """Raised when executing a browser action fails."""


class SessionInitializationError(BrowserActionError):
    """Raised when the browser session could not be launched."""


@dataclass
class SessionHandle:
    """The live browser, its context and the single page actions run against."""

    browser: Any
    context: Any
    page: Any
    driver: Optional[Any] = None

    def is_open(self) -> bool:
        return self.page is not None and not self.page.is_closed()


class BrowserLauncher(ABC):
    """Interface for starting a new browser session."""

    @abstractmethod
    async def launch(self) -> SessionHandle:
        """Launch a browser process with one context and one page."""
