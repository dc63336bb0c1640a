"""Shared models used across the browser action runner."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

DEFAULT_ACTION_TIMEOUT_MS = 30000


class ActionKind(str, enum.Enum):
    """Closed set of primitive browser actions the planner can request."""

    NAVIGATE = "navigate"
    GO_BACK = "go_back"
    GO_FORWARD = "go_forward"
    REFRESH = "refresh"
    CLOSE_BROWSER = "close_browser"
    CLICK = "click"
    TYPE = "type"
    GET_TEXT = "get_text"
    SELECT_OPTION = "select_option"
    CHECK = "check"
    UNCHECK = "uncheck"
    HOVER = "hover"
    PRESS_KEY = "press_key"
    WAIT_FOR_ELEMENT = "wait_for_element"


class ActionRequest(BaseModel):
    """A single primitive action requested by the planner."""

    kind: ActionKind
    selector: Optional[str] = None
    url: Optional[str] = None
    text: Optional[str] = None
    values: Optional[Union[str, list[str]]] = Field(
        default=None,
        description="Option value(s) for select_option.",
    )
    key: Optional[str] = Field(default=None, description="Key or combination, e.g. 'Control+A'.")
    button: Literal["left", "right", "middle"] = "left"
    click_count: int = Field(default=1, ge=1)
    force: bool = Field(default=False, description="Bypass actionability checks.")
    delay: float = Field(default=0, ge=0, description="Delay between keystrokes in milliseconds.")
    state: Literal["attached", "detached", "visible", "hidden"] = "visible"
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "load"
    timeout: float = Field(
        default=DEFAULT_ACTION_TIMEOUT_MS,
        gt=0,
        description="Timeout in milliseconds.",
    )


class ActionResult(BaseModel):
    """Outcome of an action as reported back to the planner."""

    success: bool
    summary: str
    payload: Optional[str] = Field(default=None, description="Extracted content, e.g. text.")
    kind: Optional[ActionKind] = None


class SessionState(str, enum.Enum):
    """Lifecycle of the browser session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


class DirectiveStatus(str, enum.Enum):
    """Status returned by the planner with each directive."""

    CONTINUE = "continue"
    FINISHED = "finished"


class PlannerDirective(BaseModel):
    """Next step chosen by the planner: one action, or the final summary."""

    status: DirectiveStatus = DirectiveStatus.CONTINUE
    action: Optional[ActionRequest] = None
    message: Optional[str] = Field(default=None, description="Human-readable summary of the step.")


class ChainOutcome(str, enum.Enum):
    """Classification of the planner's final summary."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"

    @classmethod
    def classify(cls, summary: str) -> "ChainOutcome":
        if "PASSED" in summary:
            return cls.PASSED
        if "FAILED" in summary:
            return cls.FAILED
        return cls.COMPLETED


class EventKind(str, enum.Enum):
    """Event kinds emitted while running actions."""

    TOOL_START = "tool_start"
    TOOL_END = "tool_end"
    TOOL_ERROR = "tool_error"
    TOOL_RETRY = "tool_retry"
    CHAIN_START = "chain_start"
    CHAIN_END = "chain_end"
    CHAIN_ERROR = "chain_error"
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    SESSION_ERROR = "session_error"


class EventLevel(str, enum.Enum):
    """Severity of runner events."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class RunnerEvent(BaseModel):
    """Event emitted to observers of the runner."""

    kind: EventKind
    message: str
    level: EventLevel = EventLevel.INFO
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
