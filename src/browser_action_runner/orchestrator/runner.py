"""Main orchestrator that feeds planner actions to the browser."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..config import RunnerConfig
from ..events.base import EventSink, NullEventSink
from ..executor.actions import ActionDispatcher
from ..models import (
    ActionRequest,
    ActionResult,
    ChainOutcome,
    DirectiveStatus,
    EventKind,
    EventLevel,
    RunnerEvent,
)
from ..planner.base import Planner, PlannerContext, StepRecord
from .recovery import FailureClass, FailureRecoveryHandler

LOGGER = logging.getLogger(__name__)

_OUTCOME_LEVELS = {
    ChainOutcome.PASSED: EventLevel.SUCCESS,
    ChainOutcome.FAILED: EventLevel.ERROR,
    ChainOutcome.COMPLETED: EventLevel.INFO,
}


@dataclass
class RunOutcome:
    """Final summary of a run."""

    summary: str
    outcome: ChainOutcome
    steps: list[StepRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome is not ChainOutcome.FAILED


class Orchestrator:
    """Ask the planner for one action at a time and execute it."""

    def __init__(
        self,
        config: RunnerConfig,
        planner: Planner,
        dispatcher: ActionDispatcher,
        recovery: FailureRecoveryHandler,
        events: Optional[EventSink] = None,
    ) -> None:
        self._config = config
        self._planner = planner
        self._dispatcher = dispatcher
        self._recovery = recovery
        self._events = events or NullEventSink()

    async def run(self) -> RunOutcome:
        """Run until the planner finishes; the session is closed on every path."""

        instruction = self._config.task.description
        LOGGER.info("Starting run for task: %s", instruction)
        self._emit(EventKind.CHAIN_START, f"Starting task: {instruction}")
        context = PlannerContext(instruction=instruction)
        try:
            return await self._loop(context)
        except Exception as exc:
            LOGGER.exception("Unhandled runner error")
            try:
                self._emit(EventKind.CHAIN_ERROR, str(exc), level=EventLevel.ERROR)
            except Exception:
                LOGGER.exception("Failed to report runner error")
            await self._recovery.on_chain_error(exc)
            raise

    async def _loop(self, context: PlannerContext) -> RunOutcome:
        for _ in range(self._config.max_steps):
            directive = await self._planner.next_directive(context)
            if directive.status == DirectiveStatus.FINISHED:
                return await self._finish(directive.message or "", context)
            if directive.action is None:
                LOGGER.debug("Planner returned no action: %s", directive.message)
                continue
            result, failure = await self._execute(directive.action)
            context.history.append(StepRecord(request=directive.action, result=result))
            if failure is FailureClass.FATAL:
                return RunOutcome(
                    summary=result.summary,
                    outcome=ChainOutcome.FAILED,
                    steps=context.history,
                )
        raise RuntimeError(f"Planner did not finish within {self._config.max_steps} steps")

    async def _execute(self, request: ActionRequest) -> tuple[ActionResult, Optional[FailureClass]]:
        self._emit(
            EventKind.TOOL_START,
            request.kind.value,
            data={"input": request.model_dump(mode="json", exclude_defaults=True)},
        )
        try:
            result = await self._dispatcher.dispatch(request)
        except Exception as exc:
            LOGGER.error("Action %s failed: %s", request.kind.value, exc)
            self._emit(EventKind.TOOL_ERROR, str(exc), level=EventLevel.ERROR)
            failure = await self._recovery.on_tool_error(exc)
            return (
                ActionResult(success=False, summary=str(exc), kind=request.kind),
                failure,
            )
        self._emit(
            EventKind.TOOL_END,
            result.summary,
            level=EventLevel.SUCCESS if result.success else EventLevel.WARNING,
            data={"payload": result.payload} if result.payload is not None else None,
        )
        return result, None

    async def _finish(self, summary: str, context: PlannerContext) -> RunOutcome:
        outcome = ChainOutcome.classify(summary)
        self._emit(
            EventKind.CHAIN_END,
            summary or "Task completed",
            level=_OUTCOME_LEVELS[outcome],
            data={"outcome": outcome.value},
        )
        await self._recovery.on_completion()
        return RunOutcome(summary=summary, outcome=outcome, steps=context.history)

    def _emit(
        self,
        kind: EventKind,
        message: str,
        *,
        level: EventLevel = EventLevel.INFO,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        self._events.emit(RunnerEvent(kind=kind, message=message, level=level, data=data or {}))
