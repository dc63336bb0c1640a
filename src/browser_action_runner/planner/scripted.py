"""Scripted planner for testing and offline use."""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Iterable, Mapping

from ..models import ActionRequest, DirectiveStatus, PlannerDirective
from .base import Planner, PlannerContext


class ScriptedPlanner(Planner):
    """Return directives from a predefined sequence."""

    def __init__(self, directives: Iterable[PlannerDirective]) -> None:
        self._directives: Deque[PlannerDirective] = deque(directives)

    @classmethod
    def from_steps(cls, steps: Iterable[Mapping[str, Any]]) -> "ScriptedPlanner":
        """Build from plain mappings, e.g. the ``planner.steps`` config list.

        A step holding ``finished`` (the final summary) ends the script;
        any other step is parsed as an :class:`ActionRequest`.
        """

        directives = []
        for step in steps:
            if "finished" in step:
                directives.append(
                    PlannerDirective(status=DirectiveStatus.FINISHED, message=str(step["finished"]))
                )
            else:
                directives.append(PlannerDirective(action=ActionRequest.model_validate(step)))
        return cls(directives)

    async def next_directive(self, context: PlannerContext) -> PlannerDirective:
        if not self._directives:
            raise RuntimeError("ScriptedPlanner ran out of directives")
        return self._directives.popleft()
