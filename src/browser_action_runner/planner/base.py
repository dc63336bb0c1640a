"""Base classes for planners that choose the next browser action."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

from ..models import ActionRequest, ActionResult, PlannerDirective


@dataclass
class StepRecord:
    """An executed action and the result reported back to the planner."""

    request: ActionRequest
    result: ActionResult


@dataclass
class PlannerContext:
    """Information passed to the planner on every turn."""

    instruction: str
    history: List[StepRecord] = field(default_factory=list)


class Planner(ABC):
    """Abstract interface for planners.

    The runner calls :meth:`next_directive` once per step and waits for the
    resulting action to complete before asking again.
    """

    @abstractmethod
    async def next_directive(self, context: PlannerContext) -> PlannerDirective:
        """Return the next action to run, or a finished directive."""


class StaticPlanner(Planner):
    """A trivial planner that always returns a predefined directive."""

    def __init__(self, directive: PlannerDirective) -> None:
        self._directive = directive

    async def next_directive(self, context: PlannerContext) -> PlannerDirective:
        return self._directive
