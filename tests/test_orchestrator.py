import pytest
from rich.console import Console

from browser_action_runner.config import RunnerConfig
from browser_action_runner.events.base import CompositeEventSink, ConsoleEventSink, EventSink
from browser_action_runner.executor.action_executor import ActionExecutor
from browser_action_runner.executor.actions import ActionDispatcher
from browser_action_runner.executor.navigation import NavigationController
from browser_action_runner.models import (
    ActionKind,
    ActionRequest,
    ChainOutcome,
    DirectiveStatus,
    EventKind,
    PlannerDirective,
    SessionState,
)
from browser_action_runner.orchestrator.recovery import FailureRecoveryHandler
from browser_action_runner.orchestrator.runner import Orchestrator
from browser_action_runner.planner.base import Planner, PlannerContext
from browser_action_runner.planner.scripted import ScriptedPlanner
from fakes import (
    CollectingEventSink,
    CountingStore,
    ExitRecorder,
    FakeLauncher,
    FakePage,
    SleepRecorder,
)


def build_config(**overrides) -> RunnerConfig:
    return RunnerConfig.model_validate(
        {
            "task": {"description": "Open the docs and read the heading"},
            "browser": {"headless": True},
            "events": {"channel": "none"},
            **overrides,
        }
    )


class Pipeline:
    def __init__(
        self,
        planner: Planner,
        page: FakePage | None = None,
        console: Console | None = None,
        **config,
    ) -> None:
        self.page = page or FakePage()
        self.config = build_config(**config)
        self.events = CollectingEventSink()
        sink: EventSink = self.events
        if console is not None:
            sink = CompositeEventSink([self.events, ConsoleEventSink(console)])
        self.launcher = FakeLauncher(page_factory=lambda: self.page)
        self.store = CountingStore(self.launcher, events=sink)
        self.retry_sleep = SleepRecorder()
        executor = ActionExecutor(
            self.store,
            self.config.executor,
            events=sink,
            sleep=self.retry_sleep,
        )
        navigation = NavigationController(executor, self.config.navigation, sleep=SleepRecorder())
        dispatcher = ActionDispatcher(executor, navigation, self.config.executor)
        self.exit = ExitRecorder()
        recovery = FailureRecoveryHandler(
            self.store,
            self.config.recovery,
            events=sink,
            exit_process=self.exit,
        )
        self.orchestrator = Orchestrator(
            config=self.config,
            planner=planner,
            dispatcher=dispatcher,
            recovery=recovery,
            events=sink,
        )


def step(**action) -> PlannerDirective:
    return PlannerDirective(action=ActionRequest(**action))


def finished(message: str) -> PlannerDirective:
    return PlannerDirective(status=DirectiveStatus.FINISHED, message=message)


class RecordingPlanner(Planner):
    def __init__(self, directives) -> None:
        self._inner = ScriptedPlanner(directives)
        self.seen_results = []

    async def next_directive(self, context: PlannerContext) -> PlannerDirective:
        self.seen_results = [record.result for record in context.history]
        return await self._inner.next_directive(context)


@pytest.mark.asyncio
async def test_successful_run_closes_browser_on_completion() -> None:
    page = FakePage()
    page.texts["h1"] = "Installation"
    pipeline = Pipeline(
        ScriptedPlanner(
            [
                step(kind=ActionKind.NAVIGATE, url="https://playwright.dev"),
                step(kind=ActionKind.GET_TEXT, selector="h1"),
                finished("Test PASSED: heading found"),
            ]
        ),
        page=page,
    )

    outcome = await pipeline.orchestrator.run()

    assert outcome.outcome is ChainOutcome.PASSED
    assert outcome.success is True
    assert [record.result.payload for record in outcome.steps] == [None, "Installation"]
    assert pipeline.launcher.launches == 1
    assert pipeline.store.close_calls == 1
    assert pipeline.store.state is SessionState.CLOSED
    kinds = pipeline.events.kinds()
    assert kinds[0] == EventKind.CHAIN_START
    assert kinds.count(EventKind.TOOL_START) == 2
    assert kinds.count(EventKind.TOOL_END) == 2
    chain_end = [event for event in pipeline.events.events if event.kind == EventKind.CHAIN_END]
    assert chain_end[0].data == {"outcome": "PASSED"}


@pytest.mark.asyncio
async def test_console_events_print_page_text_literally() -> None:
    page = FakePage()
    page.texts["h1"] = "Docs [/beta]"
    console = Console(record=True, width=120)
    pipeline = Pipeline(
        ScriptedPlanner(
            [
                step(kind=ActionKind.CLICK, selector="input[name=q]"),
                step(kind=ActionKind.GET_TEXT, selector="h1"),
                finished("Test PASSED: beta docs"),
            ]
        ),
        page=page,
        console=console,
    )

    outcome = await pipeline.orchestrator.run()

    assert outcome.outcome is ChainOutcome.PASSED
    assert pipeline.store.close_calls == 1
    assert pipeline.store.state is SessionState.CLOSED
    assert pipeline.exit.codes == []
    output = console.export_text()
    assert "[TOOL_END] Clicked on element with selector: input[name=q]" in output
    assert "[TOOL_END] Text content: Docs [/beta]" in output


@pytest.mark.asyncio
async def test_missing_element_is_reported_and_session_closed() -> None:
    page = FakePage()
    page.missing.add("#missing")
    planner = RecordingPlanner(
        [
            step(kind=ActionKind.CLICK, selector="#missing"),
            finished("Test FAILED: could not click"),
        ]
    )
    pipeline = Pipeline(planner, page=page)

    outcome = await pipeline.orchestrator.run()

    failed = planner.seen_results[0]
    assert failed.success is False
    assert failed.summary == "Timeout 30000ms exceeded."
    assert pipeline.retry_sleep.delays == [1.0]
    assert page.call_names().count("click") == 2
    assert page.closed is True
    assert pipeline.exit.codes == []
    assert outcome.outcome is ChainOutcome.FAILED
    assert EventKind.TOOL_ERROR in pipeline.events.kinds()


@pytest.mark.asyncio
async def test_critical_tool_error_exits_after_single_close() -> None:
    page = FakePage()
    page.errors["#submit"] = RuntimeError("critical: element not interactable")
    pipeline = Pipeline(
        ScriptedPlanner(
            [
                step(kind=ActionKind.CLICK, selector="#submit"),
                finished("never reached"),
            ]
        ),
        page=page,
    )

    with pytest.raises(SystemExit) as excinfo:
        await pipeline.orchestrator.run()

    assert excinfo.value.code != 0
    assert pipeline.exit.codes == [1]
    assert pipeline.store.close_calls == 1
    assert EventKind.CHAIN_END not in pipeline.events.kinds()


@pytest.mark.asyncio
async def test_planner_failure_is_fatal() -> None:
    pipeline = Pipeline(ScriptedPlanner([step(kind=ActionKind.HOVER, selector="nav")]))

    with pytest.raises(SystemExit):
        await pipeline.orchestrator.run()

    assert pipeline.exit.codes == [1]
    assert pipeline.store.close_calls == 1
    assert pipeline.page.closed is True
    assert EventKind.CHAIN_ERROR in pipeline.events.kinds()
    assert EventKind.CHAIN_END not in pipeline.events.kinds()


@pytest.mark.asyncio
async def test_step_limit_is_enforced() -> None:
    directives = [step(kind=ActionKind.HOVER, selector="nav") for _ in range(3)]
    pipeline = Pipeline(ScriptedPlanner(directives), max_steps=2)

    with pytest.raises(SystemExit):
        await pipeline.orchestrator.run()

    assert pipeline.page.call_names().count("hover") == 2
    chain_errors = [e for e in pipeline.events.events if e.kind == EventKind.CHAIN_ERROR]
    assert "within 2 steps" in chain_errors[0].message


@pytest.mark.asyncio
async def test_close_browser_action_then_finish() -> None:
    pipeline = Pipeline(
        ScriptedPlanner(
            [
                step(kind=ActionKind.CLOSE_BROWSER),
                finished("Done"),
            ]
        )
    )

    outcome = await pipeline.orchestrator.run()

    assert outcome.steps[0].result.summary == "No browser session to close"
    assert outcome.outcome is ChainOutcome.COMPLETED
    assert pipeline.launcher.launches == 0
