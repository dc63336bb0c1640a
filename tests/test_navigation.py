import pytest

from browser_action_runner.browser.popups import PopupSuppressor
from browser_action_runner.browser.session_store import SessionStore
from browser_action_runner.config import ExecutorConfig, NavigationConfig
from browser_action_runner.executor.action_executor import ActionExecutor
from browser_action_runner.executor.navigation import NavigationController
from browser_action_runner.models import ActionKind
from fakes import FakeLauncher, FakePage, SleepRecorder


def make_controller(page=None, popups=None, config=None):
    page = page or FakePage()
    launcher = FakeLauncher(page_factory=lambda: page)
    executor = ActionExecutor(SessionStore(launcher), ExecutorConfig(), sleep=SleepRecorder())
    backoff = SleepRecorder()
    controller = NavigationController(
        executor,
        config or NavigationConfig(),
        popups=popups,
        sleep=backoff,
    )
    return controller, page, backoff


@pytest.mark.asyncio
async def test_navigate_retries_with_linear_backoff_until_success() -> None:
    page = FakePage()
    page.goto_failures = 2
    controller, _, backoff = make_controller(page)

    result = await controller.navigate("https://example.test")

    assert result.success is True
    assert result.summary == "Navigated to https://example.test"
    assert result.kind == ActionKind.NAVIGATE
    assert backoff.delays == [5.0, 10.0]
    assert page.url == "https://example.test"


@pytest.mark.asyncio
async def test_goto_gives_up_silently_after_three_retries() -> None:
    page = FakePage()
    page.goto_failures = 10
    controller, _, backoff = make_controller(page)

    navigated = await controller.goto(page, "https://example.test")

    assert navigated is False
    assert backoff.delays == [5.0, 10.0, 15.0]
    assert page.call_names().count("goto") == 4
    assert "wait_for_load_state" not in page.call_names()


@pytest.mark.asyncio
async def test_navigate_reports_failure_once_navigation_gives_up() -> None:
    page = FakePage()
    page.goto_failures = 10
    controller, _, _ = make_controller(page)

    result = await controller.navigate("https://example.test")

    assert result.success is False
    assert "after 3 retries" in result.summary


@pytest.mark.asyncio
async def test_goto_has_no_load_timeout_and_waits_for_navigation() -> None:
    controller, page, _ = make_controller()

    await controller.goto(page, "https://example.test", wait_until="load")

    expect, goto, dom_wait = page.calls
    assert expect == ("expect_navigation", None, {"wait_until": "load", "timeout": 0})
    assert goto == ("goto", "https://example.test", {"wait_until": "load", "timeout": 0})
    assert dom_wait == ("wait_for_load_state", "domcontentloaded", {"timeout": 60000})


@pytest.mark.asyncio
async def test_dom_content_timeout_does_not_fail_navigation() -> None:
    controller, page, _ = make_controller()
    page.load_state_error = RuntimeError("Timeout 60000ms exceeded.")

    assert await controller.goto(page, "https://example.test") is True


@pytest.mark.asyncio
async def test_backoff_base_is_configurable() -> None:
    page = FakePage()
    page.goto_failures = 5
    controller, _, backoff = make_controller(
        page,
        config=NavigationConfig(max_retries=2, backoff_base_ms=100),
    )

    assert await controller.goto(page, "https://example.test") is False
    assert backoff.delays == [0.1, 0.2]


@pytest.mark.asyncio
async def test_popups_are_suppressed_after_navigation() -> None:
    page = FakePage()
    page.visible = ["#consent button"]
    controller, _, _ = make_controller(page, popups=PopupSuppressor())

    await controller.navigate("https://example.test")

    assert page.clicked == ["#consent button"]
    assert "dialog" in page.listeners


@pytest.mark.asyncio
async def test_popup_suppression_can_be_disabled() -> None:
    page = FakePage()
    page.visible = ["#consent button"]
    controller, _, _ = make_controller(
        page,
        popups=PopupSuppressor(),
        config=NavigationConfig(suppress_popups=False),
    )

    await controller.navigate("https://example.test")

    assert page.clicked == []


@pytest.mark.asyncio
async def test_history_operations_are_single_shot_calls() -> None:
    controller, page, backoff = make_controller()

    back = await controller.go_back(timeout=1500)
    forward = await controller.go_forward()
    refresh = await controller.refresh(timeout=2000)

    assert back.summary == "Navigated back in browser history"
    assert forward.summary == "Navigated forward in browser history"
    assert refresh.summary == "Page refreshed successfully"
    history_calls = [call for call in page.calls if call[0] != "wait_for_load_state"]
    assert history_calls == [
        ("go_back", None, {"timeout": 1500}),
        ("go_forward", None, {"timeout": 30000}),
        ("reload", None, {"timeout": 2000}),
    ]
    assert backoff.delays == []
