"""Dispatch of planner action requests to page operations."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError

from ..browser.base import BrowserActionError
from ..config import ExecutorConfig
from ..models import ActionKind, ActionRequest, ActionResult
from .action_executor import ActionExecutor
from .navigation import NavigationController

LOGGER = logging.getLogger(__name__)

Handler = Callable[[ActionRequest], Awaitable[ActionResult]]


class ActionDispatcher:
    """Map each :class:`ActionKind` to the handler that performs it."""

    def __init__(
        self,
        executor: ActionExecutor,
        navigation: NavigationController,
        config: Optional[ExecutorConfig] = None,
    ) -> None:
        self._executor = executor
        self._navigation = navigation
        self._config = config or ExecutorConfig()
        self._handlers: dict[ActionKind, Handler] = {
            ActionKind.NAVIGATE: self._navigate,
            ActionKind.GO_BACK: self._go_back,
            ActionKind.GO_FORWARD: self._go_forward,
            ActionKind.REFRESH: self._refresh,
            ActionKind.CLOSE_BROWSER: self._close_browser,
            ActionKind.CLICK: self._click,
            ActionKind.TYPE: self._type,
            ActionKind.GET_TEXT: self._get_text,
            ActionKind.SELECT_OPTION: self._select_option,
            ActionKind.CHECK: self._check,
            ActionKind.UNCHECK: self._uncheck,
            ActionKind.HOVER: self._hover,
            ActionKind.PRESS_KEY: self._press_key,
            ActionKind.WAIT_FOR_ELEMENT: self._wait_for_element,
        }

    @property
    def kinds(self) -> list[ActionKind]:
        return list(self._handlers)

    async def dispatch(self, request: ActionRequest) -> ActionResult:
        """Execute ``request`` and return its result.

        Raises :class:`BrowserActionError` when the request is missing a
        parameter or the browser operation keeps failing after retries.
        """

        handler = self._handlers.get(request.kind)
        if handler is None:
            raise BrowserActionError(f"Unsupported action type: {request.kind}")
        LOGGER.info("Executing browser action %s", request.kind.value)
        try:
            return await handler(request)
        except PlaywrightError as exc:
            raise BrowserActionError(str(exc)) from exc

    async def _run(self, request: ActionRequest, operation: Callable[[Any], Awaitable[Any]]) -> Any:
        timeout: Optional[float] = None
        if self._config.timeout_grace_seconds is not None:
            timeout = request.timeout / 1000 + self._config.timeout_grace_seconds
        return await self._executor.execute(operation, timeout=timeout)

    # Navigation --------------------------------------------------------------

    async def _navigate(self, request: ActionRequest) -> ActionResult:
        url = _require(request.url, "Navigate action requires a URL")
        return await self._navigation.navigate(url, wait_until=request.wait_until)

    async def _go_back(self, request: ActionRequest) -> ActionResult:
        return await self._navigation.go_back(timeout=request.timeout)

    async def _go_forward(self, request: ActionRequest) -> ActionResult:
        return await self._navigation.go_forward(timeout=request.timeout)

    async def _refresh(self, request: ActionRequest) -> ActionResult:
        return await self._navigation.refresh(timeout=request.timeout)

    async def _close_browser(self, request: ActionRequest) -> ActionResult:
        store = self._executor.store
        if not store.has_session:
            return _done(request, "No browser session to close")
        await store.close()
        return _done(request, "Browser closed successfully")

    # Interaction -------------------------------------------------------------

    async def _click(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Click action requires a selector")

        async def _operation(page: Any) -> None:
            LOGGER.info("Clicking on element with selector: %s", selector)
            await page.click(
                selector,
                button=request.button,
                click_count=request.click_count,
                force=request.force,
                timeout=request.timeout,
            )

        await self._run(request, _operation)
        return _done(request, f"Clicked on element with selector: {selector}")

    async def _type(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Type action requires a selector")
        if request.text is None:
            raise BrowserActionError("Type action requires text")
        text = request.text

        async def _operation(page: Any) -> None:
            await page.wait_for_selector(selector, timeout=request.timeout)
            await page.focus(selector, timeout=request.timeout)
            await page.fill(selector, text, timeout=request.timeout)

        await self._run(request, _operation)
        return _done(request, f'Typed "{text}" into element with selector: {selector}')

    async def _get_text(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Get text action requires a selector")

        async def _operation(page: Any) -> str:
            await page.wait_for_selector(selector, timeout=request.timeout)
            content = await page.eval_on_selector(
                selector,
                "el => (el.textContent || '').trim()",
            )
            return content or ""

        text = await self._run(request, _operation)
        return ActionResult(
            success=True,
            summary=f"Text content: {text}",
            payload=text,
            kind=request.kind,
        )

    async def _select_option(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Select option action requires a selector")
        raw_values = _require(request.values, "Select option action requires values")
        values = [raw_values] if isinstance(raw_values, str) else list(raw_values)

        async def _operation(page: Any) -> None:
            await page.select_option(selector, values, timeout=request.timeout)

        await self._run(request, _operation)
        return _done(
            request,
            f"Selected option(s): {', '.join(values)} in dropdown with selector: {selector}",
        )

    async def _check(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Check action requires a selector")

        async def _operation(page: Any) -> None:
            await page.check(selector, timeout=request.timeout, force=request.force)

        await self._run(request, _operation)
        return _done(request, f"Checked element with selector: {selector}")

    async def _uncheck(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Uncheck action requires a selector")

        async def _operation(page: Any) -> None:
            await page.uncheck(selector, timeout=request.timeout, force=request.force)

        await self._run(request, _operation)
        return _done(request, f"Unchecked element with selector: {selector}")

    async def _hover(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Hover action requires a selector")

        async def _operation(page: Any) -> None:
            await page.hover(selector, timeout=request.timeout, force=request.force)

        await self._run(request, _operation)
        return _done(request, f"Hovered over element with selector: {selector}")

    async def _press_key(self, request: ActionRequest) -> ActionResult:
        key = _require(request.key, "Press key action requires a key")
        selector = request.selector

        async def _operation(page: Any) -> None:
            if selector:
                await page.focus(selector, timeout=request.timeout)
            await page.keyboard.press(key, delay=request.delay)

        await self._run(request, _operation)
        if selector:
            return _done(request, f"Pressed {key} on element with selector: {selector}")
        return _done(request, f"Pressed {key}")

    async def _wait_for_element(self, request: ActionRequest) -> ActionResult:
        selector = _require(request.selector, "Wait action requires a selector")

        async def _operation(page: Any) -> None:
            LOGGER.info("Waiting for element with selector: %s to be %s", selector, request.state)
            await page.wait_for_selector(selector, state=request.state, timeout=request.timeout)

        await self._run(request, _operation)
        return _done(
            request,
            f"Element with selector: {selector} is now in state: {request.state}",
        )


def _require(value: Any, message: str) -> Any:
    if value is None or value == "" or value == []:
        raise BrowserActionError(message)
    return value


def _done(request: ActionRequest, summary: str) -> ActionResult:
    return ActionResult(success=True, summary=summary, kind=request.kind)
