"""URL navigation with retry backoff and history operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from ..browser.popups import PopupSuppressor
from ..config import NavigationConfig
from ..models import DEFAULT_ACTION_TIMEOUT_MS, ActionKind, ActionResult
from .action_executor import ActionExecutor, Sleeper

LOGGER = logging.getLogger(__name__)


class NavigationController:
    """Navigate the session page, retrying slow or failing loads."""

    def __init__(
        self,
        executor: ActionExecutor,
        config: Optional[NavigationConfig] = None,
        *,
        popups: Optional[PopupSuppressor] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._executor = executor
        self._config = config or NavigationConfig()
        self._popups = popups
        self._sleep = sleep

    def backoff_ms(self, retry_index: int) -> int:
        """Delay before retry ``retry_index`` (zero based): 5s, 10s, 15s..."""

        return self._config.backoff_base_ms * (retry_index + 1)

    async def goto(
        self,
        page: Any,
        url: str,
        *,
        wait_until: str = "domcontentloaded",
        wait_for_dom_content: bool = True,
    ) -> bool:
        """Load ``url`` in ``page``; return ``False`` once retries are exhausted.

        The load itself has no timeout, so only the retry budget bounds how
        long this takes.
        """

        max_retries = self._config.max_retries
        retry_index = 0
        while True:
            try:
                async with page.expect_navigation(wait_until=wait_until, timeout=0):
                    await page.goto(url, wait_until=wait_until, timeout=0)
                LOGGER.info("Navigate to URL: %s", url)
                break
            except Exception as exc:
                LOGGER.error("Error occurred while navigating to URL: %s", exc)
                if retry_index >= max_retries:
                    LOGGER.error(
                        "Giving up navigating to URL %s after %s retries",
                        url,
                        max_retries,
                    )
                    return False
                wait_ms = self.backoff_ms(retry_index)
                retry_index += 1
                LOGGER.info(
                    "Failed to navigate to URL %s, waiting %sms and retrying. Retry # %s",
                    url,
                    wait_ms,
                    retry_index,
                )
                await self._sleep(wait_ms / 1000)

        if wait_for_dom_content:
            try:
                await page.wait_for_load_state(
                    "domcontentloaded",
                    timeout=self._config.dom_content_timeout_ms,
                )
            except Exception as exc:
                LOGGER.warning("DOM content not ready for %s: %s", url, exc)

        if self._popups is not None and self._config.suppress_popups:
            await self._popups.suppress(page)
        return True

    async def navigate(self, url: str, wait_until: str = "domcontentloaded") -> ActionResult:
        async def _navigate(page: Any) -> bool:
            return await self.goto(page, url, wait_until=wait_until)

        navigated = await self._executor.execute(_navigate)
        if not navigated:
            return ActionResult(
                success=False,
                summary=(
                    f"Failed to navigate to {url} after "
                    f"{self._config.max_retries} retries"
                ),
                kind=ActionKind.NAVIGATE,
            )
        return ActionResult(success=True, summary=f"Navigated to {url}", kind=ActionKind.NAVIGATE)

    async def go_back(self, timeout: float = DEFAULT_ACTION_TIMEOUT_MS) -> ActionResult:
        async def _go_back(page: Any) -> None:
            await page.go_back(timeout=timeout)

        await self._executor.execute(_go_back)
        return ActionResult(
            success=True,
            summary="Navigated back in browser history",
            kind=ActionKind.GO_BACK,
        )

    async def go_forward(self, timeout: float = DEFAULT_ACTION_TIMEOUT_MS) -> ActionResult:
        async def _go_forward(page: Any) -> None:
            await page.go_forward(timeout=timeout)

        await self._executor.execute(_go_forward)
        return ActionResult(
            success=True,
            summary="Navigated forward in browser history",
            kind=ActionKind.GO_FORWARD,
        )

    async def refresh(self, timeout: float = DEFAULT_ACTION_TIMEOUT_MS) -> ActionResult:
        async def _refresh(page: Any) -> None:
            await page.reload(timeout=timeout)

        await self._executor.execute(_refresh)
        return ActionResult(
            success=True,
            summary="Page refreshed successfully",
            kind=ActionKind.REFRESH,
        )
