"""Playwright-powered browser launcher."""

from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.async_api import async_playwright

from ..config import BrowserConfig
from .base import BrowserLauncher, SessionHandle

LOGGER = logging.getLogger(__name__)


class PlaywrightLauncher(BrowserLauncher):
    """Launch Chromium through the Playwright async API."""

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self._config = config or BrowserConfig()

    async def launch(self) -> SessionHandle:
        LOGGER.info("Launching new browser instance...")
        driver = await async_playwright().start()
        try:
            launch_kwargs: dict[str, Any] = {
                "headless": self._config.headless,
                "args": list(self._config.launch_args),
            }
            if self._config.channel:
                launch_kwargs["channel"] = self._config.channel
            browser = await driver.chromium.launch(**launch_kwargs)
            context = await browser.new_context(
                viewport={
                    "width": self._config.viewport_width,
                    "height": self._config.viewport_height,
                },
                device_scale_factor=self._config.device_scale_factor,
                accept_downloads=self._config.accept_downloads,
            )
            page = await context.new_page()
        except Exception:
            await driver.stop()
            raise
        LOGGER.info("Browser launched successfully")
        return SessionHandle(browser=browser, context=context, page=page, driver=driver)
