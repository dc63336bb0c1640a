"""Best-effort suppression of dialogs and consent banners."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..config import DEFAULT_CONSENT_SELECTORS, PopupConfig

LOGGER = logging.getLogger(__name__)


class PopupSuppressor:
    """Dismiss native dialogs and click away cookie/consent banners.

    Nothing done here is allowed to fail the surrounding action: every
    error is logged and swallowed.
    """

    def __init__(self, config: Optional[PopupConfig] = None) -> None:
        self._config = config or PopupConfig()
        self._attached: list[Any] = []

    @property
    def selectors(self) -> Sequence[str]:
        return self._config.selectors or DEFAULT_CONSENT_SELECTORS

    def attach(self, page: Any) -> None:
        """Dismiss every alert/confirm/prompt the page opens from now on."""

        self._attached = [item for item in self._attached if not item.is_closed()]
        if any(item is page for item in self._attached):
            return
        page.on("dialog", _dismiss_dialog)
        self._attached.append(page)

    async def dismiss_banners(self, page: Any) -> Optional[str]:
        """Click the first visible consent button; return its selector."""

        for selector in self.selectors:
            button = page.locator(selector).first
            try:
                if await button.count() == 0 or not await button.is_visible():
                    continue
            except Exception as exc:
                LOGGER.debug("Could not inspect consent selector %s: %s", selector, exc)
                continue
            LOGGER.info("Found consent button with selector: %s", selector)
            try:
                await button.click(timeout=self._config.click_timeout_ms)
            except Exception as exc:
                LOGGER.info("Failed to click consent button: %s", exc)
            return selector
        return None

    async def suppress(self, page: Any) -> Optional[str]:
        if not self._config.enabled:
            return None
        if self._config.dismiss_dialogs:
            try:
                self.attach(page)
            except Exception as exc:
                LOGGER.warning("Failed to register dialog handler: %s", exc)
        return await self.dismiss_banners(page)


async def _dismiss_dialog(dialog: Any) -> None:
    LOGGER.info("Dialog appeared: %s - %s", dialog.type, dialog.message)
    try:
        await dialog.dismiss()
    except Exception as exc:
        LOGGER.info("Failed to dismiss dialog: %s", exc)
