from __future__ import annotations

import logging
import os

from playwright.async_api import (
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from ..config import settings


class BrowserSession:
    def __init__(
        self,
        page_id: str = "default",
        profile_base: str | None = None,
        chrome_path: str | None = None,
        headless: bool | None = None,
    ) -> None:
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self._playwright: Playwright | None = None
        self.user_data_dir = os.path.join(
            os.path.expanduser(profile_base or settings.profile_base), page_id
        )
        self.chrome_path = chrome_path or settings.chrome_path
        self.headless = settings.headless if headless is None else headless

    async def __aenter__(self) -> "BrowserSession":
        os.makedirs(self.user_data_dir, exist_ok=True)
        self._playwright = await async_playwright().start()
        self.context = await self._playwright.chromium.launch_persistent_context(
            user_data_dir=self.user_data_dir,
            headless=self.headless,
            executable_path=self.chrome_path,
            viewport={"width": settings.viewport_width, "height": settings.viewport_height},
            args=["--disable-blink-features=AutomationControlled"],
        )
        self.page = self.context.pages[0] if self.context.pages else await self.context.new_page()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.context:
            await self.context.close()
        if self._playwright:
            await self._playwright.stop()

    async def goto(self, url: str, wait_ms: int | None = None) -> None:
        """
        Navigate to a URL and give the login page time to render.

        Network idle is never awaited because single-page apps may not reach it.
        """
        if not self.page:
            raise RuntimeError("Browser page is not initialized. Use within an async context manager.")

        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=settings.navigation_timeout_ms)
        except Exception as exc:
            logging.warning("goto_failed url=%s reason=%s, continuing", url, exc)

        wait_ms = settings.initial_wait_ms if wait_ms is None else wait_ms
        if wait_ms > 0:
            await self.page.wait_for_timeout(wait_ms)

    def __repr__(self) -> str:
        return f"BrowserSession(profile={self.user_data_dir!r}, headless={self.headless})"
