"""Browser session management for form checks.

One FormBrowser owns one Playwright browser, one context and one page, so
tests running in parallel never share state.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from loguru import logger
from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from formcheck.config import Settings


# Diagnostic screenshot checkpoints, in capture order
CHECKPOINTS = ["pre-fill", "post-fill", "post-submit", "final"]

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/123.0.0.0 Safari/537.36"
)


def _slug(text: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]+", "-", text).strip("-").lower() or "run"


class FormBrowser:
    """Playwright browser, context and page for one test case"""

    def __init__(self, settings: Settings, correlation_id: str = "N/A", run_name: str = "form-check"):
        """
        Initialize the session (browser is not started yet).

        Args:
            settings: Run settings
            correlation_id: Unique ID for logging/tracing
            run_name: Prefix for screenshot and evidence filenames
        """
        self.settings = settings
        self.correlation_id = correlation_id
        self.run_name = _slug(run_name)
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.screenshots: Dict[str, str] = {}
        self._playwright = None

    async def start_browser(self, headless: Optional[bool] = None) -> Page:
        """
        Start Chromium with the configured headless, slow-mo and timeouts.

        Args:
            headless: Override ``settings.headless``
        """
        if headless is None:
            headless = self.settings.headless

        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(
            headless=headless,
            slow_mo=self.settings.slow_mo,
            args=["--disable-blink-features=AutomationControlled"],
        )
        self.context = await self.browser.new_context(
            user_agent=DESKTOP_USER_AGENT,
            viewport={"width": 1366, "height": 900},
            locale="nl-BE",
        )
        self.context.set_default_timeout(self.settings.action_timeout_ms)
        self.context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
        self.page = await self.context.new_page()
        self.screenshots = {}

        mode = "headless" if headless else "headed"
        logger.info(f"[{self.correlation_id}] Browser started in {mode} mode")
        return self.page

    async def _close_step(self, name: str, close) -> bool:
        try:
            await close()
            return True
        except Exception as e:
            logger.debug(f"[{self.correlation_id}] Error closing {name}: {e}")
            return False

    async def close_browser(self):
        """Close context, browser and driver; each step runs even if an earlier one fails"""
        closed = True
        try:
            if self.context:
                closed &= await self._close_step("context", self.context.close)

            if self.browser:
                closed &= await self._close_step("browser", self.browser.close)

            if self._playwright:
                closed &= await self._close_step("playwright", self._playwright.stop)

            if closed:
                logger.info(f"[{self.correlation_id}] Browser closed")
            else:
                logger.warning(f"[{self.correlation_id}] Browser closed with errors")
        finally:
            self.page = None
            self.context = None
            self.browser = None
            self._playwright = None

    async def take_screenshot(self, path: Optional[Path] = None, full_page: bool = False) -> bytes:
        """Take screenshot of current page, optionally saving it to ``path``"""
        if not self.page:
            raise ValueError("Browser not started")
        if path is None:
            return await self.page.screenshot(full_page=full_page)
        return await self.page.screenshot(path=str(path), full_page=full_page)

    def artifact_path(self, suffix: str, extension: str) -> Path:
        """Timestamped path under the artifacts directory"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        directory = Path(self.settings.artifacts_dir)
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"{self.run_name}-{_slug(suffix)}-{timestamp}.{extension}"

    async def capture_checkpoint(self, checkpoint: str, force: bool = False) -> Optional[str]:
        """
        Save a full-page screenshot for a diagnostic checkpoint.

        Capture failures are logged and never raised.

        Args:
            checkpoint: Checkpoint name, used in the filename
            force: Capture even when screenshots are disabled in settings

        Returns:
            Screenshot path, or None if disabled or failed
        """
        if not self.page or not (self.settings.screenshots or force):
            return None
        try:
            path = self.artifact_path(checkpoint, "png")
            await self.take_screenshot(path, full_page=True)
            self.screenshots[checkpoint] = str(path)
            logger.debug(f"[{self.correlation_id}] Screenshot saved: {path}")
            return str(path)
        except Exception as e:
            logger.warning(f"[{self.correlation_id}] Failed to save {checkpoint} screenshot: {e}")
            return None

    async def __aenter__(self) -> "FormBrowser":
        await self.start_browser()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close_browser()
        return False
