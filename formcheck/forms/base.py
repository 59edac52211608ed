"""Base page object for a single form under test.

Form pages provide selectors, navigation and field interaction. They do not
judge outcomes; the outcome classifier does that from collected evidence.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from formcheck.config import Settings


class BaseFormPage(ABC):
    """Abstract base class for form page objects"""

    def __init__(self, page: Page, settings: Settings, name: str):
        """
        Initialize form page

        Args:
            page: Playwright page
            settings: Run settings
            name: Form identifier for logging
        """
        self.page = page
        self.settings = settings
        self.name = name
        logger.debug(f"Initialized {name} form page")

    @property
    def url(self) -> str:
        return self.settings.form_url

    @property
    @abstractmethod
    def selectors(self) -> Dict[str, str]:
        """Selector map; must include 'form', 'name', 'email', 'message' and 'submit'"""

    @property
    def evidence_fields(self) -> Dict[str, str]:
        """Locators the evidence collector reads back to detect cleared fields"""
        return {field: self.selectors[field] for field in ("name", "email", "message")}

    @abstractmethod
    async def fill(self, form_data: Dict[str, Any]):
        """Fill the form from a data dict"""

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(PlaywrightError),
        reraise=True
    )
    async def goto(self, url: Optional[str] = None, wait_until: str = "domcontentloaded"):
        """Navigate to the form, retrying transient navigation errors"""
        target = url or self.url
        logger.info(f"Navigating to {self.name}: {target}")
        await self.page.goto(target, wait_until=wait_until)

    async def wait_for_element(self, selector: str, timeout: Optional[int] = None):
        """Wait for an element to become visible"""
        await self.page.locator(selector).first.wait_for(
            state="visible",
            timeout=timeout or self.settings.action_timeout_ms,
        )

    async def is_element_visible(self, selector: str, timeout: int = 5000) -> bool:
        """Bounded visibility check; never raises"""
        try:
            await self.page.locator(selector).first.wait_for(state="visible", timeout=timeout)
            return True
        except Exception:
            return False

    async def get_element_text(self, selector: str) -> str:
        try:
            text = await self.page.locator(selector).first.text_content()
            return (text or "").strip()
        except Exception:
            return ""

    async def scroll_to_element(self, selector: str):
        try:
            await self.page.locator(selector).first.scroll_into_view_if_needed(timeout=3000)
        except Exception as e:
            logger.debug(f"Could not scroll to {selector}: {e}")

    async def fill_text_field(self, selector: str, value: str):
        """Scroll into view, clear and fill a text input or textarea"""
        locator = self.page.locator(selector).first
        await self.scroll_to_element(selector)
        await locator.fill("")
        await locator.fill(value)
        logger.debug(f"Filled {selector}")

    async def submit(self):
        """Click the submit button once it is visible and enabled"""
        selector = self.selectors["submit"]
        await self.scroll_to_element(selector)
        button = self.page.locator(selector).first
        await button.wait_for(state="visible")
        await button.click()
        logger.info(f"{self.name} form submitted, waiting for response")

    async def get_form_values(self) -> Dict[str, Optional[str]]:
        """Current values of the text fields; unreadable fields are None"""
        values: Dict[str, Optional[str]] = {}
        for field in ("name", "email", "phone", "message"):
            selector = self.selectors.get(field)
            if not selector:
                continue
            try:
                values[field] = await self.page.locator(selector).first.input_value(timeout=2000)
            except Exception:
                values[field] = None
        return values

    async def clear_form(self):
        for field in ("name", "email", "phone", "message"):
            selector = self.selectors.get(field)
            if not selector:
                continue
            try:
                await self.page.locator(selector).first.fill("")
            except Exception as e:
                logger.debug(f"Could not clear {field}: {e}")

    async def get_validation_errors(self, error_selectors: List[str]) -> List[str]:
        """Visible texts of elements matching any of ``error_selectors``"""
        errors: List[str] = []
        for selector in error_selectors:
            try:
                locator = self.page.locator(selector)
                for i in range(await locator.count()):
                    element = locator.nth(i)
                    if await element.is_visible():
                        text = (await element.text_content() or "").strip()
                        if text and text not in errors:
                            errors.append(text)
            except Exception:
                continue
        return errors
