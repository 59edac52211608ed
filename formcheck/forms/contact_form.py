"""JBIT Elementor contact form (https://jbit.be/contact-nl/).

Field names follow Elementor's ``form_fields[...]`` convention, with id
fallbacks. Data dicts may use English or Dutch keys (name/naam,
phone/telefoon, message/bericht).
"""

from typing import Any, Dict, List

from loguru import logger
from playwright.async_api import Page

from formcheck.config import Settings
from .base import BaseFormPage


CONTACT_FORM_SELECTORS = {
    "form": ".elementor-form",
    "name": "input[name='form_fields[name]'], #form-field-name",
    "email": "input[name='form_fields[email]'], #form-field-email",
    "phone": "input[name='form_fields[phone]'], #form-field-phone",
    "message": "textarea[name='form_fields[message]'], #form-field-message",
    "interest": "input[name='form_fields[field_a3f7052][]']",
    "submit": "button.elementor-button[type='submit'], button[type='submit'], button:has-text('Verstuur'), button:has-text('Send')",
    "field_error": ".elementor-field-error, .field-error, .elementor-field-required",
    "error_message": ".elementor-message-danger, .error-message, .form-error",
    "loading": ".elementor-form-loading, .loading, .spinner",
}

INTEREST_OPTIONS = [
    "Process Integratie en Automatisatie",
    "Advies op maat",
    "Webdesign",
    "Gepersonaliseerde Webhosting",
]

# Dutch and English keys accepted for each field
FIELD_ALIASES = {
    "name": ("name", "naam"),
    "email": ("email",),
    "phone": ("phone", "telefoon"),
    "message": ("message", "bericht"),
}


def resolve_field_value(form_data: Dict[str, Any], field: str):
    """Return the first non-empty value under any alias of ``field``"""
    for key in FIELD_ALIASES[field]:
        value = form_data.get(key)
        if value is not None:
            return value
    return None


class ContactFormPage(BaseFormPage):
    """Page object for the Elementor contact form"""

    def __init__(self, page: Page, settings: Settings):
        super().__init__(page, settings, name="contact")

    @property
    def selectors(self) -> Dict[str, str]:
        return CONTACT_FORM_SELECTORS

    async def navigate(self):
        """Navigate to the contact form and wait until it is interactive"""
        await self.goto()
        await self.wait_for_form_load()

    async def wait_for_form_load(self):
        """Wait for the form container, key fields and submit button"""
        await self.wait_for_element(self.selectors["form"])
        for field in ("name", "email", "message", "submit"):
            await self.wait_for_element(self.selectors[field])

        try:
            await self.page.locator(self.selectors["loading"]).first.wait_for(state="hidden", timeout=5000)
        except Exception:
            # Loading indicator might not exist
            pass

        logger.info("Contact form loaded")

    async def is_form_ready(self) -> bool:
        """True if required elements are visible and the form is not loading"""
        for field in ("name", "email", "message", "submit"):
            if not await self.is_element_visible(self.selectors[field], 2000):
                logger.debug(f"Required element not ready: {self.selectors[field]}")
                return False

        if await self.is_element_visible(self.selectors["loading"], 500):
            logger.debug("Form is still loading")
            return False

        return True

    async def fill(self, form_data: Dict[str, Any]):
        """
        Fill the contact form

        Args:
            form_data: Field values keyed by English or Dutch field name,
                plus an optional 'interesse'/'interests' list
        """
        for field in ("name", "email", "phone", "message"):
            value = resolve_field_value(form_data, field)
            if value is None:
                continue
            await self.fill_text_field(self.selectors[field], str(value))

        interests = form_data.get("interesse") or form_data.get("interests")
        if interests:
            await self.select_interest_options(list(interests))

        logger.info("Contact form filled")

    async def select_interest_options(self, interests: List[str]) -> int:
        """
        Tick interest checkboxes by option text.

        Returns:
            Number of options selected
        """
        selected = 0
        for interest in interests:
            if interest not in INTEREST_OPTIONS:
                logger.warning(f"Unknown interest option: {interest}")
                continue

            candidates = [
                f"{self.selectors['interest']}[value='{interest}']",
                f"input[type='checkbox'][value='{interest}']",
                f"label:has-text('{interest}') input[type='checkbox']",
            ]

            found = False
            for selector in candidates:
                try:
                    element = self.page.locator(selector).first
                    if await element.count() and await element.is_visible():
                        await element.check()
                        found = True
                        break
                except Exception:
                    continue

            if not found:
                try:
                    await self.page.get_by_text(interest, exact=True).first.click(timeout=3000)
                    found = True
                except Exception:
                    logger.warning(f"Could not select interest option: {interest}")

            if found:
                selected += 1
                logger.debug(f"Selected interest: {interest}")

        return selected

    async def validation_errors(self) -> List[str]:
        """Visible field and form error texts"""
        return await self.get_validation_errors([
            self.selectors["field_error"],
            self.selectors["error_message"],
        ])


def sample_contact_data(tag: str = "E2E Test") -> Dict[str, Any]:
    """Valid submission data in the form's own (Dutch) field names"""
    return {
        "naam": f"{tag} Server Validation",
        "email": "server.validation@test.com",
        "telefoon": "06-87654321",
        "bericht": (
            "This is a server processing validation test. If you receive this, "
            "the form is working correctly and bypassing the challenge."
        ),
        "interesse": [INTEREST_OPTIONS[0]],
    }
