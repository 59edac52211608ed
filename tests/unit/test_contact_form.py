"""Unit tests for the contact form page object"""

import pytest
from pathlib import Path
import sys
from unittest.mock import AsyncMock, MagicMock

from playwright.async_api import Error as PlaywrightError

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from formcheck.config import Settings
from formcheck.forms.contact_form import (
    CONTACT_FORM_SELECTORS,
    INTEREST_OPTIONS,
    ContactFormPage,
    resolve_field_value,
    sample_contact_data,
)


def make_page():
    """Page whose locators record fill() calls per selector"""
    page = MagicMock()
    locators = {}

    def locator(selector):
        if selector not in locators:
            loc = MagicMock()
            loc.first = loc
            loc.fill = AsyncMock()
            loc.scroll_into_view_if_needed = AsyncMock()
            loc.wait_for = AsyncMock()
            loc.click = AsyncMock()
            loc.input_value = AsyncMock(return_value="")
            loc.count = AsyncMock(return_value=0)
            locators[selector] = loc
        return locators[selector]

    page.locator = MagicMock(side_effect=locator)
    page.goto = AsyncMock()
    page.locators = locators
    return page


@pytest.fixture
def settings():
    return Settings(form_url="https://jbit.be/contact-nl/")


class TestFieldAliases:
    """Test Dutch/English field keys"""

    def test_english_key(self):
        assert resolve_field_value({"name": "Jan"}, "name") == "Jan"

    def test_dutch_key(self):
        assert resolve_field_value({"naam": "Jan", "bericht": "Hallo"}, "message") == "Hallo"

    def test_missing_key(self):
        assert resolve_field_value({}, "phone") is None

    def test_sample_data(self):
        data = sample_contact_data("Nightly")

        assert data["naam"].startswith("Nightly")
        assert "@" in data["email"]
        assert data["interesse"][0] in INTEREST_OPTIONS


class TestContactFormPage:
    """Test page object behaviour with a mocked page"""

    def test_evidence_fields(self, settings):
        form = ContactFormPage(make_page(), settings)

        assert form.evidence_fields == {
            "name": CONTACT_FORM_SELECTORS["name"],
            "email": CONTACT_FORM_SELECTORS["email"],
            "message": CONTACT_FORM_SELECTORS["message"],
        }

    @pytest.mark.asyncio
    async def test_fill_uses_dutch_keys(self, settings):
        page = make_page()
        form = ContactFormPage(page, settings)

        await form.fill({"naam": "Jan", "email": "jan@example.be", "bericht": "Hallo"})

        name_field = page.locators[CONTACT_FORM_SELECTORS["name"]]
        message_field = page.locators[CONTACT_FORM_SELECTORS["message"]]
        name_field.fill.assert_awaited_with("Jan")
        message_field.fill.assert_awaited_with("Hallo")
        assert CONTACT_FORM_SELECTORS["phone"] not in page.locators

    @pytest.mark.asyncio
    async def test_submit_clicks_button(self, settings):
        page = make_page()
        form = ContactFormPage(page, settings)

        await form.submit()

        page.locators[CONTACT_FORM_SELECTORS["submit"]].click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_goto_defaults_to_form_url(self, settings):
        page = make_page()
        form = ContactFormPage(page, settings)

        await form.goto()

        page.goto.assert_awaited_once_with("https://jbit.be/contact-nl/", wait_until="domcontentloaded")

    @pytest.mark.asyncio
    async def test_goto_retries_transient_errors(self, settings):
        page = make_page()
        page.goto = AsyncMock(side_effect=[PlaywrightError("net::ERR_CONNECTION_RESET"), None])
        form = ContactFormPage(page, settings)

        await form.goto()

        assert page.goto.await_count == 2

    @pytest.mark.asyncio
    async def test_unknown_interest_ignored(self, settings):
        form = ContactFormPage(make_page(), settings)
        assert await form.select_interest_options(["Onbekend"]) == 0
