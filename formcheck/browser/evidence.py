"""Post-submission evidence collection.

Every probe here is wrapped so that a missing element, a detached frame or a
navigation in flight reads as "not found" (or "unknown" for field values)
instead of raising. Only a failure of the collection step as a whole is
recorded, and even then it is reported on the evidence object rather than
propagated.
"""

import asyncio
from typing import Dict, List, Optional

from loguru import logger
from playwright.async_api import Locator, Page

from formcheck.classifier.models import SubmissionEvidence
from formcheck.classifier.patterns import (
    IndicatorPattern,
    PatternKind,
    SelectorType,
    patterns_for,
)
from formcheck.config import Settings
from .network import NetworkRecorder


# Fields whose read-back decides ``fields_cleared``
REQUIRED_FIELDS = ["name", "email", "message"]

# Field locators used when the form page object provides none
DEFAULT_FIELD_SELECTORS: Dict[str, str] = {
    "name": 'input[name*="naam"], input[name*="name"], input[name*="form_fields[name]"]',
    "email": 'input[name*="email"], input[name*="form_fields[email]"]',
    "message": 'textarea[name*="bericht"], textarea[name*="message"], textarea[name*="form_fields[message]"]',
}

POLL_INTERVAL_MS = 500


def are_fields_cleared(field_values: Dict[str, Optional[str]]) -> Optional[bool]:
    """
    Decide whether the required fields were emptied.

    Args:
        field_values: Read-back values; None means the field was unreadable

    Returns:
        True if all required fields are empty, False if any holds text,
        None if any required field could not be read
    """
    values = [field_values.get(field) for field in REQUIRED_FIELDS]
    if any(value is None for value in values):
        return None
    return all(value.strip() == "" for value in values)


def is_redirected(url: Optional[str], form_paths: List[str]) -> bool:
    """True if ``url`` no longer contains any canonical form path"""
    if not url or not form_paths:
        return False
    return not any(path in url for path in form_paths)


class EvidenceCollector:
    """Read observable post-submission state from a live page"""

    def __init__(
        self,
        page: Page,
        settings: Settings,
        field_selectors: Optional[Dict[str, str]] = None,
        indicator_table: Optional[List[IndicatorPattern]] = None
    ):
        self.page = page
        self.settings = settings
        self.field_selectors = field_selectors or DEFAULT_FIELD_SELECTORS
        self.indicator_table = indicator_table
        self.diagnostics: List[str] = []

    def _note(self, message: str):
        self.diagnostics.append(message)
        logger.debug(message)

    def _locator_for(self, entry: IndicatorPattern) -> Locator:
        if entry.selector_type == SelectorType.TEXT:
            return self.page.get_by_text(entry.pattern, exact=False).filter(visible=True).first
        # Hidden duplicates earlier in the DOM must not shadow a visible match
        return self.page.locator(entry.pattern).filter(visible=True).first

    async def probe_visible(self, locator: Locator) -> bool:
        """Bounded visibility probe; absence or any probe error is False"""
        try:
            await locator.wait_for(state="visible", timeout=self.settings.probe_timeout_ms)
            return True
        except Exception:
            return False

    async def find_indicator(self, kind: PatternKind) -> Optional[IndicatorPattern]:
        """
        Return the first visible indicator of ``kind`` in table order.

        Args:
            kind: Success or error

        Returns:
            The matching pattern, or None
        """
        for entry in patterns_for(kind, table=self.indicator_table):
            try:
                locator = self._locator_for(entry)
            except Exception as e:
                self._note(f"Could not build locator for {entry.label}: {e}")
                continue
            if await self.probe_visible(locator):
                logger.debug(f"{kind.value} indicator visible: {entry.label}")
                return entry
        return None

    async def read_field_values(self) -> Dict[str, Optional[str]]:
        """Read back the required fields; unreadable fields are None"""
        values: Dict[str, Optional[str]] = {}
        for field in REQUIRED_FIELDS:
            selector = self.field_selectors.get(field)
            if not selector:
                values[field] = None
                continue
            try:
                locator = self.page.locator(selector).first
                if await locator.count() == 0:
                    values[field] = None
                    continue
                values[field] = await locator.input_value(timeout=self.settings.probe_timeout_ms)
            except Exception as e:
                self._note(f"Field '{field}' unreadable: {e}")
                values[field] = None
        return values

    async def _collect_signals(self) -> SubmissionEvidence:
        current_url = self.page.url
        redirected = is_redirected(current_url, self.settings.form_paths)

        error = await self.find_indicator(PatternKind.ERROR)
        success = await self.find_indicator(PatternKind.SUCCESS)

        if redirected:
            # Field locators belong to the form page, which is gone
            field_values: Dict[str, Optional[str]] = {}
            fields_cleared = None
        else:
            field_values = await self.read_field_values()
            fields_cleared = are_fields_cleared(field_values)

        return SubmissionEvidence(
            dom_success_match=success is not None,
            matched_success_pattern=success.label if success else None,
            dom_error_match=error is not None,
            matched_error_pattern=error.label if error else None,
            fields_cleared=fields_cleared,
            field_values=field_values,
            url_redirected=redirected,
            current_url=current_url,
        )

    async def collect(self, recorder: Optional[NetworkRecorder] = None) -> SubmissionEvidence:
        """
        Collect one evidence snapshot.

        Args:
            recorder: Network recorder attached before the submit click

        Returns:
            SubmissionEvidence; ``collection_failed`` is set if the page died
        """
        self.diagnostics = []
        try:
            evidence = await self._collect_signals()
        except Exception as e:
            logger.warning(f"Evidence collection failed: {e}")
            self._note(f"Evidence collection failed: {e}")
            evidence = SubmissionEvidence(collection_failed=True)
            try:
                evidence.current_url = self.page.url
            except Exception:
                pass

        if recorder is not None:
            evidence.captured_requests = recorder.requests
            evidence.captured_responses = recorder.responses
            if recorder.dropped:
                self._note(f"Network capture buffer full, {recorder.dropped} entries dropped")

        evidence.diagnostics = list(self.diagnostics)
        return evidence

    async def settle(self, recorder: Optional[NetworkRecorder] = None) -> Optional[SubmissionEvidence]:
        """
        Wait for asynchronous server processing after the submit click.

        In ``fixed`` mode this sleeps for the settle delay and returns None.
        In ``poll`` mode it samples evidence every POLL_INTERVAL_MS and stops
        early once two consecutive snapshots agree and carry a signal. Without
        that, the returned snapshot is always one whose collection started at
        or after the deadline, so it never predates the fixed-mode sample.
        """
        delay_s = self.settings.settle_delay_ms / 1000

        if self.settings.settle_mode != "poll":
            logger.debug(f"Waiting {self.settings.settle_delay_ms}ms for server processing")
            await asyncio.sleep(delay_s)
            return None

        loop = asyncio.get_running_loop()
        deadline = loop.time() + delay_s
        previous: Optional[tuple] = None
        evidence: Optional[SubmissionEvidence] = None

        while True:
            started = loop.time()
            evidence = await self.collect(recorder)
            snapshot = evidence.signal_snapshot()
            has_signal = evidence.dom_error_match or evidence.dom_success_match \
                or evidence.url_redirected or evidence.fields_cleared is True
            if evidence.collection_failed:
                return evidence
            if started >= deadline:
                return evidence
            if has_signal and snapshot == previous:
                logger.debug("Submission signals stable, ending settle early")
                return evidence
            previous = snapshot

            remaining = deadline - loop.time()
            if remaining > 0:
                await asyncio.sleep(min(POLL_INTERVAL_MS / 1000, remaining))
