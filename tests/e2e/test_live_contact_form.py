"""Live end-to-end submission of the contact form.

Submits a real message, so it only runs with RUN_LIVE_TESTS=true.
"""

import uuid

import pytest
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from formcheck.browser.challenge_bypass import ChallengeMitigator
from formcheck.browser.session import FormBrowser
from formcheck.classifier.outcome import assert_submission_success, describe
from formcheck.classifier.verifier import SubmissionVerifier
from formcheck.forms.contact_form import ContactFormPage, sample_contact_data

pytestmark = [pytest.mark.e2e, pytest.mark.slow]


@pytest.mark.asyncio
async def test_contact_form_submission_is_processed(live_settings, record_property):
    """Fill and submit the live form; the server must confirm processing"""
    correlation_id = uuid.uuid4().hex[:8]

    async with FormBrowser(live_settings, correlation_id=correlation_id, run_name="live-contact") as session:
        mitigator = ChallengeMitigator(session.page, live_settings, correlation_id=correlation_id)
        await mitigator.apply_all()
        await mitigator.inject_test_mode_flag()

        form = ContactFormPage(session.page, live_settings)
        await form.navigate()
        await session.capture_checkpoint("pre-fill")
        await form.fill(sample_contact_data(f"E2E Test {correlation_id}"))
        await session.capture_checkpoint("post-fill")

        verifier = SubmissionVerifier(session, live_settings, form.evidence_fields)
        with verifier.recorder() as recorder:
            await form.submit()
            result = await verifier.verify(recorder)

    record_property("verdict", result.verdict.value)
    record_property("summary", describe(result))
    for name, path in result.evidence.screenshots.items():
        record_property(f"artifact_{name}", path)

    assert_submission_success(result)


@pytest.mark.asyncio
async def test_contact_form_loads(live_settings):
    """The live form renders its required fields"""
    async with FormBrowser(live_settings, run_name="live-load") as session:
        await ChallengeMitigator(session.page, live_settings).apply_all()
        form = ContactFormPage(session.page, live_settings)
        await form.navigate()

        assert await form.is_form_ready()
