"""Integration tests: mitigate, fill, submit and classify against a local Elementor-style form"""

import pytest
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from formcheck.browser.challenge_bypass import ChallengeMitigator, MitigationStrategy
from formcheck.classifier.models import Verdict
from formcheck.classifier.outcome import (
    SubmissionRejectedError,
    SubmissionUnclearError,
    assert_submission_success,
)
from formcheck.classifier.verifier import SubmissionVerifier
from formcheck.forms.contact_form import ContactFormPage, sample_contact_data

pytestmark = pytest.mark.integration


async def submit_with_mode(form_browser, settings, mode, strategy=MitigationStrategy.MOCK_CLIENT):
    """Run one submission where the fixture answers according to ``mode``"""
    page = form_browser.page
    mitigator = ChallengeMitigator(page, settings, correlation_id="test")
    await mitigator.apply(strategy)

    form = ContactFormPage(page, settings)
    await form.navigate()
    await page.evaluate("(mode) => { window.__submitMode = mode; }", mode)
    await form.fill(sample_contact_data("Fixture"))

    verifier = SubmissionVerifier(form_browser, settings, form.evidence_fields)
    with verifier.recorder() as recorder:
        await form.submit()
        result = await verifier.verify(recorder)
    return result


class TestSubmissionOutcomes:
    """One test per server reaction the fixture can simulate"""

    @pytest.mark.asyncio
    async def test_success_message_and_reset(self, form_browser, fixture_settings):
        result = await submit_with_mode(form_browser, fixture_settings, "success")

        assert result.verdict == Verdict.SUCCESS
        assert result.evidence.dom_success_match
        assert result.evidence.matched_success_pattern == 'text="Bedankt voor uw bericht"'
        assert result.evidence.fields_cleared is True
        assert assert_submission_success(result) is result

    @pytest.mark.asyncio
    async def test_server_error_is_failure(self, form_browser, fixture_settings):
        result = await submit_with_mode(form_browser, fixture_settings, "error")

        assert result.verdict == Verdict.FAILURE
        assert result.evidence.fields_cleared is False
        with pytest.raises(SubmissionRejectedError, match="Er is een fout opgetreden"):
            assert_submission_success(result)

    @pytest.mark.asyncio
    async def test_cleared_fields_alone_is_success(self, form_browser, fixture_settings):
        result = await submit_with_mode(form_browser, fixture_settings, "clear")

        assert result.verdict == Verdict.SUCCESS
        assert result.success_signals == ["fields_cleared"]

    @pytest.mark.asyncio
    async def test_redirect_alone_is_success(self, form_browser, fixture_settings):
        result = await submit_with_mode(form_browser, fixture_settings, "redirect")

        assert result.verdict == Verdict.SUCCESS
        assert result.evidence.url_redirected
        assert result.evidence.fields_cleared is None
        assert result.success_signals == ["url_redirected"]
        assert result.evidence.current_url.endswith("thank_you.html")

    @pytest.mark.asyncio
    async def test_no_reaction_is_unclear(self, form_browser, fixture_settings):
        result = await submit_with_mode(form_browser, fixture_settings, "silent")

        assert result.verdict == Verdict.UNCLEAR
        with pytest.raises(SubmissionUnclearError):
            assert_submission_success(result)

    @pytest.mark.asyncio
    async def test_visible_error_behind_hidden_duplicate(self, form_browser, fixture_settings):
        """A hidden .error-message earlier in the form does not mask a visible one"""
        result = await submit_with_mode(form_browser, fixture_settings, "field-error")

        assert result.evidence.fields_cleared is True
        assert result.verdict == Verdict.FAILURE
        assert result.reason == ".error-message"

    @pytest.mark.asyncio
    async def test_blocked_widget_is_rejected_by_server(self, form_browser, fixture_settings):
        """Blocking assets alone leaves no token, so the form reports a human check"""
        result = await submit_with_mode(
            form_browser, fixture_settings, "success", strategy=MitigationStrategy.BLOCK_ASSETS
        )

        assert result.verdict == Verdict.FAILURE
        assert result.reason == 'text="Please verify that you are human"'


class TestDiagnostics:
    """Screenshots and evidence artifacts"""

    @pytest.mark.asyncio
    async def test_checkpoint_screenshots(self, form_browser, fixture_settings):
        await form_browser.capture_checkpoint("pre-fill")
        result = await submit_with_mode(form_browser, fixture_settings, "success")

        assert "post-submit" in result.evidence.screenshots
        assert "final" in result.evidence.screenshots
        assert Path(result.evidence.screenshots["final"]).exists()

    @pytest.mark.asyncio
    async def test_unclear_writes_evidence_file(self, form_browser, fixture_settings):
        result = await submit_with_mode(form_browser, fixture_settings, "silent")

        evidence_file = Path(result.evidence.screenshots["evidence"])
        assert evidence_file.exists()
        content = evidence_file.read_text(encoding="utf-8")
        assert "server.validation@test.com" not in content
