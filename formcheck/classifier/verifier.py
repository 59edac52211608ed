"""Submission verification: settle, collect evidence, classify, attach diagnostics"""

import json
from typing import Dict, Optional

from loguru import logger

from formcheck.browser.evidence import EvidenceCollector
from formcheck.browser.network import NetworkRecorder
from formcheck.browser.sanitize import sanitize
from formcheck.browser.session import FormBrowser
from formcheck.config import Settings
from .models import ClassificationResult, Verdict
from .outcome import classify, describe


class SubmissionVerifier:
    """Decide the outcome of one submission on a live session"""

    def __init__(
        self,
        session: FormBrowser,
        settings: Settings,
        field_selectors: Optional[Dict[str, str]] = None
    ):
        self.session = session
        self.settings = settings
        self.collector = EvidenceCollector(session.page, settings, field_selectors)

    def recorder(self) -> NetworkRecorder:
        """Network recorder to wrap the submit click in"""
        return NetworkRecorder(self.session.page, limit=self.settings.network_capture_limit)

    async def verify(self, recorder: Optional[NetworkRecorder] = None) -> ClassificationResult:
        """
        Wait for the settle delay, then collect and classify evidence.

        On every non-success path a final screenshot (even with screenshots
        disabled) and the sanitised evidence JSON are written to the
        artifacts directory.

        Args:
            recorder: Recorder attached before the submit click

        Returns:
            ClassificationResult
        """
        evidence = await self.collector.settle(recorder)
        await self.session.capture_checkpoint("post-submit")
        if evidence is None:
            evidence = await self.collector.collect(recorder)

        result = classify(evidence, require_successful_response=self.settings.require_2xx_response)

        # Non-success paths always get a final screenshot
        await self.session.capture_checkpoint("final", force=not result.succeeded)
        result.evidence.screenshots = dict(self.session.screenshots)

        if result.verdict == Verdict.SUCCESS:
            logger.info(f"[{self.session.correlation_id}] {describe(result)}")
        else:
            logger.warning(f"[{self.session.correlation_id}] {describe(result)}")
            self.write_evidence(result)

        return result

    def write_evidence(self, result: ClassificationResult) -> Optional[str]:
        """
        Write the sanitised result as JSON next to the screenshots.

        Returns:
            Path of the JSON file, or None on failure
        """
        try:
            path = self.session.artifact_path(f"evidence-{result.verdict.value}", "json")
            payload = sanitize(result.model_dump(mode="json"))
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            result.evidence.screenshots["evidence"] = str(path)
            logger.info(f"[{self.session.correlation_id}] Evidence written: {path}")
            return str(path)
        except Exception as e:
            logger.warning(f"[{self.session.correlation_id}] Failed to write evidence: {e}")
            return None
