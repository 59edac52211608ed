"""Submission outcome classification.

The decision procedure is priority-ordered and short-circuiting:

1. A visible error indicator means Failure, whatever else is true.
2. Otherwise any one positive signal (success indicator, cleared fields,
   redirect away from the form) means Success.
3. Otherwise the outcome is Unclear. Absence of a success signal is not a
   confirmed rejection.

Captured network traffic is informational unless the caller opts into
``require_successful_response``.
"""

from typing import List

from loguru import logger

from .models import ClassificationResult, SubmissionEvidence, Verdict


class EvidenceCollectionError(RuntimeError):
    """The browser session died before evidence could be read"""


class SubmissionOutcomeError(AssertionError):
    """Base class for non-success submission outcomes"""

    def __init__(self, message: str, result: ClassificationResult):
        super().__init__(message)
        self.result = result


class SubmissionRejectedError(SubmissionOutcomeError):
    """An explicit error indicator was shown after submitting"""


class SubmissionUnclearError(SubmissionOutcomeError):
    """No positive or negative indicator was found"""


def _success_signals(evidence: SubmissionEvidence) -> List[str]:
    signals = []
    if evidence.dom_success_match:
        signals.append("success_message")
    # Unknown (None) is excluded, never counted as a negative
    if evidence.fields_cleared is True:
        signals.append("fields_cleared")
    if evidence.url_redirected:
        signals.append("url_redirected")
    return signals


def classify(
    evidence: SubmissionEvidence,
    require_successful_response: bool = False
) -> ClassificationResult:
    """
    Classify one submission attempt.

    Args:
        evidence: Snapshot collected after the settle delay
        require_successful_response: Demote Success to Unclear when no 2xx
            response was captured

    Returns:
        ClassificationResult with verdict, reason and counted signals
    """
    if evidence.dom_error_match:
        return ClassificationResult(
            verdict=Verdict.FAILURE,
            evidence=evidence,
            reason=evidence.matched_error_pattern or "error indicator visible",
        )

    signals = _success_signals(evidence)

    if not signals:
        reason = "no positive success indicators found"
        if evidence.collection_failed and evidence.diagnostics:
            reason = evidence.diagnostics[-1]
        return ClassificationResult(
            verdict=Verdict.UNCLEAR,
            evidence=evidence,
            reason=reason,
        )

    if require_successful_response and not evidence.has_successful_response():
        return ClassificationResult(
            verdict=Verdict.UNCLEAR,
            evidence=evidence,
            reason="success indicators present but no 2xx response captured",
            success_signals=signals,
        )

    reason = evidence.matched_success_pattern or ", ".join(signals)
    return ClassificationResult(
        verdict=Verdict.SUCCESS,
        evidence=evidence,
        reason=reason,
        success_signals=signals,
    )


def describe(result: ClassificationResult) -> str:
    """One-line summary for logs"""
    evidence = result.evidence
    fields = "unknown" if evidence.fields_cleared is None else evidence.fields_cleared
    return (
        f"verdict={result.verdict.value} reason={result.reason!r} "
        f"success_message={evidence.dom_success_match} error_message={evidence.dom_error_match} "
        f"fields_cleared={fields} url_redirected={evidence.url_redirected} "
        f"requests={len(evidence.captured_requests)} responses={len(evidence.captured_responses)}"
    )


def assert_submission_success(result: ClassificationResult) -> ClassificationResult:
    """
    Raise a descriptive error unless the submission succeeded.

    Raises:
        EvidenceCollectionError: Evidence could not be collected at all
        SubmissionRejectedError: An error indicator was visible
        SubmissionUnclearError: No indicator either way
    """
    evidence = result.evidence

    if result.verdict == Verdict.FAILURE:
        raise SubmissionRejectedError(
            f"FORM SUBMISSION FAILED: error message detected - {result.reason}. "
            f"The form was NOT processed by the server.",
            result,
        )

    if evidence.collection_failed:
        raise EvidenceCollectionError(
            f"Evidence collection failed, outcome unknown: {result.reason}"
        )

    if result.verdict == Verdict.UNCLEAR:
        fields = "unknown" if evidence.fields_cleared is None else evidence.fields_cleared
        raise SubmissionUnclearError(
            f"FORM SUBMISSION STATUS UNCLEAR: {result.reason}. "
            f"The form may have been submitted but not processed by the server. "
            f"Details: success_message={evidence.dom_success_match}, "
            f"fields_cleared={fields}, url_changed={evidence.url_redirected}",
            result,
        )

    logger.info(f"Form submission confirmed ({len(result.success_signals)}/3 success indicators)")
    return result
