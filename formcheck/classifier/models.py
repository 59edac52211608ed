"""Data models for submission evidence and verdicts"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class Verdict(str, Enum):
    """Outcome of one submission attempt"""
    SUCCESS = "success"
    FAILURE = "failure"
    UNCLEAR = "unclear"


class CapturedRequest(BaseModel):
    """Allow-listed request seen while the form was submitted"""
    method: str
    url: str
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


class CapturedResponse(BaseModel):
    """Allow-listed response seen while the form was submitted"""
    url: str
    status: int
    status_text: str = ""
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class SubmissionEvidence(BaseModel):
    """Observable post-submission signals, collected once per attempt"""
    dom_success_match: bool = False
    matched_success_pattern: Optional[str] = None
    dom_error_match: bool = False
    matched_error_pattern: Optional[str] = None
    fields_cleared: Optional[bool] = None  # None = unknown
    field_values: Dict[str, Optional[str]] = Field(default_factory=dict)
    url_redirected: bool = False
    current_url: Optional[str] = None
    captured_requests: List[CapturedRequest] = Field(default_factory=list)
    captured_responses: List[CapturedResponse] = Field(default_factory=list)
    diagnostics: List[str] = Field(default_factory=list)
    collection_failed: bool = False
    screenshots: Dict[str, str] = Field(default_factory=dict)
    collected_at: str = Field(default_factory=lambda: datetime.now().isoformat())

    @model_validator(mode="after")
    def fields_unknown_after_redirect(self):
        """Field read-back is not computable once the page left the form"""
        if self.url_redirected and not any(v is not None for v in self.field_values.values()):
            self.fields_cleared = None
        return self

    def has_successful_response(self) -> bool:
        """True if at least one captured response was 2xx"""
        return any(response.ok for response in self.captured_responses)

    def signal_snapshot(self) -> tuple:
        """Verdict-relevant signals, used to detect quiescence while settling"""
        return (
            self.dom_success_match,
            self.dom_error_match,
            self.fields_cleared,
            self.url_redirected,
        )


class ClassificationResult(BaseModel):
    """Verdict plus the evidence it was derived from"""
    verdict: Verdict
    evidence: SubmissionEvidence
    reason: str = ""
    success_signals: List[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.verdict == Verdict.SUCCESS
