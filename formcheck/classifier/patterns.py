"""Success and error indicators for form submissions.

One ordered table owns every indicator the classifier knows about. Matchers
walk it in order and stop at the first visible match, so the order decides
which pattern is reported as evidence but never changes the verdict.

Text patterns are matched as case-insensitive substrings of visible text;
CSS patterns are matched as visible elements.
"""

from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel


class PatternKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class SelectorType(str, Enum):
    TEXT = "text"
    CSS = "css"


class IndicatorPattern(BaseModel):
    """One entry of the indicator table"""
    pattern: str
    kind: PatternKind
    locale: str = "any"  # 'nl', 'en', 'fr', 'any'
    selector_type: SelectorType = SelectorType.TEXT

    @property
    def label(self) -> str:
        """Evidence string reported when this pattern matches"""
        if self.selector_type == SelectorType.TEXT:
            return f'text="{self.pattern}"'
        return self.pattern


def _text(pattern: str, kind: PatternKind, locale: str) -> IndicatorPattern:
    return IndicatorPattern(pattern=pattern, kind=kind, locale=locale, selector_type=SelectorType.TEXT)


def _css(pattern: str, kind: PatternKind) -> IndicatorPattern:
    return IndicatorPattern(pattern=pattern, kind=kind, locale="any", selector_type=SelectorType.CSS)


S = PatternKind.SUCCESS
E = PatternKind.ERROR


# =============================================================================
# INDICATOR TABLE (ordered by priority within each kind)
# =============================================================================

INDICATOR_TABLE: List[IndicatorPattern] = [
    # Success messages (Dutch first, the form's own language)
    _text("Bedankt voor uw bericht", S, "nl"),
    _text("Bedankt voor je bericht", S, "nl"),
    _text("Uw bericht is verzonden", S, "nl"),
    _text("Bericht verzonden", S, "nl"),
    _text("Succesvol verzonden", S, "nl"),
    _text("Thank you for your message", S, "en"),
    _text("Your message has been sent", S, "en"),
    _text("Message sent successfully", S, "en"),
    _text("The form was sent successfully", S, "en"),
    _text("Merci pour votre message", S, "fr"),

    # Success containers (Elementor and common fallbacks)
    _css(".elementor-message.elementor-message-success", S),
    _css(".elementor-form-success", S),
    _css(".elementor-success-message", S),
    _css(".success-message", S),
    _css('[data-success="true"]', S),
    _css(".form-success", S),

    # Error messages
    _text("Please verify that you are human", E, "en"),
    _text("Your submission failed because of an error", E, "en"),
    _text("Er is een fout opgetreden", E, "nl"),
    _text("Verzending mislukt", E, "nl"),
    _text("Dit veld is verplicht", E, "nl"),
    _text("Voer een geldig emailadres in", E, "nl"),
    _text("Une erreur est survenue", E, "fr"),

    # Error containers
    _css(".elementor-message.elementor-message-danger", E),
    _css(".elementor-message.elementor-message-error", E),
    _css(".elementor-form-error", E),
    _css(".elementor-error-message", E),
    _css(".error-message", E),
    _css('[data-error="true"]', E),
    _css(".form-error", E),
]


# =============================================================================
# LOOKUP HELPERS
# =============================================================================

def patterns_for(
    kind: PatternKind,
    locales: Optional[Sequence[str]] = None,
    table: Optional[List[IndicatorPattern]] = None,
) -> List[IndicatorPattern]:
    """
    Return the patterns of one kind, in table order.

    Args:
        kind: Success or error
        locales: Restrict text patterns to these locales (CSS patterns always kept)
        table: Alternate table (defaults to INDICATOR_TABLE)

    Returns:
        Ordered list of patterns
    """
    table = INDICATOR_TABLE if table is None else table
    selected = []
    for entry in table:
        if entry.kind != kind:
            continue
        if locales and entry.locale != "any" and entry.locale not in locales:
            continue
        selected.append(entry)
    return selected


def success_patterns(locales: Optional[Sequence[str]] = None) -> List[IndicatorPattern]:
    return patterns_for(PatternKind.SUCCESS, locales)


def error_patterns(locales: Optional[Sequence[str]] = None) -> List[IndicatorPattern]:
    return patterns_for(PatternKind.ERROR, locales)


def pattern_priority(pattern: str, kind: PatternKind) -> int:
    """
    Get priority rank of a pattern within its kind.

    Returns:
        Priority rank (lower is higher priority), 999 if unknown
    """
    for rank, entry in enumerate(patterns_for(kind)):
        if entry.pattern == pattern:
            return rank
    return 999
