"""Redaction of personal data and tokens in diagnostic output.

Evidence objects carry field read-backs and captured URLs; both can hold the
test submitter's contact details or a challenge token. Everything written to
artifacts or logs goes through here first.
"""

import re
from typing import Any, Dict, List, Union

REDACTED = "***REDACTED***"

_PATTERNS = [
    # Email addresses
    (re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'), REDACTED),
    # URL-encoded email addresses
    (re.compile(r'[a-zA-Z0-9._%+-]+%40[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'), REDACTED),
    # Phone numbers (international or Dutch/Belgian local format)
    (re.compile(r'(?<![\w/])(?:\+\d{2}|0)[\d\s\-]{8,13}\d(?![\w/])'), REDACTED),
    # Challenge response tokens in query strings or bodies
    (re.compile(r'((?:cf-turnstile|g-recaptcha)-response=)[^&\s]+', re.IGNORECASE), r'\1' + REDACTED),
    # Generic tokens and secrets
    (re.compile(r'((?:token|secret|api[_-]?key)\s*[:=]\s*)[\'"]?[a-zA-Z0-9_\-\.]+[\'"]?', re.IGNORECASE),
     r'\1' + REDACTED),
]

_SENSITIVE_KEYS = {
    'email', 'phone', 'telefoon', 'token', 'secret', 'password', 'apikey',
    'cfturnstileresponse', 'grecaptcharesponse',
}


def sanitize(data: Union[str, Dict[str, Any], List, Any]) -> Union[str, Dict[str, Any], List, Any]:
    """
    Redact personal data from strings, dicts, or lists

    Args:
        data: String, dict, or list that may contain personal data

    Returns:
        Sanitized copy
    """
    if isinstance(data, str):
        return _sanitize_string(data)
    elif isinstance(data, dict):
        return _sanitize_dict(data)
    elif isinstance(data, list):
        return _sanitize_list(data)
    else:
        return data


def _sanitize_string(text: str) -> str:
    if not text:
        return text
    sanitized = text
    for pattern, replacement in _PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def _sanitize_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = {}
    for key, value in data.items():
        key_lower = str(key).lower().replace('_', '').replace('-', '')

        if value and any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS) and isinstance(value, str):
            sanitized[key] = REDACTED
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_dict(value)
        elif isinstance(value, list):
            sanitized[key] = _sanitize_list(value)
        elif isinstance(value, str):
            sanitized[key] = _sanitize_string(value)
        else:
            sanitized[key] = value

    return sanitized


def _sanitize_list(data: List) -> List:
    return [sanitize(item) for item in data]
