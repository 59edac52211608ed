"""Unit tests for diagnostic output redaction"""

from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from formcheck.browser.sanitize import REDACTED, sanitize


class TestStringRedaction:
    """Test pattern-based redaction in free text"""

    def test_email_redacted(self):
        result = sanitize("Submitted as server.validation@test.com today")

        assert "server.validation@test.com" not in result
        assert REDACTED in result

    def test_url_encoded_email_redacted(self):
        result = sanitize("https://jbit.be/?email=server.validation%40test.com")
        assert "validation%40test.com" not in result

    def test_phone_redacted(self):
        assert "06-87654321" not in sanitize("Telefoon: 06-87654321")
        assert "+32 470 12 34 56" not in sanitize("Call +32 470 12 34 56")

    def test_challenge_token_redacted(self):
        result = sanitize("cf-turnstile-response=0.abcDEF123&other=1")

        assert "0.abcDEF123" not in result
        assert "cf-turnstile-response=" in result
        assert "&other=1" in result

    def test_generic_token_redacted(self):
        assert "s3cr3t" not in sanitize("api_key=s3cr3t")

    def test_plain_text_untouched(self):
        text = "Bedankt voor uw bericht"
        assert sanitize(text) == text

    def test_urls_and_timestamps_untouched(self):
        url = "https://jbit.be/wp-admin/admin-ajax.php"
        stamp = "2026-10-19T10:15:30.123456"

        assert sanitize(url) == url
        assert sanitize(stamp) == stamp

    def test_empty_string(self):
        assert sanitize("") == ""


class TestStructuredRedaction:
    """Test dict and list traversal"""

    def test_sensitive_keys_redacted(self):
        result = sanitize({"email": "anything", "telefoon": "x", "name": "E2E Test"})

        assert result["email"] == REDACTED
        assert result["telefoon"] == REDACTED
        assert result["name"] == "E2E Test"

    def test_empty_sensitive_value_kept(self):
        """An empty read-back is evidence that the field was cleared"""
        result = sanitize({"email": "", "message": None})

        assert result["email"] == ""
        assert result["message"] is None

    def test_nested_structures(self):
        data = {
            "evidence": {
                "field_values": {"email": "a@b.be"},
                "diagnostics": ["Field 'email' held a@b.be"],
                "url_redirected": True,
            }
        }

        result = sanitize(data)

        assert result["evidence"]["field_values"]["email"] == REDACTED
        assert "a@b.be" not in result["evidence"]["diagnostics"][0]
        assert result["evidence"]["url_redirected"] is True

    def test_input_not_mutated(self):
        data = {"email": "a@b.be"}
        sanitize(data)
        assert data["email"] == "a@b.be"

    def test_non_string_passthrough(self):
        assert sanitize(42) == 42
        assert sanitize(None) is None
