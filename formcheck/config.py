"""Run settings for contact-form checks.

Settings are resolved once at the entry boundary (``main.py`` or the test
``conftest.py``) and then passed explicitly into the mitigation component,
the evidence collector and the verifier. Nothing below the entry boundary
reads the process environment.
"""

import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator


DEFAULT_FORM_URL = "https://jbit.be/contact-nl/"
DEFAULT_FORM_PATHS = ["/contact-nl/", "/contact/"]

TRUTHY = ("true", "1", "yes", "on")


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    """Read a boolean flag; unset means ``default``."""
    value = env.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in TRUTHY


def _int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    value = env.get(name)
    if not value:
        return default
    try:
        number = int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default
    if number < minimum:
        logger.warning(f"Ignoring {name}={number} below {minimum}, using {default}")
        return default
    return number


class Settings(BaseModel):
    """Explicit configuration for one test run"""
    form_url: str = DEFAULT_FORM_URL
    form_paths: List[str] = Field(default_factory=lambda: list(DEFAULT_FORM_PATHS))
    test_mode: bool = False
    headless: bool = True
    slow_mo: int = Field(0, ge=0)
    # Playwright treats a timeout of 0 as "no timeout"; 1/6 of this must stay >= 1
    test_timeout_ms: int = Field(60000, ge=6)
    screenshots: bool = True
    artifacts_dir: Path = Path("test-artifacts")
    settle_delay_ms: int = Field(6000, ge=0)
    settle_mode: str = "fixed"  # 'fixed', 'poll'
    probe_timeout_ms: int = Field(250, gt=0)
    network_capture_limit: int = Field(200, ge=0)
    challenge_vendor: str = "turnstile"  # 'turnstile', 'recaptcha'
    require_2xx_response: bool = False

    @field_validator("settle_mode")
    @classmethod
    def validate_settle_mode(cls, v):
        """Only fixed delay and poll-until-stable are supported"""
        v = v.strip().lower()
        if v not in ("fixed", "poll"):
            raise ValueError(f"Unknown settle mode: {v}")
        return v

    @field_validator("challenge_vendor")
    @classmethod
    def validate_vendor(cls, v):
        return v.strip().lower()

    @field_validator("form_paths")
    @classmethod
    def validate_form_paths(cls, v):
        """Drop blanks so an empty entry never matches every URL"""
        return [path.strip() for path in v if path and path.strip()]

    @property
    def action_timeout_ms(self) -> int:
        """Per-action timeout, 1/6 of the test timeout"""
        return self.test_timeout_ms // 6

    @property
    def navigation_timeout_ms(self) -> int:
        """Navigation timeout, 1/2 of the test timeout"""
        return self.test_timeout_ms // 2

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)
            **overrides: Explicit values that win over the environment

        Returns:
            Settings instance
        """
        env = os.environ if env is None else env

        test_mode = (
            _flag(env, "TEST_MODE", False)
            or _flag(env, "TESTING", False)
            or env.get("NODE_ENV", "").lower() == "test"
        )

        form_paths = DEFAULT_FORM_PATHS
        if env.get("FORM_PATHS"):
            form_paths = env["FORM_PATHS"].split(",")

        values: Dict[str, object] = {
            "form_url": env.get("FORM_URL") or DEFAULT_FORM_URL,
            "form_paths": form_paths,
            "test_mode": test_mode,
            # Headless unless explicitly disabled
            "headless": env.get("HEADLESS", "").lower() != "false",
            "slow_mo": _int(env, "SLOW_MO", 0),
            "test_timeout_ms": _int(env, "TEST_TIMEOUT", 60000, minimum=6),
            "screenshots": env.get("SCREENSHOTS", "").lower() != "false",
            "artifacts_dir": Path(env.get("ARTIFACTS_DIR") or "test-artifacts"),
            "settle_delay_ms": _int(env, "SETTLE_DELAY_MS", 6000),
            "settle_mode": env.get("SETTLE_MODE") or "fixed",
            "probe_timeout_ms": _int(env, "PROBE_TIMEOUT_MS", 250, minimum=1),
            "network_capture_limit": _int(env, "NETWORK_CAPTURE_LIMIT", 200),
            "challenge_vendor": env.get("CHALLENGE_VENDOR") or "turnstile",
            "require_2xx_response": _flag(env, "REQUIRE_2XX_RESPONSE", False),
        }
        values.update(overrides)
        return cls(**values)
