"""Pytest configuration and shared fixtures for testing"""

import os
import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from formcheck.browser.session import FormBrowser
from formcheck.config import Settings

load_dotenv()


@pytest.fixture
def test_fixture_path() -> Path:
    """Return the path to the test fixtures directory"""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def contact_form_url(test_fixture_path: Path) -> str:
    """Return the file:// URL for the local contact form fixture"""
    return (test_fixture_path / "contact_form.html").as_uri()


@pytest.fixture
def fixture_settings(tmp_path: Path, contact_form_url: str) -> Settings:
    """Fast settings pointed at the local contact form fixture"""
    return Settings(
        form_url=contact_form_url,
        form_paths=["contact_form.html"],
        headless=True,
        test_timeout_ms=30000,
        screenshots=True,
        artifacts_dir=tmp_path / "artifacts",
        settle_delay_ms=1000,
        probe_timeout_ms=200,
    )


@pytest.fixture
async def form_browser(fixture_settings: Settings) -> AsyncGenerator[FormBrowser, None]:
    """A started browser session per test; skips if Chromium is not installed"""
    session = FormBrowser(fixture_settings, correlation_id="test", run_name="fixture")
    try:
        await session.start_browser(headless=True)
    except Exception as e:
        await session.close_browser()
        pytest.skip(f"Chromium not available: {e}")
    yield session
    await session.close_browser()


@pytest.fixture
def live_settings(tmp_path: Path) -> Settings:
    """Settings for the live form, resolved from the environment"""
    if os.getenv("RUN_LIVE_TESTS", "false").lower() not in ("true", "1", "yes"):
        pytest.skip("Live form tests disabled (set RUN_LIVE_TESTS=true)")
    return Settings.from_env()


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: drives a real Chromium against local HTML fixtures"
    )
    config.addinivalue_line(
        "markers", "e2e: submits the live contact form (set RUN_LIVE_TESTS=true)"
    )
