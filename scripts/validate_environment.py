#!/usr/bin/env python3
"""Check that the local environment can run the contact-form checks."""

import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from formcheck.browser.challenge_bypass import VENDORS, DEFAULT_PRIORITY
from formcheck.config import Settings

BYPASS_VARS = ['TEST_MODE', 'TESTING', 'NODE_ENV', 'CHALLENGE_VENDOR']


async def check_chromium() -> bool:
    """Launch and close headless Chromium"""
    from playwright.async_api import async_playwright

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        await browser.close()
    return True


def validate_environment(quick: bool = False) -> int:
    errors = []
    warnings = []
    recommendations = []

    print("=== Environment Validation ===\n")

    print("1. Loading .env file...")
    load_dotenv()
    print("✓ load_dotenv() completed\n")

    print("2. Settings:")
    try:
        settings = Settings.from_env()
        print(f"  form_url: {settings.form_url}")
        print(f"  form_paths: {settings.form_paths}")
        print(f"  headless: {settings.headless}  slow_mo: {settings.slow_mo}ms")
        print(f"  settle: {settings.settle_mode} {settings.settle_delay_ms}ms")
        print(f"  challenge vendor: {settings.challenge_vendor}")
        if settings.challenge_vendor not in VENDORS:
            warnings.append(f"Unknown CHALLENGE_VENDOR '{settings.challenge_vendor}', Turnstile will be used")
    except Exception as e:
        errors.append(f"Settings could not be parsed: {e}")
        settings = None
    print()

    print("3. Playwright:")
    try:
        asyncio.run(check_chromium())
        print("  ✓ Chromium browser available")
    except ImportError:
        errors.append("Playwright not installed. Run: pip install -e .")
    except Exception as e:
        errors.append(f"Chromium not available ({e}). Run: playwright install chromium")
    print()

    if quick:
        healthy = not errors
        print("✅ Environment OK" if healthy else "❌ Environment Issues")
        return 0 if healthy else 1

    print("4. Artifacts directory:")
    if settings is not None:
        try:
            directory = Path(settings.artifacts_dir)
            directory.mkdir(parents=True, exist_ok=True)
            probe = directory / ".write-test"
            probe.write_text("ok")
            probe.unlink()
            print(f"  ✓ {directory} is writable")
        except Exception as e:
            errors.append(f"Artifacts directory not writable: {e}")
    print()

    print("5. Challenge bypass:")
    print(f"  Strategies in priority order: {', '.join(s.value for s in DEFAULT_PRIORITY)}")
    for var in BYPASS_VARS:
        if os.getenv(var):
            print(f"  ✓ {var}={os.getenv(var)}")
        else:
            recommendations.append(f"Consider setting {var} for consistent test behavior")
    if settings is not None and not settings.test_mode:
        warnings.append("Test mode is off; the test-mode form flag will not be injected")
    print()

    print("=== ASSESSMENT ===")
    print(f"  ❌ Errors: {len(errors)}")
    print(f"  ⚠️  Warnings: {len(warnings)}")
    print(f"  💡 Recommendations: {len(recommendations)}")

    for error in errors:
        print(f"  - {error}")
    for warning in warnings:
        print(f"  - {warning}")
    for rec in recommendations:
        print(f"  - {rec}")

    if errors:
        print("\n🔧 Please fix the errors above before running tests.")
        return 1

    print("\n✅ Environment is properly configured!")
    return 0


if __name__ == "__main__":
    exit_code = validate_environment(quick="--quick" in sys.argv)
    sys.exit(exit_code)
