#!/usr/bin/env python3
"""Run one end-to-end submission check against the configured contact form"""

import argparse
import asyncio
import sys
import uuid

from dotenv import load_dotenv
from loguru import logger

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"


def configure_logging(level: str = "INFO"):
    """Coloured stderr sink plus a rotating JSON file sink"""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    logger.add("logs/formcheck_json_{time}.log", rotation="1 day", retention="7 days", level="DEBUG", serialize=True)


# Configure logger
configure_logging()

# Load environment variables
load_dotenv()

from formcheck.browser.challenge_bypass import ChallengeMitigator, MitigationStrategy
from formcheck.browser.session import FormBrowser
from formcheck.classifier.outcome import (
    EvidenceCollectionError,
    SubmissionRejectedError,
    SubmissionUnclearError,
    assert_submission_success,
)
from formcheck.classifier.verifier import SubmissionVerifier
from formcheck.config import Settings
from formcheck.forms.contact_form import ContactFormPage, sample_contact_data

EXIT_SUCCESS = 0
EXIT_REJECTED = 1
EXIT_UNCLEAR = 2
EXIT_INFRASTRUCTURE = 3


async def run_check(settings: Settings, strategy: str = "all") -> int:
    """
    Mitigate, navigate, fill, submit and classify once.

    Returns:
        Process exit code for the verdict
    """
    correlation_id = uuid.uuid4().hex[:8]
    logger.info(f"[{correlation_id}] Checking {settings.form_url}")

    async with FormBrowser(settings, correlation_id=correlation_id, run_name="contact-form") as session:
        mitigator = ChallengeMitigator(session.page, settings, correlation_id=correlation_id)
        if strategy == "all":
            await mitigator.apply_all()
        elif strategy != "none":
            await mitigator.apply(MitigationStrategy(strategy))
        await mitigator.inject_test_mode_flag()

        form = ContactFormPage(session.page, settings)
        await form.navigate()
        await session.capture_checkpoint("pre-fill")
        await form.fill(sample_contact_data())
        await session.capture_checkpoint("post-fill")

        verifier = SubmissionVerifier(session, settings, form.evidence_fields)
        with verifier.recorder() as recorder:
            await form.submit()
            result = await verifier.verify(recorder)

    try:
        assert_submission_success(result)
    except SubmissionRejectedError as e:
        logger.error(str(e))
        return EXIT_REJECTED
    except SubmissionUnclearError as e:
        logger.warning(str(e))
        return EXIT_UNCLEAR
    except EvidenceCollectionError as e:
        logger.error(str(e))
        return EXIT_INFRASTRUCTURE

    logger.success(f"[{correlation_id}] Form submission confirmed: {result.reason}")
    return EXIT_SUCCESS


async def main():
    """Main entry point"""
    strategies = ["all", "none"] + [s.value for s in MitigationStrategy if s != MitigationStrategy.ENVIRONMENT_FLAG]

    parser = argparse.ArgumentParser(description='Contact form submission check')
    parser.add_argument('--url', type=str, help='Form URL (overrides FORM_URL)')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--strategy', type=str, choices=strategies, default='all',
                        help='Challenge mitigation strategy (default: all, in priority order)')
    parser.add_argument('--debug', action='store_true', help='Enable verbose logging')
    args = parser.parse_args()

    if args.debug:
        configure_logging("DEBUG")
        logger.debug("DEBUG mode enabled")

    overrides = {}
    if args.url:
        overrides["form_url"] = args.url
    if args.headed:
        overrides["headless"] = False

    try:
        settings = Settings.from_env(**overrides)
        return await run_check(settings, strategy=args.strategy)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return EXIT_INFRASTRUCTURE


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
