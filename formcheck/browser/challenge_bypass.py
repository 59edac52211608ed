"""Anti-bot challenge mitigation for automated form submission.

This module provides layered, independent strategies that keep a challenge
widget (Cloudflare Turnstile by default, Google reCAPTCHA as an alternate
profile) from blocking a test submission:

- Block the vendor's assets so the widget never loads
- Mock the vendor's client object before page scripts run
- Short-circuit the vendor's verification endpoint with a success body
- Flag test mode on every form when the run is in test mode
- Purge challenge elements from the DOM as a last resort

Every strategy is applied before navigation, catches its own errors and
returns a bool. "Success" for the routing and mocking strategies means the
rule was registered, not that the server accepted the submission; only the
outcome classifier decides that.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Pattern
from urllib.parse import urlparse

from loguru import logger
from playwright.async_api import Page, Route

from formcheck.config import Settings


@dataclass(frozen=True)
class ChallengeVendor:
    """Network and DOM fingerprint of one challenge provider"""
    name: str
    global_name: str
    response_field: str
    asset_patterns: List[Pattern]
    verify_pattern: Pattern
    loader_pattern: Pattern
    element_selectors: List[str]
    dom_fragments: List[str]
    mock_token: str = "mock_challenge_token_for_testing"
    test_parameters: Dict[str, str] = field(default_factory=lambda: {
        "test_mode": "true",
        "bypass_challenge": "true",
        "testing": "1",
    })


TURNSTILE = ChallengeVendor(
    name="turnstile",
    global_name="turnstile",
    response_field="cf-turnstile-response",
    asset_patterns=[
        re.compile(r"challenges\.cloudflare\.com/"),
        re.compile(r"/turnstile/v0/"),
        re.compile(r"/cdn-cgi/challenge-platform/"),
    ],
    verify_pattern=re.compile(r"/turnstile/v0/siteverify"),
    loader_pattern=re.compile(r"/turnstile/v0/(?:g/[^/]+/)?api\.js"),
    element_selectors=[
        ".cf-turnstile",
        "[class*='turnstile']",
        "[id*='turnstile']",
        "iframe[src*='challenges.cloudflare.com']",
        "script[src*='challenges.cloudflare.com']",
        "input[name='cf-turnstile-response']",
    ],
    dom_fragments=["turnstile", "cf-challenge"],
    mock_token="mock_turnstile_token_for_testing",
)

RECAPTCHA = ChallengeVendor(
    name="recaptcha",
    global_name="grecaptcha",
    response_field="g-recaptcha-response",
    asset_patterns=[
        re.compile(r"recaptcha"),
        re.compile(r"gstatic\.com/recaptcha"),
        re.compile(r"google\.com/recaptcha"),
    ],
    verify_pattern=re.compile(r"/recaptcha/api/siteverify"),
    loader_pattern=re.compile(r"/recaptcha/releases/[^/]+/recaptcha__[^/]*\.js"),
    element_selectors=[
        ".g-recaptcha",
        "[class*='recaptcha']",
        "[id*='recaptcha']",
        "iframe[src*='recaptcha']",
        "script[src*='recaptcha']",
    ],
    dom_fragments=["recaptcha"],
    mock_token="mock_recaptcha_token_for_testing",
)

VENDORS: Dict[str, ChallengeVendor] = {
    TURNSTILE.name: TURNSTILE,
    RECAPTCHA.name: RECAPTCHA,
}


def get_vendor(name: str) -> ChallengeVendor:
    """Look up a vendor profile by name (falls back to Turnstile)"""
    vendor = VENDORS.get((name or "").lower())
    if vendor is None:
        logger.warning(f"Unknown challenge vendor '{name}', using {TURNSTILE.name}")
        return TURNSTILE
    return vendor


class MitigationStrategy(str, Enum):
    BLOCK_ASSETS = "block_assets"
    MOCK_CLIENT = "mock_client"
    INTERCEPT_NETWORK = "intercept_network"
    ENVIRONMENT_FLAG = "environment_flag"
    PURGE_DOM = "purge_dom"


# Order used by apply_all(); stops at the first reported success
DEFAULT_PRIORITY = [
    MitigationStrategy.INTERCEPT_NETWORK,
    MitigationStrategy.MOCK_CLIENT,
    MitigationStrategy.BLOCK_ASSETS,
    MitigationStrategy.PURGE_DOM,
]


# =============================================================================
# INJECTED SCRIPTS
# =============================================================================

MOCK_CLIENT_SCRIPT = """
(config) => {
    const token = config.token;
    const fillResponseFields = () => {
        document.querySelectorAll(`input[name="${config.responseField}"], textarea[name="${config.responseField}"]`)
            .forEach(el => { el.value = token; });
    };
    const runCallback = (callback) => {
        if (typeof callback === 'string') callback = window[callback];
        if (typeof callback === 'function') setTimeout(() => callback(token), 100);
    };
    const mock = {
        ready: (callback) => { if (typeof callback === 'function') setTimeout(callback, 100); },
        execute: (...args) => {
            const options = args.find(a => a && typeof a === 'object');
            if (options && options.callback) runCallback(options.callback);
            fillResponseFields();
            return Promise.resolve(token);
        },
        render: (container, options) => {
            if (options && options.callback) runCallback(options.callback);
            fillResponseFields();
            return 'mock_widget_id';
        },
        getResponse: () => token,
        reset: () => {},
        remove: () => {},
        isExpired: () => false,
        __mocked: true,
    };
    Object.defineProperty(window, config.globalName, {
        configurable: true,
        get: () => mock,
        set: () => {},
    });
    document.addEventListener('DOMContentLoaded', () => {
        fillResponseFields();
        document.querySelectorAll('[data-callback]').forEach(el => runCallback(el.getAttribute('data-callback')));
    });
}
"""

TEST_MODE_SCRIPT = """
(params) => {
    window.testMode = true;
    window.skipChallenge = true;
    const flagForms = () => {
        document.querySelectorAll('form').forEach(form => {
            Object.entries(params).forEach(([name, value]) => {
                if (form.querySelector(`input[type="hidden"][name="${name}"]`)) return;
                const input = document.createElement('input');
                input.type = 'hidden';
                input.name = name;
                input.value = value;
                form.appendChild(input);
            });
        });
    };
    if (document.readyState === 'loading') {
        document.addEventListener('DOMContentLoaded', flagForms);
    } else {
        flagForms();
    }
}
"""

PURGE_SCRIPT = """
(config) => {
    const purge = () => {
        let removed = 0;
        config.selectors.forEach(selector => {
            document.querySelectorAll(selector).forEach(el => { el.remove(); removed++; });
        });
        document.querySelectorAll('form').forEach(form => {
            if (form.__challengeBypassed) return;
            const originalSubmit = form.submit;
            form.submit = function() { return originalSubmit.call(this); };
            form.__challengeBypassed = true;
        });
        return removed;
    };
    if (config.deferred && document.readyState === 'loading') {
        document.addEventListener('DOMContentLoaded', purge);
        return 0;
    }
    return purge();
}
"""

PRESENCE_SCRIPT = "(name) => typeof window[name] !== 'undefined' && !(window[name] && window[name].__mocked)"


def _as_init_script(function_source: str, arg) -> str:
    """Wrap a JS arrow function and its argument into an init script"""
    return f"({function_source.strip()})({json.dumps(arg)});"


class ChallengeMitigator:
    """Install challenge mitigation rules on a page before navigation"""

    def __init__(
        self,
        page: Page,
        settings: Settings,
        vendor: Optional[ChallengeVendor] = None,
        correlation_id: str = "N/A"
    ):
        self.page = page
        self.settings = settings
        self.vendor = vendor or get_vendor(settings.challenge_vendor)
        self.correlation_id = correlation_id
        self.applied: List[MitigationStrategy] = []

    def _mark(self, strategy: MitigationStrategy):
        if strategy not in self.applied:
            self.applied.append(strategy)

    # -------------------------------------------------------------------------
    # Route handlers
    # -------------------------------------------------------------------------

    async def _abort_route(self, route: Route):
        logger.debug(f"[{self.correlation_id}] Blocking challenge asset: {route.request.url}")
        await route.abort()

    def _verification_body(self) -> Dict:
        hostname = ""
        try:
            hostname = urlparse(self.page.url).hostname or ""
        except Exception:
            pass
        return {
            "success": True,
            "challenge_ts": datetime.now(timezone.utc).isoformat(),
            "hostname": hostname,
            "error-codes": [],
            "action": "",
            "cdata": "",
        }

    async def _fulfill_verification(self, route: Route):
        logger.debug(f"[{self.correlation_id}] Intercepting challenge verification: {route.request.url}")
        await route.fulfill(
            status=200,
            content_type="application/json",
            headers={"access-control-allow-origin": "*"},
            body=json.dumps(self._verification_body()),
        )

    async def _fulfill_loader(self, route: Route):
        logger.debug(f"[{self.correlation_id}] Replacing challenge loader: {route.request.url}")
        await route.fulfill(
            status=200,
            content_type="application/javascript",
            body=self._mock_client_init_script(),
        )

    def _mock_client_init_script(self) -> str:
        return _as_init_script(MOCK_CLIENT_SCRIPT, {
            "globalName": self.vendor.global_name,
            "responseField": self.vendor.response_field,
            "token": self.vendor.mock_token,
        })

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    async def block_challenge_assets(self) -> bool:
        """
        Abort every request to the vendor's domains and paths.

        Returns:
            True once the routes are registered. A vendor domain change makes
            this a silent no-op rather than an error.
        """
        try:
            for pattern in self.vendor.asset_patterns:
                await self.page.route(pattern, self._abort_route)
            self._mark(MitigationStrategy.BLOCK_ASSETS)
            logger.info(f"[{self.correlation_id}] Blocking {self.vendor.name} assets")
            return True
        except Exception as e:
            logger.warning(f"[{self.correlation_id}] Failed to block {self.vendor.name} assets: {e}")
            return False

    async def mock_challenge_client(self) -> bool:
        """
        Define a stand-in for the vendor's global client object.

        Registered as an init script so it exists before any page script runs.
        """
        try:
            await self.page.add_init_script(script=self._mock_client_init_script())
            self._mark(MitigationStrategy.MOCK_CLIENT)
            logger.info(f"[{self.correlation_id}] Mocked window.{self.vendor.global_name}")
            return True
        except Exception as e:
            logger.warning(f"[{self.correlation_id}] Failed to mock {self.vendor.name} client: {e}")
            return False

    async def intercept_verification(self) -> bool:
        """
        Answer the vendor's verification endpoint with a synthetic success.

        Also replaces the vendor's loader script with the mock client so the
        widget resolves immediately.
        """
        try:
            await self.page.route(self.vendor.verify_pattern, self._fulfill_verification)
            await self.page.route(self.vendor.loader_pattern, self._fulfill_loader)
            self._mark(MitigationStrategy.INTERCEPT_NETWORK)
            logger.info(f"[{self.correlation_id}] Intercepting {self.vendor.name} verification")
            return True
        except Exception as e:
            logger.warning(f"[{self.correlation_id}] Failed to intercept {self.vendor.name} verification: {e}")
            return False

    async def inject_test_mode_flag(self) -> bool:
        """
        Add hidden test-mode fields to every form.

        Only applies when the run is configured for test mode; page content
        never decides this.
        """
        if not self.settings.test_mode:
            logger.debug(f"[{self.correlation_id}] Not in test mode, skipping test-mode flag")
            return False
        try:
            await self.page.add_init_script(
                script=_as_init_script(TEST_MODE_SCRIPT, self.vendor.test_parameters)
            )
            self._mark(MitigationStrategy.ENVIRONMENT_FLAG)
            logger.info(f"[{self.correlation_id}] Test mode flag injected")
            return True
        except Exception as e:
            logger.warning(f"[{self.correlation_id}] Failed to inject test mode flag: {e}")
            return False

    async def purge_challenge_dom(self) -> bool:
        """
        Remove challenge elements and neutralise client-side submit gating.

        Runs on the current document and again on every DOMContentLoaded.
        """
        config = {"selectors": self.vendor.element_selectors}
        try:
            await self.page.add_init_script(
                script=_as_init_script(PURGE_SCRIPT, {**config, "deferred": True})
            )
            removed = 0
            if self.page.url and self.page.url != "about:blank":
                removed = await self.page.evaluate(PURGE_SCRIPT, {**config, "deferred": False})
            self._mark(MitigationStrategy.PURGE_DOM)
            logger.info(f"[{self.correlation_id}] Challenge DOM purge installed ({removed} elements removed)")
            return True
        except Exception as e:
            logger.warning(f"[{self.correlation_id}] Failed to purge challenge DOM: {e}")
            return False

    async def apply(self, strategy: MitigationStrategy = MitigationStrategy.INTERCEPT_NETWORK) -> bool:
        """Apply one strategy by name; unknown names use network interception"""
        handlers = {
            MitigationStrategy.BLOCK_ASSETS: self.block_challenge_assets,
            MitigationStrategy.MOCK_CLIENT: self.mock_challenge_client,
            MitigationStrategy.INTERCEPT_NETWORK: self.intercept_verification,
            MitigationStrategy.ENVIRONMENT_FLAG: self.inject_test_mode_flag,
            MitigationStrategy.PURGE_DOM: self.purge_challenge_dom,
        }
        try:
            strategy = MitigationStrategy(strategy)
        except ValueError:
            logger.warning(f"[{self.correlation_id}] Unknown strategy: {strategy}. Using network interception.")
            strategy = MitigationStrategy.INTERCEPT_NETWORK

        logger.debug(f"[{self.correlation_id}] Applying challenge strategy: {strategy.value}")
        try:
            return await handlers[strategy]()
        except Exception as e:
            logger.error(f"[{self.correlation_id}] Challenge strategy {strategy.value} failed: {e}")
            return False

    async def apply_all(self, order: Optional[List[MitigationStrategy]] = None) -> bool:
        """
        Try strategies in priority order until one reports success.

        Never raises; the test proceeds either way and the classifier decides.
        """
        for strategy in order or DEFAULT_PRIORITY:
            if await self.apply(strategy):
                logger.info(f"[{self.correlation_id}] Applied challenge strategy: {MitigationStrategy(strategy).value}")
                return True
        logger.error(f"[{self.correlation_id}] All challenge mitigation strategies failed")
        return False

    # -------------------------------------------------------------------------
    # Detection
    # -------------------------------------------------------------------------

    async def is_challenge_present(self) -> bool:
        """Check for challenge elements or an unmocked client object"""
        for selector in self.vendor.element_selectors:
            try:
                element = await self.page.query_selector(selector)
                if element:
                    logger.debug(f"[{self.correlation_id}] Challenge detected using selector: {selector}")
                    return True
            except Exception:
                continue

        try:
            return bool(await self.page.evaluate(PRESENCE_SCRIPT, self.vendor.global_name))
        except Exception as e:
            logger.debug(f"[{self.correlation_id}] Challenge object check failed: {e}")
            return False

    async def wait_for_challenge_cleared(self, timeout_ms: int = 10000, interval_ms: int = 500) -> bool:
        """
        Poll until no challenge is present, within ``timeout_ms``.

        Returns:
            True if the page is free of challenges before the timeout
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        while loop.time() < deadline:
            if not await self.is_challenge_present():
                logger.info(f"[{self.correlation_id}] Challenge cleared")
                return True
            await asyncio.sleep(interval_ms / 1000)
        logger.warning(f"[{self.correlation_id}] Challenge still present after {timeout_ms}ms")
        return False
