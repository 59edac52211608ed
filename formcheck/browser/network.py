"""Bounded capture of form-related network traffic.

Listeners are attached only for the duration of one submission (attach
before clicking submit, detach after classification) and the buffers are
bounded, so a long-lived page never accumulates traffic without limit.
"""

from collections import deque
from typing import Deque, List, Optional, Sequence

from loguru import logger
from playwright.async_api import Page, Request, Response

from formcheck.classifier.models import CapturedRequest, CapturedResponse


# URL fragments that identify form submission traffic
CAPTURE_URL_FRAGMENTS = [
    "wp-admin/admin-ajax.php",
    "admin-ajax",
    "elementor",
    "contact",
    "wp-json",
]


def is_form_traffic(url: str, fragments: Optional[Sequence[str]] = None) -> bool:
    """Check if a URL belongs to the allow-list of form traffic"""
    url_lower = (url or "").lower()
    return any(fragment in url_lower for fragment in (fragments or CAPTURE_URL_FRAGMENTS))


class NetworkRecorder:
    """Record allow-listed requests and responses for one submission"""

    def __init__(
        self,
        page: Page,
        limit: int = 200,
        fragments: Optional[Sequence[str]] = None,
        track_post_requests: bool = True
    ):
        self.page = page
        self.limit = limit
        self.fragments = list(fragments or CAPTURE_URL_FRAGMENTS)
        self.track_post_requests = track_post_requests
        self._requests: Deque[CapturedRequest] = deque(maxlen=limit)
        self._responses: Deque[CapturedResponse] = deque(maxlen=limit)
        self._attached = False
        self.dropped = 0

    def _on_request(self, request: Request):
        try:
            if is_form_traffic(request.url, self.fragments) or (
                self.track_post_requests and request.method == "POST"
            ):
                if len(self._requests) == self.limit:
                    self.dropped += 1
                self._requests.append(CapturedRequest(method=request.method, url=request.url))
                logger.debug(f"Tracking request: {request.method} {request.url}")
        except Exception as e:
            logger.debug(f"Request capture failed: {e}")

    def _on_response(self, response: Response):
        try:
            if is_form_traffic(response.url, self.fragments):
                if len(self._responses) == self.limit:
                    self.dropped += 1
                self._responses.append(CapturedResponse(
                    url=response.url,
                    status=response.status,
                    status_text=response.status_text,
                ))
                logger.debug(f"Response: {response.status} {response.url}")
        except Exception as e:
            logger.debug(f"Response capture failed: {e}")

    def attach(self) -> "NetworkRecorder":
        if not self._attached:
            self.page.on("request", self._on_request)
            self.page.on("response", self._on_response)
            self._attached = True
        return self

    def detach(self):
        if not self._attached:
            return
        try:
            self.page.remove_listener("request", self._on_request)
            self.page.remove_listener("response", self._on_response)
        except Exception as e:
            logger.debug(f"Failed to detach network listeners: {e}")
        finally:
            self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def requests(self) -> List[CapturedRequest]:
        return list(self._requests)

    @property
    def responses(self) -> List[CapturedResponse]:
        return list(self._responses)

    def __enter__(self) -> "NetworkRecorder":
        return self.attach()

    def __exit__(self, exc_type, exc, tb):
        self.detach()
        return False
