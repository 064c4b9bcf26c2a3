"""
Client for the image relevance verification endpoint.

Wraps `POST /api/verify-image` with the rate-limit policy the classifier
provider needs: a short delay before every call, and exactly one retry after a
longer delay when the endpoint answers 429.

A verdict of False is a legitimate outcome ("image does not match"); any
failure to obtain a verdict raises VerificationError instead.
"""

import base64
import logging
import time
from typing import Callable, Optional

import httpx

from src.core.config import settings
from src.core.errors import RateLimitExceeded, VerificationError

logger = logging.getLogger(__name__)


class ImageVerificationClient:
    """
    Calls the verification endpoint and interprets its verdict.

    Usage:
        with ImageVerificationClient() as client:
            ok = client.verify(image_bytes, "Pothole")
    """

    VERIFY_PATH = "/api/verify-image"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        delay_seconds: Optional[float] = None,
        retry_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize verification client.

        Args:
            base_url: Base URL of the service exposing /api/verify-image
            timeout: HTTP request timeout in seconds
            delay_seconds: Pause before every call
            retry_delay_seconds: Pause before the single rate-limit retry
            sleep: Sleep function (injectable for tests)
            transport: Custom httpx transport
        """
        self.base_url = (base_url or settings.verification_base_url).rstrip("/")
        self.timeout = timeout or settings.verification_timeout_seconds
        self.delay_seconds = (
            settings.verification_delay_seconds if delay_seconds is None else delay_seconds
        )
        self.retry_delay_seconds = (
            settings.verification_retry_delay_seconds
            if retry_delay_seconds is None else retry_delay_seconds
        )
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        self._client.close()

    def verify(self, image_bytes: bytes, category: str) -> bool:
        """
        Ask whether the photo matches the category.

        Args:
            image_bytes: Raw JPEG bytes
            category: Issue category name

        Returns:
            The verdict

        Raises:
            RateLimitExceeded: rate limited twice in a row
            VerificationError: network failure, error response or malformed body
        """
        payload = {
            "imageBase64": base64.b64encode(image_bytes).decode("ascii"),
            "category": category,
        }

        try:
            return self._request(payload)
        except RateLimitExceeded:
            logger.warning(
                f"Verification rate limited, retrying once in {self.retry_delay_seconds}s"
            )
            self._sleep(self.retry_delay_seconds)
            return self._request(payload)

    def _request(self, payload: dict) -> bool:
        self._sleep(self.delay_seconds)

        try:
            response = self._client.post(self.VERIFY_PATH, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Verification request failed: {e}")
            raise VerificationError(f"Failed to verify image with AI: {e}") from e

        if response.status_code == 429:
            raise RateLimitExceeded(self._error_text(response, "Rate limit exceeded"))

        if not response.is_success:
            detail = self._error_text(response, "Failed to verify image")
            logger.error(f"Verification endpoint returned {response.status_code}: {detail}")
            raise VerificationError(detail)

        try:
            data = response.json()
            verdict = data["isVerified"]
        except (ValueError, KeyError, TypeError) as e:
            raise VerificationError("Malformed verification response") from e

        if not isinstance(verdict, bool):
            raise VerificationError("Malformed verification response")

        logger.info(f"Verification verdict for {payload['category']!r}: {verdict}")
        return verdict

    @staticmethod
    def _error_text(response: httpx.Response, default: str) -> str:
        try:
            return response.json().get("error") or default
        except (ValueError, AttributeError):
            return default
