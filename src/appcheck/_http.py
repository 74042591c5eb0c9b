"""
Token exchange HTTP client.

Exchanges an attestation artifact for a signed App Check token. Failures are
classified here, at the boundary where the raw response is received:

    - No response at all (DNS, connection, timeout): FetchNetworkError
    - Non-200 HTTP status: FetchStatusError (carries http_status)
    - Unparsable body: FetchParseError

Only FetchStatusError drives the provider's throttle state machine.

Example:
    >>> from appcheck._http import RequestsExchangeClient
    >>> client = RequestsExchangeClient()
    >>> token = client.exchange_recaptcha_v3_token(app, attestation="03AGdBq2...")
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, override

import requests

from appcheck._errors import FetchNetworkError, FetchParseError, FetchStatusError
from appcheck._token import AppCheckToken
from appcheck._utils import now_millis

if TYPE_CHECKING:
    from appcheck._app import App

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Base Class
# =============================================================================


class ExchangeClient(ABC):
    """
    Abstract base class for token exchange clients.

    Implementations must raise FetchStatusError for HTTP-status failures so
    providers can throttle; any other exception is propagated by providers
    unchanged.
    """

    @abstractmethod
    def exchange_recaptcha_v3_token(self, app: App, attestation: str) -> AppCheckToken:
        """
        Exchange a reCAPTCHA v3 attestation for an App Check token.

        Args:
            app: The app the token is requested for.
            attestation: The reCAPTCHA v3 token.

        Returns:
            The issued App Check token.

        Raises:
            FetchStatusError: If the server answered with a non-success status.
            AppCheckError: For any other classified failure.
        """
        pass


# =============================================================================
# Implementations
# =============================================================================


class RequestsExchangeClient(ExchangeClient):
    """
    Exchange client using `requests` against the App Check REST API.

    Args:
        base_url: Base URL of the exchange API.
            If None, uses global config (APPCHECK.config.exchange.base_url).
        request_timeout: HTTP request timeout in seconds.
            If None, uses global config (APPCHECK.config.exchange.request_timeout).
    """

    def __init__(
        self,
        base_url: str | None = None,
        request_timeout: int | None = None,
    ):
        from appcheck._config import APPCHECK
        cfg = APPCHECK.config.exchange

        if base_url is None:
            base_url = cfg.base_url
        if request_timeout is None:
            request_timeout = cfg.request_timeout

        assert base_url, "Exchange base_url cannot be empty."
        assert request_timeout > 0, "Exchange request_timeout must be greater than 0."

        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout

    @override
    def exchange_recaptcha_v3_token(self, app: App, attestation: str) -> AppCheckToken:
        assert attestation, "Attestation cannot be empty."

        url = f"{self.base_url}/projects/{app.project_id}/apps/{app.app_id}:exchangeRecaptchaV3Token"
        return self._exchange(app, url=url, body={"recaptcha_v3_token": attestation})

    def _exchange(self, app: App, url: str, body: dict[str, Any]) -> AppCheckToken:
        """
        POST the exchange request and turn the response into a token.

        Raises:
            FetchNetworkError: If the request could not be sent.
            FetchStatusError: If the status code is not 200.
            FetchParseError: If the body is not a valid exchange response.
        """
        logger.debug(f"{app.name} | Exchange | Requesting App Check token from {url}")
        try:
            response = requests.post(
                url,
                params={"key": app.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.request_timeout,
            )
        except requests.RequestException as e:
            raise FetchNetworkError(original_error_message=str(e)) from e

        if response.status_code != 200:
            raise FetchStatusError(http_status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise FetchParseError(original_error_message=str(e)) from e

        return self._parse_token(data)

    @staticmethod
    def _parse_token(data: Any) -> AppCheckToken:
        """Build a token from a response body like ``{"token": "...", "ttl": "3600s"}``."""
        if not isinstance(data, dict):
            raise FetchParseError(original_error_message=f"Expected a JSON object, got {type(data).__name__}")

        token = data.get("token")
        ttl = data.get("ttl")
        if not isinstance(token, str) or not token:
            raise FetchParseError(original_error_message="Missing 'token' field")
        if not isinstance(ttl, str):
            raise FetchParseError(original_error_message="Missing 'ttl' field")

        try:
            ttl_seconds = float(ttl.removesuffix("s"))
        except ValueError as e:
            raise FetchParseError(
                original_error_message=f"ttl field (timeToLive) is not in standard Protobuf Duration format: {ttl}"
            ) from e
        if not math.isfinite(ttl_seconds) or ttl_seconds < 0:
            raise FetchParseError(
                original_error_message=f"ttl field (timeToLive) is not a finite, non-negative duration: {ttl}"
            )

        now = now_millis()
        return AppCheckToken(
            token=token,
            expire_time_millis=now + int(ttl_seconds * 1000),
            issued_at_time_millis=now,
        )
