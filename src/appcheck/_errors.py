"""
Exceptions raised by the appcheck package.

Every error derives from AppCheckError and carries a stable ``code`` string,
so callers can branch either on the exception type or on the code:

    >>> try:
    ...     token = provider.get_token()
    ... except ThrottledError as e:
    ...     schedule_retry(at=e.allow_requests_after)
    ... except AppCheckError as e:
    ...     print(e.code, e)
"""

from __future__ import annotations

from appcheck._utils import format_millis

# =============================================================================
# Base Class
# =============================================================================


class AppCheckError(Exception):
    """
    Base class for all errors raised by the appcheck package.

    Attributes:
        code: Stable machine-readable error code (e.g. "appCheck/throttled").
        message: Human-readable error message.
    """

    code: str = "appCheck/unknown"

    def __init__(self, message: str):
        super().__init__(f"AppCheck: {message} ({self.code}).")
        self.message = message


# =============================================================================
# Activation Errors
# =============================================================================


class UseBeforeActivationError(AppCheckError):
    """
    Raised when a token is requested before the provider (or App Check) was initialized.

    Attributes:
        app_name: Name of the app, or an empty string when unknown at the call site.
    """

    code = "appCheck/use-before-activation"

    def __init__(self, app_name: str = ""):
        self.app_name = app_name
        super().__init__(
            f"App Check is being used before initialize() is called for app '{app_name}'. "
            "Call AppCheck.initialize() before requesting tokens."
        )


class AlreadyInitializedError(AppCheckError):
    """
    Raised when App Check is initialized twice for the same app with a different provider.

    Attributes:
        app_name: Name of the app that was already initialized.
    """

    code = "appCheck/already-initialized"

    def __init__(self, app_name: str):
        self.app_name = app_name
        super().__init__(
            f"App Check has already been initialized for app '{app_name}' with a different provider."
        )


# =============================================================================
# Attestation Errors
# =============================================================================


class RecaptchaError(AppCheckError):
    """
    Raised when the reCAPTCHA client fails to produce an attestation.

    The underlying cause is intentionally not part of the message: the
    reCAPTCHA runtime fails without any useful detail.
    """

    code = "appCheck/recaptcha-error"

    def __init__(self) -> None:
        super().__init__("ReCAPTCHA error")


# =============================================================================
# Throttling Errors
# =============================================================================


class ThrottledError(AppCheckError):
    """
    Raised when token requests are throttled after a failed exchange.

    Raised both when entering ``get_token()`` inside an active throttle window
    and right after a failed exchange opens a new one. No exchange request is
    sent while the window is active.

    Attributes:
        allow_requests_after: Epoch milliseconds after which requests are allowed again.
        http_status: Status code of the failed exchange that caused the throttling.

    Example:
        >>> try:
        ...     provider.get_token()
        ... except ThrottledError as e:
        ...     wait_millis = e.allow_requests_after - now_millis()
    """

    code = "appCheck/throttled"

    def __init__(self, allow_requests_after: int, http_status: int):
        self.allow_requests_after = allow_requests_after
        self.http_status = http_status
        super().__init__(
            f"Requests throttled due to {http_status} error. "
            f"Attempts allowed again after {format_millis(allow_requests_after)}"
        )


# =============================================================================
# Exchange Errors
# =============================================================================


class FetchStatusError(AppCheckError):
    """
    Raised when the exchange endpoint answers with a non-success HTTP status.

    This is the only exchange failure that drives the throttle state machine.

    Attributes:
        http_status: The HTTP status code returned by the server.
    """

    code = "appCheck/fetch-status-error"

    def __init__(self, http_status: int):
        self.http_status = http_status
        super().__init__(f"Fetch server returned an HTTP error status. HTTP status: {http_status}")


class FetchNetworkError(AppCheckError):
    """
    Raised when the exchange request could not reach the server.

    Attributes:
        original_error_message: Message of the underlying transport error.
    """

    code = "appCheck/fetch-network-error"

    def __init__(self, original_error_message: str):
        self.original_error_message = original_error_message
        super().__init__(f"Fetch failed to connect to a network. Original error: {original_error_message}")


class FetchParseError(AppCheckError):
    """
    Raised when the exchange response body cannot be parsed into a token.

    Attributes:
        original_error_message: Description of what was wrong with the body.
    """

    code = "appCheck/fetch-parse-error"

    def __init__(self, original_error_message: str):
        self.original_error_message = original_error_message
        super().__init__(f"Fetch client could not parse response. Original error: {original_error_message}")
