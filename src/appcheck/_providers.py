"""
App Check attestation providers.

A provider produces an App Check token for the app it was initialized with.
Two providers are available:

    - ReCaptchaV3Provider: obtains a reCAPTCHA v3 attestation and exchanges it
      for an App Check token, throttling itself after failed exchanges.
    - CustomProvider: delegates to a caller-supplied callback returning a token
      issued by the caller's own backend.

Example:
    >>> from appcheck import App, AppCheck, ReCaptchaV3Provider
    >>> provider = ReCaptchaV3Provider("my-site-key", recaptcha=my_recaptcha_client)
    >>> app_check = AppCheck.initialize(app, provider)
    >>> token = app_check.get_token()
"""

from __future__ import annotations

import logging
import threading
import weakref
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, override

from appcheck._errors import FetchStatusError, RecaptchaError, UseBeforeActivationError
from appcheck._throttle import Throttle, ThrottleData, ThrottleOptions
from appcheck._token import AppCheckToken, CustomToken, normalize_issued_at_millis
from appcheck._utils import now_millis

if TYPE_CHECKING:
    from appcheck._app import App
    from appcheck._http import ExchangeClient
    from appcheck._recaptcha import RecaptchaClient

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Base Class
# =============================================================================


class AppCheckProvider(ABC):
    """
    Interface implemented by every App Check provider.

    Providers hold no shared state: each implementation keeps its own weak
    reference to the app it was initialized with.
    """

    @abstractmethod
    def get_token(self) -> AppCheckToken:
        """
        Return a new App Check token.

        Raises:
            UseBeforeActivationError: If called before initialize().
            AppCheckError: For classified failures of the provider.
        """
        pass

    @abstractmethod
    def initialize(self, app: App) -> None:
        """Bind the provider to the app. Called once, before the first get_token()."""
        pass

    @abstractmethod
    def is_equal(self, other: object) -> bool:
        """Return True if `other` is a provider of the same kind and identity."""
        pass

    def __eq__(self, other: object) -> bool:
        return self.is_equal(other)

    def __hash__(self) -> int:
        return object.__hash__(self)


def _deref(app_ref: weakref.ref[App] | None) -> App | None:
    return app_ref() if app_ref is not None else None


# =============================================================================
# reCAPTCHA v3
# =============================================================================


class ReCaptchaV3Provider(AppCheckProvider):
    """
    App Check provider that obtains a reCAPTCHA v3 token and exchanges it
    for an App Check token.

    After a failed exchange the provider throttles itself (see appcheck._throttle):
    while the throttle window is active, get_token() raises ThrottledError
    without contacting the exchange endpoint.

    Thread-safety:
        get_token() may be called concurrently. Calls on the same provider are
        serialized by a per-instance lock held across the throttle check, the
        attestation, the exchange and the throttle update.

    Args:
        site_key: reCAPTCHA v3 site key.
        recaptcha: Client producing reCAPTCHA v3 attestations.
        exchange_client: Client exchanging attestations for tokens.
            If None, uses RequestsExchangeClient with global config.
        options: Throttle options for this provider.
            If None, uses defaults from global config (APPCHECK.config.throttle).
    """

    def __init__(
        self,
        site_key: str,
        recaptcha: RecaptchaClient,
        exchange_client: ExchangeClient | None = None,
        options: ThrottleOptions | None = None,
    ):
        from appcheck._config import APPCHECK
        resolved_options = (options or ThrottleOptions()).with_defaults_from(APPCHECK.config.throttle)

        if exchange_client is None:
            from appcheck._http import RequestsExchangeClient
            exchange_client = RequestsExchangeClient()

        assert site_key, "ReCAPTCHA site_key cannot be empty."
        assert recaptcha is not None, "ReCAPTCHA client cannot be None."

        self._site_key = site_key
        self._recaptcha = recaptcha
        self._exchange_client = exchange_client
        self._throttle = Throttle(resolved_options, logger_prefix="ReCaptchaV3Provider")
        self._app_ref: weakref.ref[App] | None = None
        self._lock = threading.Lock()

    @property
    def site_key(self) -> str:
        return self._site_key

    @property
    def throttle_data(self) -> ThrottleData | None:
        """Current throttle window, or None when requests are not throttled."""
        return self._throttle.data

    @override
    def get_token(self) -> AppCheckToken:
        """
        Return a new App Check token.

        Raises:
            UseBeforeActivationError: If the provider was not initialized.
            ThrottledError: If inside a throttle window, or if the exchange
                just failed with an HTTP error status.
            RecaptchaError: If the reCAPTCHA client failed.
            AppCheckError: Any other exchange failure, propagated unchanged.
        """
        app = _deref(self._app_ref)
        if app is None:
            # Only happens if AppCheck.initialize() was never called,
            # so there is no app name to report.
            raise UseBeforeActivationError(app_name="")

        with self._lock:
            self._throttle.check()
            attestation = self._get_attestation(app)
            try:
                return self._exchange_client.exchange_recaptcha_v3_token(app, attestation)
            except FetchStatusError as e:
                throttle_data = self._throttle.record_failure(e.http_status)
                raise throttle_data.to_error() from e

    def _get_attestation(self, app: App) -> str:
        try:
            return self._recaptcha.get_token(app)
        except Exception as e:
            # The reCAPTCHA runtime fails without any useful detail
            logger.debug(
                f"{app.name} | ReCaptchaV3Provider | reCAPTCHA attestation failed: {e!r}",
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RecaptchaError() from e

    @override
    def initialize(self, app: App) -> None:
        """
        Bind the provider to the app and initialize the reCAPTCHA client.

        A reCAPTCHA initialization failure is logged and ignored; it surfaces
        as RecaptchaError on the next get_token().

        Raises:
            AssertionError: If the provider is already bound to another app.
        """
        assert app is not None, "App cannot be None."

        current = _deref(self._app_ref)
        if current is app:
            return
        assert current is None, \
            f"ReCaptchaV3Provider is already initialized for app '{current.name if current else ''}'."

        self._app_ref = weakref.ref(app)
        self._throttle.logger_prefix = f"{app.name} | ReCaptchaV3Provider"
        try:
            self._recaptcha.initialize(app, self._site_key)
        except Exception as e:
            logger.warning(
                f"{app.name} | ReCaptchaV3Provider | reCAPTCHA initialization failed: {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )

    @override
    def is_equal(self, other: object) -> bool:
        if isinstance(other, ReCaptchaV3Provider):
            return self._site_key == other._site_key
        return False

    def __hash__(self) -> int:
        return hash((ReCaptchaV3Provider, self._site_key))

    def __repr__(self) -> str:
        return f"ReCaptchaV3Provider(site_key={self._site_key!r})"


# =============================================================================
# Custom
# =============================================================================


@dataclass(frozen=True)
class CustomProviderOptions:
    """
    Options for a CustomProvider.

    Attributes:
        get_token: Callback returning a token issued by the caller's backend.
            It may raise; exceptions propagate to the get_token() caller unchanged.

    Example:
        >>> def fetch_token() -> CustomToken:
        ...     data = my_backend.issue_app_check_token()
        ...     return CustomToken(token=data["token"], expire_time_millis=data["expireTimeMillis"])
        >>> provider = CustomProvider(CustomProviderOptions(get_token=fetch_token))
    """

    get_token: Callable[[], CustomToken]


def _same_callback(a: Callable[..., object], b: Callable[..., object]) -> bool:
    # Callables can't be compared by behavior; same object or same definition
    if a == b:
        return True
    code_a = getattr(a, "__code__", None)
    return code_a is not None and code_a is getattr(b, "__code__", None)


class CustomProvider(AppCheckProvider):
    """
    App Check provider backed by a caller-supplied token callback.

    Custom providers are not throttled: the meaning of a failure is defined
    by the caller.

    Note:
        Equality compares the callback's identity (same object, or the same
        function definition), not its behavior.

    Args:
        options: Options holding the token callback.
    """

    def __init__(self, options: CustomProviderOptions):
        assert options is not None, "CustomProvider options cannot be None."
        assert callable(options.get_token), "CustomProvider options.get_token must be callable."

        self._options = options
        self._app_ref: weakref.ref[App] | None = None

    @override
    def get_token(self) -> AppCheckToken:
        """
        Return a token from the callback, with a trusted issuance time.

        Raises:
            UseBeforeActivationError: If the provider was not initialized.
            Exception: Whatever the callback raises, unchanged.
        """
        app = _deref(self._app_ref)
        if app is None:
            raise UseBeforeActivationError(app_name="")

        custom_token = self._options.get_token()
        issued_at_time_millis = normalize_issued_at_millis(custom_token.token, now_millis())
        logger.debug(f"{app.name} | CustomProvider | Got custom token (issued at {issued_at_time_millis}).")

        return AppCheckToken(
            token=custom_token.token,
            expire_time_millis=custom_token.expire_time_millis,
            issued_at_time_millis=issued_at_time_millis,
        )

    @override
    def initialize(self, app: App) -> None:
        """
        Bind the provider to the app.

        Raises:
            AssertionError: If the provider is already bound to another app.
        """
        assert app is not None, "App cannot be None."

        current = _deref(self._app_ref)
        assert current is None or current is app, \
            f"CustomProvider is already initialized for app '{current.name if current else ''}'."
        self._app_ref = weakref.ref(app)

    @override
    def is_equal(self, other: object) -> bool:
        if isinstance(other, CustomProvider):
            return _same_callback(self._options.get_token, other._options.get_token)
        return False

    def __hash__(self) -> int:
        callback = self._options.get_token
        return hash((CustomProvider, getattr(callback, "__code__", callback)))
