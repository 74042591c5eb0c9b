"""
App Check token client for Python.

Obtains short-lived App Check tokens using pluggable attestation providers,
and backs off after failed exchanges so the issuing service is not hammered.

Quick Start (reCAPTCHA v3):
    >>> from appcheck import App, AppCheck, CallableRecaptchaClient, ReCaptchaV3Provider
    >>> app = App(name="[DEFAULT]", api_key="AIza...", project_id="my-project", app_id="1:123:web:abc")
    >>> recaptcha = CallableRecaptchaClient(lambda app: produce_recaptcha_token())
    >>> app_check = AppCheck.initialize(app, ReCaptchaV3Provider("my-site-key", recaptcha=recaptcha))
    >>> token = app_check.get_token()

Quick Start (custom provider):
    >>> from appcheck import CustomProvider, CustomProviderOptions, CustomToken
    >>> provider = CustomProvider(CustomProviderOptions(
    ...     get_token=lambda: CustomToken(token=my_backend_token(), expire_time_millis=expires_at),
    ... ))
    >>> app_check = AppCheck.initialize(app, provider)

Global Configuration:
    >>> from appcheck import APPCHECK
    >>> APPCHECK.configure(
    ...     exchange={"request_timeout": 10},
    ...     throttle={"backoff_interval_millis": 2000, "hard_block_millis": 3_600_000},
    ... )

Main Classes:
    - AppCheck: Binds a provider to an app and dispatches token requests.
    - App: App identity (name, api_key, project_id, app_id).
    - ReCaptchaV3Provider: reCAPTCHA v3 attestation + token exchange, with throttling.
    - CustomProvider: Tokens from a caller-supplied callback.
    - AppCheckToken: A signed token with expiration and issuance times.

Errors:
    - AppCheckError: Base class of all errors (with a stable `code`).
    - UseBeforeActivationError, AlreadyInitializedError, RecaptchaError,
      ThrottledError, FetchStatusError, FetchNetworkError, FetchParseError.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("appcheck")

from appcheck._app import App
from appcheck._app_check import AppCheck, get_app_check
from appcheck._backoff import calculate_backoff_millis
from appcheck._config import (
    APPCHECK,
    AppCheckConfig,
    ConfigEnvVarError,
    ConfigValidationError,
    ExchangeConfig,
    ThrottleConfig,
)
from appcheck._errors import (
    AlreadyInitializedError,
    AppCheckError,
    FetchNetworkError,
    FetchParseError,
    FetchStatusError,
    RecaptchaError,
    ThrottledError,
    UseBeforeActivationError,
)
from appcheck._http import ExchangeClient, RequestsExchangeClient
from appcheck._providers import (
    AppCheckProvider,
    CustomProvider,
    CustomProviderOptions,
    ReCaptchaV3Provider,
)
from appcheck._recaptcha import CallableRecaptchaClient, RecaptchaClient
from appcheck._throttle import ONE_DAY, FailureKind, ThrottleData, ThrottleOptions
from appcheck._token import AppCheckToken, CustomToken, issued_at_time

__all__ = [
    "__version__",
    # App Check
    "App",
    "AppCheck",
    "get_app_check",
    # Configuration
    "APPCHECK",
    "AppCheckConfig",
    "ExchangeConfig",
    "ThrottleConfig",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # Providers
    "AppCheckProvider",
    "ReCaptchaV3Provider",
    "CustomProvider",
    "CustomProviderOptions",
    # Collaborators
    "RecaptchaClient",
    "CallableRecaptchaClient",
    "ExchangeClient",
    "RequestsExchangeClient",
    # Tokens
    "AppCheckToken",
    "CustomToken",
    "issued_at_time",
    # Throttling
    "ONE_DAY",
    "FailureKind",
    "ThrottleData",
    "ThrottleOptions",
    "calculate_backoff_millis",
    # Errors
    "AppCheckError",
    "UseBeforeActivationError",
    "AlreadyInitializedError",
    "RecaptchaError",
    "ThrottledError",
    "FetchStatusError",
    "FetchNetworkError",
    "FetchParseError",
]
