"""
reCAPTCHA v3 attestation client interface.

The reCAPTCHA runtime itself (script loading and ``grecaptcha.execute``) lives
outside this package. Implementations of RecaptchaClient bridge to it.

Example:
    >>> recaptcha = CallableRecaptchaClient(lambda app: run_recaptcha_execute(app))
    >>> provider = ReCaptchaV3Provider("my-site-key", recaptcha=recaptcha)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, override

if TYPE_CHECKING:
    from appcheck._app import App


class RecaptchaClient(ABC):
    """
    Abstract base class for reCAPTCHA v3 attestation clients.

    Implementations must be safe to call from multiple threads.
    """

    def initialize(self, app: App, site_key: str) -> None:
        """
        Prepare the client for the given app and site key.

        Called once when the owning provider is initialized. The default
        implementation does nothing.

        Raises:
            Exception: Any failure; the provider logs and ignores it.
        """
        return None

    @abstractmethod
    def get_token(self, app: App) -> str:
        """
        Produce a reCAPTCHA v3 attestation token for the app.

        Returns:
            The opaque attestation token string.

        Raises:
            Exception: Any failure. Providers translate it to RecaptchaError.
        """
        pass


class CallableRecaptchaClient(RecaptchaClient):
    """
    RecaptchaClient backed by a plain callable.

    Args:
        get_token_fn: Callable receiving the App and returning an attestation token.
    """

    def __init__(self, get_token_fn: Callable[[App], str]):
        assert get_token_fn is not None, "get_token_fn cannot be None"
        assert callable(get_token_fn), "get_token_fn must be callable"
        self._get_token_fn = get_token_fn

    @override
    def get_token(self, app: App) -> str:
        return self._get_token_fn(app)
