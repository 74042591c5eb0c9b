"""
App Check entry point: binds one provider to each app.

Example:
    >>> from appcheck import App, AppCheck, CustomProvider, CustomProviderOptions
    >>> app = App(name="[DEFAULT]", api_key="key", project_id="proj", app_id="1:123:web:abc")
    >>> app_check = AppCheck.initialize(app, CustomProvider(CustomProviderOptions(get_token=fetch_token)))
    >>> token = app_check.get_token()
    >>>
    >>> # Elsewhere in the application
    >>> token = get_app_check(app).get_token()
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, ClassVar

from appcheck._errors import AlreadyInitializedError, UseBeforeActivationError

if TYPE_CHECKING:
    from appcheck._app import App
    from appcheck._providers import AppCheckProvider
    from appcheck._token import AppCheckToken

logger = logging.getLogger(__name__)


class AppCheck:
    """
    App Check instance of one app, dispatching token requests to its provider.

    Use AppCheck.initialize() to create instances; the registry keeps one
    instance per app name. Tokens are not cached: every get_token() call
    reaches the provider.

    Attributes:
        app: The app this instance belongs to.
        provider: The active provider.
    """

    _instances: ClassVar[dict[str, AppCheck]] = {}
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, app: App, provider: AppCheckProvider):
        assert app is not None, "App cannot be None."
        assert provider is not None, "Provider cannot be None."
        self.app = app
        self.provider = provider

    @classmethod
    def initialize(cls, app: App, provider: AppCheckProvider) -> AppCheck:
        """
        Activate App Check for the app with the given provider.

        Calling it again with an equal provider returns the existing instance.
        The provider is initialized outside the registry lock, so a slow
        reCAPTCHA client never blocks other apps.

        Raises:
            AlreadyInitializedError: If the app was initialized with a different provider.
        """
        with cls._registry_lock:
            existing = cls._instances.get(app.name)
            if existing is not None:
                if existing.provider.is_equal(provider):
                    return existing
                raise AlreadyInitializedError(app_name=app.name)

            instance = cls(app, provider)
            cls._instances[app.name] = instance

        try:
            provider.initialize(app)
        except Exception:
            with cls._registry_lock:
                if cls._instances.get(app.name) is instance:
                    del cls._instances[app.name]
            raise

        logger.info(f"{app.name} | AppCheck | Activated with {type(provider).__name__}.")
        return instance

    @classmethod
    def get(cls, app: App) -> AppCheck:
        """
        Return the instance of an initialized app.

        Raises:
            UseBeforeActivationError: If AppCheck.initialize() was not called for the app.
        """
        with cls._registry_lock:
            instance = cls._instances.get(app.name)
        if instance is None:
            raise UseBeforeActivationError(app_name=app.name)
        return instance

    @classmethod
    def reset(cls) -> None:
        """Forget all initialized apps. Useful for testing."""
        with cls._registry_lock:
            cls._instances.clear()

    def get_token(self) -> AppCheckToken:
        """
        Request a token from the active provider.

        Raises:
            AppCheckError: Whatever the provider raises.
        """
        return self.provider.get_token()

    def __repr__(self) -> str:
        return f"AppCheck(app={self.app.name!r}, provider={self.provider!r})"


def get_app_check(app: App) -> AppCheck:
    """Shortcut for AppCheck.get(app)."""
    return AppCheck.get(app)
