"""
App identity handle.

Providers only keep a weak reference to the App they were initialized with:
they never extend its lifetime.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class App:
    """
    Identity of the application requesting App Check tokens.

    Attributes:
        name: App name, used for logging and for the App Check registry.
        api_key: API key sent with exchange requests.
        project_id: Project the app belongs to.
        app_id: App ID registered for App Check.

    Example:
        >>> app = App(name="[DEFAULT]", api_key="AIza...", project_id="my-project", app_id="1:123:web:abc")
    """

    name: str
    api_key: str
    project_id: str
    app_id: str

    def __post_init__(self) -> None:
        assert self.name, "App name cannot be empty."
        assert self.api_key, "App api_key cannot be empty."
        assert self.project_id, "App project_id cannot be empty."
        assert self.app_id, "App app_id cannot be empty."
