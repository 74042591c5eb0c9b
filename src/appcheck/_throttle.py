"""
Throttle state machine for failed token exchanges.

After a failed exchange, a provider must not hit the exchange endpoint again
until a throttle window has passed:

- Hard-block failures (HTTP 403 and 404) block new attempts for a fixed
  window (1 day by default). Retrying sooner will not help: 404 likely means
  a malformed URL, 403 means attestation failed, a wrong API key or a
  deleted project.
- Any other failure blocks new attempts for an exponentially growing,
  jittered delay based on the number of consecutive failures.

The window is checked lazily on the next request; there are no timers.
A successful exchange does not clear the state, only the window passing does.

Example:
    >>> throttle = Throttle(ThrottleOptions().with_defaults_from(APPCHECK.config.throttle))
    >>> throttle.check()              # CLEAR: returns normally
    >>> throttle.record_failure(503)  # THROTTLED for ~1s
    ThrottleData(backoff_count=1, allow_requests_after=..., http_status=503)
    >>> throttle.check()              # raises ThrottledError
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from appcheck._backoff import calculate_backoff_millis
from appcheck._errors import ThrottledError
from appcheck._utils import format_millis, now_millis

if TYPE_CHECKING:
    from appcheck._config import ThrottleConfig

logger = logging.getLogger(__name__)

ONE_DAY = 24 * 60 * 60 * 1000


class FailureKind(enum.StrEnum):
    """
    Classification of a failed exchange, decided before any state change.

    Attributes:
        HARD_BLOCK: The failure will not resolve by retrying sooner (403, 404).
        TRANSIENT: Any other failure; retried after an exponential backoff.
    """
    HARD_BLOCK = "HARD_BLOCK"
    TRANSIENT = "TRANSIENT"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_http_status(cls, http_status: int) -> FailureKind:
        """Classify a failed exchange by its HTTP status code."""
        return cls.HARD_BLOCK if http_status in (403, 404) else cls.TRANSIENT


@dataclass(frozen=True)
class ThrottleData:
    """
    Snapshot of an active throttle window.

    Attributes:
        backoff_count: Number of consecutive failures since the last reset.
        allow_requests_after: Epoch milliseconds after which requests are allowed again.
        http_status: Status code of the failure that opened this window.
    """

    backoff_count: int
    allow_requests_after: int
    http_status: int

    def to_error(self) -> ThrottledError:
        """Build the ThrottledError describing this window."""
        return ThrottledError(
            allow_requests_after=self.allow_requests_after,
            http_status=self.http_status,
        )


@dataclass(frozen=True)
class ThrottleOptions:
    """
    Throttle options for a single provider.

    Fields set to None will use values from global config (APPCHECK.config.throttle).

    Example:
        >>> # Shorter hard-block window for this provider only
        >>> options = ThrottleOptions(hard_block_millis=60 * 60 * 1000)
        >>> provider = ReCaptchaV3Provider("site-key", recaptcha, options=options)
    """

    backoff_interval_millis: int | None = None
    backoff_factor: float | None = None
    backoff_max_millis: int | None = None
    backoff_random_factor: float | None = None
    hard_block_millis: int | None = None

    def with_defaults_from(self, cfg: ThrottleConfig) -> ThrottleOptions:
        """
        Return new ThrottleOptions with None values filled from config.

        Args:
            cfg: The ThrottleConfig to use for default values.

        Returns:
            A new ThrottleOptions with all fields resolved (no None values).
        """
        return ThrottleOptions(
            backoff_interval_millis=self.backoff_interval_millis if self.backoff_interval_millis is not None else cfg.backoff_interval_millis,
            backoff_factor=self.backoff_factor if self.backoff_factor is not None else cfg.backoff_factor,
            backoff_max_millis=self.backoff_max_millis if self.backoff_max_millis is not None else cfg.backoff_max_millis,
            backoff_random_factor=self.backoff_random_factor if self.backoff_random_factor is not None else cfg.backoff_random_factor,
            hard_block_millis=self.hard_block_millis if self.hard_block_millis is not None else cfg.hard_block_millis,
        )


class Throttle:
    """
    Mutable throttle state of one provider.

    States are CLEAR (``data is None``) and THROTTLED (``data`` holds a
    ThrottleData). The state is exclusive to its owning provider.

    Note:
        This class does not lock. The owning provider must hold its own lock
        around the whole check -> exchange -> record_failure sequence, so that
        two concurrent callers can never both observe CLEAR and both hit the
        exchange endpoint after a failure.

    Args:
        options: Fully resolved throttle options (see ThrottleOptions.with_defaults_from()).
        logger_prefix: Prefix for log messages (e.g., "my-app | ReCaptchaV3Provider").
    """

    def __init__(self, options: ThrottleOptions, logger_prefix: str = ""):
        assert options.backoff_interval_millis is not None, \
            "🌀 Sanity check | backoff_interval_millis must be set after with_defaults_from()"
        assert options.backoff_factor is not None, \
            "🌀 Sanity check | backoff_factor must be set after with_defaults_from()"
        assert options.backoff_max_millis is not None, \
            "🌀 Sanity check | backoff_max_millis must be set after with_defaults_from()"
        assert options.backoff_random_factor is not None, \
            "🌀 Sanity check | backoff_random_factor must be set after with_defaults_from()"
        assert options.hard_block_millis is not None, \
            "🌀 Sanity check | hard_block_millis must be set after with_defaults_from()"

        self.options = options
        self.logger_prefix = logger_prefix
        self._data: ThrottleData | None = None

    @property
    def data(self) -> ThrottleData | None:
        """Current throttle window, or None when CLEAR."""
        return self._data

    def is_throttled(self) -> bool:
        """Return True if a throttle window is currently recorded (expired or not)."""
        return self._data is not None

    def check(self) -> None:
        """
        Gate a new exchange attempt.

        Clears the state if the window has passed; otherwise raises without
        touching the state, so repeated calls inside the window raise errors
        with identical fields.

        Raises:
            ThrottledError: If the current time is still inside the window.
        """
        if self._data is None:
            return

        if now_millis() >= self._data.allow_requests_after:
            logger.info(
                f"{self._prefix()}Throttle window (HTTP {self._data.http_status}) has passed. "
                f"Requests are allowed again."
            )
            self._data = None
            return

        raise self._data.to_error()

    def record_failure(self, http_status: int) -> ThrottleData:
        """
        Open a new throttle window after a failed exchange.

        Args:
            http_status: Status code of the failed exchange.

        Returns:
            The new throttle window.
        """
        kind = FailureKind.from_http_status(http_status)
        now = now_millis()

        if kind is FailureKind.HARD_BLOCK:
            assert self.options.hard_block_millis is not None  # for type checker
            self._data = ThrottleData(
                backoff_count=1,
                allow_requests_after=now + self.options.hard_block_millis,
                http_status=http_status,
            )
        else:
            backoff_count = self._data.backoff_count if self._data else 0
            backoff_millis = calculate_backoff_millis(
                backoff_count,
                self.options.backoff_interval_millis,  # type: ignore[arg-type]
                self.options.backoff_factor,  # type: ignore[arg-type]
                max_millis=self.options.backoff_max_millis,  # type: ignore[arg-type]
                random_factor=self.options.backoff_random_factor,  # type: ignore[arg-type]
            )
            self._data = ThrottleData(
                backoff_count=backoff_count + 1,
                allow_requests_after=now + backoff_millis,
                http_status=http_status,
            )

        logger.warning(
            f"{self._prefix()}Exchange failed with HTTP {http_status} ({kind}). "
            f"Throttling requests until {format_millis(self._data.allow_requests_after)} "
            f"(backoff count: {self._data.backoff_count})."
        )
        return self._data

    def _prefix(self) -> str:
        return f"{self.logger_prefix} | " if self.logger_prefix else ""
