"""
Rate/Quota Governor for the remote classifier tiers.

Tracks, per provider, calls made in the current rate window and a
"unavailable until" cooldown set when the provider reports a quota or
permission failure.

States per provider:
    Available -> Cooling (quota/permission failure)
    Cooling -> Available (cooldown elapsed, checked lazily)

There is no half-open probe state: the first call after the cooldown is
an ordinary attempt. Window resets are also lazy, done on the next
permit check rather than by a timer.

Error classification:
- SERVICE_DISABLED: HTTP 403 or "service disabled"/"permission denied"
  signatures. Long cooldown, since these do not self-resolve quickly.
- RATE_LIMITED: HTTP 429 or "quota"/"rate limit" signatures. Short cooldown.
- TRANSIENT: everything else (network, timeout, malformed reply). No
  cooldown, the next call is immediately eligible.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Final

from toxicity_service.core.logging import get_logger

if TYPE_CHECKING:
    from toxicity_service.classifiers.exceptions import RemoteClassifierError

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_WINDOW_SECONDS: Final[float] = 60.0
DEFAULT_MAX_CALLS: Final[int] = 15
DEFAULT_SHORT_COOLDOWN: Final[float] = 60.0
DEFAULT_LONG_COOLDOWN: Final[float] = DEFAULT_SHORT_COOLDOWN * 60

STATUS_FORBIDDEN: Final[int] = 403
STATUS_TOO_MANY_REQUESTS: Final[int] = 429

SERVICE_DISABLED_SIGNATURES: Final[tuple[str, ...]] = (
    "service_disabled",
    "permission_denied",
    "permission denied",
    "has not been used",
    "is disabled",
    "enable it by visiting",
)
RATE_LIMITED_SIGNATURES: Final[tuple[str, ...]] = (
    "quota",
    "rate limit",
    "rate_limit",
    "resource_exhausted",
)


class ErrorKind(str, Enum):
    """How a provider failure affects its availability."""

    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    SERVICE_DISABLED = "service_disabled"


def classify_error(status_code: int | None, message: str) -> ErrorKind:
    """Map a provider failure onto an ErrorKind.

    Args:
        status_code: HTTP status if the provider answered
        message: Error text from the provider or transport

    Returns:
        ErrorKind deciding which cooldown (if any) applies
    """
    lowered = message.lower()
    if status_code == STATUS_FORBIDDEN or any(
        sig in lowered for sig in SERVICE_DISABLED_SIGNATURES
    ):
        return ErrorKind.SERVICE_DISABLED
    if status_code == STATUS_TOO_MANY_REQUESTS or any(
        sig in lowered for sig in RATE_LIMITED_SIGNATURES
    ):
        return ErrorKind.RATE_LIMITED
    return ErrorKind.TRANSIENT


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class ProviderLimits:
    """Per-provider rate window and cooldown configuration.

    Attributes:
        window_seconds: Length of the rate window
        max_calls: Calls allowed per window
        short_cooldown: Seconds a provider is skipped after a rate-limit error
        long_cooldown: Seconds a provider is skipped after a permission error
    """

    window_seconds: float = DEFAULT_WINDOW_SECONDS
    max_calls: int = DEFAULT_MAX_CALLS
    short_cooldown: float = DEFAULT_SHORT_COOLDOWN
    long_cooldown: float = DEFAULT_LONG_COOLDOWN


@dataclass(slots=True)
class ProviderState:
    """Mutable per-provider bookkeeping. Only the governor touches it."""

    limits: ProviderLimits
    window_start: float
    call_count: int = 0
    quota_exceeded_until: float | None = None
    last_error_kind: ErrorKind | None = field(default=None)


@dataclass(frozen=True, slots=True)
class ProviderSnapshot:
    """Read-only view of a provider's state for status reporting."""

    name: str
    call_count: int
    max_calls: int
    window_seconds: float
    cooling: bool
    cooldown_remaining: float
    last_error_kind: ErrorKind | None


# =============================================================================
# Main Implementation
# =============================================================================


class RateQuotaGovernor:
    """Process-wide rate and quota bookkeeping for remote providers.

    All read-modify-write sequences run under one lock. Use ``acquire()``
    rather than ``permit_call()`` followed by ``record_call()`` when two
    concurrent callers could race for the last slot in a window.

    Usage:
        governor = RateQuotaGovernor({"gemini": ProviderLimits(max_calls=15)})
        if governor.acquire("gemini"):
            ...  # call the provider
    """

    __slots__ = ("_states", "_clock", "_lock")

    def __init__(
        self,
        limits: Mapping[str, ProviderLimits] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize with per-provider limits.

        Args:
            limits: Provider name -> limits; more can be added via register()
            clock: Time source in seconds (monotonic by default)
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._states: dict[str, ProviderState] = {}
        for name, provider_limits in (limits or {}).items():
            self.register(name, provider_limits)

    def register(self, provider: str, limits: ProviderLimits | None = None) -> None:
        """Create state for a provider. Re-registering resets it."""
        with self._lock:
            self._states[provider] = ProviderState(
                limits=limits or ProviderLimits(),
                window_start=self._clock(),
            )

    @property
    def providers(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._states)

    def permit_call(self, provider: str) -> bool:
        """Return True if the provider may be called now.

        Denied while cooling down or when the window's ceiling is reached.
        Expired cooldowns and elapsed windows are reset here.
        """
        with self._lock:
            return self._permit_locked(self._state(provider), self._clock())

    def record_call(self, provider: str) -> None:
        """Count one call against the provider's current window."""
        with self._lock:
            self._state(provider).call_count += 1

    def acquire(self, provider: str) -> bool:
        """Atomically check permission and count the call if granted."""
        with self._lock:
            state = self._state(provider)
            if not self._permit_locked(state, self._clock()):
                return False
            state.call_count += 1
            return True

    def record_failure(self, provider: str, error: RemoteClassifierError) -> ErrorKind:
        """Classify a provider failure and start a cooldown if it warrants one.

        Args:
            provider: Provider name
            error: The adapter's error

        Returns:
            The ErrorKind assigned to the failure
        """
        kind = classify_error(error.status_code, error.message)
        with self._lock:
            state = self._state(provider)
            state.last_error_kind = kind
            if kind is ErrorKind.TRANSIENT:
                return kind

            cooldown = (
                state.limits.long_cooldown
                if kind is ErrorKind.SERVICE_DISABLED
                else state.limits.short_cooldown
            )
            state.quota_exceeded_until = self._clock() + cooldown

        logger.warning(
            "provider_cooldown_started",
            provider=provider,
            error_kind=kind.value,
            cooldown_seconds=cooldown,
        )
        return kind

    def is_cooling(self, provider: str) -> bool:
        """Return True while the provider's quota cooldown is active."""
        with self._lock:
            state = self._state(provider)
            return self._cooling_locked(state, self._clock())

    def all_cooling(self, providers: tuple[str, ...] | None = None) -> bool:
        """Return True if every given provider (default: all) is cooling down."""
        names = self.providers if providers is None else providers
        return bool(names) and all(self.is_cooling(name) for name in names)

    def snapshot(self, provider: str) -> ProviderSnapshot:
        with self._lock:
            state = self._state(provider)
            now = self._clock()
            cooling = self._cooling_locked(state, now)
            remaining = (
                state.quota_exceeded_until - now
                if cooling and state.quota_exceeded_until is not None
                else 0.0
            )
            return ProviderSnapshot(
                name=provider,
                call_count=state.call_count,
                max_calls=state.limits.max_calls,
                window_seconds=state.limits.window_seconds,
                cooling=cooling,
                cooldown_remaining=remaining,
                last_error_kind=state.last_error_kind,
            )

    # =========================================================================
    # Lock-held helpers
    # =========================================================================

    def _state(self, provider: str) -> ProviderState:
        try:
            return self._states[provider]
        except KeyError:
            raise KeyError(f"Unknown provider: {provider}") from None

    @staticmethod
    def _cooling_locked(state: ProviderState, now: float) -> bool:
        if state.quota_exceeded_until is None:
            return False
        if now < state.quota_exceeded_until:
            return True
        state.quota_exceeded_until = None
        return False

    def _permit_locked(self, state: ProviderState, now: float) -> bool:
        if self._cooling_locked(state, now):
            return False
        if now - state.window_start >= state.limits.window_seconds:
            state.call_count = 0
            state.window_start = now
        return state.call_count < state.limits.max_calls
