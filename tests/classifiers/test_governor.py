"""
Tests for the Rate/Quota Governor.

- TestClassifyError: error signature -> ErrorKind
- TestRateWindow: ceiling and lazy window reset
- TestCooldown: quota / permission cooldowns and lazy expiry
- TestAtomicAcquire: permit + record under concurrency
- TestSnapshot: status reporting
"""

from __future__ import annotations

import threading

import pytest

from toxicity_service.classifiers.exceptions import RemoteClassifierError
from toxicity_service.classifiers.governor import (
    ErrorKind,
    ProviderLimits,
    RateQuotaGovernor,
    classify_error,
)

PROVIDER = "gemini"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def governor(clock: FakeClock) -> RateQuotaGovernor:
    limits = ProviderLimits(window_seconds=60, max_calls=3, short_cooldown=60, long_cooldown=3600)
    return RateQuotaGovernor({PROVIDER: limits}, clock=clock)


# =============================================================================
# TestClassifyError
# =============================================================================


class TestClassifyError:
    @pytest.mark.parametrize(
        ("status_code", "message"),
        [
            (403, "forbidden"),
            (None, "Generative Language API has not been used in project 123"),
            (400, "SERVICE_DISABLED: API is disabled"),
            (None, "Enable it by visiting https://console.developers.google.com"),
            (None, "PERMISSION_DENIED"),
        ],
    )
    def test_service_disabled(self, status_code: int | None, message: str) -> None:
        assert classify_error(status_code, message) is ErrorKind.SERVICE_DISABLED

    @pytest.mark.parametrize(
        ("status_code", "message"),
        [
            (429, "Too Many Requests"),
            (None, "You exceeded your current quota"),
            (None, "rate limit reached for model"),
            (400, "RESOURCE_EXHAUSTED"),
        ],
    )
    def test_rate_limited(self, status_code: int | None, message: str) -> None:
        assert classify_error(status_code, message) is ErrorKind.RATE_LIMITED

    @pytest.mark.parametrize(
        ("status_code", "message"),
        [
            (None, "Connection refused"),
            (500, "Internal Server Error"),
            (None, "Reply contained neither JSON nor a toxicity keyword"),
            (None, "gemini did not answer within 10.0s"),
            (None, "connect to 10.0.0.7:4290 failed"),
            (502, "Bad Gateway, request id 429-17b2"),
        ],
    )
    def test_transient(self, status_code: int | None, message: str) -> None:
        assert classify_error(status_code, message) is ErrorKind.TRANSIENT


# =============================================================================
# TestRateWindow
# =============================================================================


class TestRateWindow:
    def test_permits_until_ceiling(self, governor: RateQuotaGovernor) -> None:
        for _ in range(3):
            assert governor.permit_call(PROVIDER) is True
            governor.record_call(PROVIDER)
        assert governor.permit_call(PROVIDER) is False

    def test_permit_does_not_count(self, governor: RateQuotaGovernor) -> None:
        for _ in range(10):
            assert governor.permit_call(PROVIDER) is True

    def test_window_resets_lazily(self, governor: RateQuotaGovernor, clock: FakeClock) -> None:
        for _ in range(3):
            governor.acquire(PROVIDER)
        assert governor.permit_call(PROVIDER) is False

        clock.advance(30)
        assert governor.permit_call(PROVIDER) is False

        clock.advance(30)
        assert governor.permit_call(PROVIDER) is True
        assert governor.snapshot(PROVIDER).call_count == 0

    def test_zero_ceiling_never_permits(self, clock: FakeClock) -> None:
        governor = RateQuotaGovernor({PROVIDER: ProviderLimits(max_calls=0)}, clock=clock)
        assert governor.acquire(PROVIDER) is False

    def test_unknown_provider(self, governor: RateQuotaGovernor) -> None:
        with pytest.raises(KeyError):
            governor.permit_call("nope")

    def test_register_adds_provider(self, governor: RateQuotaGovernor) -> None:
        governor.register("groq")
        assert governor.providers == (PROVIDER, "groq")
        assert governor.permit_call("groq") is True


# =============================================================================
# TestCooldown
# =============================================================================


class TestCooldown:
    def test_rate_limit_error_starts_short_cooldown(
        self, governor: RateQuotaGovernor, clock: FakeClock
    ) -> None:
        kind = governor.record_failure(PROVIDER, RemoteClassifierError("slow down", 429))

        assert kind is ErrorKind.RATE_LIMITED
        assert governor.is_cooling(PROVIDER) is True
        assert governor.permit_call(PROVIDER) is False

        clock.advance(60)
        assert governor.is_cooling(PROVIDER) is False
        assert governor.permit_call(PROVIDER) is True

    def test_service_disabled_starts_long_cooldown(
        self, governor: RateQuotaGovernor, clock: FakeClock
    ) -> None:
        governor.record_failure(PROVIDER, RemoteClassifierError("SERVICE_DISABLED", 403))

        clock.advance(61)
        assert governor.permit_call(PROVIDER) is False

        clock.advance(3600)
        assert governor.permit_call(PROVIDER) is True

    def test_transient_error_has_no_cooldown(self, governor: RateQuotaGovernor) -> None:
        kind = governor.record_failure(PROVIDER, RemoteClassifierError("connection reset"))

        assert kind is ErrorKind.TRANSIENT
        assert governor.is_cooling(PROVIDER) is False
        assert governor.permit_call(PROVIDER) is True

    def test_all_cooling(self, clock: FakeClock) -> None:
        governor = RateQuotaGovernor(
            {"gemini": ProviderLimits(), "groq": ProviderLimits()}, clock=clock
        )
        governor.record_failure("gemini", RemoteClassifierError("quota", 429))
        assert governor.all_cooling() is False

        governor.record_failure("groq", RemoteClassifierError("quota", 429))
        assert governor.all_cooling() is True
        assert governor.all_cooling(("gemini",)) is True

    def test_all_cooling_with_no_providers(self) -> None:
        assert RateQuotaGovernor().all_cooling() is False


# =============================================================================
# TestAtomicAcquire
# =============================================================================


class TestAtomicAcquire:
    def test_concurrent_acquire_respects_ceiling(self) -> None:
        governor = RateQuotaGovernor({PROVIDER: ProviderLimits(max_calls=5)})
        results: list[bool] = []
        results_lock = threading.Lock()
        barrier = threading.Barrier(20)

        def worker() -> None:
            barrier.wait()
            granted = governor.acquire(PROVIDER)
            with results_lock:
                results.append(granted)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 5
        assert governor.snapshot(PROVIDER).call_count == 5


# =============================================================================
# TestSnapshot
# =============================================================================


class TestSnapshot:
    def test_snapshot_reports_cooldown(
        self, governor: RateQuotaGovernor, clock: FakeClock
    ) -> None:
        governor.acquire(PROVIDER)
        governor.record_failure(PROVIDER, RemoteClassifierError("quota exceeded", 429))
        clock.advance(15)

        snap = governor.snapshot(PROVIDER)

        assert snap.name == PROVIDER
        assert snap.call_count == 1
        assert snap.max_calls == 3
        assert snap.cooling is True
        assert snap.cooldown_remaining == pytest.approx(45)
        assert snap.last_error_kind is ErrorKind.RATE_LIMITED
