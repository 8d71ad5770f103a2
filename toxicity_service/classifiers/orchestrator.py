"""
Moderation Orchestrator - the toxicity classification cascade.

Composes the tiers into one total operation, ``classify(text)``:

1. Response cache (normalized text) - dominant fast path
2. Primary remote classifier (Gemini), if the governor permits
3. Secondary remote classifier (Groq), if the governor permits
4. Local lexicon - always succeeds, confidence fixed at 0.5

Every verdict, from any tier, is cached before it is returned. Remote
failures never reach the caller: transient errors move on to the next
tier, quota/permission errors also put the provider into cooldown so later
calls skip it without calling. Degraded operation is visible only through
``Verdict.method``.

Identical uncached texts classified concurrently may each reach a remote
provider; a cache hit is only guaranteed once the first call completes.

Pattern: Pipeline / Chain of Responsibility
- All tier components injected through the constructor
- One instance per process, built at startup and shared by handle
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

from toxicity_service.classifiers.exceptions import RemoteClassifierError
from toxicity_service.classifiers.gemini_adapter import GeminiClassifier
from toxicity_service.classifiers.governor import (
    ErrorKind,
    ProviderLimits,
    ProviderSnapshot,
    RateQuotaGovernor,
)
from toxicity_service.classifiers.groq_adapter import GroqClassifier
from toxicity_service.classifiers.lexicon import LexiconClassifier
from toxicity_service.classifiers.response_cache import ResponseCache
from toxicity_service.classifiers.verdict import (
    EMPTY_TEXT_VERDICT,
    LEXICON_CONFIDENCE,
    ClassificationMethod,
    Verdict,
    normalize_text,
)
from toxicity_service.core.logging import get_logger
from toxicity_service.core.tracing import get_tracer

if TYPE_CHECKING:
    from toxicity_service.classifiers.lexicon import LexiconClassifierProtocol
    from toxicity_service.classifiers.remote_adapter import RemoteClassifierProtocol
    from toxicity_service.core.config import Settings

logger = get_logger(__name__)
tracer = get_tracer(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_CALL_TIMEOUT: Final[float] = 10.0
SPAN_REMOTE_CALL: Final[str] = "moderation.remote_call"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class RemoteTier:
    """A remote adapter bound to the method its verdicts are tagged with."""

    method: ClassificationMethod
    classifier: RemoteClassifierProtocol


@dataclass(frozen=True, slots=True)
class ProviderStatus:
    """Status of one remote tier, for admin/observability surfaces."""

    method: ClassificationMethod
    snapshot: ProviderSnapshot


# =============================================================================
# Protocol Definition
# =============================================================================


@runtime_checkable
class ModerationOrchestratorProtocol(Protocol):
    """Protocol for moderation orchestrators.

    Enables dependency injection and test doubles.
    """

    async def classify(self, text: str, allow_remote: bool = True) -> Verdict:
        """Classify one message. Never raises for provider failures."""
        ...

    async def classify_batch(
        self, texts: list[str], allow_remote: bool = True
    ) -> list[Verdict]:
        """Classify several messages, preserving order."""
        ...

    def provider_status(self) -> list[ProviderStatus]:
        """Return governor state for each remote tier."""
        ...


# =============================================================================
# Main Implementation
# =============================================================================


class ModerationOrchestrator:
    """Runs the cache -> primary -> secondary -> lexicon cascade.

    Example:
        orchestrator = ModerationOrchestrator(
            lexicon=LexiconClassifier(),
            primary=GeminiClassifier(api_key=...),
            secondary=GroqClassifier(api_key=...),
        )
        verdict = await orchestrator.classify("you absolute idiot")
    """

    __slots__ = (
        "_lexicon",
        "_remote_tiers",
        "_cache",
        "_governor",
        "_call_timeout",
        "_remote_enabled",
    )

    def __init__(
        self,
        lexicon: LexiconClassifierProtocol,
        primary: RemoteClassifierProtocol | None = None,
        secondary: RemoteClassifierProtocol | None = None,
        cache: ResponseCache | None = None,
        governor: RateQuotaGovernor | None = None,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        remote_enabled: bool = True,
    ) -> None:
        """Initialize with the tier components.

        Remote adapters not yet known to the governor are registered with
        default limits.

        Args:
            lexicon: Always-available local tier
            primary: First remote tier, or None
            secondary: Second remote tier, or None
            cache: Shared response cache (a default-sized one if None)
            governor: Rate/quota bookkeeping (default limits if None)
            call_timeout: Upper bound in seconds for each remote call
            remote_enabled: Admin switch; False means lexicon-only
        """
        self._lexicon = lexicon
        self._cache = cache if cache is not None else ResponseCache()
        self._governor = governor if governor is not None else RateQuotaGovernor()
        self._call_timeout = call_timeout
        self._remote_enabled = remote_enabled

        tiers: list[RemoteTier] = []
        if primary is not None:
            tiers.append(RemoteTier(ClassificationMethod.PRIMARY_REMOTE, primary))
        if secondary is not None:
            tiers.append(RemoteTier(ClassificationMethod.SECONDARY_REMOTE, secondary))
        self._remote_tiers: tuple[RemoteTier, ...] = tuple(tiers)

        known = self._governor.providers
        for tier in self._remote_tiers:
            if tier.classifier.name not in known:
                self._governor.register(tier.classifier.name)

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def governor(self) -> RateQuotaGovernor:
        return self._governor

    @property
    def remote_enabled(self) -> bool:
        return self._remote_enabled

    @remote_enabled.setter
    def remote_enabled(self, enabled: bool) -> None:
        self._remote_enabled = enabled

    async def start(self) -> None:
        """Start background cache maintenance."""
        self._cache.start_maintenance()

    async def aclose(self) -> None:
        """Stop background cache maintenance."""
        await self._cache.stop_maintenance()

    async def classify(self, text: str, allow_remote: bool = True) -> Verdict:
        """Classify a message through the cascade.

        Args:
            text: Message text
            allow_remote: False restricts this call to cache + lexicon

        Returns:
            Verdict; empty or whitespace-only text is non-toxic by definition
        """
        key = normalize_text(text) if isinstance(text, str) else ""
        if not key:
            return EMPTY_TEXT_VERDICT

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("cache_hit", method=cached.method.value)
            return cached

        verdict: Verdict | None = None
        if allow_remote and self._remote_enabled and self._any_remote_available():
            verdict = await self._check_remote_tiers(text.strip())

        if verdict is None:
            verdict = self._check_lexicon(text)

        self._cache.put(key, verdict)
        return verdict

    async def classify_batch(
        self, texts: list[str], allow_remote: bool = True
    ) -> list[Verdict]:
        """Classify several messages sequentially.

        Sequential on purpose: each call may consume rate-window slots,
        and earlier results warm the cache for repeated texts.
        """
        if not texts:
            return []

        results: list[Verdict] = []
        for text in texts:
            results.append(await self.classify(text, allow_remote=allow_remote))
        return results

    def provider_status(self) -> list[ProviderStatus]:
        return [
            ProviderStatus(
                method=tier.method,
                snapshot=self._governor.snapshot(tier.classifier.name),
            )
            for tier in self._remote_tiers
        ]

    def _any_remote_available(self) -> bool:
        if not self._remote_tiers:
            return False
        names = tuple(tier.classifier.name for tier in self._remote_tiers)
        return not self._governor.all_cooling(names)

    async def _check_remote_tiers(self, text: str) -> Verdict | None:
        """Try each remote tier in order.

        Returns:
            Verdict from the first tier that answers, None if all were
            denied or failed
        """
        for tier in self._remote_tiers:
            name = tier.classifier.name
            if not self._governor.acquire(name):
                logger.info("remote_tier_skipped", provider=name, method=tier.method.value)
                continue

            try:
                with tracer.start_as_current_span(SPAN_REMOTE_CALL) as span:
                    span.set_attribute("moderation.provider", name)
                    span.set_attribute("moderation.method", tier.method.value)
                    result = await asyncio.wait_for(
                        tier.classifier.classify(text), timeout=self._call_timeout
                    )
            except asyncio.TimeoutError:
                error = RemoteClassifierError(
                    f"{name} did not answer within {self._call_timeout}s"
                )
                self._record_failure(tier, error)
                continue
            except RemoteClassifierError as error:
                self._record_failure(tier, error)
                continue
            except Exception as e:
                # Unexpected adapter errors count as transient failures
                logger.warning("remote_tier_error", provider=name, exc_info=True)
                error = RemoteClassifierError(f"{name} raised {type(e).__name__}")
                self._record_failure(tier, error)
                continue

            return Verdict(
                is_toxic=result.is_toxic,
                confidence=result.confidence,
                method=tier.method,
                reason=result.reason,
                categories=result.categories,
            )

        return None

    def _record_failure(self, tier: RemoteTier, error: RemoteClassifierError) -> ErrorKind:
        kind = self._governor.record_failure(tier.classifier.name, error)
        logger.warning(
            "remote_tier_failed",
            provider=tier.classifier.name,
            method=tier.method.value,
            error_kind=kind.value,
            status_code=error.status_code,
            error=error.message,
        )
        return kind

    def _check_lexicon(self, text: str) -> Verdict:
        is_toxic = self._lexicon.classify(text)
        logger.info("lexicon_fallback", is_toxic=is_toxic)
        return Verdict(
            is_toxic=is_toxic,
            confidence=LEXICON_CONFIDENCE,
            method=ClassificationMethod.LEXICON,
        )


# =============================================================================
# Factory
# =============================================================================


def build_orchestrator(settings: Settings) -> ModerationOrchestrator:
    """Wire a ModerationOrchestrator from service settings.

    A remote tier is only built when its API key is configured; with no
    keys the service moderates with the lexicon alone.
    """
    limits: dict[str, ProviderLimits] = {}
    primary: GeminiClassifier | None = None
    secondary: GroqClassifier | None = None

    if settings.gemini_api_key:
        primary = GeminiClassifier(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            model=settings.gemini_model,
            timeout=settings.call_timeout_seconds,
        )
        limits[primary.name] = ProviderLimits(
            window_seconds=settings.primary_rate_window_seconds,
            max_calls=settings.primary_rate_max_calls,
            short_cooldown=settings.primary_short_cooldown_seconds,
            long_cooldown=settings.primary_long_cooldown_seconds,
        )
    else:
        logger.warning("remote_tier_not_configured", method="primary-remote")

    if settings.groq_api_key:
        secondary = GroqClassifier(
            api_key=settings.groq_api_key,
            base_url=settings.groq_base_url,
            model=settings.groq_model,
            timeout=settings.call_timeout_seconds,
        )
        limits[secondary.name] = ProviderLimits(
            window_seconds=settings.secondary_rate_window_seconds,
            max_calls=settings.secondary_rate_max_calls,
            short_cooldown=settings.secondary_short_cooldown_seconds,
            long_cooldown=settings.secondary_long_cooldown_seconds,
        )
    else:
        logger.warning("remote_tier_not_configured", method="secondary-remote")

    lexicon_path = Path(settings.lexicon_path) if settings.lexicon_path else None

    return ModerationOrchestrator(
        lexicon=LexiconClassifier(lexicon_path=lexicon_path),
        primary=primary,
        secondary=secondary,
        cache=ResponseCache(
            max_entries=settings.cache_max_entries,
            maintenance_interval=settings.cache_maintenance_interval_seconds,
        ),
        governor=RateQuotaGovernor(limits),
        call_timeout=settings.call_timeout_seconds,
        remote_enabled=settings.remote_moderation_enabled,
    )


# =============================================================================
# Fake Implementation
# =============================================================================


class FakeModerationOrchestrator:
    """Fake orchestrator for API tests.

    Returns pre-configured verdicts without running the cascade.
    """

    def __init__(
        self,
        verdicts: Mapping[str, Verdict] | None = None,
        statuses: Sequence[ProviderStatus] = (),
    ) -> None:
        self._verdicts: dict[str, Verdict] = dict(verdicts) if verdicts else {}
        self._statuses = list(statuses)
        self.calls: list[tuple[str, bool]] = []

    async def classify(self, text: str, allow_remote: bool = True) -> Verdict:
        self.calls.append((text, allow_remote))
        if text in self._verdicts:
            return self._verdicts[text]
        if not text.strip():
            return EMPTY_TEXT_VERDICT
        return Verdict(
            is_toxic=False,
            confidence=LEXICON_CONFIDENCE,
            method=ClassificationMethod.LEXICON,
        )

    async def classify_batch(
        self, texts: list[str], allow_remote: bool = True
    ) -> list[Verdict]:
        return [await self.classify(text, allow_remote) for text in texts]

    def provider_status(self) -> list[ProviderStatus]:
        return list(self._statuses)
