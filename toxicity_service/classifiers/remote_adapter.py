"""
Remote Classifier Adapter - shared request/response handling.

Both remote tiers send the same moderation prompt to a generative-text
provider and parse the same JSON-ish reply. Subclasses only describe the
provider's HTTP envelope: where to POST, which headers, how the payload
is shaped and where the generated text sits in the response.

Reply parsing:
1. First well-formed JSON object embedded in the text (providers often
   wrap it in prose or code fences)
2. Missing fields coerced: confidence -> 0.5, categories -> ()
3. No JSON: keyword heuristic, "toxic"/"true"/"yes" anywhere in the
   lowercased text means toxic with confidence 0.7
4. No JSON and no keyword: RemoteResponseError, so the cascade moves on

Pattern: Tool Proxy
- httpx.AsyncClient per call with an explicit timeout
- Transport and status failures normalised into RemoteClassifierError
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Protocol, runtime_checkable

import httpx

from toxicity_service.classifiers.exceptions import (
    RemoteClassifierError,
    RemoteResponseError,
)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_TIMEOUT: Final[float] = 10.0
DEFAULT_CONFIDENCE: Final[float] = 0.5
HEURISTIC_CONFIDENCE: Final[float] = 0.7
HEURISTIC_REASON: Final[str] = "AI detected toxicity"
HEURISTIC_KEYWORDS: Final[tuple[str, ...]] = ("toxic", "true", "yes")

# Reply field names
FIELD_IS_TOXIC = "isToxic"
FIELD_CONFIDENCE = "confidence"
FIELD_REASON = "reason"
FIELD_CATEGORIES = "categories"

MODERATION_SYSTEM_PROMPT: Final[str] = (
    "You are a content moderation AI. Analyze messages for toxicity "
    "and respond with JSON only."
)

MODERATION_PROMPT_TEMPLATE: Final[str] = """Analyze the following message for toxicity, hate speech, harassment, bullying, threats, or inappropriate content.

Message: {message}

Respond ONLY with a JSON object in this exact format:
{{
  "isToxic": true/false,
  "confidence": 0.0-1.0,
  "reason": "brief explanation",
  "categories": ["hate_speech", "harassment", "threats", "profanity", "bullying"]
}}

Be strict but fair. Consider context. False positives are better than false negatives for safety."""


def build_moderation_prompt(text: str) -> str:
    """Build the single moderation prompt sent to every remote provider.

    The message is embedded as a JSON string literal so quotes and
    newlines in user text cannot break out of the prompt structure.
    """
    return MODERATION_PROMPT_TEMPLATE.format(message=json.dumps(text, ensure_ascii=False))


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class RemoteClassification:
    """Parsed result of one remote call, before the tier is attached.

    Attributes:
        is_toxic: Provider's decision
        confidence: Confidence score clamped to [0.0, 1.0]
        reason: Provider explanation, if any
        categories: Category labels in provider order
        heuristic: True when derived from keywords instead of JSON
    """

    is_toxic: bool
    confidence: float
    reason: str | None = None
    categories: tuple[str, ...] = field(default=())
    heuristic: bool = False


# =============================================================================
# Reply Parsing
# =============================================================================


def extract_json_object(raw: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in raw text."""
    decoder = json.JSONDecoder()
    start = raw.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(raw, start)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict):
            return obj
        start = raw.find("{", start + 1)
    return None


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes")
    return False


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, confidence))


def _coerce_categories(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, list):
        return tuple(str(c) for c in value if c is not None and str(c))
    return ()


def parse_moderation_reply(raw: str) -> RemoteClassification:
    """Turn a provider's generated text into a RemoteClassification.

    Args:
        raw: Generated text returned by the provider

    Returns:
        RemoteClassification from JSON, or from the keyword heuristic

    Raises:
        RemoteResponseError: Neither JSON nor a toxicity keyword was found
    """
    parsed = extract_json_object(raw)
    if parsed is not None:
        reason = parsed.get(FIELD_REASON)
        return RemoteClassification(
            is_toxic=_coerce_bool(parsed.get(FIELD_IS_TOXIC)),
            confidence=_coerce_confidence(parsed.get(FIELD_CONFIDENCE)),
            reason=str(reason) if reason else None,
            categories=_coerce_categories(parsed.get(FIELD_CATEGORIES)),
        )

    lowered = raw.lower()
    if any(keyword in lowered for keyword in HEURISTIC_KEYWORDS):
        return RemoteClassification(
            is_toxic=True,
            confidence=HEURISTIC_CONFIDENCE,
            reason=HEURISTIC_REASON,
            heuristic=True,
        )

    raise RemoteResponseError("Reply contained neither JSON nor a toxicity keyword")


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class RemoteClassifierProtocol(Protocol):
    """Protocol for remote classifier adapters.

    ``name`` keys the adapter's state in the RateQuotaGovernor.
    """

    name: str

    async def classify(self, text: str) -> RemoteClassification:
        """Classify text remotely.

        Raises:
            RemoteClassifierError: On any failure to obtain a verdict
        """
        ...


# =============================================================================
# Base Implementation
# =============================================================================


class RemoteClassifier:
    """Stateless request/response adapter shared by the remote tiers.

    Subclasses implement ``_endpoint``, ``_headers``, ``_build_payload``
    and ``_extract_text``.
    """

    name: str = "remote"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: Provider credential, supplied by the service config
            base_url: Provider API root
            model: Provider model identifier
            timeout: HTTP timeout in seconds
        """
        if not api_key:
            raise ValueError(f"{self.name}: api_key is required")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    async def classify(self, text: str) -> RemoteClassification:
        """Send the moderation prompt and parse the reply.

        Args:
            text: Message text

        Returns:
            RemoteClassification

        Raises:
            RemoteClassifierError: On timeout, transport error, non-2xx
                status, malformed envelope or unparseable reply
        """
        prompt = build_moderation_prompt(text)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._endpoint(),
                    headers=self._headers(),
                    json=self._build_payload(prompt),
                )
        except httpx.TimeoutException as e:
            msg = f"Timeout calling {self.name}: {e}"
            raise RemoteClassifierError(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP error calling {self.name}: {e}"
            raise RemoteClassifierError(msg) from e

        if not 200 <= response.status_code < 300:
            detail = _error_detail(response)
            msg = f"{self.name} returned status {response.status_code}: {detail}"
            raise RemoteClassifierError(msg, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            msg = f"{self.name} returned a non-JSON envelope"
            raise RemoteResponseError(msg, status_code=response.status_code) from e

        return parse_moderation_reply(self._extract_text(data))

    def _endpoint(self) -> str:
        raise NotImplementedError

    def _headers(self) -> dict[str, str]:
        raise NotImplementedError

    def _build_payload(self, prompt: str) -> dict[str, Any]:
        raise NotImplementedError

    def _extract_text(self, data: Any) -> str:
        raise NotImplementedError


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error message from a provider error body.

    Google and OpenAI-style APIs both use {"error": {"message", "status"}}.
    """
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        parts = [str(error.get(key)) for key in ("status", "code", "message") if error.get(key)]
        if parts:
            return " ".join(parts)
    if isinstance(error, str):
        return error
    return response.text[:500]


# =============================================================================
# Test Double
# =============================================================================


class FakeRemoteClassifier:
    """Fake remote adapter for testing.

    Returns pre-configured results without making HTTP requests and counts
    every call, so tests can assert whether a tier was reached.

    Usage:
        fake = FakeRemoteClassifier("gemini", error=RemoteClassifierError("quota", 429))
        await fake.classify("hi")  # raises
        fake.call_count  # 1
    """

    def __init__(
        self,
        name: str,
        responses: Mapping[str, RemoteClassification] | None = None,
        default: RemoteClassification | None = None,
        error: RemoteClassifierError | None = None,
    ) -> None:
        """Initialize with pre-configured responses.

        Args:
            name: Provider name used by the governor
            responses: Dict mapping texts to results
            default: Result for unconfigured texts (non-toxic 0.9 if None)
            error: Optional error to raise on every call
        """
        self.name = name
        self._responses: dict[str, RemoteClassification] = (
            dict(responses) if responses else {}
        )
        self._default = default or RemoteClassification(
            is_toxic=False, confidence=0.9, reason="Looks fine"
        )
        self.error = error
        self.calls: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def classify(self, text: str) -> RemoteClassification:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self._responses.get(text, self._default)
