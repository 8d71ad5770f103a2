"""Classifier components for the toxicity moderation cascade."""
from toxicity_service.classifiers.exceptions import (
    LexiconConfigError,
    RemoteClassifierError,
    RemoteResponseError,
)
from toxicity_service.classifiers.gemini_adapter import GeminiClassifier
from toxicity_service.classifiers.governor import (
    ErrorKind,
    ProviderLimits,
    ProviderSnapshot,
    RateQuotaGovernor,
    classify_error,
)
from toxicity_service.classifiers.groq_adapter import GroqClassifier
from toxicity_service.classifiers.lexicon import (
    FakeLexiconClassifier,
    LexiconClassifier,
    LexiconClassifierProtocol,
)
from toxicity_service.classifiers.orchestrator import (
    FakeModerationOrchestrator,
    ModerationOrchestrator,
    ModerationOrchestratorProtocol,
    ProviderStatus,
    build_orchestrator,
)
from toxicity_service.classifiers.redaction import (
    REDACTION_PLACEHOLDER,
    ModeratedMessage,
    moderate_message,
)
from toxicity_service.classifiers.remote_adapter import (
    FakeRemoteClassifier,
    RemoteClassification,
    RemoteClassifier,
    RemoteClassifierProtocol,
    build_moderation_prompt,
    extract_json_object,
    parse_moderation_reply,
)
from toxicity_service.classifiers.response_cache import ResponseCache
from toxicity_service.classifiers.verdict import (
    ClassificationMethod,
    Verdict,
    normalize_text,
)

__all__ = [
    "REDACTION_PLACEHOLDER",
    "ClassificationMethod",
    "ErrorKind",
    "FakeLexiconClassifier",
    "FakeModerationOrchestrator",
    "FakeRemoteClassifier",
    "GeminiClassifier",
    "GroqClassifier",
    "LexiconClassifier",
    "LexiconClassifierProtocol",
    "LexiconConfigError",
    "ModeratedMessage",
    "ModerationOrchestrator",
    "ModerationOrchestratorProtocol",
    "ProviderLimits",
    "ProviderSnapshot",
    "ProviderStatus",
    "RateQuotaGovernor",
    "RemoteClassification",
    "RemoteClassifier",
    "RemoteClassifierError",
    "RemoteClassifierProtocol",
    "RemoteResponseError",
    "ResponseCache",
    "Verdict",
    "build_moderation_prompt",
    "build_orchestrator",
    "classify_error",
    "extract_json_object",
    "moderate_message",
    "normalize_text",
    "parse_moderation_reply",
]
