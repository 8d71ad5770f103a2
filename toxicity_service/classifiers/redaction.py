"""
Message redaction helper for the send/edit code paths.

Callers moderate a message before persisting it, store the verdict fields
next to the message and display a placeholder instead of toxic text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from toxicity_service.classifiers.orchestrator import ModerationOrchestratorProtocol
    from toxicity_service.classifiers.verdict import Verdict

REDACTION_PLACEHOLDER: Final[str] = "[REDACTED BY AI]"


@dataclass(frozen=True, slots=True)
class ModeratedMessage:
    """A message after moderation.

    Attributes:
        original_text: Text as submitted (trimmed)
        display_text: What other users see
        verdict: The moderation verdict
    """

    original_text: str
    display_text: str
    verdict: Verdict

    def to_record(self) -> dict[str, Any]:
        """Fields the message store persists alongside the message."""
        return {
            "text": self.display_text,
            "originalText": self.original_text,
            "toxic": self.verdict.is_toxic,
            "toxicityConfidence": self.verdict.confidence,
            "toxicityReason": self.verdict.reason,
            "toxicityMethod": self.verdict.method.value,
        }


def redact(text: str, verdict: Verdict) -> str:
    return REDACTION_PLACEHOLDER if verdict.is_toxic else text


async def moderate_message(
    orchestrator: ModerationOrchestratorProtocol,
    text: str,
    allow_remote: bool = True,
) -> ModeratedMessage:
    """Classify a message and build its display form.

    Args:
        orchestrator: Process-wide moderation orchestrator
        text: Message text being sent or edited
        allow_remote: Forwarded to the orchestrator

    Returns:
        ModeratedMessage ready to persist
    """
    original = text.strip()
    verdict = await orchestrator.classify(original, allow_remote=allow_remote)
    return ModeratedMessage(
        original_text=original,
        display_text=redact(original, verdict),
        verdict=verdict,
    )
