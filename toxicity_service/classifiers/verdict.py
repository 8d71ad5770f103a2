"""
Verdict data model shared by every moderation tier.

A Verdict is produced once and never mutated: the response cache stores
and returns the same frozen instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Final


class ClassificationMethod(str, Enum):
    """Which tier produced a verdict. Persisted by callers for audit."""

    PRIMARY_REMOTE = "primary-remote"
    SECONDARY_REMOTE = "secondary-remote"
    LEXICON = "lexicon"


LEXICON_CONFIDENCE: Final[float] = 0.5


@dataclass(frozen=True, slots=True)
class Verdict:
    """Toxicity decision for one message.

    Attributes:
        is_toxic: Whether the text should be redacted
        confidence: Confidence score (0.0 to 1.0)
        reason: Human-readable explanation (remote tiers only)
        categories: Ordered category labels, e.g. ("harassment",)
        method: Tier that produced the verdict
    """

    is_toxic: bool
    confidence: float
    method: ClassificationMethod
    reason: str | None = field(default=None)
    categories: tuple[str, ...] = field(default=())


EMPTY_TEXT_VERDICT: Final[Verdict] = Verdict(
    is_toxic=False,
    confidence=0.0,
    method=ClassificationMethod.LEXICON,
)


def normalize_text(text: str) -> str:
    """Return the cache key for a message: case-folded and trimmed."""
    return text.strip().lower()
