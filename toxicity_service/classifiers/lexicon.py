"""
Local Lexicon Classifier - always-available moderation tier.

Deterministic, offline fallback used when no remote classifier produced a
verdict. Tests the input against a curated multi-language token list.

Matching (returns on the first hit):
1. Word-boundary regex per token on the normalized text
2. Plain substring containment per token, for agglutinated or
   boundary-ambiguous input ("youidiot", "kysnow"); this favours recall

Substring containment applies to every token, so false positives are
controlled by curating the token list rather than by the matcher.

Pattern: Configuration-Driven Filter
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

import yaml  # type: ignore[import-untyped]

from toxicity_service.classifiers.exceptions import LexiconConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable

# =============================================================================
# Constants
# =============================================================================

DEFAULT_LEXICON_PATH: Final[Path] = Path(__file__).parent / "lexicon.yaml"

NON_ALPHANUMERIC = re.compile(r"[^0-9a-z]+")


def normalize_for_matching(text: str) -> str:
    """Lowercase and replace every non-alphanumeric run with one space."""
    return NON_ALPHANUMERIC.sub(" ", text.lower()).strip()


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class LexiconClassifierProtocol(Protocol):
    """Protocol for lexicon classifier implementations."""

    def classify(self, text: str) -> bool:
        """Return True if the text contains a listed token."""
        ...


# =============================================================================
# Main Implementation
# =============================================================================


class LexiconClassifier:
    """Word-list toxicity check with no external calls.

    Usage:
        lexicon = LexiconClassifier()
        lexicon.classify("you absolute idiot")  # True
    """

    __slots__ = ("_tokens", "_patterns")

    def __init__(
        self,
        tokens: Iterable[str] | None = None,
        lexicon_path: Path | None = None,
    ) -> None:
        """Initialize from an explicit token list or a YAML lexicon file.

        Args:
            tokens: Tokens to use instead of loading a file
            lexicon_path: Path to a category -> tokens YAML file.
                Uses the bundled lexicon if None.

        Raises:
            LexiconConfigError: If the file is missing, invalid or empty
        """
        if tokens is None:
            tokens = self._load_tokens(lexicon_path or DEFAULT_LEXICON_PATH)

        # dict.fromkeys keeps first-seen order while dropping duplicates
        normalized = (normalize_for_matching(str(t)) for t in tokens)
        self._tokens: tuple[str, ...] = tuple(dict.fromkeys(t for t in normalized if t))
        if not self._tokens:
            raise LexiconConfigError("Lexicon contains no tokens")

        self._patterns: tuple[re.Pattern[str], ...] = tuple(
            re.compile(rf"\b{re.escape(token)}\b") for token in self._tokens
        )

    @staticmethod
    def _load_tokens(lexicon_path: Path) -> list[str]:
        """Load every category's tokens from the YAML file.

        Raises:
            LexiconConfigError: If file missing or invalid YAML
        """
        if not lexicon_path.exists():
            msg = f"Lexicon file not found: {lexicon_path}"
            raise LexiconConfigError(msg)

        try:
            with open(lexicon_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Invalid YAML in lexicon: {e}"
            raise LexiconConfigError(msg) from e

        if not isinstance(config, dict):
            msg = f"Lexicon must map categories to token lists: {lexicon_path}"
            raise LexiconConfigError(msg)

        # YAML parses bare yes/no/true as booleans, so stringify everything
        tokens: list[str] = []
        for terms in config.values():
            tokens.extend(str(t) for t in terms or [])
        return tokens

    def classify(self, text: str) -> bool:
        """Check whether the text contains any listed token.

        Args:
            text: Raw message text

        Returns:
            True on the first matching token, False otherwise
        """
        if not text:
            return False

        normalized = normalize_for_matching(text)
        if not normalized:
            return False

        for token, pattern in zip(self._tokens, self._patterns):
            if pattern.search(normalized):
                return True
            if token in normalized:
                return True

        return False

    def __len__(self) -> int:
        """Return the number of distinct tokens."""
        return len(self._tokens)

    def __contains__(self, token: str) -> bool:
        """Check if a token is listed."""
        return normalize_for_matching(token) in self._tokens


# =============================================================================
# Test Double
# =============================================================================


class FakeLexiconClassifier:
    """Fake LexiconClassifier for testing.

    Flags any text containing one of the configured words and records
    every call.
    """

    def __init__(self, toxic_words: Iterable[str] = ()) -> None:
        self._toxic_words = tuple(w.lower() for w in toxic_words)
        self.calls: list[str] = []

    def classify(self, text: str) -> bool:
        self.calls.append(text)
        lowered = text.lower()
        return any(word in lowered for word in self._toxic_words)
