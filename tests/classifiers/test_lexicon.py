"""
Tests for the Local Lexicon Classifier.

Tests organized by behaviour:
- TestBundledLexicon: default YAML file loads
- TestWordBoundaryMatching: regex tier
- TestSubstringMatching: agglutinated input
- TestNormalization: punctuation and case
- TestConfigErrors: missing / invalid lexicon files
- TestFakeLexiconClassifier: test double
"""

from __future__ import annotations

from pathlib import Path

import pytest

from toxicity_service.classifiers.exceptions import LexiconConfigError
from toxicity_service.classifiers.lexicon import (
    FakeLexiconClassifier,
    LexiconClassifier,
    LexiconClassifierProtocol,
    normalize_for_matching,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="module")
def lexicon() -> LexiconClassifier:
    """Lexicon loaded from the bundled YAML file."""
    return LexiconClassifier()


# =============================================================================
# TestBundledLexicon
# =============================================================================


class TestBundledLexicon:
    """The default lexicon file ships with the package."""

    def test_loads_tokens(self, lexicon: LexiconClassifier) -> None:
        assert len(lexicon) > 50

    def test_contains_known_token(self, lexicon: LexiconClassifier) -> None:
        assert "idiot" in lexicon

    def test_contains_transliterated_tokens(self, lexicon: LexiconClassifier) -> None:
        assert "chutiya" in lexicon
        assert "madar sag" in lexicon

    def test_passes_protocol(self, lexicon: LexiconClassifier) -> None:
        assert isinstance(lexicon, LexiconClassifierProtocol)


# =============================================================================
# TestWordBoundaryMatching
# =============================================================================


class TestWordBoundaryMatching:
    """Whole-word matches are toxic, ordinary text is not."""

    @pytest.mark.parametrize(
        "text",
        [
            "you are an idiot",
            "what a moron",
            "tu chutiya hai",
            "just kill yourself",
        ],
    )
    def test_toxic_text(self, lexicon: LexiconClassifier, text: str) -> None:
        assert lexicon.classify(text) is True

    @pytest.mark.parametrize(
        "text",
        [
            "hello everyone, see you at the lab",
            "the class passed the exam",
            "can someone share the lecture notes?",
            "that skill is grandiose",
            "a suspicious spice blend",
            "do not denigrate the team",
        ],
    )
    def test_clean_text(self, lexicon: LexiconClassifier, text: str) -> None:
        assert lexicon.classify(text) is False

    def test_empty_text_is_clean(self, lexicon: LexiconClassifier) -> None:
        assert lexicon.classify("") is False

    def test_punctuation_only_is_clean(self, lexicon: LexiconClassifier) -> None:
        assert lexicon.classify("?!... ---") is False


# =============================================================================
# TestSubstringMatching
# =============================================================================


class TestSubstringMatching:
    """Every token also matches inside other words."""

    @pytest.mark.parametrize(
        "text",
        ["youidiot", "shithead", "you fuckface", "fagboy", "kysnow"],
    )
    def test_agglutinated_token(self, lexicon: LexiconClassifier, text: str) -> None:
        assert lexicon.classify(text) is True

    def test_short_token_matches_inside_word(self) -> None:
        short = LexiconClassifier(tokens=["kys"])
        assert short.classify("kys") is True
        assert short.classify("just kysnow") is True
        assert short.classify("keys") is False

    @pytest.mark.parametrize("token", ["spic", "nigr", "fuk"])
    def test_substring_prone_tokens_not_listed(
        self, lexicon: LexiconClassifier, token: str
    ) -> None:
        assert token not in lexicon


# =============================================================================
# TestNormalization
# =============================================================================


class TestNormalization:
    """Case and punctuation do not hide tokens."""

    def test_normalize_for_matching(self) -> None:
        assert normalize_for_matching("You're an IDIOT!!!") == "you re an idiot"

    def test_uppercase_and_punctuation(self, lexicon: LexiconClassifier) -> None:
        assert lexicon.classify("You're an IDIOT!!!") is True

    def test_phrase_split_by_punctuation(self, lexicon: LexiconClassifier) -> None:
        assert lexicon.classify("kill-yourself") is True

    def test_explicit_tokens_are_deduplicated(self) -> None:
        custom = LexiconClassifier(tokens=["Jerk", "jerk", " jerk "])
        assert len(custom) == 1


# =============================================================================
# TestConfigErrors
# =============================================================================


class TestConfigErrors:
    """Lexicon problems surface at construction, never from classify()."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(LexiconConfigError):
            LexiconClassifier(lexicon_path=tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("insults: [idiot, moron\n", encoding="utf-8")
        with pytest.raises(LexiconConfigError):
            LexiconClassifier(lexicon_path=path)

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- idiot\n- moron\n", encoding="utf-8")
        with pytest.raises(LexiconConfigError):
            LexiconClassifier(lexicon_path=path)

    def test_empty_lexicon(self) -> None:
        with pytest.raises(LexiconConfigError):
            LexiconClassifier(tokens=[])

    def test_custom_file(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("insults:\n  - bozo\n", encoding="utf-8")
        custom = LexiconClassifier(lexicon_path=path)
        assert custom.classify("what a bozo") is True
        assert custom.classify("you are an idiot") is False


# =============================================================================
# TestFakeLexiconClassifier
# =============================================================================


class TestFakeLexiconClassifier:
    def test_records_calls(self) -> None:
        fake = FakeLexiconClassifier(toxic_words=["badword"])
        assert fake.classify("a BADWORD here") is True
        assert fake.classify("fine") is False
        assert fake.calls == ["a BADWORD here", "fine"]

    def test_passes_protocol(self) -> None:
        assert isinstance(FakeLexiconClassifier(), LexiconClassifierProtocol)
