"""Tests for timeline entry extraction."""

import pytest

from storyline.clustering import (
    UpdateExtractor,
    clean_claim,
    detect_stance_by_rules,
    parse_stance,
)
from storyline.config import ClusteringConfig
from storyline.generation import MockLLMProvider
from storyline.models import Article


def _article(title="Alpha signs deal with Beta.", snippet="Short description", language="en"):
    return Article(id="a1", title=title, snippet=snippet, language=language)


class TestCleanClaim:
    def test_strips_trailing_punctuation(self):
        assert clean_claim("Alpha signs deal!!") == "Alpha signs deal"

    def test_strips_trailing_dashes(self):
        assert clean_claim("Alpha signs deal — ") == "Alpha signs deal"

    def test_keeps_inner_punctuation(self):
        assert clean_claim("U.S. confirms talks, officials say.") == "U.S. confirms talks, officials say"

    def test_empty(self):
        assert clean_claim(None) == ""
        assert clean_claim("") == ""


class TestRuleStance:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Government denies report of merger", "contradicts"),
            ("Board rejects takeover bid", "contradicts"),
            ("Ministry confirms new tariffs", "supports"),
            ("Companies signed the agreement", "supports"),
            ("Rumors swirl about CEO exit", "neutral"),
            ("Weather is mild today", "neutral"),
        ],
    )
    def test_english_rules(self, title, expected):
        assert detect_stance_by_rules(title, "en") == expected

    def test_first_rule_wins(self):
        # Matches both the contradicts and supports rules
        assert detect_stance_by_rules("Official denies signed deal", "en") == "contradicts"

    def test_turkish_rules(self):
        assert detect_stance_by_rules("Bakanlık iddiaları yalanladı", "tr") == "contradicts"
        assert detect_stance_by_rules("Anlaşma imzalandı", "tr-TR") == "supports"

    def test_unknown_language_uses_english(self):
        assert detect_stance_by_rules("Minister confirms visit", "xx") == "supports"


class TestParseStance:
    def test_json(self):
        assert parse_stance('{"stance":"supports"}') == "supports"

    def test_fenced_json(self):
        assert parse_stance('```json\n{"stance": "Contradicts"}\n```') == "contradicts"

    def test_bare_label(self):
        assert parse_stance("neutral") == "neutral"

    def test_invalid_label(self):
        assert parse_stance('{"stance":"maybe"}') is None

    def test_garbage(self):
        assert parse_stance("I cannot decide") is None
        assert parse_stance(None) is None


class TestUpdateExtractor:
    def test_stance_off(self):
        extractor = UpdateExtractor(ClusteringConfig(stance_mode="off"))
        update = extractor.extract(_article())
        assert update.claim == "Alpha signs deal with Beta"
        assert update.stance is None
        assert update.summary == "Short description"
        assert update.lang == "en"

    def test_stance_rules(self):
        extractor = UpdateExtractor(ClusteringConfig(stance_mode="rules"))
        assert extractor.extract(_article()).stance == "supports"

    def test_stance_llm(self):
        llm = MockLLMProvider(responses=['{"stance":"contradicts"}'])
        extractor = UpdateExtractor(ClusteringConfig(stance_mode="llm"), llm)
        assert extractor.extract(_article()).stance == "contradicts"
        assert len(llm.calls) == 1

    def test_stance_llm_malformed_output(self):
        llm = MockLLMProvider(responses=["the stance is probably positive"])
        extractor = UpdateExtractor(ClusteringConfig(stance_mode="llm"), llm)
        update = extractor.extract(_article())
        assert update.stance is None
        assert update.claim == "Alpha signs deal with Beta"

    def test_stance_llm_provider_error(self):
        extractor = UpdateExtractor(ClusteringConfig(stance_mode="llm"), MockLLMProvider())
        assert extractor.extract(_article()).stance is None

    def test_stance_llm_without_provider(self):
        extractor = UpdateExtractor(ClusteringConfig(stance_mode="llm"))
        assert extractor.extract(_article()).stance is None

    def test_summary_unmodified(self):
        extractor = UpdateExtractor(ClusteringConfig())
        snippet = "  Exactly as the feed wrote it.  "
        assert extractor.extract(_article(snippet=snippet)).summary == snippet
