"""Tests for the translation cache and chunking engine."""

import json

import pytest

from storyline.config import TranslationConfig
from storyline.errors import ProviderError
from storyline.generation import MockLLMProvider
from storyline.translation import (
    SummaryFields,
    TranslationEngine,
    chunk_by_paragraphs,
    join_chunks,
    split_sentences,
)
from storyline.utils import translation_cache_key


def _long_details(paragraphs=12, sentence="The negotiators met again to review the draft terms. "):
    return "\n\n".join((f"Paragraph {i}. " + sentence * 10).strip() for i in range(paragraphs))


class TestChunking:
    def test_chunks_respect_max_chars(self):
        text = _long_details()
        chunks = chunk_by_paragraphs(text, 1000)
        assert len(chunks) > 1
        assert all(len(c) <= 1000 for c in chunks)

    def test_round_trip(self):
        text = _long_details()
        assert join_chunks(chunk_by_paragraphs(text, 1000)) == text

    def test_whitespace_between_paragraphs_is_normalized(self):
        text = "First paragraph.\n   \n\n\nSecond paragraph."
        assert join_chunks(chunk_by_paragraphs(text, 500)) == "First paragraph.\n\nSecond paragraph."

    def test_oversized_paragraph_split_by_sentence(self):
        paragraph = "One sentence here. " * 80
        chunks = chunk_by_paragraphs(paragraph, 500)
        assert len(chunks) > 1
        assert all(len(c) <= 500 for c in chunks)
        assert all(c.endswith(".") for c in chunks)

    def test_order_preserved_around_oversized_paragraph(self):
        big = "Long sentence number one. " * 40
        text = f"Intro.\n\n{big.strip()}\n\nOutro."
        chunks = chunk_by_paragraphs(text, 500)
        assert chunks[0] == "Intro."
        assert chunks[-1] == "Outro."

    def test_split_sentences_wraps_giant_sentence(self):
        chunks = split_sentences("word " * 300, 200)
        assert all(len(c) <= 200 for c in chunks)

    def test_empty(self):
        assert chunk_by_paragraphs("", 500) == []
        assert join_chunks([]) == ""


class TestTranslateFields:
    def test_single_combined_call(self, store, translator):
        engine = TranslationEngine(store, translator)
        result = engine.translate_fields(
            SummaryFields(title="Deal signed", summary="Alpha and Beta agree", details="Full story"),
            "en",
            "de",
        )
        assert result.title == "[de] Deal signed"
        assert result.summary == "[de] Alpha and Beta agree"
        assert result.details == "[de] Full story"
        assert sorted(result.translated) == ["details", "summary", "title"]
        assert len(translator.calls) == 1

    def test_memoization(self, store, translator):
        engine = TranslationEngine(store, translator)
        fields = SummaryFields(title="Deal signed", summary="Alpha and Beta agree", details="Full story")

        first = engine.translate_fields(fields, "en", "de")
        second = engine.translate_fields(fields, "en", "de")

        assert first.model_dump() == second.model_dump()
        assert len(translator.calls) == 1
        assert engine.metrics.provider_calls == 1
        assert engine.metrics.cache_hits == 3

    def test_persistent_tier_shared_across_engines(self, store, translator):
        fields = SummaryFields(title="Deal signed", summary="Alpha and Beta agree", details="Full story")
        TranslationEngine(store, translator).translate_fields(fields, "en", "de")

        fresh = TranslationEngine(store, translator)
        assert fresh.translate_fields(fields, "en", "de").title == "[de] Deal signed"
        assert len(translator.calls) == 1

    def test_field_level_cache_hit(self, store, translator):
        engine = TranslationEngine(store, translator)
        engine.translate_fields(SummaryFields(title="Deal signed", summary="One"), "en", "de")
        assert engine.translate_text("Deal signed", "en", "de") == "[de] Deal signed"
        assert len(translator.calls) == 1

    def test_cache_entries_are_per_field(self, store, translator):
        engine = TranslationEngine(store, translator)
        engine.translate_fields(SummaryFields(title="Deal signed", summary="One", details="Two"), "en", "de")
        key = translation_cache_key("Deal signed", "en", "de")
        assert store.translations[key].text == "[de] Deal signed"
        assert store.translations[key].src_lang == "en"
        assert len(store.translations) == 3

    def test_same_language_is_passthrough(self, store, translator):
        engine = TranslationEngine(store, translator)
        result = engine.translate_fields(SummaryFields(title="Hallo"), "de", "de")
        assert result.title == "Hallo"
        assert result.translated == []
        assert translator.calls == []

    def test_regional_variant_is_passthrough(self, store, translator):
        engine = TranslationEngine(store, translator)
        result = engine.translate_fields(SummaryFields(title="Colour", summary="Flat"), "en", "en-GB")
        assert (result.title, result.summary) == ("Colour", "Flat")
        assert result.translated == []
        assert engine.translate_text("Colour", "en-US", "en-GB") == "Colour"
        assert translator.calls == []

    def test_fenced_json_with_prose(self, store):
        llm = MockLLMProvider(
            responses=['Sure! ```json\n{"title":"Titel","summary":"Zusammenfassung","details":"Text"}\n``` Done.']
        )
        result = TranslationEngine(store, llm).translate_fields(
            SummaryFields(title="Title", summary="Summary", details="Body"), "en", "de"
        )
        assert (result.title, result.summary, result.details) == ("Titel", "Zusammenfassung", "Text")

    def test_unparseable_response_falls_back_per_field(self, store):
        replies = iter(["not json at all", "Titel", "Zusammenfassung", "Text"])
        llm = MockLLMProvider(handler=lambda prompt: next(replies))
        result = TranslationEngine(store, llm).translate_fields(
            SummaryFields(title="Title", summary="Summary", details="Body"), "en", "de"
        )
        assert (result.title, result.summary, result.details) == ("Titel", "Zusammenfassung", "Text")
        assert len(llm.calls) == 4

    def test_provider_failure_returns_originals(self, store):
        engine = TranslationEngine(store, MockLLMProvider())
        result = engine.translate_fields(SummaryFields(title="Title", summary="Summary"), "en", "de")
        assert (result.title, result.summary) == ("Title", "Summary")
        assert result.translated == []
        assert engine.metrics.provider_errors > 0

    def test_strict_mode_raises(self, store):
        engine = TranslationEngine(store, MockLLMProvider())
        with pytest.raises(ProviderError):
            engine.translate_fields(SummaryFields(title="Title"), "en", "de", strict=True)

    def test_no_provider(self, store):
        result = TranslationEngine(store, None).translate_fields(SummaryFields(title="Title"), "en", "de")
        assert result.title == "Title"
        assert not result.any_translated

    def test_partial_json_keeps_missing_fields_original(self, store):
        llm = MockLLMProvider(responses=[json.dumps({"title": "Titel"})])
        result = TranslationEngine(store, llm).translate_fields(
            SummaryFields(title="Title", summary="Summary"), "en", "de"
        )
        assert result.title == "Titel"
        assert result.summary == "Summary"
        assert result.translated == ["title"]


class TestLongDetails:
    def test_chunk_round_trip_with_identity_provider(self, store, identity_translator):
        details = _long_details(paragraphs=20)
        assert len(details) > 2800
        engine = TranslationEngine(store, identity_translator)
        result = engine.translate_fields(SummaryFields(title="T", summary="S", details=details), "en", "de")

        assert result.details == details
        # title, summary and one call per chunk
        assert len(identity_translator.calls) == 2 + len(chunk_by_paragraphs(details, 2800))

    def test_chunks_translated_in_order(self, store, translator):
        details = _long_details(paragraphs=20)
        result = TranslationEngine(store, translator).translate_fields(
            SummaryFields(title="T", summary="S", details=details), "en", "de"
        )
        assert result.details.startswith("[de] Paragraph 0.")
        assert "details" in result.translated

    def test_hard_cap_returns_empty_details(self, store, translator):
        details = _long_details(paragraphs=120)
        assert len(details) > 50_000
        result = TranslationEngine(store, translator).translate_fields(
            SummaryFields(title="T", summary="S", details=details), "en", "de"
        )
        assert result.details == ""
        assert result.title == "[de] T"
        assert all("Paragraph" not in call for call in translator.calls)

    def test_failed_chunk_keeps_original_details(self, store):
        def flaky(prompt):
            if "Paragraph 5." in prompt:
                raise ProviderError("rate limited")
            return "translated"

        details = _long_details(paragraphs=20)
        result = TranslationEngine(store, MockLLMProvider(handler=flaky)).translate_fields(
            SummaryFields(title="T", summary="S", details=details), "en", "de"
        )
        assert result.details == details
        assert "details" not in result.translated

    def test_chunk_threshold_floor(self):
        assert TranslationConfig(chunk_max_chars=10).chunk_max_chars == 500
        assert TranslationConfig(max_article_chars=10).max_article_chars == 5000


class TestTranslateText:
    def test_translates_and_caches(self, store, translator):
        engine = TranslationEngine(store, translator)
        assert engine.translate_text("Hello", "en", "tr") == "[tr] Hello"
        assert engine.translate_text("Hello", "en", "tr") == "[tr] Hello"
        assert len(translator.calls) == 1

    def test_empty_input(self, store, translator):
        assert TranslationEngine(store, translator).translate_text("", "en", "tr") is None
        assert translator.calls == []

    def test_memory_cache_is_bounded(self, store, translator):
        engine = TranslationEngine(None, translator, TranslationConfig(cache_max=2))
        for word in ("one", "two", "three"):
            engine.translate_text(word, "en", "tr")
        assert len(engine.memory_cache) == 2

    def test_metrics_latency(self, store, translator):
        engine = TranslationEngine(store, translator)
        engine.translate_text("Hello", "en", "tr")
        metrics = engine.metrics
        assert metrics.provider_latency_samples == 1
        assert metrics.provider_latency_ms_avg >= 0
