"""Shared test fixtures."""

import json
import re
from typing import Optional

import pendulum
import pytest

from storyline.config import (
    ClusteringConfig,
    EnrichmentConfig,
    PretranslationConfig,
    TranslationConfig,
)
from storyline.db import MemoryDatastore
from storyline.generation import MockLLMProvider
from storyline.models import Article, Market

COMBINED_DST_RE = re.compile(r"from [\w-]+ to ([\w-]+)\.")
SINGLE_DST_RE = re.compile(r"^Translate to ([\w-]+)\.")


def fake_translate(prompt: str) -> str:
    """Deterministic provider: prefixes every text with the target language."""
    combined = COMBINED_DST_RE.search(prompt.splitlines()[0])
    if combined:
        dst = combined.group(1)
        fields = json.loads(prompt.split("Input:\n", 1)[1])
        return json.dumps({k: f"[{dst}] {v}" if v else "" for k, v in fields.items()})
    single = SINGLE_DST_RE.search(prompt)
    if single:
        text = prompt.split("Text:\n", 1)[1]
        return f"[{single.group(1)}] {text}"
    return "{}"


def identity_translate(prompt: str) -> str:
    """Provider that returns single-text input unchanged."""
    return prompt.split("Text:\n", 1)[1]


@pytest.fixture
def now():
    return pendulum.now("UTC")


@pytest.fixture
def store():
    return MemoryDatastore()


@pytest.fixture
def translator():
    return MockLLMProvider(handler=fake_translate)


@pytest.fixture
def clustering_config():
    return ClusteringConfig(enabled=True, stance_mode="rules")


@pytest.fixture
def enrichment_config():
    return EnrichmentConfig(enabled=True, llm_enabled=False, sleep_ms=0)


@pytest.fixture
def translation_config():
    return TranslationConfig()


@pytest.fixture
def pretranslation_config():
    return PretranslationConfig(retry_backoff_ms=0)


@pytest.fixture
def make_article(store, now):
    """Factory storing an article the way ingestion would."""
    counter = {"n": 0}

    def _make(
        title: str,
        snippet: Optional[str] = None,
        full_text: Optional[str] = None,
        language: str = "en",
        source_id: str = "wire",
        article_id: Optional[str] = None,
        minutes_ago: int = 0,
    ) -> Article:
        counter["n"] += 1
        article = Article(
            id=article_id or f"a{counter['n']}",
            source_id=source_id,
            url=f"https://example.com/{counter['n']}",
            title=title,
            snippet=snippet,
            full_text=full_text,
            language=language,
            published_at=now.subtract(minutes=minutes_ago),
        )
        store.add_article(article)
        return article

    return _make


@pytest.fixture
def global_market(store):
    market = Market(market_code="global", pivot_lang="en", pretranslate_langs=["de", "fr"])
    store.add_market(market)
    return market


@pytest.fixture
def identity_translator():
    return MockLLMProvider(handler=identity_translate)
