"""Tests for cluster summary generation."""

import pytest

from storyline.config import EnrichmentConfig
from storyline.enrichment import ClusterEnricher, build_summary_prompt, summary_from_updates
from storyline.errors import DatastoreError
from storyline.generation import MockLLMProvider
from storyline.models import Article, Cluster, ClusterUpdate


@pytest.fixture
def story(store, now):
    """Build a cluster with one timeline entry per (id, claim, summary, source, minutes_ago, lang)."""

    def _story(cluster_id, entries, full_text=None):
        seed = entries[0][0]
        store.insert_cluster(Cluster(id=cluster_id, seed_article=seed, rep_article=seed, last_seen=now))
        for i, (article_id, claim, summary, source, minutes_ago, lang) in enumerate(entries):
            store.add_article(
                Article(
                    id=article_id,
                    title=claim,
                    snippet=summary,
                    full_text=full_text if i == 0 else None,
                    language=lang,
                    source_id=source,
                    published_at=now.subtract(minutes=minutes_ago),
                    cluster_id=cluster_id,
                )
            )
            store.insert_cluster_update(
                ClusterUpdate(
                    cluster_id=cluster_id,
                    article_id=article_id,
                    happened_at=now.subtract(minutes=minutes_ago),
                    claim=claim,
                    summary=summary,
                    source_id=source,
                    stance="supports",
                    lang=lang,
                )
            )
        return cluster_id

    return _story


@pytest.fixture
def alpha(story):
    return story(
        "c1",
        [
            ("a1", "Alpha and Beta near deal", "Talks advanced overnight", "wire", 30, "en"),
            ("a2", "Alpha signs deal with Beta", "The deal was signed at noon", "daily", 5, "en"),
        ],
        full_text="Alpha &amp; Beta signed the deal.\n\nDetails follow.",
    )


class TestDeterministicSummary:
    def test_scenario_b(self, store, enrichment_config, alpha):
        enricher = ClusterEnricher(store, enrichment_config)

        first = enricher.enrich_cluster(alpha, "en")
        assert first is not None
        assert enricher.enrich_cluster(alpha, "en") is None
        assert len(store.cluster_ai) == 1

    def test_fields(self, store, enrichment_config, alpha):
        row = ClusterEnricher(store, enrichment_config).enrich_cluster(alpha, "en")

        assert row.ai_title == "Alpha signs deal with Beta"
        assert row.ai_summary == (
            "• daily: The deal was signed at noon\n"
            "• wire: Talks advanced overnight"
        )
        assert row.ai_details == "Alpha & Beta signed the deal.\n\nDetails follow."
        assert row.model == "stub#body=orig"
        assert row.is_current
        assert row.pivot_hash is None

    def test_details_synthesized_without_article_text(self, store, enrichment_config, story):
        cid = story("c2", [("b1", "Storm hits coast", None, "wire", 10, "en")])
        row = ClusterEnricher(store, enrichment_config).enrich_cluster(cid, "en")

        assert row.ai_summary == "• wire: Storm hits coast"
        assert row.ai_details.startswith("Timeline:\n• wire: Storm hits coast")
        assert "Coverage:" in row.ai_details

    def test_updates_limit(self, store, alpha):
        enricher = ClusterEnricher(store, EnrichmentConfig(updates_limit=1))
        row = enricher.enrich_cluster(alpha, "en")
        assert row.ai_summary == "• daily: The deal was signed at noon"

    def test_empty_timeline_is_skipped(self, store, enrichment_config):
        store.insert_cluster(Cluster(id="empty"))
        assert ClusterEnricher(store, enrichment_config).enrich_cluster("empty", "en") is None
        assert store.cluster_ai == []

    def test_language_is_normalized(self, store, enrichment_config, alpha):
        row = ClusterEnricher(store, enrichment_config).enrich_cluster(alpha, "EN_us")
        assert row.lang == "en-US"


class TestCurrentRowInvariant:
    def test_forced_refresh_keeps_one_current(self, store, enrichment_config, alpha):
        enricher = ClusterEnricher(store, enrichment_config)
        rows = [enricher.enrich_cluster(alpha, "en", force=True) for _ in range(3)]

        current = store.get_current_ai(alpha, "en")
        assert len(current) == 1
        assert current[0].id == rows[-1].id
        assert len(store.cluster_ai) == 3

    def test_other_languages_untouched(self, store, enrichment_config, alpha):
        enricher = ClusterEnricher(store, enrichment_config)
        enricher.enrich_cluster(alpha, "en")
        enricher.enrich_cluster(alpha, "tr")
        enricher.enrich_cluster(alpha, "en", force=True)

        assert len(store.get_current_ai(alpha, "tr")) == 1
        assert len(store.get_current_ai(alpha)) == 2

    def test_concurrent_refresh_is_a_skip(self, store, enrichment_config, alpha, monkeypatch):
        enricher = ClusterEnricher(store, enrichment_config)
        enricher.enrich_cluster(alpha, "en")
        # Another writer re-inserted between our retire and insert
        monkeypatch.setattr(store, "retire_current_ai", lambda cluster_id, lang: 0)

        assert enricher.enrich_cluster(alpha, "en", force=True) is None
        assert len(store.get_current_ai(alpha, "en")) == 1

    def test_store_failure_is_contained(self, store, enrichment_config, alpha, monkeypatch):
        def broken(*args, **kwargs):
            raise DatastoreError("connection reset")

        monkeypatch.setattr(store, "get_cluster_updates", broken)
        assert ClusterEnricher(store, enrichment_config).enrich_cluster(alpha, "en") is None


class TestProviderSummary:
    def test_uses_provider_json(self, store, alpha):
        llm = MockLLMProvider(responses=['```json\n{"ai_title":"Deal sealed","ai_summary":"Alpha and Beta agree."}\n```'])
        enricher = ClusterEnricher(store, EnrichmentConfig(llm_enabled=True, sleep_ms=0), llm=llm)
        row = enricher.enrich_cluster(alpha, "en")

        assert row.ai_title == "Deal sealed"
        assert row.ai_summary == "Alpha and Beta agree."
        assert row.model == "mock#body=orig"
        assert "Updates (time | source | stance | claim):" in llm.calls[0]

    def test_malformed_json_falls_back(self, store, alpha):
        llm = MockLLMProvider(responses=["Here is a summary without any JSON"])
        enricher = ClusterEnricher(store, EnrichmentConfig(llm_enabled=True, sleep_ms=0), llm=llm)
        row = enricher.enrich_cluster(alpha, "en")

        assert row.ai_title == "Alpha signs deal with Beta"
        assert row.ai_summary.startswith("• daily:")

    def test_provider_error_falls_back(self, store, alpha):
        enricher = ClusterEnricher(store, EnrichmentConfig(llm_enabled=True, sleep_ms=0), llm=MockLLMProvider())
        assert enricher.enrich_cluster(alpha, "en").ai_title == "Alpha signs deal with Beta"

    def test_provider_unused_when_disabled(self, store, enrichment_config, alpha):
        llm = MockLLMProvider(responses=['{"ai_title":"x","ai_summary":"y"}'])
        ClusterEnricher(store, enrichment_config, llm=llm).enrich_cluster(alpha, "en")
        assert llm.calls == []

    def test_prompt_lines(self, store, alpha):
        updates = store.get_cluster_updates(alpha)
        prompt = build_summary_prompt("en", updates, [])
        assert "| daily | supports | Alpha signs deal with Beta" in prompt
        assert "language en" in prompt


class TestSweeps:
    def test_pending_clusters(self, store, enrichment_config, alpha, story):
        other = story("c2", [("b1", "Storm hits coast", "Winds at 100km/h", "wire", 10, "en")])
        enricher = ClusterEnricher(store, enrichment_config)
        enricher.enrich_cluster(alpha, "en")

        result = enricher.enrich_pending_clusters("en")
        assert result.processed == 1
        assert len(store.get_current_ai(other, "en")) == 1

    def test_disabled_sweep(self, store, alpha):
        enricher = ClusterEnricher(store, EnrichmentConfig(enabled=False))
        assert enricher.enrich_pending_clusters("en").processed == 0
        assert enricher.enrich_pending_clusters("en", override_enabled=True).processed == 1

    def test_throttle_between_provider_calls(self, store, alpha, story):
        story("c2", [("b1", "Storm hits coast", "Winds", "wire", 10, "en")])
        sleeps = []
        llm = MockLLMProvider(responses=['{"ai_title":"t","ai_summary":"s"}'])
        enricher = ClusterEnricher(
            store, EnrichmentConfig(llm_enabled=True, sleep_ms=250), llm=llm, sleep=sleeps.append
        )
        enricher.enrich_pending_clusters("en")
        assert sleeps == [0.25, 0.25]

    def test_auto_pivot_uses_dominant_language(self, store, enrichment_config, story):
        cid = story(
            "c3",
            [
                ("t1", "Anlaşma imzalandı", "Taraflar anlaştı", "haber", 20, "tr"),
                ("t2", "Anlaşma resmi olarak açıklandı", None, "ajans", 10, "tr"),
                ("e1", "Deal signed", None, "wire", 5, "en"),
            ],
        )
        enricher = ClusterEnricher(store, enrichment_config)
        assert enricher.dominant_language(cid) == "tr"

        result = enricher.enrich_clusters_auto_pivot()
        assert result.processed == 1
        assert store.get_current_ai(cid)[0].lang == "tr"

        # Already has a pivot now
        assert enricher.enrich_clusters_auto_pivot().skipped == 1

    def test_dominant_language_tie_prefers_english(self, store, enrichment_config, story):
        cid = story(
            "c4",
            [
                ("t1", "Anlaşma imzalandı", None, "haber", 20, "tr"),
                ("e1", "Deal signed", None, "wire", 5, "en"),
            ],
        )
        assert ClusterEnricher(store, enrichment_config).dominant_language(cid) == "en"


def test_summary_from_updates_uses_claim_when_summary_missing():
    updates = [ClusterUpdate(cluster_id="c", article_id="a", claim="Claim only", source_id=None)]
    assert summary_from_updates(updates) == "• src: Claim only"
