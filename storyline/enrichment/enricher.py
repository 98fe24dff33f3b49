"""Generate and version the pivot-language summary of a story cluster."""

import html
import logging
import time
from collections import Counter
from typing import List, Optional

from pydantic import BaseModel

from ..config import EnrichmentConfig
from ..db import Datastore
from ..errors import CurrentRowConflict
from ..generation import LLMProvider
from ..models import Article, Cluster, ClusterAI, ClusterUpdate
from ..utils import normalize_bcp47, parse_json_object

logger = logging.getLogger(__name__)

DETAILS_EXCERPT_CHARS = 1000


class EnrichmentResult(BaseModel):
    """Outcome of an enrichment sweep."""

    processed: int = 0
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None


class SummaryDraft(BaseModel):
    """Title, summary and details before they are versioned."""

    ai_title: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_details: Optional[str] = None


def trim_text(text: Optional[str], max_chars: int) -> str:
    """Cut at a word boundary and mark the cut."""
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rsplit(" ", 1)[0].rstrip() + "…"


def title_from_updates(updates: List[ClusterUpdate]) -> Optional[str]:
    """Claim of the most recent timeline entry."""
    if not updates:
        return None
    return updates[0].claim or None


def summary_from_updates(updates: List[ClusterUpdate]) -> Optional[str]:
    """One bullet per timeline entry: source and summary (or claim)."""
    if not updates:
        return None
    return "\n".join(
        f"• {u.source_id or 'src'}: {u.summary or u.claim or 'update'}" for u in updates
    )


def synthesize_details(updates: List[ClusterUpdate], articles: List[Article]) -> str:
    """Timeline and coverage blocks used when no article body is available."""
    parts = []
    if updates:
        parts.append("Timeline:\n" + summary_from_updates(updates[:6]))
    if articles:
        lines = []
        for a in articles[:3]:
            when = a.published_at.isoformat() if a.published_at else "unknown"
            lines.append(f"• {a.source_id or 'source'} | {when} | {a.title or a.snippet or 'article'}")
        parts.append("Coverage:\n" + "\n".join(lines))
    return "\n\n".join(parts)


def build_summary_prompt(lang: str, updates: List[ClusterUpdate], articles: List[Article]) -> str:
    """Prompt asking for a strict-JSON cluster summary."""
    update_lines = "\n".join(
        f"- {(u.happened_at or u.created_at).isoformat() if (u.happened_at or u.created_at) else 'unknown'}"
        f" | {u.source_id or 'src'} | {u.stance or 'unclassified'} | {u.claim or u.summary or 'update'}"
        for u in updates
    )
    excerpts = "\n\n".join(
        f"-- Article {i + 1} excerpt --\n{trim_text(a.full_text or a.snippet or '', DETAILS_EXCERPT_CHARS)}"
        for i, a in enumerate(articles[:3])
    )
    return f"""You are summarizing a news story cluster for language {lang}. Use ONLY facts from the updates and excerpts. Be neutral and factual. Avoid speculation.

Return STRICT JSON only (minified) with these keys: {{"ai_title":"...","ai_summary":"..."}}

Updates (time | source | stance | claim):
{update_lines}

Content excerpts:
{excerpts}"""


class ClusterEnricher:
    """Produce the current AI summary row for a cluster in one language."""

    def __init__(
        self,
        store: Datastore,
        config: EnrichmentConfig,
        llm: Optional[LLMProvider] = None,
        model_name: Optional[str] = None,
        sleep=time.sleep,
    ) -> None:
        self.store = store
        self.config = config
        self.llm = llm
        self.model_name = model_name or (llm.model if llm else "stub")
        self._sleep = sleep

    @property
    def uses_llm(self) -> bool:
        """Whether summaries are requested from the provider."""
        return self.config.llm_enabled and self.llm is not None

    def _draft_with_llm(self, lang: str, updates: List[ClusterUpdate], articles: List[Article]) -> Optional[SummaryDraft]:
        prompt = build_summary_prompt(lang, updates, articles)
        try:
            raw = self.llm.generate(prompt, max_tokens=self.config.max_tokens, temperature=0.4)
        except Exception as e:
            logger.warning("LLM cluster summary failed; using fallback: %s", e)
            return None
        parsed = parse_json_object(raw)
        if not parsed:
            logger.warning("LLM cluster summary was not valid JSON; using fallback")
            return None
        return SummaryDraft(
            ai_title=str(parsed.get("ai_title") or "").strip() or None,
            ai_summary=str(parsed.get("ai_summary") or "").strip() or None,
            ai_details=str(parsed.get("ai_details") or "").strip() or None,
        )

    def _details_body(self, cluster: Optional[Cluster], articles: List[Article]) -> Optional[str]:
        """Representative article body, else the longest recent body."""
        rep_id = (cluster.rep_article or cluster.seed_article) if cluster else None
        if rep_id:
            try:
                rep = self.store.get_article(rep_id)
            except Exception as e:
                logger.debug("Representative article fetch failed: %s", e)
                rep = None
            if rep and rep.full_text and rep.full_text.strip():
                return html.unescape(rep.full_text)

        bodies = sorted(
            (a.full_text for a in articles if a.full_text and a.full_text.strip()),
            key=len,
            reverse=True,
        )
        return html.unescape(bodies[0]) if bodies else None

    def draft(self, cluster_id: str, lang: str) -> SummaryDraft:
        """Build a summary from the cluster's recent timeline; never raises on provider errors."""
        updates = self.store.get_cluster_updates(cluster_id, limit=self.config.updates_limit)
        articles = self.store.get_cluster_articles(cluster_id, limit=5)

        draft = self._draft_with_llm(lang, updates, articles) if self.uses_llm else None
        title = (draft.ai_title if draft else None) or title_from_updates(updates)
        summary = (draft.ai_summary if draft else None) or summary_from_updates(updates)

        details = self._details_body(self.store.get_cluster(cluster_id), articles)
        if not details:
            details = (draft.ai_details if draft else None) or synthesize_details(updates, articles) or summary

        return SummaryDraft(ai_title=title, ai_summary=summary, ai_details=details)

    def enrich_cluster(self, cluster_id: str, lang: Optional[str] = None, force: bool = False) -> Optional[ClusterAI]:
        """
        Generate and store the current summary for (cluster, lang).

        Returns the new row, or None when a current row already exists or
        the cluster could not be enriched.
        """
        lang = normalize_bcp47(lang or self.config.lang)
        try:
            if not force and self.store.get_current_ai(cluster_id, lang):
                logger.debug("Cluster %s already has a current %s summary", cluster_id, lang)
                return None

            draft = self.draft(cluster_id, lang)
            if not (draft.ai_title or draft.ai_summary):
                logger.debug("Cluster %s has no timeline to summarize yet", cluster_id)
                return None

            self.store.retire_current_ai(cluster_id, lang)
            row = self.store.insert_cluster_ai(
                ClusterAI(
                    cluster_id=cluster_id,
                    lang=lang,
                    ai_title=draft.ai_title,
                    ai_summary=draft.ai_summary,
                    ai_details=draft.ai_details,
                    model=f"{self.model_name}#body=orig",
                    is_current=True,
                )
            )
            logger.info("Enriched cluster %s in %s", cluster_id, lang)
            return row
        except CurrentRowConflict:
            logger.debug("Cluster %s/%s was refreshed concurrently; skipping", cluster_id, lang)
            return None
        except Exception as e:
            logger.error("Cluster enrich failed for %s/%s: %s", cluster_id, lang, e)
            return None

    def _throttle(self) -> None:
        if self.uses_llm and self.config.sleep_ms > 0:
            self._sleep(self.config.sleep_ms / 1000)

    def enrich_pending_clusters(
        self,
        lang: Optional[str] = None,
        force: Optional[bool] = None,
        override_enabled: bool = False,
    ) -> EnrichmentResult:
        """Enrich every cluster lacking a current summary in lang (all clusters when forced)."""
        if not self.config.enabled and not override_enabled:
            return EnrichmentResult()

        lang = normalize_bcp47(lang or self.config.lang)
        force = self.config.force if force is None else force
        result = EnrichmentResult()
        try:
            if force:
                cluster_ids = [c.id for c in self.store.list_clusters()]
            else:
                cluster_ids = self.store.list_clusters_needing_ai(lang)
        except Exception as e:
            logger.error("Cluster enrich sweep failed: %s", e)
            return EnrichmentResult(error=str(e))

        for cluster_id in cluster_ids:
            row = self.enrich_cluster(cluster_id, lang, force=force)
            if row is None:
                result.skipped += 1
                continue
            result.processed += 1
            self._throttle()
        return result

    def dominant_language(self, cluster_id: str) -> str:
        """Most common language of the cluster's timeline (else articles); ties prefer en."""
        counts = Counter(
            normalize_bcp47(u.lang) for u in self.store.get_cluster_updates(cluster_id) if u.lang
        )
        if not counts:
            counts = Counter(
                normalize_bcp47(a.language)
                for a in self.store.get_cluster_articles(cluster_id, limit=50)
                if a.language
            )
        if not counts:
            return "en"
        best = max(counts.values())
        leaders = sorted(lang for lang, n in counts.items() if n == best)
        return "en" if "en" in leaders else leaders[0]

    def enrich_clusters_auto_pivot(self) -> EnrichmentResult:
        """Create a pivot summary, in the dominant language, for clusters with none at all."""
        if not self.config.enabled:
            return EnrichmentResult()

        result = EnrichmentResult()
        try:
            clusters = self.store.list_clusters()
        except Exception as e:
            logger.error("Auto-pivot enrich failed: %s", e)
            return EnrichmentResult(error=str(e))

        for cluster in clusters:
            try:
                if self.store.get_current_ai(cluster.id):
                    result.skipped += 1
                    continue
                lang = self.dominant_language(cluster.id)
            except Exception as e:
                logger.warning("Auto-pivot check failed for cluster %s: %s", cluster.id, e)
                result.failed += 1
                continue
            if self.enrich_cluster(cluster.id, lang) is None:
                result.skipped += 1
                continue
            result.processed += 1
            self._throttle()
        return result
