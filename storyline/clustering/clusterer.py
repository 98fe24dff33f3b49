"""Assign incoming articles to evolving story clusters."""

import logging
import re
from typing import List, Optional

import pendulum

from ..config import ClusteringConfig
from ..db import Datastore
from ..errors import DuplicateRowError
from ..models import Article, Cluster, ClusterUpdate, SimilarArticle
from .update_extractor import UpdateExtractor

logger = logging.getLogger(__name__)

FINGERPRINT_MAX_CHARS = 280


def fingerprint(text: Optional[str]) -> str:
    """Lower-cased, punctuation-free text used to label a cluster."""
    if not text:
        return ""
    cleaned = re.sub(r"[\"'`]", "", text.lower())
    cleaned = re.sub(r"[^\w\s]|_", " ", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()[:FINGERPRINT_MAX_CHARS]


def select_best_match(candidates: List[SimilarArticle], threshold: float) -> Optional[SimilarArticle]:
    """Highest-scoring candidate at or above threshold that already belongs to a cluster."""
    best: Optional[SimilarArticle] = None
    for candidate in candidates:
        if candidate.similarity < threshold or not candidate.cluster_id:
            continue
        if best is None or candidate.similarity > best.similarity:
            best = candidate
    return best


class Clusterer:
    """Similarity-based cluster assignment with a timeline entry per article."""

    def __init__(
        self,
        store: Datastore,
        config: ClusteringConfig,
        extractor: Optional[UpdateExtractor] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.extractor = extractor or UpdateExtractor(config)

    def assign_cluster(self, article: Article, source_id: Optional[str] = None) -> Optional[str]:
        """
        Assign the article to an existing or new cluster.

        Returns the cluster id, or None when clustering is disabled or fails.
        Never raises: clustering must not abort ingestion.
        """
        if article.cluster_id:
            return article.cluster_id
        if not self.config.enabled:
            return None

        try:
            return self._assign(article, source_id)
        except Exception as e:
            logger.error("Cluster assignment failed for article %s: %s", article.id, e)
            return None

    def _find_match(self, article: Article) -> Optional[SimilarArticle]:
        try:
            candidates = self.store.find_similar_articles(
                title=article.title or "",
                full_text=article.full_text,
                window_hours=self.config.window_hours,
                threshold=self.config.threshold,
                limit=self.config.candidate_limit,
            )
        except Exception as e:
            logger.warning("Similarity search failed for article %s; starting a new cluster: %s", article.id, e)
            return None
        # The article may already be visible to the search; it never matches itself
        candidates = [c for c in candidates if c.article_id != article.id]
        return select_best_match(candidates, self.config.threshold)

    def _assign(self, article: Article, source_id: Optional[str]) -> Optional[str]:
        match = self._find_match(article)
        cluster_id = match.cluster_id if match else article.id
        seen_at = article.published_at or pendulum.now("UTC")

        # cluster_id is write-once; a losing writer adopts the stored choice
        if not self.store.set_article_cluster(article.id, cluster_id):
            stored = self.store.get_article(article.id)
            if stored is None:
                logger.warning("Article %s is not stored; skipping cluster assignment", article.id)
                return None
            article.cluster_id = stored.cluster_id
            logger.debug("Article %s already in cluster %s", article.id, stored.cluster_id)
            return stored.cluster_id

        existing = self.store.get_cluster(cluster_id)
        if existing is None:
            self.store.insert_cluster(
                Cluster(
                    id=cluster_id,
                    seed_article=article.id,
                    rep_article=article.id,
                    fingerprint=fingerprint(article.title or article.snippet),
                    first_seen=seen_at,
                    last_seen=seen_at,
                    size=1,
                )
            )
        elif match is not None:
            self.store.touch_cluster(cluster_id, seen_at)

        article.cluster_id = cluster_id
        self._record_update(article, cluster_id, source_id)

        logger.debug(
            "Cluster assigned: article=%s cluster=%s similarity=%.3f",
            article.id,
            cluster_id,
            match.similarity if match else 0.0,
        )
        return cluster_id

    def _record_update(self, article: Article, cluster_id: str, source_id: Optional[str]) -> None:
        extracted = self.extractor.extract(article)
        update = ClusterUpdate(
            cluster_id=cluster_id,
            article_id=article.id,
            happened_at=article.published_at,
            stance=extracted.stance,
            claim=extracted.claim,
            evidence=extracted.evidence,
            summary=extracted.summary,
            source_id=source_id or article.source_id,
            lang=extracted.lang,
        )
        try:
            if not self.store.insert_cluster_update(update):
                logger.debug("Timeline entry already present: cluster=%s article=%s", cluster_id, article.id)
        except DuplicateRowError:
            logger.debug("Timeline entry raced: cluster=%s article=%s", cluster_id, article.id)
