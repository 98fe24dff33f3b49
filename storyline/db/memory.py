"""In-process datastore for tests and dry runs."""

import itertools
import re
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

import pendulum

from ..errors import CurrentRowConflict, DatastoreError
from ..models import (
    Article,
    Cluster,
    ClusterAI,
    ClusterUpdate,
    Market,
    SimilarArticle,
    TranslationCacheEntry,
)
from .store import CLUSTER_RECENCY_COLUMNS, Datastore

SimilarityFn = Callable[[str, str], float]


def _trigrams(text: str) -> Set[str]:
    """Trigrams of each word, padded the way pg_trgm pads them."""
    grams: Set[str] = set()
    for word in re.findall(r"\w+", text.lower()):
        padded = f"  {word} "
        grams.update(padded[i:i + 3] for i in range(len(padded) - 2))
    return grams


def trigram_similarity(a: str, b: str) -> float:
    """Shared trigrams over distinct trigrams, as pg_trgm's similarity()."""
    ga, gb = _trigrams(a), _trigrams(b)
    if not ga or not gb:
        return 0.0
    return len(ga & gb) / len(ga | gb)


def _search_text(title: Optional[str], full_text: Optional[str]) -> str:
    return f"{title or ''} {(full_text or '')[:2000]}".lower()


class MemoryDatastore(Datastore):
    """Thread-safe dict-backed datastore with the same semantics as Postgres."""

    def __init__(
        self,
        similarity_fn: Optional[SimilarityFn] = None,
        unavailable_columns: Iterable[str] = (),
    ) -> None:
        self.similarity_fn = similarity_fn or trigram_similarity
        self.unavailable_columns = set(unavailable_columns)
        self.articles: Dict[str, Article] = {}
        self.clusters: Dict[str, Cluster] = {}
        self.cluster_updates: Dict[Tuple[str, str], ClusterUpdate] = {}
        self.cluster_ai: List[ClusterAI] = []
        self.markets: List[Market] = []
        self.translations: Dict[str, TranslationCacheEntry] = {}
        self.writes = 0
        self._lock = threading.RLock()
        self._seq = itertools.count()
        self._order: Dict[str, int] = {}

    def _now(self) -> datetime:
        return pendulum.now("UTC")

    # Seeding helpers

    def add_article(self, article: Article) -> Article:
        """Store an article as ingestion would."""
        with self._lock:
            stored = article.model_copy(
                update={"created_at": article.created_at or self._now()}
            )
            self.articles[article.id] = stored
            return stored

    def add_market(self, market: Market) -> None:
        """Register a market."""
        with self._lock:
            self.markets.append(market)

    # Articles

    def find_similar_articles(
        self,
        title: str,
        full_text: Optional[str],
        window_hours: int,
        threshold: float,
        limit: int,
    ) -> List[SimilarArticle]:
        query = _search_text(title, full_text)
        cutoff = self._now() - timedelta(hours=window_hours)
        with self._lock:
            candidates = list(self.articles.values())

        scored = []
        for article in candidates:
            if article.published_at is None or article.published_at < cutoff:
                continue
            score = self.similarity_fn(query, _search_text(article.title, article.full_text))
            if score >= threshold:
                scored.append(
                    SimilarArticle(article_id=article.id, similarity=score, cluster_id=article.cluster_id)
                )
        scored.sort(key=lambda s: s.similarity, reverse=True)
        return scored[:limit]

    def get_article(self, article_id: str) -> Optional[Article]:
        with self._lock:
            return self.articles.get(article_id)

    def get_cluster_articles(self, cluster_id: str, limit: int = 5) -> List[Article]:
        with self._lock:
            members = [a for a in self.articles.values() if a.cluster_id == cluster_id]
        members.sort(key=lambda a: a.published_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return members[:limit]

    def set_article_cluster(self, article_id: str, cluster_id: str) -> bool:
        with self._lock:
            article = self.articles.get(article_id)
            if article is None or article.cluster_id is not None:
                return False
            self.articles[article_id] = article.model_copy(update={"cluster_id": cluster_id})
            self.writes += 1
            return True

    def list_recent_articles_with_text(self, limit: int) -> List[Article]:
        with self._lock:
            rows = [a for a in self.articles.values() if a.full_text]
        rows.sort(key=lambda a: a.created_at, reverse=True)
        return rows[:limit]

    # Clusters

    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        with self._lock:
            return self.clusters.get(cluster_id)

    def insert_cluster(self, cluster: Cluster) -> bool:
        with self._lock:
            if cluster.id in self.clusters:
                return False
            now = self._now()
            self.clusters[cluster.id] = cluster.model_copy(update={"created_at": now, "updated_at": now})
            self._order[cluster.id] = next(self._seq)
            self.writes += 1
            return True

    def touch_cluster(self, cluster_id: str, last_seen: datetime) -> None:
        with self._lock:
            cluster = self.clusters.get(cluster_id)
            if cluster is None:
                return
            newest = max(last_seen, cluster.last_seen) if cluster.last_seen else last_seen
            self.clusters[cluster_id] = cluster.model_copy(
                update={"last_seen": newest, "size": max(1, cluster.size + 1), "updated_at": self._now()}
            )
            self.writes += 1

    def list_clusters(self) -> List[Cluster]:
        with self._lock:
            return sorted(self.clusters.values(), key=lambda c: self._order[c.id])

    def list_clusters_needing_ai(self, lang: str) -> List[str]:
        with self._lock:
            covered = {r.cluster_id for r in self.cluster_ai if r.is_current and r.lang == lang}
            return [c.id for c in self.list_clusters() if c.id not in covered]

    def list_recent_clusters(
        self,
        order_by: str,
        limit: int,
        since: Optional[datetime] = None,
    ) -> List[str]:
        if order_by not in CLUSTER_RECENCY_COLUMNS or order_by in self.unavailable_columns:
            raise DatastoreError(f'column "{order_by}" does not exist')

        clusters = self.list_clusters()
        if order_by == "id":
            ordered = list(reversed(clusters))
        else:
            if since is not None:
                clusters = [c for c in clusters if getattr(c, order_by) and getattr(c, order_by) >= since]
            ordered = sorted(
                clusters,
                key=lambda c: (getattr(c, order_by) is not None, getattr(c, order_by) or 0, self._order[c.id]),
                reverse=True,
            )
        return [c.id for c in ordered[:limit]]

    # Timeline

    def insert_cluster_update(self, update: ClusterUpdate) -> bool:
        key = (update.cluster_id, update.article_id)
        with self._lock:
            if key in self.cluster_updates:
                return False
            self.cluster_updates[key] = update.model_copy(
                update={"id": str(uuid.uuid4()), "created_at": self._now()}
            )
            self.writes += 1
            return True

    def get_cluster_updates(self, cluster_id: str, limit: Optional[int] = None) -> List[ClusterUpdate]:
        with self._lock:
            rows = [u for (cid, _), u in self.cluster_updates.items() if cid == cluster_id]
        rows.sort(key=lambda u: u.happened_at or u.created_at, reverse=True)
        return rows if limit is None else rows[:limit]

    # Summaries

    def get_current_ai(self, cluster_id: str, lang: Optional[str] = None) -> List[ClusterAI]:
        with self._lock:
            rows = [
                r for r in self.cluster_ai
                if r.cluster_id == cluster_id and r.is_current and (lang is None or r.lang == lang)
            ]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def retire_current_ai(self, cluster_id: str, lang: str) -> int:
        changed = 0
        with self._lock:
            for i, row in enumerate(self.cluster_ai):
                if row.cluster_id == cluster_id and row.lang == lang and row.is_current:
                    self.cluster_ai[i] = row.model_copy(update={"is_current": False})
                    changed += 1
            self.writes += changed
        return changed

    def insert_cluster_ai(self, row: ClusterAI) -> ClusterAI:
        with self._lock:
            if row.is_current and any(
                r.cluster_id == row.cluster_id and r.lang == row.lang and r.is_current
                for r in self.cluster_ai
            ):
                raise CurrentRowConflict(f"current row exists for {row.cluster_id}/{row.lang}")
            stored = row.model_copy(
                update={"id": str(uuid.uuid4()), "created_at": row.created_at or self._now()}
            )
            self.cluster_ai.append(stored)
            self.writes += 1
            return stored

    # Markets and translation cache

    def load_markets(self) -> List[Market]:
        with self._lock:
            return list(self.markets)

    def get_cached_translation(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self.translations.get(key)
            return entry.text if entry else None

    def put_cached_translation(self, entry: TranslationCacheEntry) -> None:
        with self._lock:
            self.translations.setdefault(entry.key, entry)
