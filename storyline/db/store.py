"""Datastore interface consumed by the clustering and localization pipeline."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models import (
    Article,
    Cluster,
    ClusterAI,
    ClusterUpdate,
    Market,
    SimilarArticle,
    TranslationCacheEntry,
)

# Recency proxies for cluster scans, most preferred first
CLUSTER_RECENCY_COLUMNS = ("last_seen", "updated_at", "id")


class Datastore(ABC):
    """
    Relational store with upsert-on-conflict-ignore and fuzzy text search.

    Implementations must be safe to call from several threads at once.
    """

    # Articles

    @abstractmethod
    def find_similar_articles(
        self,
        title: str,
        full_text: Optional[str],
        window_hours: int,
        threshold: float,
        limit: int,
    ) -> List[SimilarArticle]:
        """Recent articles whose text is similar to the query, best first."""

    @abstractmethod
    def get_article(self, article_id: str) -> Optional[Article]:
        """Fetch one article."""

    @abstractmethod
    def get_cluster_articles(self, cluster_id: str, limit: int = 5) -> List[Article]:
        """Most recently published articles of a cluster."""

    @abstractmethod
    def set_article_cluster(self, article_id: str, cluster_id: str) -> bool:
        """Set article.cluster_id if it is still unset. Returns whether a row changed."""

    @abstractmethod
    def list_recent_articles_with_text(self, limit: int) -> List[Article]:
        """Recently created articles that have a full text body."""

    # Clusters

    @abstractmethod
    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        """Fetch one cluster."""

    @abstractmethod
    def insert_cluster(self, cluster: Cluster) -> bool:
        """Insert a cluster, ignoring conflicts. Returns whether it was created."""

    @abstractmethod
    def touch_cluster(self, cluster_id: str, last_seen: datetime) -> None:
        """Record one more article: bump last_seen and size."""

    @abstractmethod
    def list_clusters(self) -> List[Cluster]:
        """All clusters."""

    @abstractmethod
    def list_clusters_needing_ai(self, lang: str) -> List[str]:
        """Ids of clusters without a current summary in lang."""

    @abstractmethod
    def list_recent_clusters(
        self,
        order_by: str,
        limit: int,
        since: Optional[datetime] = None,
    ) -> List[str]:
        """
        Cluster ids ordered by a recency column, newest first.

        Raises DatastoreError if the column is unavailable.
        """

    # Timeline

    @abstractmethod
    def insert_cluster_update(self, update: ClusterUpdate) -> bool:
        """Insert a timeline entry, ignoring duplicates. Returns whether it was created."""

    @abstractmethod
    def get_cluster_updates(self, cluster_id: str, limit: Optional[int] = None) -> List[ClusterUpdate]:
        """Timeline entries of a cluster, most recent first."""

    # Summaries

    @abstractmethod
    def get_current_ai(self, cluster_id: str, lang: Optional[str] = None) -> List[ClusterAI]:
        """Current summary rows of a cluster, optionally for one language."""

    @abstractmethod
    def retire_current_ai(self, cluster_id: str, lang: str) -> int:
        """Flip current rows for (cluster, lang) to non-current. Returns rows changed."""

    @abstractmethod
    def insert_cluster_ai(self, row: ClusterAI) -> ClusterAI:
        """
        Insert a summary row.

        Raises CurrentRowConflict if another current row exists for (cluster, lang).
        """

    # Markets and translation cache

    @abstractmethod
    def load_markets(self) -> List[Market]:
        """All configured markets."""

    @abstractmethod
    def get_cached_translation(self, key: str) -> Optional[str]:
        """Cached translation for a key."""

    @abstractmethod
    def put_cached_translation(self, entry: TranslationCacheEntry) -> None:
        """Store a translation, ignoring an existing key."""
