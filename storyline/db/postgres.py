"""Postgres implementation of the datastore."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional

import psycopg
from psycopg import Connection, sql
from psycopg.errors import UniqueViolation

from ..errors import CurrentRowConflict, DatastoreError, DuplicateRowError
from ..models import (
    Article,
    Cluster,
    ClusterAI,
    ClusterUpdate,
    Market,
    SimilarArticle,
    TranslationCacheEntry,
)
from .connection import get_connection
from .store import CLUSTER_RECENCY_COLUMNS, Datastore

logger = logging.getLogger(__name__)

CURRENT_AI_INDEX = "uq_cluster_ai_current_lang"

CLUSTER_AI_COLUMNS = """
    id::text AS id, cluster_id, lang, ai_title, ai_summary, ai_details,
    model, pivot_hash, is_current, created_at
"""


class PostgresDatastore(Datastore):
    """Datastore backed by a pooled psycopg connection."""

    def __init__(self, db_config: Dict[str, Any]) -> None:
        """Initialize with a database configuration dict."""
        self.db_config = db_config

    @contextmanager
    def _connection(self) -> Generator[Connection, None, None]:
        """Pooled connection with psycopg errors mapped to DatastoreError."""
        try:
            with get_connection(self.db_config) as conn:
                yield conn
        except UniqueViolation as e:
            constraint = getattr(e.diag, "constraint_name", None)
            if constraint == CURRENT_AI_INDEX:
                raise CurrentRowConflict(str(e)) from e
            raise DuplicateRowError(str(e)) from e
        except psycopg.Error as e:
            raise DatastoreError(str(e)) from e

    def _fetchall(self, query: Any, params: tuple = ()) -> List[Dict[str, Any]]:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def _fetchone(self, query: Any, params: tuple = ()) -> Optional[Dict[str, Any]]:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchone()

    def _execute(self, query: Any, params: tuple = ()) -> int:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                rowcount = cur.rowcount
            conn.commit()
            return rowcount

    # Articles

    def find_similar_articles(
        self,
        title: str,
        full_text: Optional[str],
        window_hours: int,
        threshold: float,
        limit: int,
    ) -> List[SimilarArticle]:
        """Trigram similarity search via the find_similar_articles function."""
        rows = self._fetchall(
            "SELECT * FROM find_similar_articles(%s, %s, %s, %s, %s)",
            (title, full_text, window_hours, threshold, limit),
        )
        return [SimilarArticle(**row) for row in rows]

    def get_article(self, article_id: str) -> Optional[Article]:
        row = self._fetchone("SELECT * FROM articles WHERE id = %s", (article_id,))
        return Article(**row) if row else None

    def get_cluster_articles(self, cluster_id: str, limit: int = 5) -> List[Article]:
        rows = self._fetchall(
            """
            SELECT * FROM articles
            WHERE cluster_id = %s
            ORDER BY published_at DESC NULLS LAST
            LIMIT %s
            """,
            (cluster_id, limit),
        )
        return [Article(**row) for row in rows]

    def set_article_cluster(self, article_id: str, cluster_id: str) -> bool:
        changed = self._execute(
            "UPDATE articles SET cluster_id = %s WHERE id = %s AND cluster_id IS NULL",
            (cluster_id, article_id),
        )
        return changed > 0

    def list_recent_articles_with_text(self, limit: int) -> List[Article]:
        rows = self._fetchall(
            """
            SELECT * FROM articles
            WHERE full_text IS NOT NULL
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (limit,),
        )
        return [Article(**row) for row in rows]

    # Clusters

    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        row = self._fetchone("SELECT * FROM clusters WHERE id = %s", (cluster_id,))
        return Cluster(**row) if row else None

    def insert_cluster(self, cluster: Cluster) -> bool:
        created = self._execute(
            """
            INSERT INTO clusters (id, seed_article, rep_article, fingerprint, first_seen, last_seen, size)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO NOTHING
            """,
            (
                cluster.id,
                cluster.seed_article,
                cluster.rep_article,
                cluster.fingerprint,
                cluster.first_seen,
                cluster.last_seen,
                cluster.size,
            ),
        )
        return created > 0

    def touch_cluster(self, cluster_id: str, last_seen: datetime) -> None:
        self._execute(
            """
            UPDATE clusters
            SET last_seen = GREATEST(last_seen, %s),
                size = GREATEST(1, size + 1)
            WHERE id = %s
            """,
            (last_seen, cluster_id),
        )

    def list_clusters(self) -> List[Cluster]:
        rows = self._fetchall("SELECT * FROM clusters ORDER BY created_at")
        return [Cluster(**row) for row in rows]

    def list_clusters_needing_ai(self, lang: str) -> List[str]:
        rows = self._fetchall("SELECT cluster_id FROM clusters_needing_ai(%s)", (lang,))
        return [row["cluster_id"] for row in rows]

    def list_recent_clusters(
        self,
        order_by: str,
        limit: int,
        since: Optional[datetime] = None,
    ) -> List[str]:
        if order_by not in CLUSTER_RECENCY_COLUMNS:
            raise DatastoreError(f"Unsupported cluster ordering: {order_by}")

        column = sql.Identifier(order_by)
        if since is not None and order_by != "id":
            query = sql.SQL(
                "SELECT id FROM clusters WHERE {col} >= %s ORDER BY {col} DESC NULLS LAST LIMIT %s"
            ).format(col=column)
            params: tuple = (since, limit)
        else:
            query = sql.SQL("SELECT id FROM clusters ORDER BY {col} DESC LIMIT %s").format(col=column)
            params = (limit,)
        return [row["id"] for row in self._fetchall(query, params)]

    # Timeline

    def insert_cluster_update(self, update: ClusterUpdate) -> bool:
        created = self._execute(
            """
            INSERT INTO cluster_updates (
                cluster_id, article_id, happened_at, stance, claim,
                evidence, summary, source_id, lang
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (cluster_id, article_id) DO NOTHING
            """,
            (
                update.cluster_id,
                update.article_id,
                update.happened_at,
                update.stance,
                update.claim,
                update.evidence,
                update.summary,
                update.source_id,
                update.lang,
            ),
        )
        return created > 0

    def get_cluster_updates(self, cluster_id: str, limit: Optional[int] = None) -> List[ClusterUpdate]:
        rows = self._fetchall(
            """
            SELECT id::text AS id, cluster_id, article_id, happened_at, stance, claim,
                   evidence, summary, source_id, lang, created_at
            FROM cluster_updates
            WHERE cluster_id = %s
            ORDER BY COALESCE(happened_at, created_at) DESC
            LIMIT %s
            """,
            (cluster_id, limit),
        )
        return [ClusterUpdate(**row) for row in rows]

    # Summaries

    def get_current_ai(self, cluster_id: str, lang: Optional[str] = None) -> List[ClusterAI]:
        if lang is None:
            rows = self._fetchall(
                f"""
                SELECT {CLUSTER_AI_COLUMNS} FROM cluster_ai
                WHERE cluster_id = %s AND is_current
                ORDER BY created_at DESC
                """,
                (cluster_id,),
            )
        else:
            rows = self._fetchall(
                f"""
                SELECT {CLUSTER_AI_COLUMNS} FROM cluster_ai
                WHERE cluster_id = %s AND lang = %s AND is_current
                ORDER BY created_at DESC
                """,
                (cluster_id, lang),
            )
        return [ClusterAI(**row) for row in rows]

    def retire_current_ai(self, cluster_id: str, lang: str) -> int:
        return self._execute(
            "UPDATE cluster_ai SET is_current = FALSE WHERE cluster_id = %s AND lang = %s AND is_current",
            (cluster_id, lang),
        )

    def insert_cluster_ai(self, row: ClusterAI) -> ClusterAI:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO cluster_ai (
                        cluster_id, lang, ai_title, ai_summary, ai_details,
                        model, pivot_hash, is_current
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {CLUSTER_AI_COLUMNS}
                    """,
                    (
                        row.cluster_id,
                        row.lang,
                        row.ai_title,
                        row.ai_summary,
                        row.ai_details,
                        row.model,
                        row.pivot_hash,
                        row.is_current,
                    ),
                )
                inserted = cur.fetchone()
            conn.commit()
        return ClusterAI(**inserted)

    # Markets and translation cache

    def load_markets(self) -> List[Market]:
        rows = self._fetchall("SELECT * FROM app_markets ORDER BY id")
        markets = []
        for row in rows:
            row = dict(row)
            row["id"] = str(row["id"]) if row.get("id") is not None else None
            row["market_code"] = str(row.get("market_code") or row.get("id") or "")
            markets.append(Market(**row))
        return markets

    def get_cached_translation(self, key: str) -> Optional[str]:
        row = self._fetchone("SELECT text FROM translations WHERE key = %s", (key,))
        return row["text"] if row else None

    def put_cached_translation(self, entry: TranslationCacheEntry) -> None:
        self._execute(
            """
            INSERT INTO translations (key, src_lang, dst_lang, text)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (key) DO NOTHING
            """,
            (entry.key, entry.src_lang, entry.dst_lang, entry.text),
        )
