"""Database initialization and schema management."""

import logging
from typing import Any, Dict

from psycopg.errors import DatabaseError

from .connection import get_connection

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS pg_trgm;

-- Articles (written by ingestion; cluster_id is set once by the clusterer)
CREATE TABLE IF NOT EXISTS articles (
    id TEXT PRIMARY KEY,
    source_id TEXT,
    url TEXT,
    canonical_url TEXT,
    title TEXT NOT NULL DEFAULT '',
    snippet TEXT,
    full_text TEXT,
    language TEXT,
    published_at TIMESTAMPTZ,
    fetched_at TIMESTAMPTZ,
    content_hash TEXT,
    cluster_id TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (source_id, content_hash)
);

-- Story clusters
CREATE TABLE IF NOT EXISTS clusters (
    id TEXT PRIMARY KEY,
    seed_article TEXT REFERENCES articles(id) ON DELETE SET NULL,
    rep_article TEXT REFERENCES articles(id) ON DELETE SET NULL,
    fingerprint TEXT,
    first_seen TIMESTAMPTZ DEFAULT now(),
    last_seen TIMESTAMPTZ DEFAULT now(),
    size INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

-- Timeline entries, one per (cluster, article)
CREATE TABLE IF NOT EXISTS cluster_updates (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    cluster_id TEXT NOT NULL REFERENCES clusters(id) ON DELETE CASCADE,
    article_id TEXT NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    happened_at TIMESTAMPTZ,
    stance TEXT CHECK (stance IN ('supports', 'contradicts', 'neutral')),
    claim TEXT,
    evidence TEXT,
    summary TEXT,
    source_id TEXT,
    lang TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (cluster_id, article_id)
);

-- Versioned per-language summaries
CREATE TABLE IF NOT EXISTS cluster_ai (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    cluster_id TEXT NOT NULL REFERENCES clusters(id) ON DELETE CASCADE,
    lang TEXT NOT NULL,
    ai_title TEXT,
    ai_summary TEXT,
    ai_details TEXT,
    model TEXT,
    pivot_hash TEXT,
    is_current BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
);

-- Markets
CREATE TABLE IF NOT EXISTS app_markets (
    id BIGSERIAL PRIMARY KEY,
    market_code TEXT UNIQUE,
    pivot_lang TEXT DEFAULT 'en',
    show_langs TEXT[],
    pretranslate_langs TEXT[],
    enabled BOOLEAN DEFAULT TRUE
);

-- Translation memoization
CREATE TABLE IF NOT EXISTS translations (
    key TEXT PRIMARY KEY,
    src_lang TEXT,
    dst_lang TEXT,
    text TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_articles_cluster ON articles(cluster_id);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles(published_at);
CREATE INDEX IF NOT EXISTS idx_articles_search_trgm ON articles USING gin (
    (lower(coalesce(title, '') || ' ' || substr(coalesce(full_text, ''), 1, 2000))) gin_trgm_ops
);
CREATE INDEX IF NOT EXISTS idx_clusters_last_seen ON clusters(last_seen DESC);
CREATE INDEX IF NOT EXISTS idx_cluster_updates_time ON cluster_updates(cluster_id, happened_at DESC);
CREATE INDEX IF NOT EXISTS idx_cluster_ai_cluster_lang ON cluster_ai(cluster_id, lang);

-- At most one current summary per (cluster, lang)
CREATE UNIQUE INDEX IF NOT EXISTS uq_cluster_ai_current_lang
    ON cluster_ai(cluster_id, lang)
    WHERE is_current;

CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = now();
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_clusters_updated_at ON clusters;
CREATE TRIGGER update_clusters_updated_at BEFORE UPDATE ON clusters
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

-- Trigram similarity over title + the first 2000 characters of the body
CREATE OR REPLACE FUNCTION find_similar_articles(
    p_title TEXT,
    p_full_text TEXT DEFAULT NULL,
    p_window_hours INT DEFAULT 72,
    p_threshold REAL DEFAULT 0.4,
    p_limit INT DEFAULT 10
)
RETURNS TABLE (article_id TEXT, similarity REAL, cluster_id TEXT)
LANGUAGE plpgsql AS $$
DECLARE
    q_text TEXT;
BEGIN
    q_text := lower(coalesce(p_title, '') || ' ' || substr(coalesce(p_full_text, ''), 1, 2000));

    RETURN QUERY
    SELECT s.id, s.sim, s.cluster_id FROM (
        SELECT a.id,
               similarity(lower(coalesce(a.title, '') || ' ' || substr(coalesce(a.full_text, ''), 1, 2000)), q_text) AS sim,
               a.cluster_id
        FROM articles a
        WHERE a.published_at >= now() - make_interval(hours => p_window_hours)
          AND (lower(coalesce(a.title, '') || ' ' || substr(coalesce(a.full_text, ''), 1, 2000))) % q_text
    ) s
    WHERE s.sim >= p_threshold
    ORDER BY s.sim DESC
    LIMIT p_limit;
END;
$$;

CREATE OR REPLACE FUNCTION clusters_needing_ai(p_lang TEXT)
RETURNS TABLE (cluster_id TEXT)
LANGUAGE sql AS $$
    SELECT c.id
    FROM clusters c
    WHERE NOT EXISTS (
        SELECT 1 FROM cluster_ai ai
        WHERE ai.cluster_id = c.id AND ai.lang = p_lang AND ai.is_current
    );
$$;

-- Default market when none is configured
INSERT INTO app_markets (market_code, pivot_lang, show_langs, pretranslate_langs, enabled)
SELECT 'global', 'en', ARRAY['en', 'tr'], ARRAY['tr'], TRUE
WHERE NOT EXISTS (SELECT 1 FROM app_markets);
"""


def validate_connection(config: Dict[str, Any]) -> bool:
    """Validate database connection."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                result = cur.fetchone()
                return result is not None and result["ok"] == 1
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            conn.commit()
            logger.info("Database schema initialized successfully")
    except DatabaseError as e:
        logger.error("Failed to initialize database schema: %s", e)
        raise
