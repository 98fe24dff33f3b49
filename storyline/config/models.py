"""Configuration models."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.lang import normalize_bcp47

MAX_POOL_SIZE = 16


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("storyline", description="Database name")
    user: str = Field("storyline", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    pool_max_size: int = Field(10, ge=1, le=100, description="Connection pool size")
    connect_timeout: int = Field(10, ge=1, description="Connect timeout in seconds")


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = Field("openai", description="LLM provider (openai, mock)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for API (e.g., for Ollama)")


class ClusteringConfig(BaseModel):
    """Similarity clustering settings."""

    enabled: bool = Field(False, description="Assign clusters to incoming articles")
    threshold: float = Field(0.55, ge=0.0, le=1.0, description="Minimum similarity to join a cluster")
    window_hours: int = Field(72, ge=1, description="Recency window for candidates")
    candidate_limit: int = Field(10, ge=1, le=100, description="Candidates requested per article")
    stance_mode: Literal["off", "rules", "llm"] = Field("off", description="Stance classification strategy")
    stance_llm_tokens: int = Field(120, ge=16, description="Token cap for stance classification")


class EnrichmentConfig(BaseModel):
    """Cluster summary generation settings."""

    enabled: bool = Field(True, description="Run the enrichment sweep")
    llm_enabled: bool = Field(False, description="Use the provider for summaries")
    sleep_ms: int = Field(250, ge=0, description="Throttle between clusters when the provider is used")
    max_tokens: int = Field(900, ge=64, description="Token cap for summary generation")
    updates_limit: int = Field(3, ge=1, le=20, description="Timeline entries gathered per summary")
    lang: str = Field("en", description="Default summary language")
    force: bool = Field(False, description="Re-enrich clusters that already have a current row")

    @field_validator("lang")
    @classmethod
    def validate_lang(cls, v: str) -> str:
        """Normalize the language tag."""
        return normalize_bcp47(v)


class PretranslationConfig(BaseModel):
    """Pretranslation scheduler settings."""

    market: Optional[str] = Field(None, description="Restrict to one market code")
    recent_hours: int = Field(24, ge=1, description="Only scan clusters active in this window")
    max_clusters: int = Field(200, ge=1, description="Clusters scanned per cycle")
    scan_concurrency: int = Field(4, description="Job collection pool size, clamped to 1..16")
    concurrency: int = Field(4, description="Job execution pool size, clamped to 1..16")
    item_timeout_ms: int = Field(8000, ge=100, description="Per-job translation timeout")
    retry_attempts: int = Field(2, ge=1, le=5, description="Translation attempts per job")
    retry_backoff_ms: int = Field(200, ge=0, description="Initial retry backoff")
    done_max: int = Field(10_000, ge=1, description="Idempotency set capacity")
    legacy_time_freshness: bool = Field(True, description="Treat untagged rows newer than the pivot as fresh")
    provider_tag: str = Field("pretranslator", description="Provenance tag for translated rows")
    article_langs: List[str] = Field(default_factory=list, description="Article cache warm-up languages")
    article_limit: int = Field(100, ge=1, description="Articles scanned by the warm-up cycle")

    @field_validator("article_langs", mode="before")
    @classmethod
    def validate_article_langs(cls, v):
        """Accept comma lists as well as arrays."""
        if isinstance(v, str):
            v = v.split(",")
        return [normalize_bcp47(s) for s in (v or []) if str(s).strip()]

    @field_validator("scan_concurrency", "concurrency")
    @classmethod
    def clamp_pool_size(cls, v: int) -> int:
        return max(1, min(MAX_POOL_SIZE, v))


class TranslationConfig(BaseModel):
    """Translation engine settings."""

    chunk_max_chars: int = Field(2800, description="Details longer than this are chunked")
    max_article_chars: int = Field(50_000, description="Documents longer than this are skipped")
    cache_max: int = Field(500, ge=1, description="In-process cache capacity")
    max_tokens: int = Field(768, ge=64, description="Token cap per provider call")

    @field_validator("chunk_max_chars")
    @classmethod
    def floor_chunk(cls, v: int) -> int:
        """Chunks never go below 500 characters."""
        return max(500, v)

    @field_validator("max_article_chars")
    @classmethod
    def floor_article(cls, v: int) -> int:
        """The hard cap never goes below 5000 characters."""
        return max(5000, v)


class ConfigModel(BaseModel):
    """Main configuration model."""

    log_level: str = Field("INFO", description="Log level")
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    pretranslation: PretranslationConfig = Field(default_factory=PretranslationConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
