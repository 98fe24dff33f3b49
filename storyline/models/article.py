"""Article model for normalized ingested articles."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .base import DBModel


class Article(DBModel):
    """Article model."""

    id: str = Field(..., description="Primary key")
    source_id: Optional[str] = Field(None, description="Foreign key to sources table")
    url: Optional[str] = Field(None, description="Article URL as fetched")
    canonical_url: Optional[str] = Field(None, description="Canonical URL of the article")
    title: str = Field("", description="Article title")
    snippet: Optional[str] = Field(None, description="Short description from the feed")
    full_text: Optional[str] = Field(None, description="Extracted article body")
    language: Optional[str] = Field(None, description="BCP-47 language code")
    published_at: Optional[datetime] = Field(None, description="Publication timestamp")
    fetched_at: Optional[datetime] = Field(None, description="When the article was fetched")
    content_hash: Optional[str] = Field(None, description="Dedup key scoped to source")
    cluster_id: Optional[str] = Field(None, description="Story cluster, write-once")


class SimilarArticle(BaseModel):
    """Candidate returned by the fuzzy similarity search."""

    article_id: str
    similarity: float
    cluster_id: Optional[str] = None
