"""Cluster models: story clusters, timeline entries and per-language summaries."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from .base import DBModel

Stance = Literal["supports", "contradicts", "neutral"]

CLAIM_MAX_CHARS = 200
SUMMARY_MAX_CHARS = 500


class Cluster(DBModel):
    """Story cluster model."""

    id: str = Field(..., description="Cluster id (seed article id for new stories)")
    seed_article: Optional[str] = Field(None, description="Article that created the cluster")
    rep_article: Optional[str] = Field(None, description="Representative article")
    fingerprint: str = Field("", description="Normalized title text, display only")
    first_seen: Optional[datetime] = Field(None, description="Earliest article time")
    last_seen: Optional[datetime] = Field(None, description="Latest article time")
    size: int = Field(1, ge=1, description="Number of articles in the cluster")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class ClusterUpdate(DBModel):
    """Timeline entry: one article's contribution to a cluster."""

    cluster_id: str = Field(..., description="Foreign key to clusters table")
    article_id: str = Field(..., description="Foreign key to articles table")
    happened_at: Optional[datetime] = Field(None, description="Article publication time")
    stance: Optional[Stance] = Field(None, description="Stance toward the cluster claim")
    claim: str = Field("", description="Short claim derived from the title")
    evidence: Optional[str] = Field("reporting", description="Evidence kind")
    summary: Optional[str] = Field(None, description="Short description of the article")
    source_id: Optional[str] = Field(None, description="Reporting source")
    lang: Optional[str] = Field(None, description="Article language")

    @field_validator("claim", mode="before")
    @classmethod
    def clip_claim(cls, v: Optional[str]) -> str:
        """Clip the claim to its column width."""
        return (v or "")[:CLAIM_MAX_CHARS]

    @field_validator("summary", mode="before")
    @classmethod
    def clip_summary(cls, v: Optional[str]) -> Optional[str]:
        """Clip the summary to its column width."""
        if v is None:
            return None
        return v[:SUMMARY_MAX_CHARS]


class ClusterAI(DBModel):
    """Versioned AI summary of a cluster in one language."""

    cluster_id: str = Field(..., description="Foreign key to clusters table")
    lang: str = Field(..., description="BCP-47 language of this row")
    ai_title: Optional[str] = Field(None, description="Generated title")
    ai_summary: Optional[str] = Field(None, description="Generated summary")
    ai_details: Optional[str] = Field(None, description="Long-form body")
    model: Optional[str] = Field(None, description="Provenance tag")
    pivot_hash: Optional[str] = Field(None, description="Hash of the pivot row this derives from")
    is_current: bool = Field(True, description="Whether this is the live row for (cluster, lang)")
