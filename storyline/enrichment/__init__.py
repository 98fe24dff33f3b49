"""Cluster summary generation."""

from .enricher import (
    ClusterEnricher,
    EnrichmentResult,
    SummaryDraft,
    build_summary_prompt,
    summary_from_updates,
    title_from_updates,
)

__all__ = [
    "ClusterEnricher",
    "EnrichmentResult",
    "SummaryDraft",
    "build_summary_prompt",
    "summary_from_updates",
    "title_from_updates",
]
