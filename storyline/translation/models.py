"""Translation request/response models."""

from typing import List

from pydantic import BaseModel, Field

FIELD_NAMES = ("title", "summary", "details")


class SummaryFields(BaseModel):
    """The three text fields of a summary."""

    title: str = ""
    summary: str = ""
    details: str = ""


class TranslatedFields(SummaryFields):
    """Best available value per field plus which fields are real translations."""

    translated: List[str] = Field(default_factory=list, description="Fields holding provider output")

    @property
    def any_translated(self) -> bool:
        """Whether at least one non-empty field was actually translated."""
        return any(getattr(self, name).strip() for name in self.translated)


class TranslationMetrics(BaseModel):
    """Counters for one translation engine."""

    cache_hits: int = 0
    cache_misses: int = 0
    provider_calls: int = 0
    provider_errors: int = 0
    provider_latency_ms_total: int = 0
    provider_latency_samples: int = 0
    provider_latency_ms_last: int = 0

    @property
    def provider_latency_ms_avg(self) -> int:
        """Mean provider latency."""
        return round(self.provider_latency_ms_total / max(1, self.provider_latency_samples))
