"""Scheduler jobs and cycle results."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

JobStatus = Literal["inserted", "skipped", "failed"]


class Job(BaseModel):
    """One unit of fan-out work: translate a cluster's pivot into one language."""

    cluster_id: str
    target_lang: str
    pivot_hash: str

    @property
    def key(self) -> str:
        """Idempotency key."""
        return f"{self.cluster_id}|{self.target_lang}|{self.pivot_hash}"


class JobOutcome(BaseModel):
    """Result of executing one job."""

    job: Job
    status: JobStatus
    reason: Optional[str] = Field(None, description="Why the job was skipped")
    error: Optional[str] = Field(None, description="Failure detail")


class CycleSummary(BaseModel):
    """Aggregate counts for one pretranslation cycle."""

    clusters_checked: int = 0
    jobs_created: int = 0
    translations_inserted: int = 0
    skipped_fresh: int = 0
    jobs_skipped: int = 0
    jobs_failed: int = 0
    error: Optional[str] = None
    outcomes: List[JobOutcome] = Field(default_factory=list)

    def record(self, outcome: JobOutcome) -> None:
        """Fold one job outcome into the counts."""
        self.outcomes.append(outcome)
        if outcome.status == "inserted":
            self.translations_inserted += 1
        elif outcome.status == "skipped":
            self.jobs_skipped += 1
        else:
            self.jobs_failed += 1


class ArticleCycleSummary(BaseModel):
    """Counts for one article cache warm-up cycle."""

    checked: int = 0
    processed: int = 0
    provider_calls: int = 0
