"""Pretranslation scheduler: fan pivot summaries out to market languages."""

import asyncio
import logging
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pendulum

from ..config import PretranslationConfig
from ..db import CLUSTER_RECENCY_COLUMNS, Datastore
from ..errors import CurrentRowConflict, DatastoreError, StorylineError
from ..models import ClusterAI, Market
from ..translation import SummaryFields, TranslatedFields, TranslationEngine
from ..utils import BoundedLRU, base_lang, normalize_bcp47, pivot_signature
from .models import CycleSummary, Job, JobOutcome

logger = logging.getLogger(__name__)

DEFAULT_PIVOT_LANG = "en"


def select_markets(markets: Iterable[Market], market_code: Optional[str] = None) -> List[Market]:
    """Enabled markets, optionally restricted to one code."""
    selected = [m for m in markets if m.enabled]
    if market_code:
        selected = [m for m in selected if m.market_code.strip() == market_code.strip()]
    return selected


def compute_global_targets(markets: Iterable[Market]) -> List[str]:
    """Union of every market's target languages, in first-seen order."""
    targets: List[str] = []
    for market in markets:
        for lang in market.target_langs:
            if lang not in targets:
                targets.append(lang)
    return targets


def pick_pivot(markets: Sequence[Market]) -> str:
    """Pivot language of the first market that names one."""
    for market in markets:
        if market.pivot_lang and market.pivot_lang.strip():
            return normalize_bcp47(market.pivot_lang)
    return DEFAULT_PIVOT_LANG


def row_signature(row: ClusterAI) -> str:
    """Pivot hash of a summary row's live content."""
    return pivot_signature(row.ai_title, row.ai_summary, row.ai_details)


def carries_hash(row: ClusterAI, pivot_hash: str) -> bool:
    """Whether a row records that it derives from pivot_hash."""
    return row.pivot_hash == pivot_hash or f"#ph={pivot_hash}" in (row.model or "")


def derives_from_pivot(row: ClusterAI) -> bool:
    """Whether a row is a translation of some other pivot row."""
    return bool(row.pivot_hash) or "#ph=" in (row.model or "")


def choose_pivot_row(rows: Sequence[ClusterAI], pivot_lang: str) -> ClusterAI:
    """
    Current row in the pivot language, else an original (untranslated) row.

    rows arrive newest first. When every row is a translation the oldest one
    is used, so a later translation never becomes the pivot of its siblings.
    """
    in_pivot_lang = [r for r in rows if normalize_bcp47(r.lang) == pivot_lang]
    if in_pivot_lang:
        originals = [r for r in in_pivot_lang if not derives_from_pivot(r)]
        return (originals or in_pivot_lang)[0]
    for row in rows:
        if not derives_from_pivot(row):
            return row
    return rows[-1]


def is_fresh(
    rows: Iterable[ClusterAI],
    lang: str,
    pivot: ClusterAI,
    pivot_hash: str,
    legacy_time_freshness: bool = True,
) -> bool:
    """
    Whether lang already has a current row derived from this pivot content.

    Rows without any hash marker fall back to comparing creation times when
    legacy_time_freshness is set. That fallback can report a row as fresh when
    it was written after the pivot for unrelated reasons.
    """
    for row in rows:
        if normalize_bcp47(row.lang) != lang:
            continue
        if carries_hash(row, pivot_hash):
            return True
        if (
            legacy_time_freshness
            and not derives_from_pivot(row)
            and row.created_at is not None
            and pivot.created_at is not None
            and row.created_at >= pivot.created_at
        ):
            return True
    return False


class PretranslationScheduler:
    """
    Idempotent fan-out of current pivot summaries into target languages.

    Each cycle scans recent clusters, collects one job per stale
    (cluster, language) pair and runs the jobs on a bounded pool. The job
    queue and the processed-key set belong to the instance and are reset at
    the start of every cycle.
    """

    def __init__(
        self,
        store: Datastore,
        engine: TranslationEngine,
        config: Optional[PretranslationConfig] = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.config = config or PretranslationConfig()
        self.queue: Dict[str, Job] = {}
        self.done: BoundedLRU[bool] = BoundedLRU(self.config.done_max)

    def run_cycle(self) -> CycleSummary:
        """Synchronous wrapper for run_cycle_async."""
        return asyncio.run(self.run_cycle_async())

    async def run_cycle_async(self) -> CycleSummary:
        """Run one full cycle. Never raises; failures end up in the summary."""
        summary = CycleSummary()
        self.queue = {}
        self.done.clear()

        try:
            markets = select_markets(
                await asyncio.to_thread(self.store.load_markets), self.config.market
            )
            if not markets:
                logger.info("No enabled markets found; skipping pretranslation")
                return summary

            targets = compute_global_targets(markets)
            pivot_lang = pick_pivot(markets)
            cluster_ids = await asyncio.to_thread(self._scan_clusters)
            logger.info(
                "Pretranslation scan: markets=%s pivot=%s targets=%s candidates=%d",
                ",".join(m.market_code for m in markets),
                pivot_lang,
                ",".join(targets),
                len(cluster_ids),
            )

            await self._collect(cluster_ids, targets, pivot_lang, summary)
            await self._execute(list(self.queue.values()), summary)
        except Exception as e:
            logger.error("Pretranslation cycle failed: %s", e)
            return CycleSummary(error=str(e))

        logger.info(
            "Pretranslation done: checked=%d jobs=%d inserted=%d fresh=%d skipped=%d failed=%d",
            summary.clusters_checked,
            summary.jobs_created,
            summary.translations_inserted,
            summary.skipped_fresh,
            summary.jobs_skipped,
            summary.jobs_failed,
        )
        return summary

    # Candidate scan

    def _scan_clusters(self) -> List[str]:
        """Recent cluster ids, degrading through the recency columns."""
        since = pendulum.now("UTC") - timedelta(hours=self.config.recent_hours)
        for column in CLUSTER_RECENCY_COLUMNS:
            try:
                return self.store.list_recent_clusters(
                    column, self.config.max_clusters, since=since
                )
            except DatastoreError as e:
                logger.warning("Cluster scan by %s failed, trying next ordering: %s", column, e)
        return []

    # Job collection

    def enqueue(self, job: Job) -> bool:
        """Queue a job unless it is already queued or processed in this cycle."""
        if job.key in self.queue or job.key in self.done:
            return False
        self.queue[job.key] = job
        return True

    async def _collect(
        self,
        cluster_ids: List[str],
        targets: List[str],
        pivot_lang: str,
        summary: CycleSummary,
    ) -> None:
        semaphore = asyncio.Semaphore(self.config.scan_concurrency)

        async def collect_with_semaphore(cluster_id: str) -> Tuple[int, int]:
            async with semaphore:
                try:
                    return await self.collect_jobs(cluster_id, targets, pivot_lang)
                except Exception as e:
                    logger.warning("Collect jobs failed for cluster %s: %s", cluster_id, e)
                    return 0, 0

        results = await asyncio.gather(*(collect_with_semaphore(cid) for cid in cluster_ids))
        summary.clusters_checked = len(cluster_ids)
        for created, fresh in results:
            summary.jobs_created += created
            summary.skipped_fresh += fresh

    async def collect_jobs(self, cluster_id: str, targets: List[str], pivot_lang: str) -> Tuple[int, int]:
        """Enqueue jobs for one cluster; returns (jobs created, languages already fresh)."""
        rows = await asyncio.to_thread(self.store.get_current_ai, cluster_id)
        if not rows:
            logger.debug("Cluster %s has no current summary yet", cluster_id)
            return 0, 0

        pivot = choose_pivot_row(rows, pivot_lang)
        pivot_hash = row_signature(pivot)
        pivot_base = base_lang(pivot.lang)

        created = fresh = 0
        for lang in targets:
            if base_lang(lang) == pivot_base:
                continue
            if is_fresh(rows, lang, pivot, pivot_hash, self.config.legacy_time_freshness):
                fresh += 1
                continue
            if self.enqueue(Job(cluster_id=cluster_id, target_lang=lang, pivot_hash=pivot_hash)):
                created += 1
        return created, fresh

    # Job execution

    async def _execute(self, jobs: List[Job], summary: CycleSummary) -> None:
        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def run_with_semaphore(job: Job) -> JobOutcome:
            async with semaphore:
                return await self.run_job(job)

        for outcome in await asyncio.gather(*(run_with_semaphore(job) for job in jobs)):
            summary.record(outcome)

    async def run_job(self, job: Job) -> JobOutcome:
        """Execute one job; the key is marked done whatever the outcome."""
        try:
            outcome = await self._run_job(job)
        except asyncio.TimeoutError:
            logger.warning("Job %s timed out after %dms", job.key, self.config.item_timeout_ms)
            outcome = JobOutcome(job=job, status="failed", error="timeout")
        except Exception as e:
            logger.error("Job %s failed: %s", job.key, e)
            outcome = JobOutcome(job=job, status="failed", error=str(e))
        finally:
            self.done.set(job.key, True)
            self.queue.pop(job.key, None)

        if outcome.status == "skipped":
            logger.debug("Job %s skipped: %s", job.key, outcome.reason)
        return outcome

    def locate_pivot(self, rows: Sequence[ClusterAI], pivot_hash: str) -> Tuple[Optional[ClusterAI], bool]:
        """
        Find the row whose content hashes to pivot_hash.

        Rows tagged with the hash are tried first. Returns the row (or None)
        and whether any row carried the tag at all.
        """
        tagged = [r for r in rows if carries_hash(r, pivot_hash)]
        for row in tagged + [r for r in rows if r not in tagged]:
            if row_signature(row) == pivot_hash:
                return row, bool(tagged)
        return None, bool(tagged)

    async def _run_job(self, job: Job) -> JobOutcome:
        rows = await asyncio.to_thread(self.store.get_current_ai, job.cluster_id)

        pivot, tagged = self.locate_pivot(rows, job.pivot_hash)
        if pivot is None:
            return JobOutcome(job=job, status="skipped", reason="stale" if tagged else "pivot_superseded")

        dst = normalize_bcp47(job.target_lang)
        if any(normalize_bcp47(r.lang) == dst and carries_hash(r, job.pivot_hash) for r in rows):
            return JobOutcome(job=job, status="skipped", reason="already_translated")

        fields = SummaryFields(
            title=pivot.ai_title or "",
            summary=pivot.ai_summary or "",
            details=pivot.ai_details or pivot.ai_summary or "",
        )
        translated = await asyncio.wait_for(
            self._translate_with_retry(fields, normalize_bcp47(pivot.lang), dst),
            timeout=self.config.item_timeout_ms / 1000,
        )
        if not translated.any_translated:
            return JobOutcome(job=job, status="skipped", reason="nothing_translated")

        row = ClusterAI(
            cluster_id=job.cluster_id,
            lang=dst,
            ai_title=translated.title.strip() or (pivot.ai_title or "").strip(),
            ai_summary=translated.summary.strip() or (pivot.ai_summary or "").strip(),
            ai_details=translated.details.strip() or fields.details.strip(),
            model=f"{self.config.provider_tag}#ph={job.pivot_hash}",
            pivot_hash=job.pivot_hash,
            is_current=True,
        )
        try:
            await asyncio.to_thread(self._replace_current, row)
        except CurrentRowConflict:
            return JobOutcome(job=job, status="skipped", reason="conflict")
        return JobOutcome(job=job, status="inserted")

    async def _translate_with_retry(self, fields: SummaryFields, src: str, dst: str) -> TranslatedFields:
        attempts = self.config.retry_attempts
        for attempt in range(attempts):
            try:
                return await asyncio.to_thread(self.engine.translate_fields, fields, src, dst, True)
            except StorylineError as e:
                if attempt == attempts - 1:
                    raise
                delay = self.config.retry_backoff_ms * (2 ** attempt) / 1000
                logger.debug("Translation attempt %d failed (%s); retrying in %.2fs", attempt + 1, e, delay)
                await asyncio.sleep(delay)
        raise StorylineError("no translation attempts configured")

    def _replace_current(self, row: ClusterAI) -> ClusterAI:
        self.store.retire_current_ai(row.cluster_id, row.lang)
        return self.store.insert_cluster_ai(row)
