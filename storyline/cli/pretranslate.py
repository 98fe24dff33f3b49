"""Pretranslation command implementations."""

from typing import Optional

import typer
from rich.table import Table

from ..config.models import MAX_POOL_SIZE
from ..pretranslation import PretranslationScheduler, langs_or_default, run_article_pretranslation
from ..translation import TranslationEngine
from .common import build_services, console, load_config


def pretranslate_command(
    max_clusters: Optional[int] = typer.Option(
        None,
        "--max-clusters",
        help="Clusters scanned per cycle",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        help="Worker pool size (1-16)",
    ),
    timeout_ms: Optional[int] = typer.Option(
        None,
        "--timeout-ms",
        help="Per-job translation timeout in milliseconds",
    ),
) -> None:
    """Run one pretranslation cycle over recently active clusters."""
    config = load_config()
    store, llm = build_services(config)

    overrides = {}
    if max_clusters is not None:
        overrides["max_clusters"] = max(1, max_clusters)
    if concurrency is not None:
        overrides["concurrency"] = min(MAX_POOL_SIZE, max(1, concurrency))
    if timeout_ms is not None:
        overrides["item_timeout_ms"] = max(100, timeout_ms)
    settings = config.config.pretranslation.model_copy(update=overrides)

    engine = TranslationEngine(store, llm, config.config.translation)
    summary = PretranslationScheduler(store, engine, settings).run_cycle()

    table = Table(title="Pretranslation Cycle")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Clusters checked", str(summary.clusters_checked))
    table.add_row("Jobs created", str(summary.jobs_created))
    table.add_row("Translations inserted", str(summary.translations_inserted))
    table.add_row("Skipped (fresh)", str(summary.skipped_fresh))
    table.add_row("Jobs skipped", str(summary.jobs_skipped))
    table.add_row("Jobs failed", str(summary.jobs_failed))

    metrics = engine.metrics
    table.add_row("Provider calls", str(metrics.provider_calls))
    table.add_row("Cache hits / misses", f"{metrics.cache_hits} / {metrics.cache_misses}")
    table.add_row("Avg provider latency", f"{metrics.provider_latency_ms_avg}ms")
    console.print(table)

    if summary.error:
        console.print(f"[red]❌ Cycle error: {summary.error}[/red]")


def pretranslate_articles_command(
    langs: Optional[str] = typer.Option(
        None,
        "--langs",
        help="Comma-separated target languages (default: ARTICLE_PRETRANS_LANGS)",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        help="Recent articles to scan",
    ),
) -> None:
    """Warm the translation cache for recent full-text articles."""
    config = load_config()
    store, llm = build_services(config)
    settings = config.config.pretranslation

    engine = TranslationEngine(store, llm, config.config.translation)
    summary = run_article_pretranslation(
        store,
        engine,
        langs_or_default(langs, settings.article_langs),
        limit=limit or settings.article_limit,
    )
    console.print(
        f"✅ Checked {summary.checked} articles, processed {summary.processed} pairs, "
        f"{summary.provider_calls} provider calls"
    )
