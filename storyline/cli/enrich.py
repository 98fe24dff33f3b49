"""Enrich command implementation."""

from typing import Optional

import typer
from rich.table import Table

from ..enrichment import ClusterEnricher
from .common import build_services, console, load_config


def enrich_command(
    lang: Optional[str] = typer.Option(
        None,
        "--lang",
        "-l",
        help="Summary language (default: CLUSTER_LANG or config)",
    ),
    auto_pivot: bool = typer.Option(
        False,
        "--auto-pivot",
        help="Summarize clusters with no summary at all in their dominant language",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Regenerate summaries even when a current one exists",
    ),
) -> None:
    """Generate pivot summaries for story clusters."""
    config = load_config()
    store, llm = build_services(config)
    llm_config = config.get_llm_config()

    enricher = ClusterEnricher(
        store,
        config.config.enrichment,
        llm=llm,
        model_name=llm_config.get("model") if llm else None,
    )
    if auto_pivot:
        result = enricher.enrich_clusters_auto_pivot()
    else:
        result = enricher.enrich_pending_clusters(lang, force=force or None, override_enabled=True)

    table = Table(title="Enrichment Summary")
    table.add_column("Processed", style="green")
    table.add_column("Skipped", style="yellow")
    table.add_column("Failed", style="red")
    table.add_row(str(result.processed), str(result.skipped), str(result.failed))
    console.print(table)

    if result.error:
        console.print(f"[red]❌ {result.error}[/red]")
