"""Assign command implementation."""

import typer

from ..clustering import Clusterer, UpdateExtractor
from .common import build_services, console, load_config


def assign_command(
    article_id: str = typer.Argument(..., help="Article to assign to a story cluster"),
) -> None:
    """Assign one stored article to a story cluster."""
    config = load_config()
    store, llm = build_services(config)

    article = store.get_article(article_id)
    if article is None:
        console.print(f"[red]❌ Article not found: {article_id}[/red]")
        raise typer.Exit(1)

    clustering = config.config.clustering
    if not clustering.enabled:
        console.print("[yellow]Clustering is disabled (set CLUSTERING_ENABLED=true)[/yellow]")

    clusterer = Clusterer(store, clustering, UpdateExtractor(clustering, llm))
    cluster_id = clusterer.assign_cluster(article, article.source_id)
    if cluster_id is None:
        console.print("[yellow]Article was not assigned to a cluster[/yellow]")
        return

    cluster = store.get_cluster(cluster_id)
    size = cluster.size if cluster else "?"
    console.print(f"✅ Article [cyan]{article_id}[/cyan] → cluster [bold]{cluster_id}[/bold] (size {size})")
