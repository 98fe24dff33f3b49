"""Shared wiring for CLI commands."""

from typing import Optional, Tuple

import typer
from rich.console import Console

from ..config import Config
from ..db import PostgresDatastore, validate_connection
from ..generation import LLMProvider, build_llm_provider

console = Console()


def load_config() -> Config:
    """Load configuration or exit with a readable message."""
    config = Config()
    try:
        config.config
    except ValueError as e:
        console.print(f"[red]❌ Invalid configuration: {e}[/red]")
        raise typer.Exit(1)
    return config


def connect(config: Config) -> PostgresDatastore:
    """Postgres datastore after a connection check."""
    db_config = config.get_db_config()
    console.print("[dim]Checking database connection...[/dim]")
    if not validate_connection(db_config):
        console.print("[red]❌ Database connection failed![/red]")
        console.print("Please check your database configuration and ensure Postgres is running.")
        raise typer.Exit(1)
    return PostgresDatastore(db_config)


def build_services(config: Config) -> Tuple[PostgresDatastore, Optional[LLMProvider]]:
    """Datastore and (optional) provider for a command."""
    store = connect(config)
    llm = build_llm_provider(config.get_llm_config())
    if llm is None:
        console.print("[yellow]No LLM provider configured; deterministic fallbacks only[/yellow]")
    return store, llm
