"""Init command implementation."""

import os
from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel

from ..config import ConfigModel, default_config_path, save_config
from ..db import init_database, validate_connection
from .common import console


def init_command(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file to create (default: ~/.config/storyline/config.yaml)",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("storyline", "--db-name", help="Database name"),
    db_user: str = typer.Option("storyline", "--db-user", help="Database user"),
) -> None:
    """Write a default configuration and create the database schema."""
    console.print(Panel.fit("🧵 Storyline - Initialization", style="bold blue"))

    config_path = config_path or default_config_path()
    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "STORYLINE_DB_PASSWORD",
        },
    )
    if config_path.exists():
        console.print(f"[dim]Keeping existing config: {config_path}[/dim]")
    else:
        save_config(config, config_path)
        console.print(f"✅ Created config: {config_path}")

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = config.postgres.model_dump()
    db_config["password"] = db_config.get("password") or os.environ.get("STORYLINE_DB_PASSWORD")
    if not validate_connection(db_config):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export STORYLINE_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)
    console.print("✅ Database connection successful")

    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        init_database(db_config)
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)
    console.print("✅ Database schema initialized")

    console.print(
        Panel(
            f"[green]✅ Storyline initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n\n"
            f"Next steps:\n"
            f"1. Set LLM API key: [bold]export OPENAI_API_KEY=your_key[/bold]\n"
            f"2. Enable clustering: [bold]export CLUSTERING_ENABLED=true[/bold]\n"
            f"3. Run: [bold]storyline enrich[/bold] then [bold]storyline pretranslate[/bold]",
            style="green",
        )
    )
