"""Markets command implementation."""

import typer
from rich.table import Table

from ..pretranslation import compute_global_targets, pick_pivot, select_markets
from .common import connect, console, load_config


def markets_command() -> None:
    """Show enabled markets and the languages the scheduler will target."""
    config = load_config()
    store = connect(config)
    try:
        markets = select_markets(store.load_markets(), config.config.pretranslation.market)
    except Exception as e:
        console.print(f"[red]❌ Failed to load markets: {e}[/red]")
        raise typer.Exit(1)

    if not markets:
        console.print("[yellow]No enabled markets found.[/yellow]")
        return

    table = Table(title="Enabled Markets")
    table.add_column("Market", style="cyan")
    table.add_column("Pivot", style="magenta")
    table.add_column("Show", style="green")
    table.add_column("Pretranslate", style="yellow")

    for market in markets:
        table.add_row(
            market.market_code,
            market.pivot_lang or "-",
            ", ".join(market.show_langs) or "-",
            ", ".join(market.pretranslate_langs) or "-",
        )

    console.print(table)
    console.print(
        f"Default pivot: [bold]{pick_pivot(markets)}[/bold]  "
        f"Global targets: [bold]{', '.join(compute_global_targets(markets)) or '-'}[/bold]"
    )
