"""Main CLI application."""

from typing import Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..config import Config
from ..log import setup_logging
from .assign import assign_command
from .enrich import enrich_command
from .init import init_command
from .markets import markets_command
from .pretranslate import pretranslate_articles_command, pretranslate_command

app = typer.Typer(
    name="storyline",
    help="Story clustering and multi-language summary pipeline",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (default: LOG_LEVEL or config)",
    ),
) -> None:
    """Configure logging before any command runs."""
    if log_level is None:
        try:
            log_level = Config().config.log_level
        except ValueError:
            log_level = "INFO"
    setup_logging(log_level)


# Register commands
app.command("init")(init_command)
app.command("markets")(markets_command)
app.command("assign")(assign_command)
app.command("enrich")(enrich_command)
app.command("pretranslate")(pretranslate_command)
app.command("pretranslate-articles")(pretranslate_articles_command)


if __name__ == "__main__":
    app()
