"""Main CLI application for obpdash.

This module provides the unified entry point for obpdash CLI operations:
session management (login, logout, status) and data sync.
"""

import logging
from typing import Annotated

import typer
from dotenv import load_dotenv

from ..config import set_current_profile
from ..logging import setup_logging
from .commands import session, sync

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="obpdash",
    help="obpdash: Open Bank Project dashboard session and data sync",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="Profile to use; each profile keeps its own session state",
            envvar="OBPDASH_PROFILE",
        ),
    ] = "default",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for the obpdash CLI.

    Each profile loads from its own .env.{profile} file and keeps its own
    session state under ~/.obpdash/{profile}/, so several users or
    environments can be signed in side by side.

    Examples:
      obpdash login --username alice
      obpdash --profile=sandbox sync --bank rbs
      obpdash sync --export --output-dir data/export
    """
    # Legacy variables such as API_BASE_URL are read from the process environment
    load_dotenv()

    setup_logging(cli_mode=True, verbose=verbose)

    try:
        set_current_profile(profile)
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.BadParameter(
            f"Invalid profile name: {profile}. "
            "Use only alphanumeric characters, dashes, and underscores"
        ) from e

    logger.debug(f"Using profile: {profile}")


app.command("login")(session.login)
app.command("logout")(session.logout)
app.command("status")(session.status)
app.command("sync")(sync.sync)


def main() -> None:
    """Entry point for the obpdash CLI application."""
    app()


if __name__ == "__main__":
    main()
