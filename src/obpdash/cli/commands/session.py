"""Session commands for the obpdash CLI.

This module provides the login, logout and status commands. Each command
builds a session context for the active profile, so the session persists
between invocations through the profile's client state file.
"""

import asyncio
import logging

import typer

from obpdash.config import get_current_profile, get_settings
from obpdash.context import SessionContext
from obpdash.errors import AuthenticationError, BankingError
from obpdash.session.lifecycle import LifecycleOutcome

logger = logging.getLogger(__name__)


def login(
    username: str = typer.Option(
        ..., "--username", "-u", help="OBP username", prompt=True
    ),
    password: str = typer.Option(
        ...,
        "--password",
        help="OBP password (prompted when omitted)",
        prompt=True,
        hide_input=True,
    ),
) -> None:
    """Sign in and store the session for this profile.

    Clears any logged-out marker, exchanges the credentials for a token and
    saves it so later commands reuse the session.
    """

    async def _login() -> None:
        async with SessionContext(get_settings()) as ctx:
            await ctx.lifecycle.login(username, password)

    logger.info(f"Signing in as {username} (Profile: {get_current_profile()})")
    try:
        asyncio.run(_login())
    except AuthenticationError as e:
        logger.error(f"❌ Authentication failed: {e}")
        raise typer.Exit(1) from e
    except BankingError as e:
        logger.error(f"❌ Login failed: {e}")
        raise typer.Exit(1) from e

    typer.echo(f"✅ Logged in as {username}")


def logout() -> None:
    """Sign out locally and remotely.

    Later commands will not pick up a still-valid server session until the
    next login.
    """

    async def _logout() -> None:
        async with SessionContext(get_settings()) as ctx:
            await ctx.lifecycle.logout()

    try:
        asyncio.run(_logout())
    except BankingError as e:
        logger.error(f"❌ Logout failed: {e}")
        raise typer.Exit(1) from e

    typer.echo("👋 Logged out")


def status() -> None:
    """Report whether this profile has a usable session, without syncing data.

    Exits with code 1 when not authenticated.
    """

    async def _status() -> tuple[LifecycleOutcome, str, str | None]:
        async with SessionContext(get_settings()) as ctx:
            outcome = await ctx.lifecycle.initialize(with_sync=False)
            return (
                outcome,
                ctx.store.session.established_via,
                ctx.lifecycle.last_username,
            )

    try:
        outcome, via, username = asyncio.run(_status())
    except BankingError as e:
        logger.error(f"❌ Status check failed: {e}")
        raise typer.Exit(1) from e

    if not outcome.authenticated:
        typer.echo("🔒 Not authenticated. Run 'obpdash login' to sign in.")
        raise typer.Exit(1)

    who = f" as {username}" if username else ""
    typer.echo(f"✅ Authenticated{who} (via {via})")
