"""Data sync command for the obpdash CLI.

Runs the banks -> accounts -> transactions pipeline for the signed-in
profile, prints progress and a summary, and optionally exports the result
to Parquet with polars.
"""

import asyncio
import logging
from pathlib import Path

import typer

from obpdash.config import get_current_profile, get_settings
from obpdash.context import SessionContext
from obpdash.errors import AuthenticationError, BankingError
from obpdash.sync.export import export_result
from obpdash.sync.orchestrator import SyncResult
from obpdash.sync.progress import SyncProgress
from obpdash.transformers.schemas import Transaction

logger = logging.getLogger(__name__)


def _echo_progress(event: SyncProgress) -> None:
    if event.phase != "progress":
        typer.echo(f"  {event.describe()}", err=True)


def sync(
    bank: str | None = typer.Option(
        None, "--bank", "-b", help="Bank id to sync (default: first bank listed)"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Bypass cached data and fetch everything again"
    ),
    export: bool = typer.Option(
        False, "--export", "-e", help="Save accounts/transactions as Parquet"
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Export directory (default: sync.export_path from settings)",
    ),
    page: int = typer.Option(1, "--page", min=1, help="Transactions page to show"),
    page_size: int = typer.Option(
        10, "--page-size", min=1, help="Transactions per page"
    ),
) -> None:
    """Sync accounts and transactions for the signed-in profile.

    This command will:
    1. Verify the stored session (cookie, then server probe)
    2. Fetch banks, accounts and transactions for the selected bank
    3. Print the total balance, accounts and one page of transactions
    4. Optionally save accounts.parquet and transactions.parquet
    """

    async def _sync() -> tuple[SyncResult, list[Transaction]]:
        async with SessionContext(get_settings()) as ctx:
            ctx.progress.subscribe(_echo_progress)
            outcome = await ctx.lifecycle.initialize(with_sync=False)
            if not outcome.authenticated:
                raise AuthenticationError("Not authenticated")

            if force:
                result = await ctx.orchestrator.force_refresh(bank)
            else:
                result = await ctx.orchestrator.sync(bank)
            return result, ctx.orchestrator.paginated_transactions(page, page_size)

    logger.info(f"Starting obpdash sync (Profile: {get_current_profile()})")
    try:
        result, transactions = asyncio.run(_sync())
        written: dict[str, Path] = {}
        if export:
            target = output_dir or get_settings().sync.export_path
            written = export_result(result, target)
    except AuthenticationError as e:
        logger.error(f"❌ {e}. Run 'obpdash login' to sign in.")
        raise typer.Exit(1) from e
    except (BankingError, OSError) as e:
        logger.error(f"❌ Sync failed: {e}")
        raise typer.Exit(1) from e

    typer.echo(f"🏦 Bank: {result.selected_bank}")
    typer.echo(f"💰 Total balance: {result.total_balance}")
    typer.echo(f"Accounts ({len(result.accounts)}):")
    for account in result.accounts:
        typer.echo(
            f"  {account.title} [{account.type}] {account.balance} {account.currency}"
        )

    typer.echo(
        f"Transactions (page {page}, {len(transactions)} of {len(result.transactions)}):"
    )
    for txn in transactions:
        sign = "+" if txn.type == "incoming" else "-"
        typer.echo(f"  {txn.timestamp}  {sign}{txn.amount}  {txn.category}  {txn.title}")

    for goal in result.financial_goals:
        typer.echo(f"🎯 {goal.title}: {goal.amount} ({goal.progress}%)")

    for name, path in written.items():
        typer.echo(f"📁 Saved {name} to {path}")
