"""Export synced accounts and transactions as Parquet files."""

import logging
from datetime import datetime
from pathlib import Path

import polars as pl

from ..transformers.schemas import Account, Transaction
from .orchestrator import SyncResult

logger = logging.getLogger(__name__)

ACCOUNT_SCHEMA: dict[str, type[pl.DataType]] = {
    "id": pl.Utf8,
    "title": pl.Utf8,
    "description": pl.Utf8,
    "balance": pl.Utf8,
    "currency": pl.Utf8,
    "type": pl.Utf8,
    "account_number": pl.Utf8,
    "bank_id": pl.Utf8,
    "view_id": pl.Utf8,
}

TRANSACTION_SCHEMA: dict[str, type[pl.DataType]] = {
    "id": pl.Utf8,
    "title": pl.Utf8,
    "amount": pl.Utf8,
    "type": pl.Utf8,
    "category": pl.Utf8,
    "icon": pl.Utf8,
    "timestamp": pl.Utf8,
    "status": pl.Utf8,
    "description": pl.Utf8,
    "other_party": pl.Utf8,
    "date": pl.Utf8,
}


def accounts_frame(accounts: list[Account]) -> pl.DataFrame:
    """Build an accounts DataFrame with a numeric ``balance_value`` column."""
    df = pl.DataFrame(
        {name: [getattr(a, name) for a in accounts] for name in ACCOUNT_SCHEMA},
        schema=ACCOUNT_SCHEMA,
    )
    return df.with_columns(
        pl.col("balance").cast(pl.Float64, strict=False).alias("balance_value")
    )


def transactions_frame(transactions: list[Transaction]) -> pl.DataFrame:
    """Build a transactions DataFrame with a signed ``amount_value`` column."""
    df = pl.DataFrame(
        {name: [getattr(t, name) for t in transactions] for name in TRANSACTION_SCHEMA},
        schema=TRANSACTION_SCHEMA,
    )
    amount = pl.col("amount").cast(pl.Float64, strict=False)
    return df.with_columns(
        pl.when(pl.col("type") == "outgoing")
        .then(-amount)
        .otherwise(amount)
        .alias("amount_value")
    )


def export_result(result: SyncResult, output_dir: Path) -> dict[str, Path]:
    """Write ``accounts.parquet`` and ``transactions.parquet`` for a sync.

    Args:
        result: The sync to export
        output_dir: Directory to write into (created if missing)

    Returns:
        dict[str, Path]: Written file per table name

    Raises:
        OSError: If the files cannot be written
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    synced_at = datetime.now().isoformat()

    frames = {
        "accounts": accounts_frame(result.accounts),
        "transactions": transactions_frame(result.transactions),
    }

    written: dict[str, Path] = {}
    for name, df in frames.items():
        path = output_dir / f"{name}.parquet"
        df.with_columns(
            pl.lit(result.selected_bank).alias("bank"),
            pl.lit(synced_at).alias("synced_at"),
        ).write_parquet(path)
        logger.info(f"Saved {len(df)} {name} to {path}")
        written[name] = path
    return written
