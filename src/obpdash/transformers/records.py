"""Transform raw OBP records into display records.

Both transforms are total: malformed elements are logged and downgraded to
default records, never raised, so one bad upstream record cannot abort a
sync.
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from .categories import categorize, classify_account
from .schemas import Account, ObpAccount, ObpTransaction, Transaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ACCOUNT_NUMBER_SCHEMES = ("IBAN", "AccountNumber")
UNKNOWN_TRANSACTION_TITLE = "Unknown Transaction"


def parse_amount(value: Any) -> Decimal | None:
    """Parse a monetary value, returning None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def format_currency(amount: Decimal) -> str:
    """Render an amount as the dashboard's dollar string, e.g. "$100.00"."""
    return f"${amount:.2f}"


def total_balance(accounts: Iterable[Account]) -> Decimal:
    """Sum account balances, treating unparsable balances as zero."""
    return sum((parse_amount(a.balance) or ZERO for a in accounts), ZERO)


def _placeholder_id() -> str:
    return f"unknown-{uuid.uuid4().hex[:6]}"


def _validate(schema: type[ObpAccount] | type[ObpTransaction], raw: Any) -> Any:
    try:
        return schema.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Malformed {schema.__name__} record: {e.error_count()} errors")
        return None


def transform_accounts(
    raw_accounts: list[Any] | None, default_view_id: str = "owner"
) -> list[Account]:
    """Transform upstream accounts into display accounts.

    Args:
        raw_accounts: Account elements as returned by the list endpoint
        default_view_id: View used when the account offers no "owner" view

    Returns:
        list[Account]: One display account per input element
    """
    if raw_accounts is None:
        logger.warning("transform_accounts received no input")
        return []

    logger.debug(f"Transforming {len(raw_accounts)} accounts")
    return [_transform_account(raw, default_view_id) for raw in raw_accounts]


def _transform_account(raw: Any, default_view_id: str) -> Account:
    account = _validate(ObpAccount, raw) or ObpAccount()
    account_id = account.id or _placeholder_id()

    balance = account.balance.amount if account.balance else None
    amount = parse_amount(balance)
    if amount is None:
        logger.warning(f"Account {account_id} has invalid or missing balance data")
        amount = ZERO

    account_number = next(
        (
            r.address
            for r in account.account_routings
            if r.scheme in ACCOUNT_NUMBER_SCHEMES and r.address
        ),
        "",
    )
    view_id = next(
        (v.id for v in account.views_available if v.id and "owner" in v.id),
        default_view_id,
    )

    return Account(
        id=account_id,
        title=account.label or "Unnamed Account",
        description=account.account_type or "",
        balance=f"{amount:.2f}",
        currency=(account.balance.currency if account.balance else None) or "USD",
        type=classify_account(account.label or "", account.account_type or ""),  # type: ignore[arg-type]
        account_number=account_number,
        bank_id=account.bank_id or "",
        view_id=view_id,
    )


def transform_transactions(
    raw_transactions: list[Any] | None, now: datetime | None = None
) -> list[Transaction]:
    """Transform upstream transactions into display transactions.

    Args:
        raw_transactions: Transaction elements as returned by the list endpoint
        now: Reference time for "Today"/"Yesterday" labels (defaults to local now)

    Returns:
        list[Transaction]: One display transaction per input element
    """
    if not isinstance(raw_transactions, list):
        logger.warning(
            f"transform_transactions received invalid input: {type(raw_transactions).__name__}"
        )
        return []

    now = now or datetime.now().astimezone()
    logger.debug(f"Transforming {len(raw_transactions)} transactions")
    return [_transform_transaction(raw, now) for raw in raw_transactions]


def _transform_transaction(raw: Any, now: datetime) -> Transaction:
    transaction = _validate(ObpTransaction, raw)
    details = transaction.details if transaction else None

    if transaction is None or details is None or details.value is None:
        txn_id = transaction.id if transaction else None
        logger.warning(f"Transaction is missing required data: {txn_id or 'unknown'}")
        return Transaction(
            id=txn_id or _placeholder_id(),
            title=UNKNOWN_TRANSACTION_TITLE,
            amount="0.00",
            type="outgoing",
            timestamp=display_timestamp(now, now),
            date=iso_utc(now),
        )

    txn_id = transaction.id or _placeholder_id()

    amount = parse_amount(details.value.amount or "0")
    if amount is None:
        logger.warning(f"Error parsing amount for transaction {txn_id}")
        amount = ZERO

    narrative = transaction.metadata.narrative if transaction.metadata else None
    description = details.description or narrative or ""
    holder = transaction.other_account.holder if transaction.other_account else None
    other_party = (holder.name if holder else None) or ""
    category = categorize(description, other_party)

    moment = _parse_completed(details.completed, txn_id) or now

    title = other_party or details.description or "Transaction"
    if details.type and details.type not in title:
        title = f"{title} ({details.type})"

    return Transaction(
        id=txn_id,
        title=title,
        amount=f"{abs(amount):.2f}",
        type="incoming" if amount >= 0 else "outgoing",
        category=category,
        icon=category,
        timestamp=display_timestamp(moment, now),
        description=description,
        other_party=other_party,
        date=iso_utc(moment),
    )


def _parse_completed(value: str | None, txn_id: str) -> datetime | None:
    if not value:
        logger.warning(f"Transaction {txn_id} is missing completed date")
        return None
    try:
        moment = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning(f"Error parsing date for transaction {txn_id}: {value!r}")
        return None
    # Naive upstream timestamps are UTC
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


def iso_utc(moment: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision, e.g. 2024-01-01T00:00:00.000Z."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def display_timestamp(moment: datetime, now: datetime) -> str:
    """Human label: "Today, 3:05 PM", "Yesterday" or "Mar 1, 2025".

    The moment is shown in the timezone of ``now``.
    """
    local = moment.astimezone(now.tzinfo) if now.tzinfo else moment
    if local.date() == now.date():
        hour = local.hour % 12 or 12
        meridiem = "PM" if local.hour >= 12 else "AM"
        return f"Today, {hour}:{local.minute:02d} {meridiem}"
    if local.date() == (now - timedelta(days=1)).date():
        return "Yesterday"
    return f"{local:%b} {local.day}, {local.year}"


def sort_key(transaction: Transaction) -> datetime:
    """Parsed ISO date used to order transactions."""
    return datetime.fromisoformat(transaction.date)
