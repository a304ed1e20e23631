"""Data-Sync Orchestrator: banks -> accounts -> transactions.

One ``sync()`` walks the three stages strictly in order, publishing
progress on the bus, and returns the aggregate. The UI-facing
``DashboardState`` is replaced in one assignment when a sync succeeds, so
no consumer sees a half-built snapshot. On a non-authentication failure
the previous snapshot stays in place with the error attached.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any

from ..client.api import BankingApi
from ..config import SyncConfig
from ..errors import (
    AuthenticationError,
    InvalidAccountDataError,
    NoBanksAvailableError,
)
from ..session.store import SessionStore
from ..session.verifier import SessionVerifier
from ..transformers.records import (
    format_currency,
    sort_key,
    total_balance,
    transform_accounts,
    transform_transactions,
)
from ..transformers.schemas import Account, Transaction
from .cache import ResourceCache, cache_key
from .goals import FinancialGoal, suggest_goals
from .normalize import unwrap_list
from .progress import Phase, ProgressBus, Stage, SyncProgress

logger = logging.getLogger(__name__)

# Accounts-stage unit count announced before the real count is known
PLACEHOLDER_ACCOUNT_COUNT = 3
DEFAULT_ERROR_MESSAGE = "Failed to fetch banking data. Please try again later."


@dataclass(frozen=True)
class SyncResult:
    accounts: list[Account]
    transactions: list[Transaction]
    total_balance: str
    selected_bank: str
    financial_goals: list[FinancialGoal] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardState:
    """Snapshot published for the presentation layer."""

    accounts: tuple[Account, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    total_balance: str = "$0.00"
    financial_goals: tuple[FinancialGoal, ...] = ()
    selected_bank: str | None = None
    error: str | None = None
    is_authenticated: bool = False
    needs_login: bool = False


class DataSyncOrchestrator:
    """Runs the sync pipeline and owns the published dashboard state."""

    def __init__(
        self,
        api: BankingApi,
        cache: ResourceCache,
        store: SessionStore,
        verifier: SessionVerifier,
        progress: ProgressBus | None = None,
        config: SyncConfig | None = None,
    ):
        self.api = api
        self.cache = cache
        self.store = store
        self.verifier = verifier
        self.progress = progress or ProgressBus()
        self.config = config or SyncConfig()
        self._state = DashboardState()
        self._inflight: asyncio.Task[SyncResult] | None = None
        self._last_failure: float | None = None
        # Bumped by reset(); a run started under an older value never publishes
        self._epoch = 0

    @property
    def state(self) -> DashboardState:
        return self._state

    async def sync(self, active_bank_hint: str | None = None) -> SyncResult:
        """Fetch banks, accounts and transactions and publish the result.

        Concurrent callers share one in-flight run; a caller that joins an
        existing run gets its result even if it passed a different hint.

        Args:
            active_bank_hint: Bank to sync; defaults to the previous selection,
                then the first bank listed

        Returns:
            SyncResult: The aggregated accounts, transactions and balance

        Raises:
            AuthenticationError: If the session could not be recovered
            BankingError: For any other failure; the previous state is kept
        """
        if self._inflight is not None and not self._inflight.done():
            logger.info("Sync already in progress, waiting for it")
            return await asyncio.shield(self._inflight)

        self._inflight = asyncio.create_task(self._run(active_bank_hint))
        return await asyncio.shield(self._inflight)

    async def select_bank(self, bank_id: str) -> SyncResult | None:
        """Switch to another bank and sync it. No-op for the current bank."""
        if bank_id == self._state.selected_bank:
            return None
        logger.info(f"Switching to bank {bank_id}")
        self._state = replace(self._state, selected_bank=bank_id)
        return await self.sync(bank_id)

    async def force_refresh(self, active_bank_hint: str | None = None) -> SyncResult:
        """Clear the cache and sync from scratch."""
        self.cache.invalidate_all()
        return await self.sync(active_bank_hint)

    def paginated_transactions(self, page: int = 1, page_size: int = 10) -> list[Transaction]:
        """Return one page of the published transactions (pages start at 1)."""
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        start = (page - 1) * page_size
        return list(self._state.transactions[start : start + page_size])

    def reset(self) -> None:
        """Drop UI-facing data so nothing reads it after sign-out.

        A sync still in flight is cancelled; its callers get
        AuthenticationError and nothing is published.
        """
        self._epoch += 1
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        self._state = DashboardState(selected_bank=self._state.selected_bank)
        self._last_failure = None
        logger.debug("Dashboard state reset")

    def clear_cooldown(self) -> None:
        """Let the next sync start immediately, e.g. right after a login."""
        self._last_failure = None

    async def _run(self, hint: str | None) -> SyncResult:
        epoch = self._epoch
        try:
            await self._wait_out_cooldown()
            result = await self._pipeline(hint)
        except asyncio.CancelledError:
            if epoch != self._epoch:
                logger.info("Session ended during sync, abandoning it")
                raise AuthenticationError("Session ended during sync") from None
            raise
        except AuthenticationError:
            if epoch != self._epoch:
                raise
            logger.warning("Authentication failed during sync, clearing session")
            self.store.clear()
            self._state = replace(
                self._state, is_authenticated=False, needs_login=True, error=None
            )
            raise
        except Exception as e:
            if epoch != self._epoch:
                raise
            logger.error(f"Error fetching data: {e}")
            self._last_failure = time.monotonic()
            self._state = replace(self._state, error=str(e) or DEFAULT_ERROR_MESSAGE)
            raise

        if epoch != self._epoch:
            logger.info("Session ended during sync, discarding result")
            raise AuthenticationError("Session ended during sync")

        self._last_failure = None
        self._state = DashboardState(
            accounts=tuple(result.accounts),
            transactions=tuple(result.transactions),
            total_balance=result.total_balance,
            financial_goals=tuple(result.financial_goals),
            selected_bank=result.selected_bank,
            is_authenticated=True,
        )
        return result

    async def _wait_out_cooldown(self) -> None:
        if self._last_failure is None:
            return
        remaining = self.config.retry_cooldown_seconds - (
            time.monotonic() - self._last_failure
        )
        if remaining > 0:
            logger.info(f"Retrying sync in {remaining:.1f}s")
            await asyncio.sleep(remaining)

    async def _pipeline(self, hint: str | None) -> SyncResult:
        bank_id = await self._banks_stage(hint)
        accounts = await self._accounts_stage(bank_id)
        balance = format_currency(total_balance(accounts))
        goals = suggest_goals(accounts)
        self._emit("accounts", "complete", len(accounts), len(accounts))

        transactions = await self._transactions_stage(bank_id, accounts)

        logger.info(
            f"✅ Synced {len(accounts)} accounts and {len(transactions)} "
            f"transactions from bank {bank_id}"
        )
        return SyncResult(
            accounts=accounts,
            transactions=transactions,
            total_balance=balance,
            selected_bank=bank_id,
            financial_goals=goals,
        )

    async def _banks_stage(self, hint: str | None) -> str:
        self._emit("banks", "start")
        payload = await self.cache.get_or_fetch(cache_key("banks"), self.api.get_banks)
        banks = unwrap_list(payload, "banks")
        logger.debug(f"Received {len(banks)} banks")
        if not banks:
            raise NoBanksAvailableError()
        self._emit("banks", "complete", len(banks), len(banks))

        return (
            hint
            or self._state.selected_bank
            or _bank_id(banks[0])
            or self.config.default_bank_id
        )

    async def _accounts_stage(self, bank_id: str) -> list[Account]:
        self._emit("accounts", "start", PLACEHOLDER_ACCOUNT_COUNT, 0)
        payload = await self.cache.get_or_fetch(
            cache_key("accounts", bank_id), partial(self._fetch_accounts, bank_id)
        )
        raw_accounts = unwrap_list(payload, "accounts")
        if not any(isinstance(a, dict) for a in raw_accounts):
            logger.error(f"Invalid accounts data received for bank {bank_id}")
            raise InvalidAccountDataError()

        return transform_accounts(raw_accounts, self.config.default_view_id)

    async def _fetch_accounts(self, bank_id: str) -> Any:
        try:
            return await self.api.get_accounts(bank_id)
        except AuthenticationError:
            logger.info("Authentication error getting accounts, attempting recovery...")
            self.store.clear()
            if await self.verifier.refresh():
                logger.info("Authentication recovered, retrying accounts fetch")
                return await self.api.get_accounts(bank_id)
            raise

    async def _transactions_stage(
        self, bank_id: str, accounts: list[Account]
    ) -> list[Transaction]:
        total = len(accounts)
        self._emit("transactions", "start", total, 0)

        collected: list[Transaction] = []
        for completed, account in enumerate(accounts, start=1):
            try:
                payload = await self.cache.get_or_fetch(
                    cache_key("transactions", bank_id, account.id, account.view_id),
                    partial(
                        self.api.get_transactions, bank_id, account.id, account.view_id
                    ),
                )
                collected.extend(
                    transform_transactions(unwrap_list(payload, "transactions"))
                )
            except AuthenticationError:
                raise
            except Exception as e:
                logger.error(f"Error fetching transactions for account {account.id}: {e}")
            self._emit("transactions", "progress", total, completed)

        collected.sort(key=sort_key, reverse=True)
        self._emit("transactions", "complete", total, total)
        return collected

    def _emit(
        self,
        stage: Stage,
        phase: Phase,
        total: int | None = None,
        completed: int | None = None,
    ) -> None:
        self.progress.publish(SyncProgress(stage, phase, total, completed))


def _bank_id(bank: Any) -> str | None:
    if isinstance(bank, dict) and isinstance(bank.get("id"), str):
        return bank["id"] or None
    return None
