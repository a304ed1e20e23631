"""Financial goal suggestions derived from the account mix."""

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..transformers.records import ZERO, format_currency, parse_amount
from ..transformers.schemas import Account

logger = logging.getLogger(__name__)

SAVINGS_TARGET_MULTIPLIER = Decimal("1.5")
SAVINGS_HORIZON = timedelta(days=180)
DEBT_HORIZON = timedelta(days=365)
DEBT_STARTING_PROGRESS = 10


class FinancialGoal(BaseModel):
    """A goal card shown next to the accounts."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    subtitle: str
    icon: str
    icon_style: str
    date: str
    amount: str
    status: Literal["pending", "in-progress", "completed"] = "in-progress"
    progress: int = Field(default=0, ge=0, le=100)


def _target_label(day: date) -> str:
    return f"Target: {day:%b %Y}"


def suggest_goals(accounts: list[Account], today: date | None = None) -> list[FinancialGoal]:
    """Suggest goals for the first savings and first debt account.

    A savings account yields a goal of 1.5x its current balance; a debt
    account yields a payoff goal at its current balance.
    """
    today = today or date.today()
    goals: list[FinancialGoal] = []

    savings = next((a for a in accounts if a.type == "savings"), None)
    if savings is not None:
        balance = parse_amount(savings.balance) or ZERO
        target = (balance * SAVINGS_TARGET_MULTIPLIER).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        progress = 0
        if target > 0:
            progress = min(int((balance / target * 100).quantize(Decimal("1"))), 100)
        goals.append(
            FinancialGoal(
                id="auto-savings-1",
                title="Savings Goal",
                subtitle=f"Increase {savings.title} balance by 50%",
                icon="PiggyBank",
                icon_style="savings",
                date=_target_label(today + SAVINGS_HORIZON),
                amount=format_currency(target),
                progress=max(progress, 0),
            )
        )

    debt = next((a for a in accounts if a.type == "debt"), None)
    if debt is not None:
        balance = parse_amount(debt.balance) or ZERO
        goals.append(
            FinancialGoal(
                id="auto-debt-1",
                title="Debt Reduction",
                subtitle=f"Pay off {debt.title}",
                icon="CreditCard",
                icon_style="debt",
                date=_target_label(today + DEBT_HORIZON),
                amount=format_currency(balance),
                progress=DEBT_STARTING_PROGRESS,
            )
        )

    logger.debug(f"Suggested {len(goals)} financial goals")
    return goals
