"""Pydantic schemas for OBP records and the dashboard's display records.

The raw ``Obp*`` schemas are deliberately lenient: every field is optional
and values of the wrong type are dropped to ``None`` (or an empty list)
instead of failing validation. One malformed record must never abort a
sync, so the transformers can always produce a best-effort display record.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _text_or_none(v: Any) -> Any:
    if isinstance(v, str):
        return v
    if isinstance(v, int | float) and not isinstance(v, bool):
        return str(v)
    return None


def _mapping_or_none(v: Any) -> Any:
    return v if isinstance(v, dict) else None


def _mappings_only(v: Any) -> Any:
    if not isinstance(v, list):
        return []
    return [item for item in v if isinstance(item, dict)]


LenientStr = Annotated[str | None, BeforeValidator(_text_or_none)]


class ObpSchema(BaseModel):
    """Base schema for upstream records."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ObpAmount(ObpSchema):
    currency: LenientStr = None
    amount: LenientStr = None


class ObpRouting(ObpSchema):
    scheme: LenientStr = None
    address: LenientStr = None


class ObpView(ObpSchema):
    id: LenientStr = None


class ObpAccount(ObpSchema):
    """An account as returned by OBP or the dashboard proxy."""

    id: LenientStr = None
    label: LenientStr = None
    bank_id: LenientStr = None
    account_type: LenientStr = None
    balance: Annotated[ObpAmount | None, BeforeValidator(_mapping_or_none)] = None
    account_routings: Annotated[
        list[ObpRouting], BeforeValidator(_mappings_only)
    ] = Field(default_factory=list)
    views_available: Annotated[list[ObpView], BeforeValidator(_mappings_only)] = (
        Field(default_factory=list)
    )


class ObpTransactionDetails(ObpSchema):
    type: LenientStr = None
    description: LenientStr = None
    completed: LenientStr = None
    posted: LenientStr = None
    value: Annotated[ObpAmount | None, BeforeValidator(_mapping_or_none)] = None


class ObpMetadata(ObpSchema):
    narrative: LenientStr = None


class ObpHolder(ObpSchema):
    name: LenientStr = None


class ObpOtherAccount(ObpSchema):
    holder: Annotated[ObpHolder | None, BeforeValidator(_mapping_or_none)] = None


class ObpTransaction(ObpSchema):
    """A transaction as returned by OBP or the dashboard proxy."""

    id: LenientStr = None
    details: Annotated[
        ObpTransactionDetails | None, BeforeValidator(_mapping_or_none)
    ] = None
    metadata: Annotated[ObpMetadata | None, BeforeValidator(_mapping_or_none)] = None
    other_account: Annotated[
        ObpOtherAccount | None, BeforeValidator(_mapping_or_none)
    ] = None


# Display records

AccountType = Literal["savings", "checking", "investment", "debt"]
TransactionDirection = Literal["incoming", "outgoing"]


class Account(BaseModel):
    """An account ready for display."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    balance: str = Field(default="0.00", description="Two-decimal balance string")
    currency: str = "USD"
    type: AccountType = "checking"
    account_number: str = ""
    bank_id: str = ""
    view_id: str = "owner"


class Transaction(BaseModel):
    """A transaction ready for display."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    amount: str = Field(description="Absolute two-decimal amount")
    type: TransactionDirection
    category: str = "other"
    icon: str = "other"
    timestamp: str = Field(description="Human display timestamp")
    status: str = "completed"
    description: str = ""
    other_party: str = ""
    date: str = Field(description="ISO 8601 UTC timestamp")
