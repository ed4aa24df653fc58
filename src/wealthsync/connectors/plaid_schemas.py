"""Pydantic schemas for Plaid API payloads used by the sync subsystem.

Plaid SDK model objects are validated directly (``from_attributes``) so the
rest of the package never touches SDK types. Dicts with the same keys, as
found in webhook bodies and test fixtures, validate the same way.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlaidEnvironment(Enum):
    """Plaid API environment options."""

    SANDBOX = "sandbox"
    DEVELOPMENT = "development"
    PRODUCTION = "production"


PLAID_HOSTS: dict[str, str] = {
    PlaidEnvironment.SANDBOX.value: "https://sandbox.plaid.com",
    PlaidEnvironment.DEVELOPMENT.value: "https://development.plaid.com",
    PlaidEnvironment.PRODUCTION.value: "https://production.plaid.com",
}


def _coerce_sdk_enum(v: Any) -> Any:
    """Plaid SDK enums wrap their string in ``.value``."""
    if v is None:
        return None
    if isinstance(v, Enum):
        return v.value
    value = getattr(v, "value", None)
    if isinstance(value, str):
        return value
    return str(v)


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        from_attributes=True,
        populate_by_name=True,
    )


class PlaidAccount(BaseSchema):
    """Account returned by ``/accounts/get``."""

    account_id: str
    name: str
    official_name: str | None = None
    mask: str | None = Field(None, max_length=4)
    type: str
    subtype: str | None = None
    current_balance: Decimal | None = None
    iso_currency_code: str | None = None

    @field_validator("type", "subtype", mode="before")
    @classmethod
    def coerce_account_enums(cls, v: Any) -> Any:
        """Accept Plaid SDK enum or string and convert to string."""
        return _coerce_sdk_enum(v)


class PlaidTransaction(BaseSchema):
    """Transaction entry from ``/transactions/sync`` added or modified lists."""

    transaction_id: str
    account_id: str
    amount: Decimal
    transaction_date: date = Field(..., alias="date")
    name: str | None = None
    merchant_name: str | None = None
    payment_channel: str | None = None
    category: list[str] = Field(default_factory=list)
    pending: bool = False
    iso_currency_code: str | None = None

    @field_validator("payment_channel", mode="before")
    @classmethod
    def coerce_payment_channel(cls, v: Any) -> Any:
        """Coerce Plaid SDK enums into strings."""
        return _coerce_sdk_enum(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Any:
        """Ensure category is a list of strings; Plaid may return None."""
        if v is None:
            return []
        if isinstance(v, list):
            items = cast(list[object], v)
            return [str(x) for x in items]
        return [str(v)]

    @property
    def payee(self) -> str:
        """Merchant name when Plaid resolved one, otherwise the raw name."""
        return self.merchant_name or self.name or "Unknown"


class PlaidRemovedTransaction(BaseSchema):
    """Entry from the ``/transactions/sync`` removed list."""

    transaction_id: str
    account_id: str | None = None


class TransactionsSyncPage(BaseSchema):
    """One page of ``/transactions/sync`` results."""

    added: list[PlaidTransaction] = Field(default_factory=list)
    modified: list[PlaidTransaction] = Field(default_factory=list)
    removed: list[PlaidRemovedTransaction] = Field(default_factory=list)
    next_cursor: str
    has_more: bool = False


class PlaidWebhook(BaseSchema):
    """Webhook body posted by Plaid."""

    webhook_type: str
    webhook_code: str
    item_id: str | None = None
    error: dict[str, Any] | None = None
    new_transactions: int | None = None
    removed_transactions: list[str] = Field(default_factory=list)
