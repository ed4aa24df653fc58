"""Request and response bodies for the user-facing routes."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..models import (
    Account,
    AccountType,
    BankConnection,
    BankProvider,
    ConnectionStatus,
    ExportFormat,
    RecurrenceFrequency,
)


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class BankConnectionCreate(BaseSchema):
    bank: BankProvider
    account_type: AccountType
    username: str = Field(..., min_length=1, description="Bank login user id")
    password: str = Field(..., min_length=1, repr=False)
    account_identifier: str = Field(
        ..., pattern=r"^\d{4}$", description="Last four digits of the account or card"
    )


class BankConnectionOut(BaseModel):
    """A bank connection without its encrypted credentials."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    bank: BankProvider
    account_type: AccountType
    account_identifier: str
    status: ConnectionStatus
    error_message: str | None = None
    last_synced: datetime | None = None
    last_successful_sync: datetime | None = None

    @classmethod
    def of(cls, connection: BankConnection) -> "BankConnectionOut":
        return cls.model_validate(connection)


class AccountOut(BaseModel):
    """An account without its encrypted aggregator token."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    type: AccountType
    name: str
    institution: str
    balance: Decimal
    currency: str
    plaid_account_id: str | None = None
    last_synced: datetime | None = None

    @classmethod
    def of(cls, account: Account) -> "AccountOut":
        return cls.model_validate(account)


class SyncRequest(BaseSchema):
    start_date: date | None = None
    end_date: date | None = None


class ConnectionTestRequest(BaseSchema):
    otp: str | None = None


class PlaidExchangeRequest(BaseSchema):
    public_token: str = Field(..., min_length=1)
    institution_name: str = Field(..., min_length=1)


class CategoryAssignment(BaseSchema):
    category_id: str


class RecurringCreate(BaseSchema):
    account_id: str
    amount: Decimal
    payee: str = Field(..., min_length=1)
    category_id: str
    frequency: RecurrenceFrequency
    interval: int = Field(1, ge=1)
    start_date: date
    end_date: date | None = None
    day_of_month: int | None = Field(None, ge=-1, le=31)
    day_of_week: int | None = Field(None, ge=0, le=6)
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)


class ExportCreate(BaseSchema):
    format: ExportFormat = ExportFormat.CSV
    start_date: date | None = None
    end_date: date | None = None
