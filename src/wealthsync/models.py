"""Pydantic schemas for the records the sync subsystem reads and writes.

Every table in the DuckDB schema has a matching model here. Repository
functions validate rows into these models so services work with typed,
validated objects rather than raw tuples.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AccountType(str, Enum):
    """Account type enumeration."""

    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    CREDIT = "CREDIT"
    INVESTMENT = "INVESTMENT"
    CASH = "CASH"


class BankProvider(str, Enum):
    """Banks and card issuers supported by the scraper import."""

    FIBI = "FIBI"
    VISA_CAL = "VISA_CAL"
    OFX = "OFX"


class ConnectionStatus(str, Enum):
    """Health of a scraper bank connection."""

    ACTIVE = "ACTIVE"
    ERROR = "ERROR"
    EXPIRED = "EXPIRED"


class SyncStatus(str, Enum):
    """Lifecycle of a single synchronization attempt."""

    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class RecurrenceFrequency(str, Enum):
    """How often a recurring template fires."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class RecurringStatus(str, Enum):
    """Recurring template status."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"


class ImportSource(str, Enum):
    """Where an imported transaction came from."""

    PLAID = "PLAID"
    FIBI = "FIBI"
    CAL = "CAL"
    OFX = "OFX"


class CategorizedBy(str, Enum):
    """Who assigned a transaction's category."""

    USER = "USER"
    AI_CACHED = "AI_CACHED"
    AI_SUGGESTED = "AI_SUGGESTED"


class ExportFormat(str, Enum):
    """Supported export file formats."""

    CSV = "CSV"
    JSON = "JSON"
    PARQUET = "PARQUET"


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        use_enum_values=False,
        from_attributes=True,
        populate_by_name=True,
    )


class Category(BaseSchema):
    """Transaction category."""

    id: str
    user_id: str | None = None
    name: str
    is_default: bool = False


class Account(BaseSchema):
    """A user's financial account."""

    id: str
    user_id: str
    type: AccountType
    name: str
    institution: str
    balance: Decimal = Decimal("0")
    currency: str = "NIS"
    is_manual: bool = True
    is_active: bool = True
    plaid_account_id: str | None = None
    plaid_item_id: str | None = None
    plaid_access_token: str | None = Field(
        None, description="Encrypted Plaid access token", repr=False
    )
    plaid_cursor: str | None = None
    last_synced: datetime | None = None


class BankConnection(BaseSchema):
    """Scraper credentials and health for one bank login."""

    id: str
    user_id: str
    bank: BankProvider
    account_type: AccountType
    account_identifier: str
    encrypted_credentials: str = Field(..., repr=False)
    status: ConnectionStatus = ConnectionStatus.ACTIVE
    error_message: str | None = None
    last_synced: datetime | None = None
    last_successful_sync: datetime | None = None


class Transaction(BaseSchema):
    """A concrete money movement on an account."""

    id: str
    user_id: str
    account_id: str
    date: date
    amount: Decimal
    payee: str
    raw_merchant_name: str | None = None
    category_id: str
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_manual: bool = True
    plaid_transaction_id: str | None = None
    recurring_transaction_id: str | None = None
    import_source: ImportSource | None = None
    imported_at: datetime | None = None
    categorized_by: CategorizedBy | None = None
    categorization_confidence: str | None = None


class SyncLog(BaseSchema):
    """Record of a single synchronization attempt."""

    id: str
    bank_connection_id: str
    started_at: datetime
    completed_at: datetime | None = None
    status: SyncStatus
    transactions_imported: int = 0
    transactions_skipped: int = 0
    error_details: str | None = None
    created_at: datetime | None = None


class RecurringTransaction(BaseSchema):
    """Template that periodically generates transactions."""

    id: str
    user_id: str
    account_id: str
    amount: Decimal
    payee: str
    category_id: str
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    frequency: RecurrenceFrequency
    recurrence_interval: int = Field(1, ge=1)
    start_date: date
    end_date: date | None = None
    day_of_month: int | None = Field(None, ge=-1, le=31)
    day_of_week: int | None = Field(None, ge=0, le=6)
    next_scheduled_date: date
    last_generated_date: date | None = None
    status: RecurringStatus = RecurringStatus.ACTIVE


class ExportRecord(BaseSchema):
    """A generated export file and its expiry."""

    id: str
    user_id: str
    export_type: str
    format: ExportFormat
    data_type: str
    record_count: int = 0
    file_size: int = 0
    blob_key: str | None = None
    created_at: datetime | None = None
    expires_at: datetime
