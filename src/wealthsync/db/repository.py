"""Typed queries over the WealthSync DuckDB schema.

``Repository`` wraps one DuckDB connection and returns validated models from
``wealthsync.models``. Services receive a repository instead of issuing SQL
themselves, so every query against a table lives in one place.
"""

import logging
from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar
from uuid import uuid4

import duckdb
from pydantic import BaseModel

from ..models import (
    Account,
    AccountType,
    BankConnection,
    BankProvider,
    CategorizedBy,
    Category,
    ConnectionStatus,
    ExportFormat,
    ExportRecord,
    RecurringStatus,
    RecurringTransaction,
    SyncLog,
    SyncStatus,
    Transaction,
)
from .database import DEFAULT_CATEGORY_NAME

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def new_id(prefix: str) -> str:
    """Generate a prefixed opaque identifier such as ``txn_3f2a...``."""
    return f"{prefix}_{uuid4().hex}"


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


class Repository:
    """Query helper bound to a single DuckDB connection."""

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self.conn = conn

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fetch_all(
        self, model: type[ModelT], sql: str, params: Sequence[Any] | None = None
    ) -> list[ModelT]:
        result = self.conn.execute(sql, list(params or []))
        columns = [desc[0] for desc in result.description]
        return [
            model.model_validate(dict(zip(columns, row, strict=True)))
            for row in result.fetchall()
        ]

    def _fetch_one(
        self, model: type[ModelT], sql: str, params: Sequence[Any] | None = None
    ) -> ModelT | None:
        rows = self._fetch_all(model, sql, params)
        return rows[0] if rows else None

    def _rowcount(self, sql: str, params: Sequence[Any]) -> int:
        # DuckDB reports the affected row count as a single-row result
        result = self.conn.execute(sql, list(params)).fetchone()
        return int(result[0]) if result else 0

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(
        self, name: str, user_id: str | None = None, is_default: bool = False
    ) -> Category:
        """Create a category, shared when ``user_id`` is None."""
        category = Category(
            id=new_id("cat"), user_id=user_id, name=name, is_default=is_default
        )
        self.conn.execute(
            "INSERT INTO categories (id, user_id, name, is_default) VALUES (?, ?, ?, ?)",
            [category.id, category.user_id, category.name, category.is_default],
        )
        return category

    def get_category(self, category_id: str) -> Category | None:
        """Fetch a category by id."""
        return self._fetch_one(
            Category, "SELECT * FROM categories WHERE id = ?", [category_id]
        )

    def get_default_category(self, user_id: str) -> Category | None:
        """Find the Miscellaneous category visible to a user.

        A shared default category wins over a user's own category of the
        same name.
        """
        return self._fetch_one(
            Category,
            """
            SELECT * FROM categories
            WHERE name = ? AND (user_id IS NULL OR user_id = ?)
            ORDER BY is_default DESC, user_id NULLS FIRST
            LIMIT 1
            """,
            [DEFAULT_CATEGORY_NAME, user_id],
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(
        self,
        user_id: str,
        account_type: AccountType,
        name: str,
        institution: str,
        balance: Decimal = Decimal("0"),
        currency: str = "NIS",
        is_manual: bool = True,
        plaid_account_id: str | None = None,
        plaid_item_id: str | None = None,
        plaid_access_token: str | None = None,
    ) -> Account:
        """Insert a new active account and return it."""
        account = Account(
            id=new_id("acc"),
            user_id=user_id,
            type=account_type,
            name=name,
            institution=institution,
            balance=balance,
            currency=currency,
            is_manual=is_manual,
            plaid_account_id=plaid_account_id,
            plaid_item_id=plaid_item_id,
            plaid_access_token=plaid_access_token,
        )
        self.conn.execute(
            """
            INSERT INTO accounts
                (id, user_id, type, name, institution, balance, currency, is_manual,
                 is_active, plaid_account_id, plaid_item_id, plaid_access_token)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, TRUE, ?, ?, ?)
            """,
            [
                account.id,
                account.user_id,
                account.type.value,
                account.name,
                account.institution,
                account.balance,
                account.currency,
                account.is_manual,
                account.plaid_account_id,
                account.plaid_item_id,
                account.plaid_access_token,
            ],
        )
        return account

    def get_account(self, account_id: str) -> Account | None:
        """Fetch an account by id."""
        return self._fetch_one(
            Account, "SELECT * FROM accounts WHERE id = ?", [account_id]
        )

    def list_accounts_by_plaid_item(self, item_id: str) -> list[Account]:
        """Accounts linked through a Plaid item.

        Older links stored the item id in ``plaid_account_id``; both columns
        are matched.
        """
        return self._fetch_all(
            Account,
            """
            SELECT * FROM accounts
            WHERE plaid_item_id = ? OR plaid_account_id = ?
            ORDER BY created_at, id
            """,
            [item_id, item_id],
        )

    def list_plaid_accounts(self, user_id: str) -> list[Account]:
        """Active, aggregator-linked accounts for a user."""
        return self._fetch_all(
            Account,
            """
            SELECT * FROM accounts
            WHERE user_id = ?
              AND NOT is_manual
              AND is_active
              AND plaid_access_token IS NOT NULL
            ORDER BY created_at, id
            """,
            [user_id],
        )

    def find_active_account(
        self, user_id: str, account_type: AccountType, institution: str
    ) -> Account | None:
        """Find the active account of a type at an institution."""
        return self._fetch_one(
            Account,
            """
            SELECT * FROM accounts
            WHERE user_id = ? AND type = ? AND institution = ? AND is_active
            ORDER BY created_at, id
            LIMIT 1
            """,
            [user_id, account_type.value, institution],
        )

    def update_account_sync_state(
        self, account_id: str, cursor: str | None, synced_at: datetime
    ) -> None:
        """Persist the aggregator cursor and sync timestamp."""
        self.conn.execute(
            "UPDATE accounts SET plaid_cursor = ?, last_synced = ? WHERE id = ?",
            [cursor, synced_at, account_id],
        )

    def increment_account_balance(
        self, account_id: str, amount: Decimal, synced_at: datetime
    ) -> None:
        """Add ``amount`` to the balance and stamp the sync time."""
        self.conn.execute(
            "UPDATE accounts SET balance = balance + ?, last_synced = ? WHERE id = ?",
            [amount, synced_at, account_id],
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Fetch a transaction by id."""
        return self._fetch_one(
            Transaction, "SELECT * FROM transactions WHERE id = ?", [transaction_id]
        )

    def get_transaction_by_plaid_id(self, plaid_transaction_id: str) -> Transaction | None:
        """Fetch a transaction by its aggregator id."""
        return self._fetch_one(
            Transaction,
            "SELECT * FROM transactions WHERE plaid_transaction_id = ?",
            [plaid_transaction_id],
        )

    def insert_transactions(self, transactions: Sequence[Transaction]) -> int:
        """Insert transactions in one batch and return how many were written."""
        if not transactions:
            return 0
        self.conn.executemany(
            """
            INSERT INTO transactions
                (id, user_id, account_id, date, amount, payee, raw_merchant_name,
                 category_id, notes, tags, is_manual, plaid_transaction_id,
                 recurring_transaction_id, import_source, imported_at,
                 categorized_by, categorization_confidence)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                [
                    t.id,
                    t.user_id,
                    t.account_id,
                    t.date,
                    t.amount,
                    t.payee,
                    t.raw_merchant_name,
                    t.category_id,
                    t.notes,
                    t.tags,
                    t.is_manual,
                    t.plaid_transaction_id,
                    t.recurring_transaction_id,
                    _enum_value(t.import_source),
                    t.imported_at,
                    _enum_value(t.categorized_by),
                    t.categorization_confidence,
                ]
                for t in transactions
            ],
        )
        return len(transactions)

    def update_plaid_transaction(
        self, plaid_transaction_id: str, amount: Decimal, payee: str, txn_date: date
    ) -> int:
        """Refresh the mutable fields of an aggregator transaction."""
        return self._rowcount(
            """
            UPDATE transactions SET amount = ?, payee = ?, date = ?
            WHERE plaid_transaction_id = ?
            """,
            [amount, payee, txn_date, plaid_transaction_id],
        )

    def delete_plaid_transaction(self, plaid_transaction_id: str, user_id: str) -> int:
        """Delete an aggregator transaction, scoped to its owner."""
        return self._rowcount(
            "DELETE FROM transactions WHERE plaid_transaction_id = ? AND user_id = ?",
            [plaid_transaction_id, user_id],
        )

    def list_account_transactions_since(
        self, user_id: str, account_id: str, since: date
    ) -> list[Transaction]:
        """Transactions on an account dated on or after ``since``."""
        return self._fetch_all(
            Transaction,
            """
            SELECT * FROM transactions
            WHERE user_id = ? AND account_id = ? AND date >= ?
            ORDER BY date, id
            """,
            [user_id, account_id, since],
        )

    def list_user_transactions(self, user_id: str) -> list[Transaction]:
        """All of a user's transactions, newest first."""
        return self._fetch_all(
            Transaction,
            "SELECT * FROM transactions WHERE user_id = ? ORDER BY date DESC, id",
            [user_id],
        )

    def set_transaction_category(
        self,
        transaction_id: str,
        category_id: str,
        categorized_by: CategorizedBy,
        confidence: str,
    ) -> None:
        """Record an automatic categorization."""
        self.conn.execute(
            """
            UPDATE transactions
            SET category_id = ?, categorized_by = ?, categorization_confidence = ?
            WHERE id = ?
            """,
            [category_id, categorized_by.value, confidence, transaction_id],
        )

    def recurring_occurrence_exists(
        self, recurring_transaction_id: str, occurrence: date
    ) -> bool:
        """Whether a template already produced a transaction for a date."""
        result = self.conn.execute(
            """
            SELECT COUNT(*) FROM transactions
            WHERE recurring_transaction_id = ? AND date = ?
            """,
            [recurring_transaction_id, occurrence],
        ).fetchone()
        return bool(result and result[0] > 0)

    def list_recurring_occurrences(
        self, recurring_transaction_id: str, limit: int = 10
    ) -> list[Transaction]:
        """Most recent transactions generated from a template."""
        return self._fetch_all(
            Transaction,
            f"""
            SELECT * FROM transactions
            WHERE recurring_transaction_id = ?
            ORDER BY date DESC
            LIMIT {int(limit)}
            """,
            [recurring_transaction_id],
        )

    # ------------------------------------------------------------------
    # Merchant category cache
    # ------------------------------------------------------------------

    def lookup_merchant_category(self, merchant_name: str) -> str | None:
        """Return the cached category for a normalized merchant name."""
        result = self.conn.execute(
            "SELECT category_id FROM merchant_category_cache WHERE merchant_name = ?",
            [merchant_name],
        ).fetchone()
        return str(result[0]) if result else None

    def touch_merchant_category(self, merchant_name: str, used_at: datetime) -> None:
        """Count a cache hit."""
        self.conn.execute(
            """
            UPDATE merchant_category_cache
            SET hit_count = hit_count + 1, last_used = ?
            WHERE merchant_name = ?
            """,
            [used_at, merchant_name],
        )

    def remember_merchant_category(self, merchant_name: str, category_id: str) -> None:
        """Store or replace the category learned for a merchant."""
        self.conn.execute(
            """
            INSERT OR REPLACE INTO merchant_category_cache
                (merchant_name, category_id, hit_count, last_used)
            VALUES (?, ?, 0, CURRENT_TIMESTAMP)
            """,
            [merchant_name, category_id],
        )

    # ------------------------------------------------------------------
    # Bank connections
    # ------------------------------------------------------------------

    def create_bank_connection(
        self,
        user_id: str,
        bank: BankProvider,
        account_type: AccountType,
        account_identifier: str,
        encrypted_credentials: str,
    ) -> BankConnection:
        """Store a new scraper connection in ACTIVE status."""
        connection = BankConnection(
            id=new_id("conn"),
            user_id=user_id,
            bank=bank,
            account_type=account_type,
            account_identifier=account_identifier,
            encrypted_credentials=encrypted_credentials,
        )
        self.conn.execute(
            """
            INSERT INTO bank_connections
                (id, user_id, bank, account_type, account_identifier,
                 encrypted_credentials, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                connection.id,
                connection.user_id,
                connection.bank.value,
                connection.account_type.value,
                connection.account_identifier,
                connection.encrypted_credentials,
                connection.status.value,
            ],
        )
        return connection

    def get_bank_connection(self, connection_id: str) -> BankConnection | None:
        """Fetch a bank connection by id."""
        return self._fetch_one(
            BankConnection,
            "SELECT * FROM bank_connections WHERE id = ?",
            [connection_id],
        )

    def list_bank_connections(self, user_id: str) -> list[BankConnection]:
        """Bank connections owned by a user, oldest first."""
        return self._fetch_all(
            BankConnection,
            "SELECT * FROM bank_connections WHERE user_id = ? ORDER BY created_at, id",
            [user_id],
        )

    def mark_connection_healthy(self, connection_id: str, synced_at: datetime) -> None:
        """Set a connection ACTIVE after a successful sync."""
        self.conn.execute(
            """
            UPDATE bank_connections
            SET status = ?, error_message = NULL,
                last_synced = ?, last_successful_sync = ?
            WHERE id = ?
            """,
            [ConnectionStatus.ACTIVE.value, synced_at, synced_at, connection_id],
        )

    def mark_connection_failed(
        self, connection_id: str, status: ConnectionStatus, error_message: str
    ) -> None:
        """Record a connection failure and its reason."""
        self.conn.execute(
            "UPDATE bank_connections SET status = ?, error_message = ? WHERE id = ?",
            [status.value, error_message, connection_id],
        )

    # ------------------------------------------------------------------
    # Sync logs
    # ------------------------------------------------------------------

    def create_sync_log(
        self, bank_connection_id: str, started_at: datetime, status: SyncStatus
    ) -> SyncLog:
        """Open a sync log for an attempt."""
        log = SyncLog(
            id=new_id("sync"),
            bank_connection_id=bank_connection_id,
            started_at=started_at,
            status=status,
            created_at=started_at,
        )
        self.conn.execute(
            """
            INSERT INTO sync_logs (id, bank_connection_id, started_at, status, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            [log.id, log.bank_connection_id, log.started_at, log.status.value, log.created_at],
        )
        return log

    def finish_sync_log(
        self,
        log_id: str,
        status: SyncStatus,
        completed_at: datetime,
        imported: int = 0,
        skipped: int = 0,
        error_details: str | None = None,
    ) -> None:
        """Close a sync log with its outcome."""
        self.conn.execute(
            """
            UPDATE sync_logs
            SET status = ?, completed_at = ?, transactions_imported = ?,
                transactions_skipped = ?, error_details = ?
            WHERE id = ?
            """,
            [status.value, completed_at, imported, skipped, error_details, log_id],
        )

    def get_sync_log(self, log_id: str) -> SyncLog | None:
        """Fetch a sync log by id."""
        return self._fetch_one(SyncLog, "SELECT * FROM sync_logs WHERE id = ?", [log_id])

    def list_sync_logs(self, bank_connection_id: str, limit: int) -> list[SyncLog]:
        """Newest sync logs for a connection."""
        return self._fetch_all(
            SyncLog,
            f"""
            SELECT * FROM sync_logs
            WHERE bank_connection_id = ?
            ORDER BY created_at DESC, started_at DESC
            LIMIT {int(limit)}
            """,
            [bank_connection_id],
        )

    def fail_stale_sync_logs(
        self, started_before: datetime, completed_at: datetime, error_details: str
    ) -> int:
        """Fail every in-progress log that started before a cutoff."""
        return self._rowcount(
            """
            UPDATE sync_logs
            SET status = ?, completed_at = ?, error_details = ?
            WHERE status = ? AND started_at < ?
            """,
            [
                SyncStatus.FAILED.value,
                completed_at,
                error_details,
                SyncStatus.IN_PROGRESS.value,
                started_before,
            ],
        )

    # ------------------------------------------------------------------
    # Recurring transactions
    # ------------------------------------------------------------------

    def insert_recurring(self, recurring: RecurringTransaction) -> None:
        """Insert a recurring template."""
        self.conn.execute(
            """
            INSERT INTO recurring_transactions
                (id, user_id, account_id, amount, payee, category_id, notes, tags,
                 frequency, recurrence_interval, start_date, end_date, day_of_month,
                 day_of_week, next_scheduled_date, last_generated_date, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                recurring.id,
                recurring.user_id,
                recurring.account_id,
                recurring.amount,
                recurring.payee,
                recurring.category_id,
                recurring.notes,
                recurring.tags,
                recurring.frequency.value,
                recurring.recurrence_interval,
                recurring.start_date,
                recurring.end_date,
                recurring.day_of_month,
                recurring.day_of_week,
                recurring.next_scheduled_date,
                recurring.last_generated_date,
                recurring.status.value,
            ],
        )

    def get_recurring(self, recurring_id: str) -> RecurringTransaction | None:
        """Fetch a recurring template by id."""
        return self._fetch_one(
            RecurringTransaction,
            "SELECT * FROM recurring_transactions WHERE id = ?",
            [recurring_id],
        )

    def list_recurring(
        self, user_id: str, status: RecurringStatus | None = None
    ) -> list[RecurringTransaction]:
        """A user's templates ordered by their next occurrence."""
        sql = "SELECT * FROM recurring_transactions WHERE user_id = ?"
        params: list[Any] = [user_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        sql += " ORDER BY next_scheduled_date, id"
        return self._fetch_all(RecurringTransaction, sql, params)

    def list_due_recurring(
        self, today: date, user_id: str | None = None
    ) -> list[RecurringTransaction]:
        """Active templates whose next occurrence is on or before ``today``."""
        sql = """
            SELECT * FROM recurring_transactions
            WHERE status = ? AND next_scheduled_date <= ?
        """
        params: list[Any] = [RecurringStatus.ACTIVE.value, today]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        sql += " ORDER BY next_scheduled_date, id"
        return self._fetch_all(RecurringTransaction, sql, params)

    def advance_recurring(
        self, recurring_id: str, next_date: date, last_generated: date
    ) -> None:
        """Move a template to its next occurrence."""
        self.conn.execute(
            """
            UPDATE recurring_transactions
            SET next_scheduled_date = ?, last_generated_date = ?
            WHERE id = ?
            """,
            [next_date, last_generated, recurring_id],
        )

    def complete_recurring(self, recurring_id: str, last_generated: date) -> None:
        """Mark a template COMPLETED after its final occurrence."""
        self.conn.execute(
            """
            UPDATE recurring_transactions
            SET status = ?, last_generated_date = ?
            WHERE id = ?
            """,
            [RecurringStatus.COMPLETED.value, last_generated, recurring_id],
        )

    def set_recurring_status(
        self,
        recurring_id: str,
        status: RecurringStatus,
        next_date: date | None = None,
    ) -> None:
        """Change a template's status, optionally rescheduling it."""
        if next_date is None:
            self.conn.execute(
                "UPDATE recurring_transactions SET status = ? WHERE id = ?",
                [status.value, recurring_id],
            )
        else:
            self.conn.execute(
                """
                UPDATE recurring_transactions
                SET status = ?, next_scheduled_date = ?
                WHERE id = ?
                """,
                [status.value, next_date, recurring_id],
            )

    def delete_recurring(self, recurring_id: str) -> int:
        """Delete a template; generated transactions are kept."""
        return self._rowcount(
            "DELETE FROM recurring_transactions WHERE id = ?", [recurring_id]
        )

    # ------------------------------------------------------------------
    # Export history
    # ------------------------------------------------------------------

    def create_export(
        self,
        user_id: str,
        export_type: str,
        fmt: ExportFormat,
        data_type: str,
        record_count: int,
        file_size: int,
        blob_key: str | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> ExportRecord:
        """Record a generated export."""
        record = ExportRecord(
            id=new_id("exp"),
            user_id=user_id,
            export_type=export_type,
            format=fmt,
            data_type=data_type,
            record_count=record_count,
            file_size=file_size,
            blob_key=blob_key,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.conn.execute(
            """
            INSERT INTO export_history
                (id, user_id, export_type, format, data_type, record_count,
                 file_size, blob_key, created_at, expires_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                record.id,
                record.user_id,
                record.export_type,
                record.format.value,
                record.data_type,
                record.record_count,
                record.file_size,
                record.blob_key,
                record.created_at,
                record.expires_at,
            ],
        )
        return record

    def get_export(self, export_id: str) -> ExportRecord | None:
        """Fetch an export record by id."""
        return self._fetch_one(
            ExportRecord, "SELECT * FROM export_history WHERE id = ?", [export_id]
        )

    def list_exports(self, user_id: str) -> list[ExportRecord]:
        """A user's exports, newest first."""
        return self._fetch_all(
            ExportRecord,
            "SELECT * FROM export_history WHERE user_id = ? ORDER BY created_at DESC",
            [user_id],
        )

    def list_expired_exports(self, now: datetime) -> list[ExportRecord]:
        """Exports whose expiry is strictly before ``now``."""
        return self._fetch_all(
            ExportRecord,
            "SELECT * FROM export_history WHERE expires_at < ? ORDER BY expires_at, id",
            [now],
        )

    def delete_exports(self, export_ids: Sequence[str]) -> int:
        """Delete export records by id and return how many went away."""
        if not export_ids:
            return 0
        placeholders = ", ".join("?" for _ in export_ids)
        return self._rowcount(
            f"DELETE FROM export_history WHERE id IN ({placeholders})",  # noqa: S608  # placeholders only
            list(export_ids),
        )
