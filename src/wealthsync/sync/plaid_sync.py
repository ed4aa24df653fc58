"""Transaction ingestion from Plaid.

Pages through ``/transactions/sync`` from each account's stored cursor and
applies added, modified and removed transactions to the ``transactions``
table. The cursor only advances once every page has been applied, so a
failed sync is retried from the same point and re-applied idempotently.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ..config import get_settings
from ..connectors.plaid_client import PlaidClient
from ..connectors.plaid_schemas import PlaidTransaction
from ..crypto import decrypt
from ..db import Repository, new_id, transaction
from ..errors import ConfigurationError, NotFoundError, UnauthorizedError
from ..models import Account, Category, ImportSource, Transaction

logger = logging.getLogger(__name__)


@dataclass
class SyncCounts:
    """Changes applied by one account sync."""

    added: int = 0
    modified: int = 0
    removed: int = 0


@dataclass
class PlaidSyncSummary:
    """Totals for a multi-account sync."""

    accounts_synced: int = 0
    accounts_failed: int = 0
    total_added: int = 0
    total_modified: int = 0
    total_removed: int = 0


def _belongs_to_account(txn: PlaidTransaction, account: Account) -> bool:
    # Items shared by several accounts deliver every account's transactions
    if not account.plaid_account_id or account.plaid_account_id == account.plaid_item_id:
        return True
    return txn.account_id == account.plaid_account_id


def _to_record(
    txn: PlaidTransaction, account: Account, category: Category, now: datetime
) -> Transaction:
    return Transaction(
        id=new_id("txn"),
        user_id=account.user_id,
        account_id=account.id,
        date=txn.transaction_date,
        # Plaid reports debits as positive amounts
        amount=-Decimal(txn.amount),
        payee=txn.payee,
        raw_merchant_name=txn.name,
        category_id=category.id,
        notes=f"Payment channel: {txn.payment_channel}" if txn.payment_channel else None,
        tags=list(txn.category),
        is_manual=False,
        plaid_transaction_id=txn.transaction_id,
        import_source=ImportSource.PLAID,
        imported_at=now,
    )


def load_plaid_account(repo: Repository, user_id: str, account_id: str) -> Account:
    """Fetch an account and check it can be synced by ``user_id``.

    Raises:
        NotFoundError: If the account does not exist
        ConfigurationError: If the account is not linked to Plaid
        UnauthorizedError: If the account belongs to another user
    """
    account = repo.get_account(account_id)
    if account is None:
        raise NotFoundError("Account not found")
    if not account.plaid_access_token:
        raise ConfigurationError("Account is not connected to Plaid")
    if account.user_id != user_id:
        raise UnauthorizedError("Unauthorized access to account")
    return account


def sync_transactions_from_plaid(
    repo: Repository,
    user_id: str,
    account_id: str,
    client: PlaidClient | None = None,
    encryption_key: str | None = None,
) -> SyncCounts:
    """Sync one Plaid-linked account.

    Args:
        repo: Repository bound to a writable connection
        user_id: Owner of the account
        account_id: Account to sync
        client: Plaid client, built from settings when omitted
        encryption_key: Key for the stored access token, defaults to settings

    Returns:
        SyncCounts: Added, modified and removed transaction counts

    Raises:
        NotFoundError: If the account does not exist
        ConfigurationError: If the account is not linked or no default category exists
        UnauthorizedError: If the account belongs to another user
        AggregatorError: If Plaid rejects a request
    """
    account = load_plaid_account(repo, user_id, account_id)

    category = repo.get_default_category(user_id)
    if category is None:
        raise ConfigurationError("Miscellaneous category not found. Please run db init.")

    key = encryption_key or get_settings().security.encryption_key
    access_token = decrypt(account.plaid_access_token or "", key)
    client = client or PlaidClient()

    counts = SyncCounts()
    cursor = account.plaid_cursor
    has_more = True

    while has_more:
        page = client.sync_transactions(access_token, cursor)
        now = datetime.now()

        with transaction(repo.conn):
            for txn in page.added:
                if not _belongs_to_account(txn, account):
                    continue
                record = _to_record(txn, account, category, now)
                if repo.get_transaction_by_plaid_id(txn.transaction_id) is None:
                    repo.insert_transactions([record])
                else:
                    repo.update_plaid_transaction(
                        txn.transaction_id, record.amount, record.payee, record.date
                    )
                counts.added += 1

            for txn in page.modified:
                if not _belongs_to_account(txn, account):
                    continue
                if repo.get_transaction_by_plaid_id(txn.transaction_id) is None:
                    continue
                repo.update_plaid_transaction(
                    txn.transaction_id, -Decimal(txn.amount), txn.payee, txn.transaction_date
                )
                counts.modified += 1

            for removed in page.removed:
                counts.removed += repo.delete_plaid_transaction(
                    removed.transaction_id, user_id
                )

        has_more = page.has_more
        cursor = page.next_cursor

    repo.update_account_sync_state(account.id, cursor, datetime.now())

    logger.info(
        f"Synced Plaid account {account.id}: {counts.added} added, "
        f"{counts.modified} modified, {counts.removed} removed"
    )
    return counts


def sync_all_plaid_accounts(
    repo: Repository,
    user_id: str,
    client: PlaidClient | None = None,
    encryption_key: str | None = None,
) -> PlaidSyncSummary:
    """Sync every active Plaid-linked account of a user.

    Failures are logged per account and do not stop the remaining accounts.
    """
    accounts = repo.list_plaid_accounts(user_id)
    summary = PlaidSyncSummary()
    if not accounts:
        return summary

    client = client or PlaidClient()
    for account in accounts:
        try:
            counts = sync_transactions_from_plaid(
                repo, user_id, account.id, client=client, encryption_key=encryption_key
            )
        except Exception as e:
            logger.error(f"Failed to sync account {account.id}: {e}")
            summary.accounts_failed += 1
            continue
        summary.accounts_synced += 1
        summary.total_added += counts.added
        summary.total_modified += counts.modified
        summary.total_removed += counts.removed

    return summary
