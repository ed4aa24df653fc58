"""Linking new transaction sources: scraper logins and Plaid items."""

import logging
import re
from decimal import Decimal

from ..config import get_settings
from ..connectors.plaid_client import PlaidClient, map_plaid_account_type
from ..crypto import BankCredentials, encrypt, encrypt_bank_credentials
from ..db import Repository, transaction
from ..logging import mask_identifier
from ..models import Account, AccountType, BankConnection, BankProvider

logger = logging.getLogger(__name__)

SUPPORTED_SCRAPER_ACCOUNT_TYPES = (AccountType.CHECKING, AccountType.CREDIT)
_ACCOUNT_IDENTIFIER = re.compile(r"^\d{4}$")


def add_bank_connection(
    repo: Repository,
    user_id: str,
    bank: BankProvider,
    account_type: AccountType,
    credentials: BankCredentials,
    account_identifier: str,
    encryption_key: str | None = None,
) -> BankConnection:
    """Store a scraper login with its credentials encrypted.

    Args:
        repo: Repository bound to a writable connection
        user_id: Owner of the connection
        bank: Provider to scrape
        account_type: CHECKING or CREDIT
        credentials: Bank login, encrypted before it is stored
        account_identifier: Last four digits of the bank account or card

    Returns:
        BankConnection: The new connection in ACTIVE status

    Raises:
        ValueError: If the account type or identifier is not supported
    """
    if account_type not in SUPPORTED_SCRAPER_ACCOUNT_TYPES:
        raise ValueError("Only CHECKING and CREDIT accounts supported")
    if not _ACCOUNT_IDENTIFIER.match(account_identifier):
        raise ValueError("Account identifier must be the last 4 digits")

    key = encryption_key or get_settings().security.encryption_key
    encrypted = encrypt_bank_credentials(credentials, key)

    connection = repo.create_bank_connection(
        user_id=user_id,
        bank=bank,
        account_type=account_type,
        account_identifier=account_identifier,
        encrypted_credentials=encrypted,
    )
    logger.info(
        f"Added {bank.value} connection {connection.id} "
        f"for bank user {mask_identifier(credentials.user_id)}"
    )
    return connection


def link_plaid_item(
    repo: Repository,
    user_id: str,
    public_token: str,
    institution_name: str,
    client: PlaidClient | None = None,
    encryption_key: str | None = None,
) -> list[Account]:
    """Exchange a Plaid Link public token and create one account per Plaid account.

    The access token is stored encrypted on every created account.

    Returns:
        list[Account]: The accounts created for the item
    """
    client = client or PlaidClient()
    key = encryption_key or get_settings().security.encryption_key

    access_token, item_id = client.exchange_public_token(public_token)
    encrypted_token = encrypt(access_token, key)
    plaid_accounts = client.get_accounts(access_token)

    created: list[Account] = []
    with transaction(repo.conn):
        for acc in plaid_accounts:
            created.append(
                repo.create_account(
                    user_id=user_id,
                    account_type=map_plaid_account_type(acc.type, acc.subtype),
                    name=acc.name,
                    institution=institution_name,
                    balance=acc.current_balance or Decimal("0"),
                    currency=acc.iso_currency_code or "NIS",
                    is_manual=False,
                    plaid_account_id=acc.account_id,
                    plaid_item_id=item_id,
                    plaid_access_token=encrypted_token,
                )
            )

    logger.info(f"Linked Plaid item with {len(created)} accounts at {institution_name}")
    return created
