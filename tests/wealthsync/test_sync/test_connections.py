# ruff: noqa: S101,S106
"""Tests for linking scraper logins and Plaid items."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from wealthsync.connectors.plaid_schemas import PlaidAccount
from wealthsync.crypto import BankCredentials, decrypt, decrypt_bank_credentials
from wealthsync.db import Repository
from wealthsync.models import AccountType, BankProvider, ConnectionStatus
from wealthsync.sync.connections import add_bank_connection, link_plaid_item

CREDENTIALS = BankCredentials(user_id="bankuser", password="s3cret")


class TestAddBankConnection:
    """Scraper connection creation."""

    @pytest.mark.integration
    def test_stores_encrypted_credentials(self, repo: Repository, encryption_key: str) -> None:
        connection = add_bank_connection(
            repo, "user_1", BankProvider.VISA_CAL, AccountType.CREDIT, CREDENTIALS, "9876"
        )

        stored = repo.get_bank_connection(connection.id)
        assert stored is not None
        assert stored.status == ConnectionStatus.ACTIVE
        assert "s3cret" not in stored.encrypted_credentials
        assert decrypt_bank_credentials(stored.encrypted_credentials, encryption_key) == CREDENTIALS

    @pytest.mark.unit
    def test_rejects_unsupported_account_type(self, repo: Repository, encryption_key: str) -> None:
        with pytest.raises(ValueError, match="Only CHECKING and CREDIT"):
            add_bank_connection(
                repo, "user_1", BankProvider.FIBI, AccountType.SAVINGS, CREDENTIALS, "1234"
            )

    @pytest.mark.unit
    @pytest.mark.parametrize("identifier", ["123", "12345", "12a4", ""])
    def test_rejects_bad_identifier(
        self, repo: Repository, encryption_key: str, identifier: str
    ) -> None:
        with pytest.raises(ValueError, match="last 4 digits"):
            add_bank_connection(
                repo, "user_1", BankProvider.FIBI, AccountType.CHECKING, CREDENTIALS, identifier
            )


class TestLinkPlaidItem:
    """Public token exchange and account creation."""

    @pytest.mark.integration
    def test_creates_account_per_plaid_account(
        self, repo: Repository, encryption_key: str
    ) -> None:
        client = MagicMock()
        client.exchange_public_token.return_value = ("access-sandbox-9", "item-9")
        client.get_accounts.return_value = [
            PlaidAccount(
                account_id="pa-1",
                name="Checking",
                type="depository",
                subtype="checking",
                current_balance=Decimal("250.00"),
                iso_currency_code="USD",
            ),
            PlaidAccount(account_id="pa-2", name="Card", type="credit"),
        ]

        accounts = link_plaid_item(repo, "user_1", "public-1", "Chase", client=client)

        assert [a.type for a in accounts] == [AccountType.CHECKING, AccountType.CREDIT]
        assert accounts[0].balance == Decimal("250.00")
        assert accounts[1].currency == "NIS"
        linked = repo.list_accounts_by_plaid_item("item-9")
        assert {a.plaid_account_id for a in linked} == {"pa-1", "pa-2"}
        for account in linked:
            assert not account.is_manual
            assert decrypt(account.plaid_access_token or "", encryption_key) == "access-sandbox-9"
