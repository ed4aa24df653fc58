"""Plaid API client using straightforward SDK calls.

This module wraps the Plaid Python SDK with just enough structure for the
sync services: link-token creation, public-token exchange, account lookups
and cursor-based ``/transactions/sync`` paging.
"""

import json
import logging
import time
from typing import Any

from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.item_public_token_exchange_request import (
    ItemPublicTokenExchangeRequest,
)
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest

from ..config import PlaidConfig, get_settings
from ..errors import AggregatorError, ConfigurationError
from ..models import AccountType
from .plaid_schemas import PLAID_HOSTS, PlaidAccount, TransactionsSyncPage

logger = logging.getLogger(__name__)

PRODUCT_NOT_READY = "PRODUCT_NOT_READY"


def map_plaid_account_type(account_type: str, subtype: str | None = None) -> AccountType:
    """Map a Plaid account type and subtype onto a WealthSync account type.

    Args:
        account_type: Plaid type such as ``depository`` or ``credit``
        subtype: Plaid subtype such as ``checking`` or ``savings``

    Returns:
        AccountType: The closest WealthSync account type
    """
    account_type = (account_type or "").lower()
    subtype = (subtype or "").lower()

    if account_type == "depository":
        if subtype == "savings":
            return AccountType.SAVINGS
        return AccountType.CHECKING
    if account_type in ("credit", "loan"):
        return AccountType.CREDIT
    if account_type == "investment":
        return AccountType.INVESTMENT
    return AccountType.CASH


def _error_code(exc: ApiException) -> str | None:
    body = getattr(exc, "body", None)
    if not isinstance(body, (str, bytes)):
        return None
    try:
        details = json.loads(body)
    except ValueError:
        return None
    if isinstance(details, dict):
        code = details.get("error_code")  # type: ignore[union-attr]
        return str(code) if code else None
    return None


class PlaidClient:
    """Thin wrapper over ``plaid_api.PlaidApi`` returning validated schemas."""

    def __init__(self, config: PlaidConfig | None = None, api: Any | None = None):
        """Initialize the client.

        Args:
            config: Plaid settings. Defaults to the current profile's settings.
            api: Pre-built ``PlaidApi`` instance, mainly for tests
        """
        self.config = config or get_settings().plaid

        if api is None:
            if not self.config.client_id or not self.config.secret:
                raise ConfigurationError("Plaid client id and secret are not configured")
            configuration = Configuration(
                host=PLAID_HOSTS[self.config.environment],
                api_key={
                    "clientId": self.config.client_id,
                    "secret": self.config.secret,
                },
            )
            api = plaid_api.PlaidApi(ApiClient(configuration))
        # Type as Any to avoid pyright partial-unknowns from the SDK stubs
        self.client: Any = api

        logger.debug(f"Initialized Plaid client for {self.config.environment} environment")

    def _call(self, operation: str, method: Any, request: Any) -> Any:
        """Invoke an SDK method, retrying while Plaid reports PRODUCT_NOT_READY."""
        for attempt in range(self.config.max_retries + 1):
            try:
                return method(request)
            except ApiException as api_exc:
                error_code = _error_code(api_exc)
                if error_code == PRODUCT_NOT_READY and attempt < self.config.max_retries:
                    logger.info(
                        f"Plaid {operation} not ready, retrying "
                        f"({attempt + 1}/{self.config.max_retries})"
                    )
                    time.sleep(self.config.retry_delay)
                    continue
                logger.error(f"Plaid {operation} failed: {error_code or api_exc.status}")
                raise AggregatorError(
                    f"Plaid {operation} failed", error_code=error_code
                ) from api_exc
        raise AggregatorError(f"Plaid {operation} failed: no response from Plaid")

    def create_link_token(self, user_id: str, webhook_url: str | None = None) -> str:
        """Create a Link token for the browser-side Plaid Link flow.

        Args:
            user_id: Application user id, sent as Plaid's client_user_id
            webhook_url: URL Plaid posts transaction webhooks to

        Returns:
            str: The link token
        """
        params: dict[str, Any] = {
            "user": LinkTokenCreateRequestUser(client_user_id=user_id),
            "client_name": "WealthSync",
            "products": [Products("transactions")],
            "country_codes": [CountryCode("US")],
            "language": "en",
        }
        webhook = webhook_url or self.config.webhook_url
        if webhook:
            params["webhook"] = webhook

        response = self._call(
            "link/token/create",
            self.client.link_token_create,
            LinkTokenCreateRequest(**params),
        )
        return str(response.link_token)

    def exchange_public_token(self, public_token: str) -> tuple[str, str]:
        """Exchange a Link public token.

        Returns:
            tuple[str, str]: ``(access_token, item_id)``
        """
        response = self._call(
            "item/public_token/exchange",
            self.client.item_public_token_exchange,
            ItemPublicTokenExchangeRequest(public_token=public_token),
        )
        return str(response.access_token), str(response.item_id)

    def get_accounts(self, access_token: str) -> list[PlaidAccount]:
        """Fetch the accounts behind an access token."""
        response = self._call(
            "accounts/get",
            self.client.accounts_get,
            AccountsGetRequest(access_token=access_token),
        )
        accounts: list[PlaidAccount] = []
        for acct in getattr(response, "accounts", []):
            balances = getattr(acct, "balances", None)
            account = PlaidAccount.model_validate(acct)
            if balances is not None:
                account = account.model_copy(
                    update={
                        "current_balance": getattr(balances, "current", None),
                        "iso_currency_code": getattr(balances, "iso_currency_code", None),
                    }
                )
            accounts.append(account)
        return accounts

    def sync_transactions(
        self, access_token: str, cursor: str | None = None
    ) -> TransactionsSyncPage:
        """Fetch one page of transaction changes since ``cursor``.

        Args:
            access_token: Decrypted Plaid access token
            cursor: Cursor from the previous page or sync, None for a full history

        Returns:
            TransactionsSyncPage: Added, modified and removed transactions
        """
        params: dict[str, Any] = {"access_token": access_token}
        if cursor:
            params["cursor"] = cursor

        response = self._call(
            "transactions/sync",
            self.client.transactions_sync,
            TransactionsSyncRequest(**params),
        )
        return TransactionsSyncPage.model_validate(response)
