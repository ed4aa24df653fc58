"""Merchant-category cache used to categorize imported transactions."""

import logging
from collections.abc import Sequence
from datetime import datetime

from ..db import Repository
from ..errors import NotFoundError, UnauthorizedError
from ..models import CategorizedBy, Transaction
from .dedup import normalize_merchant

logger = logging.getLogger(__name__)

CACHE_CONFIDENCE = "HIGH"


def merchant_key(txn: Transaction) -> str:
    """Cache key for a transaction's merchant."""
    return normalize_merchant(txn.raw_merchant_name or txn.payee)


def categorize_from_cache(repo: Repository, transactions: Sequence[Transaction]) -> int:
    """Apply cached merchant categories to transactions.

    Args:
        repo: Repository bound to a writable connection
        transactions: Freshly imported transactions

    Returns:
        int: Number of transactions that received a cached category
    """
    categorized = 0
    now = datetime.now()

    for txn in transactions:
        key = merchant_key(txn)
        if not key:
            continue
        category_id = repo.lookup_merchant_category(key)
        if category_id is None:
            continue
        category = repo.get_category(category_id)
        # cache is shared; private categories only apply to their owner
        if category is None or category.user_id not in (None, txn.user_id):
            logger.debug(f"Skipping cached category for {key}: not visible to user")
            continue
        repo.set_transaction_category(
            txn.id, category_id, CategorizedBy.AI_CACHED, CACHE_CONFIDENCE
        )
        repo.touch_merchant_category(key, now)
        categorized += 1

    logger.debug(f"Categorized {categorized}/{len(transactions)} transactions from cache")
    return categorized


def assign_category(
    repo: Repository, user_id: str, transaction_id: str, category_id: str
) -> Transaction:
    """Record a user's categorization and remember it for the merchant.

    Raises:
        NotFoundError: If the transaction or category does not exist
        UnauthorizedError: If either belongs to another user
    """
    txn = repo.get_transaction(transaction_id)
    if txn is None:
        raise NotFoundError("Transaction not found")
    if txn.user_id != user_id:
        raise UnauthorizedError("Unauthorized access to transaction")

    category = repo.get_category(category_id)
    if category is None:
        raise NotFoundError("Category not found")
    if category.user_id is not None and category.user_id != user_id:
        raise UnauthorizedError("Unauthorized access to category")

    repo.set_transaction_category(txn.id, category.id, CategorizedBy.USER, CACHE_CONFIDENCE)
    repo.remember_merchant_category(merchant_key(txn), category.id)
    return repo.get_transaction(txn.id) or txn
