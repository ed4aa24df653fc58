"""Duplicate detection for scraped transactions.

A scraped transaction is a duplicate when an existing one matches on all
three factors: the date within one day, the amount within one agora/cent
and a similar merchant name.
"""

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from rapidfuzz import fuzz

from ..connectors.scraper import ImportedTransaction
from ..models import Transaction

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.7
DATE_TOLERANCE_DAYS = 1
AMOUNT_TOLERANCE = Decimal("0.01")

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class DuplicateCandidate:
    """The fields duplicate detection compares."""

    date: date
    amount: Decimal
    merchant: str

    @classmethod
    def from_imported(cls, txn: ImportedTransaction) -> "DuplicateCandidate":
        return cls(date=txn.date, amount=Decimal(txn.amount), merchant=txn.description)

    @classmethod
    def from_record(cls, txn: Transaction) -> "DuplicateCandidate":
        return cls(
            date=txn.date,
            amount=Decimal(txn.amount),
            merchant=txn.raw_merchant_name or txn.payee,
        )


def normalize_merchant(name: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", name.lower().strip())


def is_merchant_similar(merchant1: str, merchant2: str) -> bool:
    """Whether two merchant names refer to the same merchant.

    Examples:
        >>> is_merchant_similar("SuperSol Jerusalem", "SuperSol JLM")
        True
        >>> is_merchant_similar("Starbucks", "Dominos")
        False
    """
    normalized1 = normalize_merchant(merchant1)
    normalized2 = normalize_merchant(merchant2)

    if normalized1 == normalized2:
        return True

    return fuzz.ratio(normalized1, normalized2) / 100 >= SIMILARITY_THRESHOLD


def is_duplicate(
    candidate: DuplicateCandidate, existing: Iterable[DuplicateCandidate]
) -> bool:
    """Check a transaction against existing ones using three-factor matching.

    Args:
        candidate: Transaction to check
        existing: Transactions already recorded

    Returns:
        bool: True if any existing transaction matches date, amount and merchant
    """
    for other in existing:
        date_match = abs((candidate.date - other.date).days) <= DATE_TOLERANCE_DAYS
        amount_match = abs(candidate.amount - other.amount) < AMOUNT_TOLERANCE
        if date_match and amount_match and is_merchant_similar(
            candidate.merchant, other.merchant
        ):
            return True
    return False


def deduplicate(
    scraped: Sequence[ImportedTransaction], existing: Sequence[Transaction]
) -> tuple[list[ImportedTransaction], int]:
    """Split scraped transactions into new ones and a count of duplicates.

    A transaction accepted earlier in the same batch counts as existing, so
    a statement that lists the same purchase twice imports it once.

    Args:
        scraped: Transactions returned by the scraper
        existing: Recorded transactions on the same account

    Returns:
        tuple[list[ImportedTransaction], int]: New transactions and skipped count
    """
    known = [DuplicateCandidate.from_record(t) for t in existing]
    new_transactions: list[ImportedTransaction] = []
    skipped = 0

    for txn in scraped:
        candidate = DuplicateCandidate.from_imported(txn)
        if is_duplicate(candidate, known):
            skipped += 1
            logger.debug(
                f"Skipping duplicate: {txn.description} {txn.amount} on {txn.date}"
            )
            continue
        new_transactions.append(txn)
        known.append(candidate)

    return new_transactions, skipped
