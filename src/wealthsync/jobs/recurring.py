"""Recurring transaction templates and their scheduled materialization.

``generate_pending_recurring_transactions`` is run daily by the cron
endpoint. Each due template produces one transaction per missed occurrence
and is moved to its next date, or COMPLETED once that date passes its end
date. An occurrence is never materialized twice for the same date, so a
retried or overlapping run is harmless.
"""

import calendar
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from ..db import Repository, new_id, transaction
from ..errors import NotFoundError
from ..models import (
    RecurrenceFrequency,
    RecurringStatus,
    RecurringTransaction,
    Transaction,
)

logger = logging.getLogger(__name__)

LAST_DAY_OF_MONTH = -1


@dataclass
class GenerationResults:
    """Counts reported by a generation run."""

    processed: int = 0
    created: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "created": self.created, "errors": self.errors}


def _sunday_weekday(d: date) -> int:
    """Weekday with 0 = Sunday through 6 = Saturday."""
    return (d.weekday() + 1) % 7


def _forward_to_weekday(d: date, day_of_week: int) -> date:
    return d + timedelta(days=(day_of_week - _sunday_weekday(d)) % 7)


def _with_day_of_month(d: date, day_of_month: int) -> date:
    days_in_month = calendar.monthrange(d.year, d.month)[1]
    if day_of_month == LAST_DAY_OF_MONTH:
        return d.replace(day=days_in_month)
    return d.replace(day=min(day_of_month, days_in_month))


def calculate_next_scheduled_date(
    current: date,
    frequency: RecurrenceFrequency,
    interval: int = 1,
    day_of_month: int | None = None,
    day_of_week: int | None = None,
) -> date:
    """Occurrence that follows ``current``.

    Args:
        current: The occurrence just generated
        frequency: How often the template fires
        interval: Number of frequency units between occurrences
        day_of_month: For MONTHLY, the day to land on; -1 means the last day
        day_of_week: For WEEKLY and BIWEEKLY, 0 = Sunday through 6 = Saturday

    Returns:
        date: The next occurrence
    """
    if frequency == RecurrenceFrequency.DAILY:
        return current + timedelta(days=interval)

    if frequency in (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BIWEEKLY):
        weeks = interval * 2 if frequency == RecurrenceFrequency.BIWEEKLY else interval
        next_date = current + timedelta(weeks=weeks)
        if day_of_week is not None:
            next_date = _forward_to_weekday(next_date, day_of_week)
        return next_date

    if frequency == RecurrenceFrequency.MONTHLY:
        next_date = current + relativedelta(months=interval)
        if day_of_month is not None:
            next_date = _with_day_of_month(next_date, day_of_month)
        return next_date

    if frequency == RecurrenceFrequency.YEARLY:
        # relativedelta moves Feb 29 to Feb 28 in non-leap years
        return current + relativedelta(years=interval)

    raise ValueError(f"Unknown frequency: {frequency}")


def calculate_first_scheduled_date(
    start: date,
    frequency: RecurrenceFrequency,
    interval: int = 1,
    day_of_month: int | None = None,
    day_of_week: int | None = None,
) -> date:
    """First occurrence strictly after a template's start date.

    A weekday moves the first occurrence to the nearest matching day after
    ``start``. Every other schedule, MONTHLY with a day of month included,
    fires first one full interval after ``start``.
    """
    if frequency in (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BIWEEKLY):
        if day_of_week is None:
            return calculate_next_scheduled_date(start, frequency, interval)
        days_until = (day_of_week - _sunday_weekday(start)) % 7 or 7
        weeks = 2 if frequency == RecurrenceFrequency.BIWEEKLY else 1
        return start + timedelta(days=days_until, weeks=(interval - 1) * weeks)

    return calculate_next_scheduled_date(
        start, frequency, interval, day_of_month, day_of_week
    )


def _next_after(recurring: RecurringTransaction, current: date) -> date:
    return calculate_next_scheduled_date(
        current,
        recurring.frequency,
        recurring.recurrence_interval,
        recurring.day_of_month,
        recurring.day_of_week,
    )


def _materialize(repo: Repository, recurring: RecurringTransaction, today: date) -> int:
    """Generate every due occurrence of one template and return how many were created."""
    created = 0
    occurrence = recurring.next_scheduled_date

    while occurrence <= today:
        if recurring.end_date is not None and occurrence > recurring.end_date:
            repo.set_recurring_status(recurring.id, RecurringStatus.COMPLETED)
            break

        next_date = _next_after(recurring, occurrence)
        completed = recurring.end_date is not None and next_date > recurring.end_date

        with transaction(repo.conn):
            if not repo.recurring_occurrence_exists(recurring.id, occurrence):
                repo.insert_transactions(
                    [
                        Transaction(
                            id=new_id("txn"),
                            user_id=recurring.user_id,
                            account_id=recurring.account_id,
                            date=occurrence,
                            amount=recurring.amount,
                            payee=recurring.payee,
                            category_id=recurring.category_id,
                            notes=recurring.notes,
                            tags=list(recurring.tags),
                            is_manual=False,
                            recurring_transaction_id=recurring.id,
                        )
                    ]
                )
                created += 1
            else:
                logger.debug(f"Occurrence {occurrence} of {recurring.id} already exists")

            if completed:
                repo.complete_recurring(recurring.id, occurrence)
            else:
                repo.advance_recurring(recurring.id, next_date, occurrence)

        if completed:
            logger.info(f"Recurring transaction {recurring.id} completed")
            break
        occurrence = next_date

    return created


def generate_pending_recurring_transactions(
    repo: Repository, today: date | None = None, user_id: str | None = None
) -> GenerationResults:
    """Materialize every due occurrence of every active template.

    Args:
        repo: Repository bound to a writable connection
        today: Reference date, defaults to the current date
        user_id: Restrict the run to one user's templates

    Returns:
        GenerationResults: Templates processed, transactions created and errors
    """
    today = today or date.today()
    results = GenerationResults()

    for recurring in repo.list_due_recurring(today, user_id):
        results.processed += 1
        try:
            results.created += _materialize(repo, recurring, today)
        except Exception as e:
            logger.error(f"Error generating transaction for recurring {recurring.id}: {e}")
            results.errors += 1

    logger.info(
        f"Recurring generation: {results.processed} processed, "
        f"{results.created} created, {results.errors} errors"
    )
    return results


def _owned_recurring(repo: Repository, recurring_id: str, user_id: str) -> RecurringTransaction:
    recurring = repo.get_recurring(recurring_id)
    if recurring is None or recurring.user_id != user_id:
        raise NotFoundError("Recurring transaction not found")
    return recurring


def create_recurring_transaction(
    repo: Repository,
    user_id: str,
    account_id: str,
    amount: Decimal,
    payee: str,
    category_id: str,
    frequency: RecurrenceFrequency,
    start_date: date,
    interval: int = 1,
    end_date: date | None = None,
    day_of_month: int | None = None,
    day_of_week: int | None = None,
    notes: str | None = None,
    tags: Sequence[str] = (),
    today: date | None = None,
) -> RecurringTransaction:
    """Create a template and generate any occurrences already due.

    Raises:
        NotFoundError: If the account or category is missing or not the user's
        ValueError: If the schedule is invalid
    """
    account = repo.get_account(account_id)
    if account is None or account.user_id != user_id:
        raise NotFoundError("Account not found")

    category = repo.get_category(category_id)
    if category is None or (category.user_id is not None and category.user_id != user_id):
        raise NotFoundError("Category not found")

    if end_date is not None and end_date < start_date:
        raise ValueError("End date must not be before start date")

    recurring = RecurringTransaction(
        id=new_id("rec"),
        user_id=user_id,
        account_id=account.id,
        amount=amount,
        payee=payee,
        category_id=category.id,
        notes=notes,
        tags=list(tags),
        frequency=frequency,
        recurrence_interval=interval,
        start_date=start_date,
        end_date=end_date,
        day_of_month=day_of_month,
        day_of_week=day_of_week,
        next_scheduled_date=calculate_first_scheduled_date(
            start_date, frequency, interval, day_of_month, day_of_week
        ),
    )
    repo.insert_recurring(recurring)
    logger.info(
        f"Created recurring transaction {recurring.id}, first occurrence "
        f"{recurring.next_scheduled_date}"
    )

    generate_pending_recurring_transactions(repo, today, user_id)
    return repo.get_recurring(recurring.id) or recurring


def pause_recurring_transaction(
    repo: Repository, recurring_id: str, user_id: str
) -> RecurringTransaction:
    """Stop a template from generating until it is resumed."""
    recurring = _owned_recurring(repo, recurring_id, user_id)
    repo.set_recurring_status(recurring.id, RecurringStatus.PAUSED)
    return _owned_recurring(repo, recurring_id, user_id)


def resume_recurring_transaction(
    repo: Repository, recurring_id: str, user_id: str, today: date | None = None
) -> RecurringTransaction:
    """Reactivate a paused template and generate what fell due meanwhile.

    Raises:
        NotFoundError: If the template is missing or not the user's
        ValueError: If the template already completed
    """
    recurring = _owned_recurring(repo, recurring_id, user_id)
    if recurring.status == RecurringStatus.COMPLETED:
        raise ValueError("Completed recurring transactions cannot be resumed")

    repo.set_recurring_status(recurring.id, RecurringStatus.ACTIVE)
    generate_pending_recurring_transactions(repo, today, user_id)
    return _owned_recurring(repo, recurring_id, user_id)


def delete_recurring_transaction(repo: Repository, recurring_id: str, user_id: str) -> None:
    """Delete a template. Transactions it generated are kept."""
    recurring = _owned_recurring(repo, recurring_id, user_id)
    repo.delete_recurring(recurring.id)


def list_upcoming_recurring(
    repo: Repository, user_id: str, days: int = 30, today: date | None = None
) -> list[RecurringTransaction]:
    """Active templates due within the next ``days`` days."""
    horizon = (today or date.today()) + timedelta(days=days)
    return [
        r
        for r in repo.list_recurring(user_id, RecurringStatus.ACTIVE)
        if r.next_scheduled_date <= horizon
    ]
