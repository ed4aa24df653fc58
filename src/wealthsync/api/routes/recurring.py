"""Recurring transaction templates."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Response

from ...db import Repository
from ...errors import NotFoundError
from ...jobs import (
    create_recurring_transaction,
    delete_recurring_transaction,
    pause_recurring_transaction,
    resume_recurring_transaction,
)
from ...jobs.recurring import list_upcoming_recurring
from ...models import RecurringStatus
from ..dependencies import get_current_user, get_repository
from ..schemas import RecurringCreate

router = APIRouter(prefix="/api/recurring", tags=["recurring"])


@router.post("", status_code=201)
def create_recurring(
    body: RecurringCreate,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    recurring = create_recurring_transaction(
        repo,
        user_id,
        account_id=body.account_id,
        amount=body.amount,
        payee=body.payee,
        category_id=body.category_id,
        frequency=body.frequency,
        start_date=body.start_date,
        interval=body.interval,
        end_date=body.end_date,
        day_of_month=body.day_of_month,
        day_of_week=body.day_of_week,
        notes=body.notes,
        tags=body.tags,
    )
    return recurring.model_dump(mode="json")


@router.get("")
def list_recurring(
    status: RecurringStatus | None = None,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> list[dict[str, Any]]:
    return [r.model_dump(mode="json") for r in repo.list_recurring(user_id, status)]


@router.get("/upcoming")
def upcoming_recurring(
    days: int = Query(30, ge=1, le=365),
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> list[dict[str, Any]]:
    return [
        r.model_dump(mode="json") for r in list_upcoming_recurring(repo, user_id, days)
    ]


@router.get("/{recurring_id}/transactions")
def recurring_history(
    recurring_id: str,
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> list[dict[str, Any]]:
    """Transactions a template generated, newest first."""
    recurring = repo.get_recurring(recurring_id)
    if recurring is None or recurring.user_id != user_id:
        raise NotFoundError("Recurring transaction not found")
    return [
        t.model_dump(mode="json")
        for t in repo.list_recurring_occurrences(recurring.id, limit)
    ]


@router.post("/{recurring_id}/pause")
def pause_recurring(
    recurring_id: str,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    return pause_recurring_transaction(repo, recurring_id, user_id).model_dump(mode="json")


@router.post("/{recurring_id}/resume")
def resume_recurring(
    recurring_id: str,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    return resume_recurring_transaction(repo, recurring_id, user_id).model_dump(mode="json")


@router.delete("/{recurring_id}", status_code=204)
def delete_recurring(
    recurring_id: str,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Response:
    delete_recurring_transaction(repo, recurring_id, user_id)
    return Response(status_code=204)
