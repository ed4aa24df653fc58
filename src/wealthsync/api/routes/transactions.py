"""Manual categorization, which feeds the merchant-category cache."""

from typing import Any

from fastapi import APIRouter, Depends

from ...db import Repository
from ...sync.categorize import assign_category
from ..dependencies import get_current_user, get_repository
from ..schemas import CategoryAssignment

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.put("/{transaction_id}/category")
def set_category(
    transaction_id: str,
    body: CategoryAssignment,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    return assign_category(repo, user_id, transaction_id, body.category_id).model_dump(
        mode="json"
    )
