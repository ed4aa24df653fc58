"""User data exports."""

from typing import Any

from fastapi import APIRouter, Depends

from ...db import Repository
from ...jobs import create_transactions_export
from ...jobs.exports import BlobStore
from ..dependencies import get_blob_store, get_current_user, get_repository
from ..schemas import ExportCreate

router = APIRouter(prefix="/api/exports", tags=["exports"])


@router.post("", status_code=201)
def create_export(
    body: ExportCreate,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    store: BlobStore = Depends(get_blob_store),
) -> dict[str, Any]:
    export = create_transactions_export(
        repo,
        store,
        user_id,
        body.format,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    return export.model_dump(mode="json")


@router.get("")
def list_exports(
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> list[dict[str, Any]]:
    return [e.model_dump(mode="json") for e in repo.list_exports(user_id)]
