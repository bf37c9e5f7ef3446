"""
Sync status endpoints.
"""

from fastapi import APIRouter, HTTPException

from ..database.models import SyncTypeEnum
from ..services import sync_status

router = APIRouter(prefix="/api/sync-status", tags=["sync-status"])


@router.get("")
async def list_sync_statuses():
    return {"statuses": await sync_status.get_formatted_statuses()}


@router.get("/summary")
async def sync_summary():
    """How fresh the Linear and GitHub data behind reports is."""
    return await sync_status.get_user_summary()


@router.get("/{sync_type}")
async def get_sync_status(sync_type: str):
    try:
        kind = SyncTypeEnum(sync_type)
    except ValueError:
        valid = ", ".join(t.value for t in SyncTypeEnum)
        raise HTTPException(status_code=400, detail=f"Invalid sync type. Must be one of: {valid}")

    status = await sync_status.get_status(kind)
    if not status:
        raise HTTPException(status_code=404, detail=f"No sync has run for {sync_type}")
    return status
