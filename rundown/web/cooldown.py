"""
Cooldown schedule endpoints.
"""

import logging

from fastapi import APIRouter, HTTPException

from ..models.api_validation import CooldownScheduleRequest
from ..services.cooldown import get_cooldown_service, get_cooldown_status
from .common import get_user_or_404
from .serializers import cooldown_schedule_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cooldown", tags=["cooldown"])


@router.post("")
async def set_cooldown(request: CooldownScheduleRequest):
    """Create or replace a user's cooldown schedule."""
    await get_user_or_404(request.user_id)

    schedule = await get_cooldown_service().set_schedule(
        request.user_id,
        request.next_start_date,
        request.duration_weeks,
    )
    return {
        "schedule": cooldown_schedule_to_dict(schedule),
        "status": get_cooldown_status(schedule, request.next_start_date).to_dict(),
    }


@router.get("/{user_id}")
async def get_cooldown(user_id: int):
    """A user's schedule (if any) and whether it is active today."""
    await get_user_or_404(user_id)
    service = get_cooldown_service()

    schedule = await service.get_schedule(user_id)
    status = await service.get_status_for_user(user_id)
    return {
        "user_id": user_id,
        "schedule": cooldown_schedule_to_dict(schedule) if schedule else None,
        "status": status.to_dict(),
    }


@router.delete("/{user_id}")
async def delete_cooldown(user_id: int):
    await get_user_or_404(user_id)

    if not await get_cooldown_service().delete_schedule(user_id):
        raise HTTPException(status_code=404, detail=f"No cooldown schedule for user {user_id}")
    return {"ok": True, "message": f"Cooldown cleared for user {user_id}"}
