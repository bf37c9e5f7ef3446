"""
User account endpoints.
"""

import logging

from fastapi import APIRouter, HTTPException

from ..database.exceptions import EntityNotFoundError
from ..models.api_validation import GitHubAccountRequest
from ..services.github_tokens import connect_github_account
from .common import get_user_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.put("/{user_id}/github")
async def connect_github(user_id: int, request: GitHubAccountRequest):
    """Attach a GitHub account so reports include the user's pull requests and reviews."""
    await get_user_or_404(user_id)

    try:
        user = await connect_github_account(
            user_id,
            request.github_username,
            access_token=request.access_token,
            github_user_id=request.github_user_id,
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        # Token given but ENCRYPTION_KEY unset
        raise HTTPException(status_code=503, detail=str(e))

    logger.info(f"GitHub account {user.github_username} connected for user {user_id}")
    return {
        "ok": True,
        "user_id": user.id,
        "github_username": user.github_username,
        "token_stored": user.github_connected_at is not None,
    }
