"""
Helpers shared by the API routers.
"""

from fastapi import HTTPException

from ..database.models import UserDB
from ..database.repositories.users import get_user_repository
from ..integrations.linear import get_linear_client
from ..integrations.slack import get_slack_client


def require_credentials(slack: bool = False, linear: bool = False) -> None:
    """Answer 503 when a needed data source has no credentials."""
    missing = []
    if slack and not get_slack_client().is_configured:
        missing.append("SLACK_BOT_TOKEN")
    if linear and not get_linear_client().is_configured:
        missing.append("LINEAR_API_KEY")

    if missing:
        raise HTTPException(
            status_code=503,
            detail=f"Service credentials not configured: {', '.join(missing)}"
        )


async def get_user_or_404(user_id: int) -> UserDB:
    user = await get_user_repository().get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user
