"""
GitHub token resolution.

A user's own token is stored Fernet-encrypted on the user row. When it is
missing or cannot be decrypted, the shared GITHUB_TOKEN (if any) is used.
"""

import logging
from typing import Optional

from config import settings
from ..database.models import UserDB
from ..database.repositories.users import get_user_repository
from ..utils.encryption import TokenEncryption, get_token_encryption

logger = logging.getLogger(__name__)


def get_user_github_token(user: UserDB, encryption: Optional[TokenEncryption] = None) -> Optional[str]:
    """The token to use for a user's GitHub calls, or None when GitHub is unavailable."""
    encryption = encryption or get_token_encryption()

    if user.github_access_token and user.github_connected_at:
        token = encryption.decrypt(user.github_access_token)
        if token:
            return token
        logger.warning(f"GitHub token for user {user.id} is unusable, falling back to shared token")

    return settings.github_token or None


async def connect_github_account(
    user_id: int,
    github_username: str,
    access_token: Optional[str] = None,
    github_user_id: Optional[str] = None,
) -> UserDB:
    """
    Store a user's GitHub identity, encrypting the token when one is given.

    Raises:
        RuntimeError: If a token is given but ENCRYPTION_KEY is not configured
    """
    encrypted = get_token_encryption().encrypt(access_token) if access_token else None
    return await get_user_repository().set_github_identity(
        user_id,
        github_username,
        encrypted_token=encrypted,
        github_user_id=github_user_id,
    )
