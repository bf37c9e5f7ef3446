"""
User repository.

Users are created from the Slack workspace and matched to Linear by email.
A user receives reports when active and opted in.
"""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import UserDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError, EntityNotFoundError
from ...utils.datetime_utils import naive_utc_now

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user operations."""

    def __init__(self):
        self.db = get_database()

    async def get_by_id(self, user_id: int) -> Optional[UserDB]:
        async with self.db.session() as session:
            result = await session.execute(select(UserDB).where(UserDB.id == user_id))
            return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserDB]:
        async with self.db.session() as session:
            result = await session.execute(select(UserDB).where(UserDB.email == email))
            return result.scalar_one_or_none()

    async def get_by_slack_id(self, slack_user_id: str) -> Optional[UserDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(UserDB).where(UserDB.slack_user_id == slack_user_id)
            )
            return result.scalar_one_or_none()

    async def get_active_users(self) -> List[UserDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(UserDB).where(UserDB.is_active.is_(True)).order_by(UserDB.email)
            )
            return list(result.scalars().all())

    async def get_report_recipients(self) -> List[UserDB]:
        """Active users who opted in to reports, ordered by email."""
        async with self.db.session() as session:
            result = await session.execute(
                select(UserDB)
                .where(UserDB.is_active.is_(True), UserDB.receive_reports.is_(True))
                .order_by(UserDB.email)
            )
            return list(result.scalars().all())

    async def create(self, email: str, **fields: Any) -> UserDB:
        async with self.db.session() as session:
            try:
                user = UserDB(email=email, **fields)
                session.add(user)
                await session.flush()
                logger.info(f"Created user {email}")
                return user

            except IntegrityError as e:
                logger.error(f"Constraint violation creating user {email}: {e}")
                raise DatabaseConstraintError(f"Cannot create user {email}: duplicate email")

            except Exception as e:
                logger.error(f"User creation failed for {email}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create user {email}: {e}")

    async def apply_slack_sync(
        self,
        slack_users: List[Dict[str, str]],
        linear_by_email: Dict[str, Dict[str, str]],
    ) -> Dict[str, int]:
        """
        Upsert Slack users and deactivate the ones that left, in one transaction.

        Existing users keep their receive_reports preference. New users get
        reports only when a Linear account matched their email.

        Args:
            slack_users: dicts with id, email, real_name
            linear_by_email: lowercased email -> {"id", "name"}

        Returns:
            Counts of created, updated and deactivated users
        """
        counts = {"created": 0, "updated": 0, "deactivated": 0}

        try:
            async with self.db.session() as session:
                synced_emails = []
                for slack_user in slack_users:
                    email = slack_user["email"]
                    synced_emails.append(email)
                    linear_match = linear_by_email.get(email.lower())

                    result = await session.execute(select(UserDB).where(UserDB.email == email))
                    existing = result.scalar_one_or_none()

                    if existing:
                        existing.slack_user_id = slack_user["id"]
                        existing.slack_real_name = slack_user.get("real_name")
                        if linear_match:
                            existing.linear_user_id = linear_match["id"]
                            existing.linear_name = linear_match["name"]
                        existing.is_active = True
                        existing.updated_at = naive_utc_now()
                        counts["updated"] += 1
                    else:
                        session.add(UserDB(
                            email=email,
                            slack_user_id=slack_user["id"],
                            slack_real_name=slack_user.get("real_name"),
                            linear_user_id=linear_match["id"] if linear_match else None,
                            linear_name=linear_match["name"] if linear_match else None,
                            is_active=True,
                            receive_reports=bool(linear_match),
                        ))
                        counts["created"] += 1

                # Only users that came from Slack are deactivated
                if synced_emails:
                    result = await session.execute(
                        update(UserDB)
                        .where(
                            UserDB.email.notin_(synced_emails),
                            UserDB.slack_user_id.is_not(None),
                            UserDB.is_active.is_(True),
                        )
                        .values(is_active=False, updated_at=naive_utc_now())
                    )
                    counts["deactivated"] = result.rowcount or 0

            logger.info(
                f"Slack user sync applied: {counts['created']} created, "
                f"{counts['updated']} updated, {counts['deactivated']} deactivated"
            )
            return counts

        except IntegrityError as e:
            logger.error(f"Constraint violation during Slack user sync: {e}")
            raise DatabaseConstraintError(f"Slack user sync failed: {e}")

        except Exception as e:
            logger.error(f"Slack user sync failed: {e}", exc_info=True)
            raise DatabaseOperationError(f"Slack user sync failed: {e}")

    async def set_receive_reports(self, user_id: int, enabled: bool) -> UserDB:
        async with self.db.session() as session:
            result = await session.execute(select(UserDB).where(UserDB.id == user_id))
            user = result.scalar_one_or_none()
            if not user:
                raise EntityNotFoundError(f"User {user_id} not found")

            user.receive_reports = enabled
            user.updated_at = naive_utc_now()
            return user

    async def set_github_identity(
        self,
        user_id: int,
        github_username: str,
        encrypted_token: Optional[str] = None,
        github_user_id: Optional[str] = None,
    ) -> UserDB:
        """Attach a GitHub account (and optionally an encrypted token) to a user."""
        async with self.db.session() as session:
            result = await session.execute(select(UserDB).where(UserDB.id == user_id))
            user = result.scalar_one_or_none()
            if not user:
                raise EntityNotFoundError(f"User {user_id} not found")

            user.github_username = github_username
            user.github_user_id = github_user_id
            if encrypted_token is not None:
                user.github_access_token = encrypted_token
                user.github_connected_at = naive_utc_now()
            user.updated_at = naive_utc_now()
            logger.info(f"Linked GitHub account {github_username} to user {user_id}")
            return user


# Singleton
_user_repository: Optional[UserRepository] = None


def get_user_repository() -> UserRepository:
    """Get the user repository singleton."""
    global _user_repository
    if _user_repository is None:
        _user_repository = UserRepository()
    return _user_repository
