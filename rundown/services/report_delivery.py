"""
Report delivery.

Sends each recipient their report as a Slack DM and records every attempt
in report_delivery_logs. A report rendered by a preview is sent as-is; a
successful send drops it from the cache so the next run starts fresh.
"""

import asyncio
import logging
from typing import Optional

from config import settings
from ..database.exceptions import DatabaseError, EntityNotFoundError
from ..database.models import DeliveryStatusEnum, UserDB
from ..database.repositories.delivery_logs import get_delivery_log_repository
from ..database.repositories.users import get_user_repository
from ..integrations.slack import SlackClient, get_slack_client
from ..models.report import DeliveryResult, DeliverySummary, ReportResult
from ..utils.datetime_utils import utc_now
from .exceptions import DeliveryStateError
from .report_cache import ReportCache, get_report_cache
from .report_generation import ReportGenerator, get_report_generator

logger = logging.getLogger(__name__)


class ReportDeliveryService:
    """Generates, sends and logs reports."""

    def __init__(
        self,
        slack: Optional[SlackClient] = None,
        generator: Optional[ReportGenerator] = None,
        cache: Optional[ReportCache] = None,
    ):
        self.slack = slack or get_slack_client()
        self.generator = generator or get_report_generator()
        self.cache = cache or get_report_cache()
        self.logs = get_delivery_log_repository()
        self.users = get_user_repository()

    async def _log(self, user_id: int, status: DeliveryStatusEnum, report: Optional[ReportResult] = None,
                   error: Optional[str] = None) -> Optional[int]:
        """Write a delivery log. A logging failure never changes the delivery outcome."""
        today = utc_now().date()
        try:
            log = await self.logs.create(
                user_id=user_id,
                status=status,
                error_message=error,
                message_content=report.report_text if report else None,
                report_period_start=report.period_start.date() if report else today,
                report_period_end=report.period_end.date() if report else today,
                issues_count=report.issues_count if report else None,
                in_cooldown=report.in_cooldown if report else False,
            )
            return log.id
        except DatabaseError as e:
            logger.error(f"Failed to log delivery for user {user_id}: {e}")
            return None

    async def _get_or_generate(self, user: UserDB) -> ReportResult:
        cached = await self.cache.get(user.id)
        if cached:
            logger.info(f"Using cached report for user {user.id}")
            return cached
        return await self.generator.generate_report_for_user(user)

    async def preview_report(self, user: UserDB) -> ReportResult:
        """Render (or reuse) a user's report and keep it for the next delivery."""
        report = await self._get_or_generate(user)
        await self.cache.set(user.id, report)
        return report

    async def deliver_report(self, user: UserDB) -> DeliveryResult:
        """Deliver one user's report. Never raises; the outcome is logged and returned."""
        logger.info(f"Delivering report to user {user.id} ({user.email})")

        if not user.slack_user_id:
            error = f"User {user.email} does not have a Slack user ID mapped"
            logger.warning(error)
            log_id = await self._log(user.id, DeliveryStatusEnum.SKIPPED, error=error)
            return DeliveryResult(user_id=user.id, success=False, skipped=True, error=error, log_id=log_id)

        try:
            report = await self._get_or_generate(user)
            sent = await self.slack.send_direct_message(user.slack_user_id, report.report_text)
        except Exception as e:
            logger.error(f"Error delivering report to user {user.id}: {e}", exc_info=True)
            log_id = await self._log(user.id, DeliveryStatusEnum.FAILED, error=str(e))
            return DeliveryResult(user_id=user.id, success=False, error=str(e), log_id=log_id)

        if sent.success:
            await self.cache.invalidate(user.id)
            log_id = await self._log(user.id, DeliveryStatusEnum.SUCCESS, report=report)
            logger.info(f"✅ Delivered report to user {user.id}")
            return DeliveryResult(user_id=user.id, success=True, log_id=log_id)

        log_id = await self._log(user.id, DeliveryStatusEnum.FAILED, report=report, error=sent.error)
        logger.warning(f"❌ Failed to deliver report to user {user.id}: {sent.error}")
        return DeliveryResult(user_id=user.id, success=False, error=sent.error, log_id=log_id)

    async def deliver_report_to_all(self) -> DeliverySummary:
        """Deliver to every active recipient, one at a time."""
        summary = DeliverySummary(started_at=utc_now())
        recipients = await self.users.get_report_recipients()
        summary.total_users = len(recipients)
        logger.info(f"Delivering reports to {len(recipients)} users")

        for user in recipients:
            summary.record(await self.deliver_report(user))

        summary.finished_at = utc_now()
        logger.info(
            f"Delivery complete: {summary.success_count} succeeded, "
            f"{summary.failure_count} failed, {summary.skipped_count} skipped"
        )
        return summary

    async def retry_failed_delivery(
        self,
        log_id: int,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
    ) -> DeliveryResult:
        """
        Re-deliver the report behind a failed log entry with exponential backoff.

        Raises:
            EntityNotFoundError: If the log or its user does not exist
            DeliveryStateError: If the log is not in the failed state
        """
        max_attempts = max_attempts or settings.delivery_max_retries
        delay = base_delay if base_delay is not None else settings.delivery_retry_base_delay

        log = await self.logs.get_by_id(log_id)
        if not log:
            raise EntityNotFoundError(f"Delivery log {log_id} not found")
        if log.status != DeliveryStatusEnum.FAILED.value:
            raise DeliveryStateError(f"Delivery log {log_id} is not in failed state")

        user = await self.users.get_by_id(log.user_id)
        if not user:
            raise EntityNotFoundError(f"User {log.user_id} not found")

        last_error: Optional[str] = None
        for attempt in range(1, max_attempts + 1):
            logger.info(f"Retry attempt {attempt}/{max_attempts} for user {user.id}")
            result = await self.deliver_report(user)
            if result.success:
                logger.info(f"Retry succeeded on attempt {attempt} for user {user.id}")
                return result

            last_error = result.error
            if attempt < max_attempts:
                await asyncio.sleep(delay)
                delay *= 2

        logger.error(f"All retry attempts exhausted for user {user.id}")
        return DeliveryResult(
            user_id=user.id,
            success=False,
            error=f"Failed after {max_attempts} retries: {last_error}",
        )


# Singleton
_report_delivery_service: Optional[ReportDeliveryService] = None


def get_report_delivery_service() -> ReportDeliveryService:
    global _report_delivery_service
    if _report_delivery_service is None:
        _report_delivery_service = ReportDeliveryService()
    return _report_delivery_service
