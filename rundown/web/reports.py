"""
Report endpoints: manual delivery, previews and delivery logs.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from ..database.exceptions import EntityNotFoundError
from ..database.models import DeliveryStatusEnum
from ..database.repositories.delivery_logs import get_delivery_log_repository
from ..models.api_validation import TriggerReportRequest, PreviewReportRequest, RetryDeliveryRequest
from ..services.exceptions import DataSourceUnavailable, DeliveryStateError, UserMappingError
from ..services.report_delivery import get_report_delivery_service
from ..utils.background_tasks import create_safe_task
from .common import get_user_or_404, require_credentials
from .serializers import delivery_log_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("/trigger", status_code=202)
async def trigger_report(request: TriggerReportRequest):
    """Deliver reports in the background, to one user or to every recipient."""
    require_credentials(slack=True, linear=True)
    delivery = get_report_delivery_service()

    if request.user_id is not None:
        user = await get_user_or_404(request.user_id)
        create_safe_task(delivery.deliver_report(user), f"report-delivery-{user.id}")
        logger.info(f"Manual report delivery started for user {user.id}")
        return {"ok": True, "message": f"Report delivery started for user {user.id}"}

    create_safe_task(delivery.deliver_report_to_all(), "report-delivery-all")
    logger.info("Manual report delivery started for all recipients")
    return {"ok": True, "message": "Report delivery started for all recipients"}


@router.post("/preview")
async def preview_report(request: PreviewReportRequest):
    """Render a user's report without sending it. The next delivery reuses it."""
    require_credentials(linear=True)
    user = await get_user_or_404(request.user_id)

    try:
        report = await get_report_delivery_service().preview_report(user)
    except UserMappingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DataSourceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {"user_id": user.id, **report.to_dict()}


@router.post("/deliveries/{log_id}/retry")
async def retry_delivery(log_id: int, request: Optional[RetryDeliveryRequest] = None):
    """Retry a failed delivery with exponential backoff."""
    require_credentials(slack=True, linear=True)
    request = request or RetryDeliveryRequest()

    try:
        result = await get_report_delivery_service().retry_failed_delivery(
            log_id,
            max_attempts=request.max_attempts,
            base_delay=request.base_delay,
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DeliveryStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return result.to_dict()


@router.get("/deliveries")
async def list_deliveries(
    user_id: Optional[int] = Query(None, gt=0),
    status: Optional[DeliveryStatusEnum] = None,
    limit: int = Query(50, ge=1, le=500),
):
    """Most recent delivery attempts, newest first."""
    repo = get_delivery_log_repository()
    logs = await repo.get_recent(user_id=user_id, status=status, limit=limit)
    return {
        "deliveries": [delivery_log_to_dict(log) for log in logs],
        "count": len(logs),
    }
