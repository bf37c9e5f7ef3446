"""
HTTP API routers.
"""

from .reports import router as reports_router
from .cooldown import router as cooldown_router
from .sync_status import router as sync_status_router
from .user_issues import router as user_issues_router
from .users import router as users_router
from .work_items import router as work_items_router
from .jobs import router as jobs_router

routers = [
    reports_router,
    cooldown_router,
    sync_status_router,
    user_issues_router,
    users_router,
    work_items_router,
    jobs_router,
]

__all__ = ["routers"]
