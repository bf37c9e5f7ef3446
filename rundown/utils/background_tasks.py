"""
Safe background task execution with error handling.

HTTP triggers answer 202 and keep working here. Errors are logged with
stack traces and task references are held until completion so they are
not garbage collected mid-run.
"""

import asyncio
import logging
from typing import Coroutine, Any

logger = logging.getLogger(__name__)

# Track active tasks to prevent garbage collection
_active_background_tasks: set = set()


async def safe_background_task(coro: Coroutine, task_name: str) -> Any:
    """
    Await a coroutine, logging instead of propagating failures.

    Returns:
        Result of the coroutine if successful, None on error
    """
    try:
        result = await coro
        logger.info(f"✓ Background task completed: {task_name}")
        return result
    except Exception as e:
        logger.error(
            f"✗ Background task failed: {task_name} - {e}",
            exc_info=True
        )
        return None


def create_safe_task(coro: Coroutine, task_name: str) -> asyncio.Task:
    """
    Create a background task with error handling.

    Example:
        create_safe_task(delivery.deliver_report_to_all(), "weekly-report-manual")
    """
    task = asyncio.create_task(
        safe_background_task(coro, task_name)
    )

    _active_background_tasks.add(task)
    task.add_done_callback(_active_background_tasks.discard)

    logger.debug(f"Created safe background task: {task_name}")
    return task


def active_task_count() -> int:
    return len(_active_background_tasks)
