"""Subscription related Celery tasks"""

from celery.utils.log import get_task_logger
from typing import Any, Dict
import asyncio

from sahal.core.celery_app import celery_app
from sahal.core.database import engine, get_db_context
from sahal.services.overdue_sweep import OverdueSweepService

logger = get_task_logger(__name__)

async def _run_sweep() -> Dict[str, Any]:
    try:
        async with get_db_context() as db:
            summary = await OverdueSweepService(db).run()
        return summary.model_dump()
    finally:
        # Pooled connections belong to this event loop
        await engine.dispose()

@celery_app.task(name="run_overdue_sweep")
def run_overdue_sweep():
    """Suspend overdue cards and send payment reminders"""
    try:
        result = asyncio.run(_run_sweep())
        logger.info(f"Overdue sweep result: {result}")
        return result

    except Exception as e:
        logger.error(f"Error running overdue sweep: {str(e)}")
        raise
