"""
Celery tasks for releasing expired seat holds.
"""

import asyncio
import logging

from .celery_app import celery_app
from ..database import create_database_engine, create_session_factory
from ..services.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="sweep_expired_holds_task")
def sweep_expired_holds_task(self):
    """
    Periodic task that returns lapsed holds to available.

    Runs on the beat schedule for deployments that disable the in-process
    sweeper. Each run uses its own event loop, so it also uses its own
    engine.
    """

    async def _sweep():
        engine = create_database_engine()
        try:
            sweeper = ExpirySweeper(create_session_factory(engine))
            released = await sweeper.sweep_once()
            logger.info(f"Released {released} expired seats")
            return {"released_count": released}
        finally:
            await engine.dispose()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_sweep())
    except Exception as e:
        logger.error(f"Error in expired hold sweep task: {e}")
        raise
    finally:
        loop.close()
