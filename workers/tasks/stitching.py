"""
Deferred interview assembly.

Queued when the last expected answer is stored. Each run compares the
number of stored answers with the role's question count; while answers are
missing it re-schedules itself until the wait budget is spent, then
assembles whatever was recorded.
"""

import asyncio
import logging
import time
from typing import Optional, Tuple

from celery import Task

from api.services.links import get_by_token
from api.services.stitcher import stitch
from api.services.video_answers import completion_counts
from core.config import settings
from core.errors import NoAnswersError, NotFoundError, StitchingError
from core.integrations.email import get_email_service
from core.storage import get_storage
from core.video import get_transcoder
from database.engine import task_session
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _progress(token: str) -> Tuple[int, int]:
    async with task_session() as db:
        details = await get_by_token(db, token)
        if details is None or details.role_id is None:
            raise NotFoundError("Interview link not found")
        return await completion_counts(db, token, details.role_id)


async def _assemble(token: str):
    async with task_session() as db:
        return await stitch(db, get_storage(), get_transcoder(), get_email_service(), token)


@celery_app.task(name="workers.tasks.stitching.stitch_interview", bind=True, max_retries=None)
def stitch_interview(self: Task, token: str, started_at: Optional[float] = None) -> dict:
    """Assemble an interview once all answers exist, or after the wait budget.

    Args:
        token: Interview link token
        started_at: Epoch seconds of the first attempt (set on retries)

    Returns:
        Dictionary with the assembly status
    """
    started_at = started_at or time.time()

    try:
        answered, expected = asyncio.run(_progress(token))
    except NotFoundError:
        logger.warning("Assembly requested for an unknown interview link")
        return {"status": "skipped", "reason": "link_not_found"}

    if answered < expected:
        waited = time.time() - started_at
        if waited < settings.stitch_max_wait_seconds:
            logger.info(f"Waiting for answers ({answered}/{expected}) after {waited:.0f}s")
            raise self.retry(
                args=[token],
                kwargs={"started_at": started_at},
                countdown=settings.stitch_poll_interval_seconds,
            )
        logger.warning(
            f"Answers still incomplete ({answered}/{expected}) after {waited:.0f}s, "
            f"assembling what was recorded"
        )

    if answered == 0:
        logger.warning("No answers recorded, giving up on assembly")
        return {"status": "skipped", "reason": "no_answers"}

    try:
        result = asyncio.run(_assemble(token))
    except NoAnswersError:
        return {"status": "skipped", "reason": "no_answers"}
    except StitchingError as e:
        logger.error(f"Deferred assembly failed: {e.message}")
        return {"status": "failed", "error": e.message}

    return {
        "status": "completed",
        "stitched_url": result.url,
        "from_cache": result.from_cache,
        "answer_count": answered,
    }


def queue_stitch(token: str) -> str:
    """Schedule assembly after the grace period; returns the task id."""
    task = stitch_interview.apply_async(
        args=[token],
        countdown=settings.stitch_grace_seconds,
    )
    logger.info(f"Queued interview assembly task {task.id}")
    return task.id
