"""
Interview assembly.

Turns the per-question recordings of an interview link into one MP4:
each answer gets its question burned in, the clips are concatenated, the
result is uploaded and its URL cached on the link. A cached URL is returned
as is, so repeated requests never re-encode.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List
import asyncio
import logging
import shutil
import tempfile

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.links import LinkDetails, get_by_token
from core.errors import NoAnswersError, NotFoundError, NotificationError, StitchingError
from core.integrations.email import EmailService, EmailTemplates
from core.storage import BlobStorage, parse_data_uri
from core.utils.datetime import now as utcnow
from core.video import FFmpegTranscoder
from database.models.interview_links import InterviewLink, ProcessingStatus
from database.models.questions import Question
from database.models.video_answers import VideoAnswer

logger = logging.getLogger(__name__)

FINAL_CONTENT_TYPE = "video/mp4"
FINAL_CACHE_CONTROL = "public, max-age=31536000"


@dataclass
class StitchResult:
    """URL of the assembled interview and whether it came from the cache."""

    url: str
    from_cache: bool


def final_video_key(candidate_email: str, token: str) -> str:
    return f"{candidate_email}/{token}/final_interview.mp4"


async def _set_status(db: AsyncSession, token: str, status: ProcessingStatus) -> None:
    await db.execute(
        update(InterviewLink)
        .where(InterviewLink.unique_token == token)
        .values(processing_status=status.value)
    )
    await db.commit()


async def _mark_failed(db: AsyncSession, token: str, error: Exception) -> None:
    logger.error(f"Interview assembly failed: {error}", extra={"interview_token": token})
    await db.rollback()
    await _set_status(db, token, ProcessingStatus.FAILED)


async def _ordered_answers(db: AsyncSession, token: str) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(VideoAnswer.video_url, Question.question_order, Question.question_text)
        .join(Question, Question.id == VideoAnswer.question_id)
        .where(VideoAnswer.interview_link_token == token)
        .order_by(Question.question_order.asc(), Question.id.asc())
    )
    return [
        {"video_url": url, "question_order": order, "question_text": text}
        for url, order, text in result.all()
    ]


async def _fetch_video(storage: BlobStorage, url: str) -> bytes:
    inline = parse_data_uri(url) if url.startswith("data:") else None
    if inline is not None:
        return inline[1]

    key = storage.key_from_url(url)
    if not key:
        raise StitchingError("Answer video URL cannot be resolved to a storage key")
    return await storage.download(key)


async def _assemble(
    storage: BlobStorage,
    transcoder: FFmpegTranscoder,
    details: LinkDetails,
    answers: List[Dict[str, Any]],
) -> str:
    token = details.token
    work_dir = Path(tempfile.mkdtemp(prefix=f"interview_{token}_"))

    try:
        clips = []
        for number, answer in enumerate(answers, start=1):
            raw_path = work_dir / f"answer_{number}.webm"
            data = await _fetch_video(storage, answer["video_url"])
            await asyncio.to_thread(raw_path.write_bytes, data)

            clip_path = work_dir / f"processed_{number}.mp4"
            await transcoder.overlay(raw_path, clip_path, number, answer["question_text"])
            clips.append(clip_path)
            logger.debug(f"Captioned clip {number}/{len(answers)}")

        final_path = await transcoder.concat(clips, work_dir / "final.mp4")
        final_bytes = await asyncio.to_thread(final_path.read_bytes)

        return await storage.put(
            final_bytes,
            final_video_key(details.candidate_email, token),
            content_type=FINAL_CONTENT_TYPE,
            cache_control=FINAL_CACHE_CONTROL,
        )
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)


async def _notify_candidate(
    email_service: EmailService,
    details: LinkDetails,
    answer_count: int,
    url: str,
) -> None:
    template = EmailTemplates.interview_completed(details.role_title, answer_count, url)
    try:
        await email_service.send(details.candidate_email, template["subject"], template["body"])
    except NotificationError as e:
        logger.warning(f"Completion email failed: {e}")


async def stitch(
    db: AsyncSession,
    storage: BlobStorage,
    transcoder: FFmpegTranscoder,
    email_service: EmailService,
    token: str,
) -> StitchResult:
    """
    Assemble the interview recorded through ``token``.

    Args:
        db: Database session
        storage: Object storage backend
        transcoder: ffmpeg wrapper
        email_service: Sends the completion email to the candidate
        token: Interview link token

    Returns:
        StitchResult with the final video URL

    Raises:
        NotFoundError: Unknown token
        NoAnswersError: No answers recorded
        StitchingError: Download, encoding or upload failed
    """
    details = await get_by_token(db, token)
    if details is None:
        raise NotFoundError("Interview link not found")

    if details.link.stitched_video_url:
        logger.info("Returning cached interview video", extra={"interview_token": token})
        return StitchResult(url=details.link.stitched_video_url, from_cache=True)

    await _set_status(db, token, ProcessingStatus.PROCESSING)

    try:
        answers = await _ordered_answers(db, token)
        if not answers:
            raise NoAnswersError("No video answers found for this interview")

        logger.info(f"Assembling {len(answers)} answers", extra={"interview_token": token})
        url = await _assemble(storage, transcoder, details, answers)
    except (NoAnswersError, StitchingError) as e:
        await _mark_failed(db, token, e)
        raise
    except Exception as e:
        await _mark_failed(db, token, e)
        raise StitchingError("Failed to assemble interview video") from e

    await db.execute(
        update(InterviewLink)
        .where(InterviewLink.unique_token == token)
        .values(
            stitched_video_url=url,
            stitched_at=utcnow(),
            processing_status=ProcessingStatus.COMPLETED.value,
        )
    )
    await db.commit()
    logger.info("Interview video assembled", extra={"interview_token": token})

    await _notify_candidate(email_service, details, len(answers), url)
    return StitchResult(url=url, from_cache=False)
