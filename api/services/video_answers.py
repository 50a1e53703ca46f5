"""
Video answer service functions.

Covers the candidate upload path (admission, storage, upsert, completion
signal), the interviewer read side (aggregated responses, per-interview
detail) and the ownership-checked streaming proxy with HTTP range support.
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
import logging
import re
import time

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.candidates import candidate_name_for
from api.services.links import LinkDetails, get_by_token, require_readable
from core.config import settings
from core.errors import (
    EmailMismatchError,
    NotFoundError,
    OwnershipError,
    StorageError,
    ValidationError,
)
from core.storage import BlobStorage, parse_data_uri, to_data_uri
from core.storage.base import STREAM_CHUNK_SIZE
from core.utils.validators import email_slug, emails_match
from database.engine import dialect_insert
from database.models.interview_links import InterviewLink
from database.models.interviews import Interview
from database.models.questions import Question
from database.models.roles import Role
from database.models.video_answers import VideoAnswer

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/webm"
VIDEO_CACHE_CONTROL = "public, max-age=31536000"

RANGE_PATTERN = re.compile(r'^bytes=(\d*)-(\d*)$')


# ============================================================================
# Serialization
# ============================================================================

def serialize_answer(
    answer: VideoAnswer,
    question_text: Optional[str] = None,
    question_order: Optional[int] = None,
) -> Dict[str, Any]:
    data = {
        "id": answer.id,
        "interview_link_token": answer.interview_link_token,
        "question_id": answer.question_id,
        "candidate_email": answer.candidate_email,
        "video_url": answer.video_url,
        "recording_duration": answer.recording_duration,
        "created_at": answer.created_at,
    }
    if question_text is not None:
        data["question_text"] = question_text
    if question_order is not None:
        data["question_order"] = question_order
    return data


# ============================================================================
# Upload path
# ============================================================================

def build_answer_key(
    token: str,
    question_id: int,
    candidate_email: str,
    timestamp_ms: Optional[int] = None,
) -> str:
    """
    Storage key for one recorded answer.

    The upload timestamp keeps retried uploads from overwriting each other;
    the superseded object is left in storage.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"interviews/{token}/{question_id}-{email_slug(candidate_email)}-{timestamp_ms}.webm"


async def _store_video(storage: BlobStorage, key: str, video_bytes: bytes) -> str:
    try:
        return await storage.put(
            video_bytes,
            key,
            content_type=VIDEO_CONTENT_TYPE,
            cache_control=VIDEO_CACHE_CONTROL,
        )
    except (StorageError, OSError) as e:
        if settings.is_production:
            logger.error(f"Video upload failed for {key}: {e}")
            raise StorageError("Failed to upload video to storage") from e

        logger.warning(f"Video upload failed for {key}, storing inline for development: {e}")
        return to_data_uri(video_bytes, VIDEO_CONTENT_TYPE)


async def completion_counts(db: AsyncSession, token: str, role_id: int) -> Tuple[int, int]:
    """(answers recorded for ``token``, questions defined for ``role_id``)."""
    answered = await db.scalar(
        select(func.count(VideoAnswer.id)).where(VideoAnswer.interview_link_token == token)
    )
    expected = await db.scalar(
        select(func.count(Question.id)).where(Question.role_id == role_id)
    )
    return answered or 0, expected or 0


def _signal_completion(token: str) -> None:
    try:
        from workers.tasks.stitching import queue_stitch
        queue_stitch(token)
    except Exception as e:
        logger.warning(f"Failed to queue interview assembly: {e}")


async def submit_answer(
    db: AsyncSession,
    storage: BlobStorage,
    token: str,
    question_id: int,
    candidate_email: str,
    video_bytes: bytes,
    duration_seconds: Optional[float] = None,
) -> VideoAnswer:
    """
    Admit a recorded answer for one question.

    The link must be readable (used links are accepted, the candidate marks
    the link used before recording). Re-submitting a question replaces the
    previous answer. Once every question of the role has an answer the
    deferred assembly job is queued.

    Args:
        db: Database session
        storage: Object storage backend
        token: Interview link token
        question_id: Question being answered
        candidate_email: Email typed by the candidate
        video_bytes: Recorded WebM payload
        duration_seconds: Client-measured recording length

    Returns:
        The stored answer

    Raises:
        NotFoundError: Unknown link or question
        ExpiredError: Link expired
        EmailMismatchError: Email differs from the invitation
        ValidationError: Empty upload
        StorageError: Upload failed in production
    """
    details = await require_readable(db, token)

    if not emails_match(candidate_email, details.candidate_email):
        raise EmailMismatchError("Email does not match the invitation email")

    if not video_bytes:
        raise ValidationError("Video file is required")

    question = await db.get(Question, question_id)
    if question is None or (details.role_id is not None and question.role_id != details.role_id):
        raise NotFoundError("Question not found")

    candidate_email = candidate_email.strip()
    key = build_answer_key(token, question_id, candidate_email)
    video_url = await _store_video(storage, key, video_bytes)

    stmt = dialect_insert(db, VideoAnswer).values(
        interview_link_token=token,
        question_id=question_id,
        candidate_email=candidate_email,
        video_url=video_url,
        recording_duration=duration_seconds,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[VideoAnswer.interview_link_token, VideoAnswer.question_id],
        set_={
            "video_url": stmt.excluded.video_url,
            "recording_duration": stmt.excluded.recording_duration,
            "candidate_email": stmt.excluded.candidate_email,
            "created_at": func.now(),
        },
    )
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(
        select(VideoAnswer)
        .where(
            VideoAnswer.interview_link_token == token,
            VideoAnswer.question_id == question_id,
        )
        .execution_options(populate_existing=True)
    )
    answer = result.scalar_one()
    logger.info(
        f"Stored answer for question {question_id} ({len(video_bytes)} bytes)",
        extra={"interview_token": token},
    )

    if details.role_id is not None:
        answered, expected = await completion_counts(db, token, details.role_id)
        if expected and answered >= expected and settings.auto_stitch_enabled:
            logger.info(f"All {expected} answers recorded, queueing assembly")
            _signal_completion(token)

    return answer


# ============================================================================
# Read side
# ============================================================================

async def _answers_with_questions(db: AsyncSession, token: str) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(VideoAnswer, Question.question_text, Question.question_order)
        .join(Question, Question.id == VideoAnswer.question_id)
        .where(VideoAnswer.interview_link_token == token)
        .order_by(Question.question_order.asc(), Question.id.asc())
        .execution_options(populate_existing=True)
    )
    return [
        serialize_answer(answer, question_text, question_order)
        for answer, question_text, question_order in result.all()
    ]


async def list_answers(db: AsyncSession, token: str) -> List[Dict[str, Any]]:
    """Answers recorded through a readable link, in question order."""
    await require_readable(db, token)
    return await _answers_with_questions(db, token)


async def list_for_interviewer(
    db: AsyncSession,
    interviewer_id: int,
    role_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Aggregated responses for an interviewer, one row per interview link.

    Only used links with at least one answer are listed, most recent answer
    first.
    """
    last_answer_at = func.max(VideoAnswer.created_at)

    query = (
        select(
            InterviewLink.unique_token,
            InterviewLink.candidate_email,
            candidate_name_for(Role.id, InterviewLink.candidate_email),
            Role.id,
            Role.title,
            func.count(VideoAnswer.id),
            last_answer_at,
            InterviewLink.stitched_video_url,
            InterviewLink.processing_status,
            InterviewLink.expires_at,
        )
        .join(Interview, Interview.id == InterviewLink.interview_id)
        .join(Role, Role.id == Interview.role_id)
        .join(VideoAnswer, VideoAnswer.interview_link_token == InterviewLink.unique_token)
        .where(Role.interviewer_id == interviewer_id, InterviewLink.used.is_(True))
        .group_by(InterviewLink.id, Role.id)
        .order_by(last_answer_at.desc().nulls_last(), InterviewLink.id.desc())
    )
    if role_id is not None:
        query = query.where(Role.id == role_id)
    if limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return [
        {
            "interview_token": row[0],
            "candidate_email": row[1],
            "candidate_name": row[2],
            "role_id": row[3],
            "role_title": row[4],
            "answer_count": row[5],
            "last_answer_at": row[6],
            "stitched_video_url": row[7],
            "processing_status": row[8],
            "expires_at": row[9],
        }
        for row in result.all()
    ]


def _require_owner(details: Optional[LinkDetails], interviewer_id: int) -> LinkDetails:
    if details is None:
        raise NotFoundError("Interview not found")
    if details.interviewer_id != interviewer_id:
        raise OwnershipError("You do not have access to this interview")
    return details


async def require_link_owner(db: AsyncSession, token: str, interviewer_id: int) -> LinkDetails:
    """Load a link and check the interview belongs to ``interviewer_id``."""
    return _require_owner(await get_by_token(db, token), interviewer_id)


async def get_interview_detail(
    db: AsyncSession,
    interviewer_id: int,
    token: str,
) -> Dict[str, Any]:
    """Link, role metadata and answers of one interview for its owner."""
    details = await require_link_owner(db, token, interviewer_id)
    link = details.link

    return {
        "interview": {
            "id": link.id,
            "unique_token": link.unique_token,
            "candidate_email": link.candidate_email,
            "interview_id": link.interview_id,
            "expires_at": link.expires_at,
            "used": link.used,
            "created_at": link.created_at,
            "processing_status": link.processing_status,
            "stitched_at": link.stitched_at,
            "role_id": details.role_id,
            "role_title": details.role_title,
            "interviewer_name": details.interviewer_name,
            "interviewer_email": details.interviewer_email,
        },
        "video_answers": await _answers_with_questions(db, token),
        "stitched_video_url": link.stitched_video_url,
    }


# ============================================================================
# Streaming proxy
# ============================================================================

class RangeNotSatisfiable(Exception):
    """The requested byte range starts past the end of the object."""


@dataclass
class VideoStream:
    """Status, headers and body of a proxied video response."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    media_type: Optional[str] = None
    body: Optional[AsyncIterator[bytes]] = None


def parse_range(range_header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """
    Parse a single ``Range: bytes=...`` header against an object size.

    Supports ``start-end``, open ended ``start-`` and suffix ``-length``
    forms. Multiple ranges and malformed headers are ignored (full body).

    Returns:
        Inclusive (start, end) or None when the whole object should be sent

    Raises:
        RangeNotSatisfiable: Range starts at or after ``size``
    """
    if not range_header:
        return None

    match = RANGE_PATTERN.match(range_header.strip())
    if not match:
        return None

    first, last = match.groups()
    if not first and not last:
        return None

    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable()
        return max(size - suffix, 0), size - 1

    start = int(first)
    if start >= size:
        raise RangeNotSatisfiable()

    end = int(last) if last else size - 1
    if end < start:
        return None
    return start, min(end, size - 1)


async def _iter_bytes(data: bytes, start: int, end: int) -> AsyncIterator[bytes]:
    for offset in range(start, end + 1, STREAM_CHUNK_SIZE):
        yield data[offset:min(offset + STREAM_CHUNK_SIZE, end + 1)]


async def resolve_video_owner(db: AsyncSession, url: str) -> int:
    """
    Interviewer that owns the answer or assembled interview stored at ``url``.

    Raises:
        NotFoundError: No answer or interview references the URL
    """
    owner = await db.scalar(
        select(Role.interviewer_id)
        .select_from(VideoAnswer)
        .join(InterviewLink, InterviewLink.unique_token == VideoAnswer.interview_link_token)
        .join(Interview, Interview.id == InterviewLink.interview_id)
        .join(Role, Role.id == Interview.role_id)
        .where(VideoAnswer.video_url == url)
        .limit(1)
    )
    if owner is None:
        owner = await db.scalar(
            select(Role.interviewer_id)
            .select_from(InterviewLink)
            .join(Interview, Interview.id == InterviewLink.interview_id)
            .join(Role, Role.id == Interview.role_id)
            .where(InterviewLink.stitched_video_url == url)
            .limit(1)
        )
    if owner is None:
        raise NotFoundError("Video not found")
    return owner


async def open_video_stream(
    db: AsyncSession,
    storage: BlobStorage,
    interviewer_id: int,
    url: str,
    range_header: Optional[str] = None,
) -> VideoStream:
    """
    Prepare a proxied, range-aware stream of a stored video.

    Args:
        db: Database session
        storage: Object storage backend
        interviewer_id: Caller; must own the interview the video belongs to
        url: Stored video URL (answer or assembled interview)
        range_header: Raw ``Range`` request header

    Returns:
        VideoStream with 200, 206 or 416 status

    Raises:
        ValidationError: Missing or unresolvable URL
        NotFoundError: Unknown video
        OwnershipError: Video belongs to another interviewer
    """
    if not url:
        raise ValidationError("url query parameter is required")

    if await resolve_video_owner(db, url) != interviewer_id:
        raise OwnershipError("You do not have access to this video")

    inline = parse_data_uri(url) if url.startswith("data:") else None
    if inline is not None:
        content_type, payload = inline
        size = len(payload)
        key = None
    else:
        key = storage.key_from_url(url)
        if not key:
            raise ValidationError("Unsupported video URL")
        meta = await storage.metadata(key)
        content_type, size = meta.content_type, meta.size

    try:
        byte_range = parse_range(range_header, size)
    except RangeNotSatisfiable:
        return VideoStream(
            status_code=416,
            headers={"Content-Range": f"bytes */{size}", "Accept-Ranges": "bytes"},
        )

    if byte_range is None:
        start, end, status_code = 0, size - 1, 200
        headers = {"Content-Length": str(size), "Accept-Ranges": "bytes"}
    else:
        start, end = byte_range
        status_code = 206
        headers = {
            "Content-Range": f"bytes {start}-{end}/{size}",
            "Content-Length": str(end - start + 1),
            "Accept-Ranges": "bytes",
        }

    if size == 0:
        body = _iter_bytes(b"", 0, -1)
    elif inline is not None:
        body = _iter_bytes(payload, start, end)
    else:
        body = storage.get_range(key, start, end)

    return VideoStream(
        status_code=status_code,
        headers=headers,
        media_type=content_type,
        body=body,
    )
