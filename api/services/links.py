"""
Interview link service functions.

A link is the candidate's only credential: an opaque token bound to one
email and one interview. Access is checked with two predicates instead of a
single flag:

- readable: not expired (questions and answers stay reachable after use)
- writable: not expired and not yet used (onboarding steps)

Expiry is checked before use, so an expired link always reports expiry.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging
import secrets

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.candidates import candidate_name_for
from core.config import settings
from core.errors import ValidationError, NotFoundError, ExpiredError, AlreadyUsedError
from core.utils.datetime import ensure_utc, now as utcnow
from core.utils.validators import validate_email, coerce_positive_int
from database.models.interview_links import InterviewLink
from database.models.interviewers import Interviewer
from database.models.interviews import Interview
from database.models.roles import Role

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 7
TOKEN_BYTES = 32

INVALID_LINK_MESSAGE = "Invalid interview link"
EXPIRED_LINK_MESSAGE = "This interview link has expired"
USED_LINK_MESSAGE = "This interview link has already been used"


@dataclass
class LinkDetails:
    """An interview link with its role and interviewer context."""

    link: InterviewLink
    role_id: Optional[int] = None
    role_title: Optional[str] = None
    interviewer_id: Optional[int] = None
    interviewer_email: Optional[str] = None
    interviewer_name: Optional[str] = None

    @property
    def token(self) -> str:
        return self.link.unique_token

    @property
    def candidate_email(self) -> str:
        return self.link.candidate_email


def interview_url(token: str) -> str:
    """Candidate-facing URL for a link token."""
    return f"{settings.frontend_url.rstrip('/')}/interview/{token}"


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


async def database_now(db: AsyncSession) -> datetime:
    """Current time according to the database clock."""
    return ensure_utc(await db.scalar(select(func.now())))


async def create_link(
    db: AsyncSession,
    candidate_email: str,
    interview_id: int,
    expires_in_days: Any = DEFAULT_EXPIRY_DAYS,
) -> InterviewLink:
    """
    Issue a new link for a candidate.

    Args:
        db: Database session
        candidate_email: Address the link is bound to
        interview_id: Interview the link grants access to
        expires_in_days: Lifetime in days; anything non-positive or
            non-numeric falls back to 7

    Returns:
        The persisted link

    Raises:
        ValidationError: Invalid email or interview id
    """
    is_valid, result = validate_email(candidate_email)
    if not is_valid:
        raise ValidationError(result)
    candidate_email = result

    if isinstance(interview_id, bool) or not isinstance(interview_id, int) or interview_id < 1:
        raise ValidationError("A valid interview ID is required")

    days = coerce_positive_int(expires_in_days, DEFAULT_EXPIRY_DAYS)
    expires_at = await database_now(db) + timedelta(days=days)

    link = InterviewLink(
        candidate_email=candidate_email,
        interview_id=interview_id,
        unique_token=generate_token(),
        expires_at=expires_at,
        used=False,
    )
    db.add(link)
    await db.commit()
    await db.refresh(link)

    logger.info(f"Created interview link {link.id} for interview {interview_id}, expires in {days} days")
    return link


async def get_by_token(db: AsyncSession, token: str) -> Optional[LinkDetails]:
    """
    Load a link with role and interviewer context.

    When the enriched query fails the bare link is returned with only its
    role id, so candidate flows keep working.
    """
    if not token:
        return None

    try:
        result = await db.execute(
            select(
                InterviewLink,
                Interview.role_id,
                Role.title,
                Role.interviewer_id,
                Interviewer.email,
                Interviewer.name,
            )
            .join(Interview, Interview.id == InterviewLink.interview_id)
            .join(Role, Role.id == Interview.role_id)
            .outerjoin(Interviewer, Interviewer.id == Role.interviewer_id)
            .where(InterviewLink.unique_token == token)
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if row is None:
            return None

        link, role_id, role_title, interviewer_id, interviewer_email, interviewer_name = row
        return LinkDetails(
            link=link,
            role_id=role_id,
            role_title=role_title,
            interviewer_id=interviewer_id,
            interviewer_email=interviewer_email,
            interviewer_name=interviewer_name,
        )
    except SQLAlchemyError as e:
        logger.warning(f"Enriched link lookup failed, falling back to bare row: {e}")
        await db.rollback()

    result = await db.execute(
        select(InterviewLink, Interview.role_id)
        .outerjoin(Interview, Interview.id == InterviewLink.interview_id)
        .where(InterviewLink.unique_token == token)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        return None
    return LinkDetails(link=row[0], role_id=row[1])


async def require_readable(
    db: AsyncSession, token: str, at: Optional[datetime] = None
) -> LinkDetails:
    """
    Load a link that may still be read.

    Raises:
        NotFoundError: Unknown token
        ExpiredError: Link expired
    """
    details = await get_by_token(db, token)
    if details is None:
        raise NotFoundError(INVALID_LINK_MESSAGE)
    if not details.link.is_readable(at or utcnow()):
        raise ExpiredError(EXPIRED_LINK_MESSAGE)
    return details


async def require_writable(db: AsyncSession, token: str) -> LinkDetails:
    """
    Load a link that is live and unused.

    Raises:
        NotFoundError: Unknown token
        ExpiredError: Link expired (reported even when also used)
        AlreadyUsedError: Link already used
    """
    at = utcnow()
    details = await require_readable(db, token, at)
    if not details.link.is_writable(at):
        raise AlreadyUsedError(USED_LINK_MESSAGE)
    return details


async def mark_used(db: AsyncSession, token: str) -> None:
    """Set ``used`` on a link. Marking an already used link is a no-op."""
    result = await db.execute(
        update(InterviewLink)
        .where(InterviewLink.unique_token == token)
        .values(used=True)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Interview link not found")
    await db.commit()
    logger.info("Interview link marked as used", extra={"interview_token": token})


async def list_links_for_interview(db: AsyncSession, interview_id: int) -> List[Dict[str, Any]]:
    """Links of an interview with the candidate's registered name, newest first."""
    result = await db.execute(
        select(
            InterviewLink,
            candidate_name_for(Interview.role_id, InterviewLink.candidate_email),
        )
        .join(Interview, Interview.id == InterviewLink.interview_id)
        .where(InterviewLink.interview_id == interview_id)
        .order_by(InterviewLink.created_at.desc(), InterviewLink.id.desc())
    )

    return [
        {
            "id": link.id,
            "candidate_email": link.candidate_email,
            "candidate_name": candidate_name,
            "unique_token": link.unique_token,
            "interview_url": interview_url(link.unique_token),
            "expires_at": link.expires_at,
            "used": link.used,
            "created_at": link.created_at,
        }
        for link, candidate_name in result.all()
    ]
