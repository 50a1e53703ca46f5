"""
Candidate invitation flow.

Steps run in order and fail independently: interview lookup, link
creation, candidate registration, email. Once the link exists the
invitation is reported as created even when the email could not be sent,
so the interviewer can share the URL by hand.
"""

from typing import Any, Dict, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from api.services.candidates import (
    create_candidate,
    get_candidate_by_email_and_role,
    serialize_candidate,
)
from api.services.interviews import get_or_create_interview
from api.services.links import DEFAULT_EXPIRY_DAYS, create_link, interview_url
from api.services.roles import require_role_owner
from core.errors import ConflictError, NotificationError, ValidationError
from core.integrations.email import EmailService, EmailTemplates
from core.utils.datetime import format_human
from core.utils.validators import validate_email
from database.models.interviewers import Interviewer

logger = logging.getLogger(__name__)

SENT_MESSAGE = "Interview invitation sent successfully"
EMAIL_FAILED_MESSAGE = "Interview link created successfully, but email failed to send"


async def invite(
    db: AsyncSession,
    email_service: EmailService,
    interviewer: Interviewer,
    role_id: int,
    candidate_email: str,
    expires_in_days: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Invite a candidate to record an interview for a role.

    Args:
        db: Database session
        email_service: Delivers the invitation
        interviewer: Caller; must own the role
        role_id: Role the candidate is invited for
        candidate_email: Recipient
        expires_in_days: Accepted but ignored; links always last 7 days

    Returns:
        Response payload with the link, candidate and email outcome

    Raises:
        ValidationError: Invalid email (nothing is written)
        NotFoundError: Unknown role
        OwnershipError: Role belongs to another interviewer
    """
    is_valid, result = validate_email(candidate_email)
    if not is_valid:
        raise ValidationError(result)
    candidate_email = result

    role = await require_role_owner(db, role_id, interviewer.id)
    interview = await get_or_create_interview(db, role.id)

    if expires_in_days is not None and expires_in_days != DEFAULT_EXPIRY_DAYS:
        logger.debug(f"Ignoring requested expiry of {expires_in_days} days")
    link = await create_link(db, candidate_email, interview.id, DEFAULT_EXPIRY_DAYS)

    try:
        candidate = serialize_candidate(await create_candidate(db, role.id, candidate_email))
    except ConflictError:
        candidate = await get_candidate_by_email_and_role(db, role.id, candidate_email)
        logger.info(f"Candidate already registered for role {role.id}, reusing")

    url = interview_url(link.unique_token)
    payload = {
        "link": {
            "id": link.id,
            "unique_token": link.unique_token,
            "interview_url": url,
            "expires_at": link.expires_at,
            "candidate_email": link.candidate_email,
        },
        "candidate": candidate,
    }

    template = EmailTemplates.interview_invitation(role.title, url, format_human(link.expires_at))
    try:
        await email_service.send(candidate_email, template["subject"], template["body"])
    except NotificationError as e:
        logger.warning(f"Invitation email failed for link {link.id}: {e}")
        return {
            "message": EMAIL_FAILED_MESSAGE,
            **payload,
            "email_sent": False,
            "email_error": e.message,
        }

    logger.info(f"Invitation sent for link {link.id}")
    return {"message": SENT_MESSAGE, **payload, "email_sent": True}
