"""Candidate service functions."""

from typing import Any, Dict, Optional
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ValidationError, NotFoundError, ConflictError
from core.utils.validators import validate_email, email_local_part
from database.models.candidates import Candidate
from database.models.roles import Role

logger = logging.getLogger(__name__)

DUPLICATE_CANDIDATE_MESSAGE = "Candidate with this email already exists for this role"


def serialize_candidate(candidate: Candidate, role_title: Optional[str] = None) -> Dict[str, Any]:
    data = {
        "id": candidate.id,
        "role_id": candidate.role_id,
        "name": candidate.name,
        "email": candidate.email,
        "submitted": candidate.submitted,
        "created_at": candidate.created_at,
    }
    if role_title is not None:
        data["role_title"] = role_title
    return data


async def create_candidate(
    db: AsyncSession,
    role_id: int,
    email: str,
    name: Optional[str] = None,
) -> Candidate:
    """
    Register a candidate for a role.

    Raises:
        NotFoundError: Role does not exist
        ValidationError: Invalid email
        ConflictError: Candidate already registered for the role
    """
    is_valid, result = validate_email(email)
    if not is_valid:
        raise ValidationError(result)
    # Stored lowercased so the (role_id, email) constraint ignores case
    email = result.lower()

    if await db.get(Role, role_id) is None:
        raise NotFoundError("Role not found")

    candidate = Candidate(
        role_id=role_id,
        email=email,
        name=(name or "").strip() or email_local_part(email),
        submitted=False,
    )
    db.add(candidate)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_CANDIDATE_MESSAGE)

    await db.refresh(candidate)
    logger.info(f"Registered candidate {candidate.id} for role {role_id}")
    return candidate


async def get_candidate_by_email_and_role(
    db: AsyncSession,
    role_id: int,
    email: str,
) -> Optional[Dict[str, Any]]:
    """Candidate row plus the role title, or None."""
    result = await db.execute(
        select(Candidate, Role.title)
        .join(Role, Role.id == Candidate.role_id)
        .where(Candidate.role_id == role_id, func.lower(Candidate.email) == email.strip().lower())
    )
    row = result.first()
    if row is None:
        return None

    candidate, role_title = row
    return serialize_candidate(candidate, role_title)


async def set_submitted(db: AsyncSession, candidate_id: int, submitted: bool = True) -> None:
    await db.execute(
        update(Candidate).where(Candidate.id == candidate_id).values(submitted=submitted)
    )
    await db.commit()


def candidate_name_for(role_id_column, email_column):
    """
    Correlated scalar subquery: name of the candidate registered for a role
    under an email, compared case-insensitively. At most one row is read.
    """
    return (
        select(Candidate.name)
        .where(
            Candidate.role_id == role_id_column,
            func.lower(Candidate.email) == func.lower(email_column),
        )
        .order_by(Candidate.id.asc())
        .limit(1)
        .correlate_except(Candidate)
        .scalar_subquery()
    )
