"""Role service functions."""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ValidationError, NotFoundError, ConflictError, OwnershipError
from database.engine import dialect_name
from database.models.interviewers import Interviewer
from database.models.roles import Role, ROLE_TITLE_MAX_LENGTH

logger = logging.getLogger(__name__)


def _normalize_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Role title is required")
    if len(title) > ROLE_TITLE_MAX_LENGTH:
        raise ValidationError(f"Role title must be at most {ROLE_TITLE_MAX_LENGTH} characters")
    return title


async def reserve_id(db: AsyncSession, explicit_id: int) -> None:
    """
    Advance the role id generator past ``explicit_id``.

    Rows inserted with caller-supplied ids do not consume the sequence, so the
    next generated id could collide with them. Engines without sequences pick
    ``max(id) + 1`` on their own and need nothing here.
    """
    if dialect_name(db) != "postgresql":
        return

    await db.execute(
        text(
            "SELECT setval(pg_get_serial_sequence('roles', 'id'), "
            "GREATEST(COALESCE((SELECT MAX(id) FROM roles), 0), :explicit_id) + 1, false)"
        ),
        {"explicit_id": explicit_id},
    )


async def create_role(
    db: AsyncSession,
    interviewer_id: int,
    title: str,
    explicit_id: Optional[int] = None,
) -> Role:
    """
    Create a role for an interviewer.

    Args:
        db: Database session
        interviewer_id: Owner of the role
        title: Role title, trimmed, 1..150 characters
        explicit_id: Optional caller-chosen id; must be positive and unused

    Raises:
        ValidationError: Bad title or id
        NotFoundError: Interviewer does not exist
        ConflictError: ``explicit_id`` is taken
    """
    title = _normalize_title(title)

    if explicit_id is not None:
        if isinstance(explicit_id, bool) or not isinstance(explicit_id, int) or explicit_id < 1:
            raise ValidationError("Role ID must be a positive integer")

    interviewer = await db.get(Interviewer, interviewer_id)
    if interviewer is None:
        raise NotFoundError("Interviewer not found")

    if explicit_id is not None and await db.get(Role, explicit_id) is not None:
        raise ConflictError("Role ID already exists")

    role = Role(interviewer_id=interviewer_id, title=title)
    if explicit_id is not None:
        role.id = explicit_id
    db.add(role)

    try:
        await db.flush()
        if explicit_id is not None:
            await reserve_id(db, explicit_id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Role ID already exists")

    await db.refresh(role)
    logger.info(f"Created role {role.id} for interviewer {interviewer_id}")
    return role


async def get_role(db: AsyncSession, role_id: int) -> Optional[Role]:
    return await db.get(Role, role_id)


async def require_role_owner(db: AsyncSession, role_id: int, interviewer_id: int) -> Role:
    """Load a role and check it belongs to ``interviewer_id``."""
    role = await get_role(db, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    if role.interviewer_id != interviewer_id:
        raise OwnershipError("You do not have access to this role")
    return role


async def list_roles_by_interviewer(db: AsyncSession, interviewer_id: int) -> List[Role]:
    """Roles owned by an interviewer, newest first."""
    result = await db.execute(
        select(Role)
        .where(Role.interviewer_id == interviewer_id)
        .order_by(Role.created_at.desc(), Role.id.desc())
    )
    return list(result.scalars().all())


async def list_roles(db: AsyncSession) -> List[Dict[str, Any]]:
    """All roles with their interviewer's name and email, newest first."""
    result = await db.execute(
        select(Role, Interviewer.name, Interviewer.email)
        .outerjoin(Interviewer, Interviewer.id == Role.interviewer_id)
        .order_by(Role.created_at.desc(), Role.id.desc())
    )

    return [
        {
            "id": role.id,
            "interviewer_id": role.interviewer_id,
            "title": role.title,
            "created_at": role.created_at,
            "interviewer_name": name,
            "interviewer_email": email,
        }
        for role, name, email in result.all()
    ]

