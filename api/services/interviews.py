"""Interview service functions."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError
from database.engine import dialect_insert
from database.models.interviews import Interview
from database.models.roles import Role

logger = logging.getLogger(__name__)


async def get_or_create_interview(db: AsyncSession, role_id: int) -> Interview:
    """
    Return the interview for a role, creating it on first use.

    Concurrent invitations for the same role converge on one row through the
    unique ``role_id`` constraint.
    """
    role = await db.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found")

    stmt = (
        dialect_insert(db, Interview)
        .values(role_id=role_id)
        .on_conflict_do_nothing(index_elements=[Interview.role_id])
    )
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(select(Interview).where(Interview.role_id == role_id))
    interview = result.scalar_one()
    logger.debug(f"Interview {interview.id} resolved for role {role_id}")
    return interview


async def get_interview_by_role(db: AsyncSession, role_id: int) -> Optional[Interview]:
    result = await db.execute(select(Interview).where(Interview.role_id == role_id))
    return result.scalar_one_or_none()
