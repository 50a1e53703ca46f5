"""Interviewer service functions."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ValidationError
from core.utils.validators import validate_email, email_local_part
from database.engine import dialect_insert
from database.models.interviewers import Interviewer

logger = logging.getLogger(__name__)


async def ensure_interviewer(
    db: AsyncSession,
    email: str,
    name: Optional[str] = None,
) -> Interviewer:
    """
    Idempotently create the interviewer identified by ``email``.

    New rows get ``name`` or, failing that, the local part of the email.
    Existing rows keep their name unless a different non-empty name is given,
    in which case it is backfilled.
    """
    is_valid, result = validate_email(email)
    if not is_valid:
        raise ValidationError(result)
    email = result
    name = name.strip() if name and name.strip() else None

    stmt = dialect_insert(db, Interviewer).values(
        email=email,
        name=name or email_local_part(email),
        password_hash=None,
    )
    if name:
        stmt = stmt.on_conflict_do_update(
            index_elements=[Interviewer.email],
            set_={"name": stmt.excluded.name},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=[Interviewer.email])

    await db.execute(stmt)
    await db.commit()

    interviewer = await get_interviewer_by_email(db, email)
    logger.debug(f"Resolved interviewer {interviewer.id}")
    return interviewer


async def get_interviewer_by_email(db: AsyncSession, email: str) -> Optional[Interviewer]:
    result = await db.execute(
        select(Interviewer)
        .where(Interviewer.email == email)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_interviewer(db: AsyncSession, interviewer_id: int) -> Optional[Interviewer]:
    result = await db.execute(select(Interviewer).where(Interviewer.id == interviewer_id))
    return result.scalar_one_or_none()
