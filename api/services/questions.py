"""Question service functions."""

from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy import select, update, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.links import require_readable
from core.errors import ValidationError, NotFoundError, OwnershipError
from database.models.questions import (
    Question,
    MIN_QUESTION_ORDER,
    MAX_QUESTION_ORDER,
    MAX_QUESTIONS_PER_ROLE,
)
from database.models.roles import Role

logger = logging.getLogger(__name__)

ORDER_RANGE_MESSAGE = (
    f"question_order must be between {MIN_QUESTION_ORDER} and {MAX_QUESTION_ORDER}"
)


def serialize_question(question: Question) -> Dict[str, Any]:
    return {
        "id": question.id,
        "role_id": question.role_id,
        "question_text": question.question_text,
        "question_order": question.question_order,
        "created_at": question.created_at,
    }


def _check_order(question_order: Any) -> int:
    if isinstance(question_order, bool) or not isinstance(question_order, int):
        raise ValidationError(ORDER_RANGE_MESSAGE)
    if not MIN_QUESTION_ORDER <= question_order <= MAX_QUESTION_ORDER:
        raise ValidationError(ORDER_RANGE_MESSAGE)
    return question_order


def _check_text(question_text: Optional[str]) -> str:
    question_text = (question_text or "").strip()
    if not question_text:
        raise ValidationError("question_text is required")
    return question_text


async def count_questions(db: AsyncSession, role_id: int) -> int:
    result = await db.execute(
        select(func.count(Question.id)).where(Question.role_id == role_id)
    )
    return result.scalar() or 0


async def create_question(
    db: AsyncSession,
    role_id: int,
    question_text: str,
    question_order: int,
) -> Question:
    """
    Add a question to a role.

    Raises:
        ValidationError: Order out of range, empty text, or role already full
        NotFoundError: Role does not exist
    """
    question_order = _check_order(question_order)
    question_text = _check_text(question_text)

    if await db.get(Role, role_id) is None:
        raise NotFoundError("Role not found")

    if await count_questions(db, role_id) >= MAX_QUESTIONS_PER_ROLE:
        raise ValidationError(f"Maximum of {MAX_QUESTIONS_PER_ROLE} questions allowed per role")

    question = Question(
        role_id=role_id,
        question_text=question_text,
        question_order=question_order,
    )
    db.add(question)
    await db.commit()
    await db.refresh(question)

    logger.info(f"Created question {question.id} for role {role_id}")
    return question


async def list_questions(db: AsyncSession, role_id: int) -> List[Question]:
    """Questions of a role sorted by order; ties keep insertion order."""
    result = await db.execute(
        select(Question)
        .where(Question.role_id == role_id)
        .order_by(Question.question_order.asc(), Question.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_question(db: AsyncSession, question_id: int) -> Question:
    question = await db.get(Question, question_id)
    if question is None:
        raise NotFoundError("Question not found")
    return question


async def require_question_owner(
    db: AsyncSession,
    question_id: int,
    interviewer_id: int,
) -> Question:
    """Load a question and check its role belongs to ``interviewer_id``."""
    result = await db.execute(
        select(Question, Role.interviewer_id)
        .join(Role, Role.id == Question.role_id)
        .where(Question.id == question_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Question not found")

    question, owner_id = row
    if owner_id != interviewer_id:
        raise OwnershipError("You do not have access to this question")
    return question


async def update_question(db: AsyncSession, question_id: int, question_text: str) -> Question:
    question_text = _check_text(question_text)
    question = await get_question(db, question_id)

    question.question_text = question_text
    await db.commit()
    await db.refresh(question)
    return question


async def delete_question(db: AsyncSession, question_id: int) -> None:
    """
    Delete a question.

    A role must keep at least one question with text, so the last one
    cannot be removed.

    Raises:
        NotFoundError: Unknown question
        ValidationError: Deleting would leave the role without questions
    """
    question = await get_question(db, question_id)

    remaining = await db.execute(
        select(func.count(Question.id)).where(
            and_(
                Question.role_id == question.role_id,
                Question.id != question.id,
                func.length(func.trim(Question.question_text)) > 0,
            )
        )
    )
    if not remaining.scalar():
        raise ValidationError("A role must keep at least one question")

    await db.delete(question)
    await db.commit()
    logger.info(f"Deleted question {question_id} from role {question.role_id}")


async def reorder_questions(
    db: AsyncSession,
    role_id: int,
    question_orders: Iterable[Dict[str, Any]],
) -> List[Question]:
    """
    Rewrite ``question_order`` for several questions of a role at once.

    Each update is scoped to the role, so ids that belong to another role
    match nothing. All updates commit together.

    Args:
        db: Database session
        role_id: Role whose questions are reordered
        question_orders: Items of ``{"question_id", "question_order"}``

    Returns:
        The role's questions sorted by their new order
    """
    items = list(question_orders)
    for item in items:
        _check_order(item.get("question_order"))
        if item.get("question_id") is None:
            raise ValidationError("question_id is required")

    try:
        for item in items:
            await db.execute(
                update(Question)
                .where(Question.id == item["question_id"], Question.role_id == role_id)
                .values(question_order=item["question_order"])
                .execution_options(synchronize_session=False)
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Reordered {len(items)} questions for role {role_id}")
    return await list_questions(db, role_id)


async def list_questions_for_token(db: AsyncSession, token: str) -> List[Question]:
    """Questions for the candidate holding ``token``; used links stay readable."""
    details = await require_readable(db, token)
    if details.role_id is None:
        raise NotFoundError("Role not found")
    return await list_questions(db, details.role_id)
