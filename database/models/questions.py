"""Interview questions attached to a role."""

from datetime import datetime
from sqlalchemy import Text, Integer, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base

MIN_QUESTION_ORDER = 1
MAX_QUESTION_ORDER = 10
MAX_QUESTIONS_PER_ROLE = 10


class Question(Base):
    """
    One prompt of a role's question set.

    ``question_order`` is range checked (1..10) but not unique; ties sort by id.
    """

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_order: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_questions_role_order", "role_id", "question_order"),
    )
