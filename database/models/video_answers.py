"""Recorded answers, one per (link token, question)."""

from datetime import datetime
from sqlalchemy import String, Text, Integer, Float, DateTime, ForeignKey, UniqueConstraint, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base


class VideoAnswer(Base):
    """
    A candidate's recording for one question.

    Linked to the interview link by token value. Re-submitting the same
    question overwrites the row (see ``api.services.video_answers``).
    """

    __tablename__ = "video_answers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    interview_link_token: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("interview_links.unique_token", ondelete="CASCADE"),
        nullable=False,
    )
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    candidate_email: Mapped[str] = mapped_column(String(255), nullable=False)
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    recording_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "interview_link_token", "question_id", name="uq_video_answers_token_question"
        ),
        Index("idx_video_answers_token", "interview_link_token"),
    )
