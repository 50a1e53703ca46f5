"""Tokenized interview links handed to candidates."""

from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import String, Boolean, DateTime, ForeignKey, Index, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base
from core.utils.datetime import now as utcnow, is_past


class ProcessingStatus(str, PyEnum):
    """State of the final interview video assembly."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class InterviewLink(Base):
    """
    Single-use link bound to a candidate email and an interview.

    ``used`` and expiry are independent: a used link stays readable until it
    expires, an unused link stops being writable once it expires. The
    stitched fields cache the assembled interview video.
    """

    __tablename__ = "interview_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    candidate_email: Mapped[str] = mapped_column(String(255), nullable=False)
    interview_id: Mapped[int] = mapped_column(
        ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False
    )
    unique_token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Assembly cache
    stitched_video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    stitched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processing_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        Index("idx_interview_links_interview", "interview_id", "created_at"),
    )

    def is_expired(self, at: datetime | None = None) -> bool:
        return is_past(self.expires_at, at or utcnow())

    def is_readable(self, at: datetime | None = None) -> bool:
        """Answers and questions can be read until the link expires."""
        return not self.is_expired(at)

    def is_writable(self, at: datetime | None = None) -> bool:
        """The candidate onboarding steps need a live, unused link."""
        return not self.used and not self.is_expired(at)
