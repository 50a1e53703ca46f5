"""Job roles that interviews are recorded for."""

from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base

ROLE_TITLE_MAX_LENGTH = 150


class Role(Base):
    """A role owned by one interviewer. The id may be supplied by the caller."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    interviewer_id: Mapped[int] = mapped_column(
        ForeignKey("interviewers.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(ROLE_TITLE_MAX_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_roles_interviewer_created", "interviewer_id", "created_at"),
    )
