"""Question API schemas."""

from pydantic import BaseModel, Field

from api.schemas.common import TimestampMixin


class QuestionCreate(BaseModel):
    """Schema for creating a question. Ranges are checked by the service."""

    role_id: int = Field(..., description="Role the question belongs to")
    question_text: str = Field(..., max_length=2000, description="Prompt shown to the candidate")
    question_order: int = Field(..., description="Position in the interview (1-10)")


class QuestionUpdate(BaseModel):
    """Schema for editing the text of a question."""

    question_text: str = Field(..., max_length=2000)


class QuestionOrderItem(BaseModel):
    question_id: int
    question_order: int


class QuestionReorderRequest(BaseModel):
    """New positions for several questions of one role."""

    question_orders: list[QuestionOrderItem] = Field(..., min_length=1)


class QuestionResponse(TimestampMixin):
    """Schema for question response."""

    id: int
    role_id: int
    question_text: str
    question_order: int

    class Config:
        from_attributes = True


class QuestionEnvelope(BaseModel):
    message: str
    question: QuestionResponse


class QuestionListEnvelope(BaseModel):
    message: str
    questions: list[QuestionResponse]
