"""Role and interviewer API schemas."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from api.schemas.common import TimestampMixin


class RoleCreate(BaseModel):
    """Schema for creating a role."""

    title: str = Field(..., description="Role title (1-150 characters after trimming)")
    id: Optional[int] = Field(None, description="Optional caller-chosen role id")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Strip whitespace from the title."""
        if isinstance(v, str):
            return v.strip()
        return v


class RoleResponse(TimestampMixin):
    """Schema for role response."""

    id: int
    interviewer_id: int
    title: str
    interviewer_name: Optional[str] = None
    interviewer_email: Optional[str] = None

    class Config:
        from_attributes = True


class RoleEnvelope(BaseModel):
    message: str
    role: RoleResponse


class RoleListEnvelope(BaseModel):
    message: str
    roles: list[RoleResponse]


class InterviewerResponse(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class InterviewerEnvelope(BaseModel):
    message: str
    interviewer: InterviewerResponse
