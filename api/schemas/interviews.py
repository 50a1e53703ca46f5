"""Interview link, invitation and video answer API schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class InviteRequest(BaseModel):
    """Schema for inviting a candidate to a role."""

    role_id: int = Field(..., description="Role the candidate is invited for")
    candidate_email: str = Field(..., max_length=255, description="Candidate email address")
    expires_in_days: Optional[int] = Field(
        None, description="Accepted for compatibility; links always expire after 7 days"
    )


class CandidateIdentity(BaseModel):
    """Name and email typed by the candidate on the landing page."""

    name: Optional[str] = Field(None, max_length=255)
    email: str = Field(..., max_length=255)

    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace from identity fields."""
        if isinstance(v, str):
            return v.strip()
        return v


class LinkStatus(BaseModel):
    """Public view of a link returned to the candidate."""

    unique_token: str
    expires_at: datetime
    used: bool
    role_title: Optional[str] = None


class LinkStatusEnvelope(BaseModel):
    message: str
    link: LinkStatus


class StitchResponse(BaseModel):
    message: str
    stitched_url: str
    from_cache: bool
