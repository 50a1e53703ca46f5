"""
Interview endpoints.

Candidate-facing routes are addressed by the link token and need no
authentication. Interviewer routes require a bearer token and only expose
interviews of roles the caller owns.
"""

from typing import Optional
import logging

from fastapi import APIRouter, Depends, File, Form, Header, Path, Query, UploadFile, status
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_blob_storage,
    get_mailer,
    get_video_transcoder,
    require_interviewer,
)
from api.schemas.common import ERROR_RESPONSES
from api.schemas.interviews import (
    CandidateIdentity,
    InviteRequest,
    LinkStatusEnvelope,
    StitchResponse,
)
from api.services import candidates as candidate_service
from api.services import interviews as interview_service
from api.services import invitations as invitation_service
from api.services import links as link_service
from api.services import roles as role_service
from api.services import stitcher as stitcher_service
from api.services import video_answers as answer_service
from core.errors import EmailMismatchError, ValidationError
from core.integrations.email import EmailService
from core.storage import BlobStorage
from core.utils.validators import emails_match, validate_email
from core.video import FFmpegTranscoder
from database.engine import get_db
from database.models.interviewers import Interviewer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interviews", tags=["interviews"], responses=ERROR_RESPONSES)


async def _check_identity(db: AsyncSession, token: str, identity: CandidateIdentity):
    if not identity.name or not identity.email:
        raise ValidationError("name and email are required")

    is_valid, result = validate_email(identity.email)
    if not is_valid:
        raise ValidationError(result)

    details = await link_service.require_writable(db, token)
    if not emails_match(identity.email, details.candidate_email):
        raise EmailMismatchError("Email does not match the invitation email")
    return details


# ============================================================================
# Interviewer: invitations and links
# ============================================================================

@router.post(
    "/invite",
    status_code=status.HTTP_201_CREATED,
    summary="Invite Candidate",
    description="Create an interview link for a candidate and email it. The link is created even if the email fails.",
)
async def invite_candidate(
    request: InviteRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_mailer),
    interviewer: Interviewer = Depends(require_interviewer),
):
    """Send an interview invitation for one of the caller's roles."""
    return await invitation_service.invite(
        db,
        email_service,
        interviewer,
        role_id=request.role_id,
        candidate_email=request.candidate_email,
        expires_in_days=request.expires_in_days,
    )


@router.get(
    "/role/{role_id}/links",
    summary="List Role Links",
    description="All interview links issued for a role, newest first.",
)
async def list_role_links(
    role_id: int = Path(..., description="Role ID"),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    await role_service.require_role_owner(db, role_id, interviewer.id)

    interview = await interview_service.get_interview_by_role(db, role_id)
    links = await link_service.list_links_for_interview(db, interview.id) if interview else []

    return {"message": "Interview links retrieved successfully", "links": links}


# ============================================================================
# Candidate: link lifecycle
# ============================================================================

@router.get(
    "/link/{token}",
    response_model=LinkStatusEnvelope,
    summary="Check Interview Link",
    description="Verify that a link is live and unused before the candidate starts.",
)
async def get_link(
    token: str = Path(..., description="Interview link token"),
    db: AsyncSession = Depends(get_db),
):
    details = await link_service.require_writable(db, token)
    return {
        "message": "Interview link is valid",
        "link": {
            "unique_token": details.token,
            "expires_at": details.link.expires_at,
            "used": details.link.used,
            "role_title": details.role_title,
        },
    }


@router.post(
    "/validate/{token}",
    summary="Validate Candidate",
    description="Check the candidate's name and email against the invitation. Does not change the link.",
)
async def validate_candidate(
    identity: CandidateIdentity,
    token: str = Path(..., description="Interview link token"),
    db: AsyncSession = Depends(get_db),
):
    await _check_identity(db, token, identity)
    return {
        "message": "Candidate information validated successfully",
        "candidate": {"name": identity.name, "email": identity.email},
    }


@router.post(
    "/mark-used/{token}",
    summary="Mark Link Used",
    description="Called after the camera test. Flags the candidate as submitted and consumes the link.",
)
async def mark_link_used(
    identity: CandidateIdentity,
    token: str = Path(..., description="Interview link token"),
    db: AsyncSession = Depends(get_db),
):
    details = await _check_identity(db, token, identity)

    if details.role_id is not None:
        candidate = await candidate_service.get_candidate_by_email_and_role(
            db, details.role_id, identity.email
        )
        if candidate:
            await candidate_service.set_submitted(db, candidate["id"], True)

    await link_service.mark_used(db, token)
    return {
        "message": "Interview link marked as used",
        "candidate": {"name": identity.name, "email": identity.email},
    }


# ============================================================================
# Candidate: answers
# ============================================================================

@router.post(
    "/video-answer/{token}",
    summary="Upload Video Answer",
    description="Store the recording for one question. Re-uploading a question replaces the earlier answer.",
)
async def upload_video_answer(
    token: str = Path(..., description="Interview link token"),
    video: UploadFile = File(..., description="WebM recording"),
    question_id: int = Form(...),
    candidate_email: str = Form(...),
    recording_duration: Optional[float] = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_blob_storage),
):
    video_bytes = await video.read()

    answer = await answer_service.submit_answer(
        db,
        storage,
        token,
        question_id=question_id,
        candidate_email=candidate_email,
        video_bytes=video_bytes,
        duration_seconds=recording_duration,
    )
    return {
        "message": "Video answer saved successfully",
        "video_answer": answer_service.serialize_answer(answer),
    }


@router.get(
    "/video-answers/{token}",
    summary="List Video Answers",
    description="Answers recorded through a link, in question order.",
)
async def list_video_answers(
    token: str = Path(..., description="Interview link token"),
    db: AsyncSession = Depends(get_db),
):
    answers = await answer_service.list_answers(db, token)
    return {"message": "Video answers retrieved successfully", "video_answers": answers}


# ============================================================================
# Interviewer: review
# ============================================================================

@router.get(
    "/responses",
    summary="List Responses",
    description="Completed interviews across the caller's roles, most recent answer first.",
)
async def list_responses(
    role_id: Optional[int] = Query(None, description="Only this role"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    responses = await answer_service.list_for_interviewer(
        db, interviewer.id, role_id=role_id, limit=limit
    )
    return {"message": "Responses retrieved successfully", "responses": responses}


@router.get(
    "/responses/{token}",
    summary="Get Interview Response",
    description="One interview with its answers and assembled video, if any.",
)
async def get_response(
    token: str = Path(..., description="Interview link token"),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    detail = await answer_service.get_interview_detail(db, interviewer.id, token)
    return {"message": "Interview retrieved successfully", **detail}


@router.post(
    "/stitch-video/{token}",
    response_model=StitchResponse,
    summary="Assemble Interview Video",
    description="Combine all answers into one video. Returns the cached result when it already exists.",
)
async def stitch_video(
    token: str = Path(..., description="Interview link token"),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_blob_storage),
    transcoder: FFmpegTranscoder = Depends(get_video_transcoder),
    email_service: EmailService = Depends(get_mailer),
    interviewer: Interviewer = Depends(require_interviewer),
):
    await answer_service.require_link_owner(db, token, interviewer.id)

    result = await stitcher_service.stitch(db, storage, transcoder, email_service, token)
    message = (
        "Interview video already processed"
        if result.from_cache
        else "Interview video processed successfully"
    )
    return {"message": message, "stitched_url": result.url, "from_cache": result.from_cache}


@router.get(
    "/video-proxy",
    summary="Stream Video",
    description="Stream a stored answer or assembled interview with HTTP range support.",
)
async def video_proxy(
    url: str = Query(..., description="Stored video URL"),
    range_header: Optional[str] = Header(None, alias="range"),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_blob_storage),
    interviewer: Interviewer = Depends(require_interviewer),
):
    stream = await answer_service.open_video_stream(
        db, storage, interviewer.id, url, range_header
    )

    if stream.body is None:
        return Response(status_code=stream.status_code, headers=stream.headers)

    return StreamingResponse(
        stream.body,
        status_code=stream.status_code,
        headers=stream.headers,
        media_type=stream.media_type,
    )
