"""FastAPI dependencies for dependency injection."""

from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.interviewers import ensure_interviewer
from core.integrations.email import EmailService, get_email_service
from core.middleware.authentication import get_current_identity
from core.storage import BlobStorage, get_storage
from core.video import FFmpegTranscoder, get_transcoder
from database.engine import get_db
from database.models.interviewers import Interviewer


async def require_interviewer(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Interviewer:
    """
    Resolve the authenticated interviewer.

    The bearer token is verified by AuthenticationMiddleware; here the
    identity is turned into an interviewer row, created on first use.
    """
    identity = get_current_identity(request)

    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await ensure_interviewer(db, identity.email, identity.name)


def get_blob_storage() -> BlobStorage:
    return get_storage()


def get_mailer() -> EmailService:
    return get_email_service()


def get_video_transcoder() -> FFmpegTranscoder:
    return get_transcoder()
