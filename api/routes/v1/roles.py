"""Role management endpoints."""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_interviewer
from api.schemas.common import ERROR_RESPONSES
from api.schemas.roles import (
    InterviewerEnvelope,
    RoleCreate,
    RoleEnvelope,
    RoleListEnvelope,
)
from api.services import roles as role_service
from database.engine import get_db
from database.models.interviewers import Interviewer

router = APIRouter(prefix="/roles", tags=["roles"], responses=ERROR_RESPONSES)


@router.post(
    "",
    response_model=RoleEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create Role",
    description="Create a role owned by the caller. An explicit id may be supplied.",
)
async def create_role(
    request: RoleCreate,
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    role = await role_service.create_role(
        db, interviewer.id, request.title, explicit_id=request.id
    )
    return {"message": "Role created successfully", "role": role}


@router.get(
    "",
    response_model=RoleListEnvelope,
    summary="List Roles",
)
async def list_roles(
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    """All roles with the name and email of their interviewer."""
    roles = await role_service.list_roles(db)
    return {"message": "Roles retrieved successfully", "roles": roles}


@router.get(
    "/my-interviewer",
    response_model=InterviewerEnvelope,
    summary="Current Interviewer",
)
async def get_my_interviewer(
    interviewer: Interviewer = Depends(require_interviewer),
):
    """The interviewer record behind the bearer token."""
    return {"message": "Interviewer retrieved successfully", "interviewer": interviewer}


@router.get(
    "/interviewer/{interviewer_id}",
    response_model=RoleListEnvelope,
    summary="List Interviewer Roles",
)
async def list_interviewer_roles(
    interviewer_id: int = Path(..., description="Interviewer ID"),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    """Roles of one interviewer, newest first."""
    roles = await role_service.list_roles_by_interviewer(db, interviewer_id)
    return {"message": "Roles retrieved successfully", "roles": roles}
