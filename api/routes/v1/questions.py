"""
Question management endpoints.

Interviewers manage the question set of their roles; candidates read the
questions of their interview through the link token.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_interviewer
from api.schemas.common import ERROR_RESPONSES, MessageResponse
from api.schemas.questions import (
    QuestionCreate,
    QuestionEnvelope,
    QuestionListEnvelope,
    QuestionReorderRequest,
    QuestionUpdate,
)
from api.services import questions as question_service
from api.services import roles as role_service
from database.engine import get_db
from database.models.interviewers import Interviewer

router = APIRouter(prefix="/questions", tags=["questions"], responses=ERROR_RESPONSES)


@router.get(
    "/role/{role_id}",
    response_model=QuestionListEnvelope,
    summary="List Role Questions",
)
async def list_role_questions(
    role_id: int = Path(..., description="Role ID"),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    """Questions of a role in interview order."""
    questions = await question_service.list_questions(db, role_id)
    return {"message": "Questions retrieved successfully", "questions": questions}


@router.get(
    "/interview/{token}",
    response_model=QuestionListEnvelope,
    summary="List Interview Questions",
    description="Questions for the candidate holding the link. Used links remain readable until they expire.",
)
async def list_interview_questions(
    token: str = Path(..., description="Interview link token"),
    db: AsyncSession = Depends(get_db),
):
    questions = await question_service.list_questions_for_token(db, token)
    return {"message": "Questions retrieved successfully", "questions": questions}


@router.post(
    "",
    response_model=QuestionEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create Question",
)
async def create_question(
    request: QuestionCreate,
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    """Add a question to one of the caller's roles (at most 10 per role)."""
    await role_service.require_role_owner(db, request.role_id, interviewer.id)

    question = await question_service.create_question(
        db,
        role_id=request.role_id,
        question_text=request.question_text,
        question_order=request.question_order,
    )
    return {"message": "Question created successfully", "question": question}


@router.put(
    "/role/{role_id}/reorder",
    response_model=QuestionListEnvelope,
    summary="Reorder Questions",
)
async def reorder_questions(
    request: QuestionReorderRequest,
    role_id: int = Path(..., description="Role ID"),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    """Rewrite the order of several questions in one transaction."""
    await role_service.require_role_owner(db, role_id, interviewer.id)

    questions = await question_service.reorder_questions(
        db, role_id, [item.model_dump() for item in request.question_orders]
    )
    return {"message": "Questions reordered successfully", "questions": questions}


@router.put(
    "/{question_id}",
    response_model=QuestionEnvelope,
    summary="Update Question",
)
async def update_question(
    request: QuestionUpdate,
    question_id: int = Path(..., description="Question ID"),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    await question_service.require_question_owner(db, question_id, interviewer.id)

    question = await question_service.update_question(db, question_id, request.question_text)
    return {"message": "Question updated successfully", "question": question}


@router.delete(
    "/{question_id}",
    response_model=MessageResponse,
    summary="Delete Question",
    description="Delete a question. The last question of a role cannot be deleted.",
)
async def delete_question(
    question_id: int = Path(..., description="Question ID"),
    db: AsyncSession = Depends(get_db),
    interviewer: Interviewer = Depends(require_interviewer),
):
    await question_service.require_question_owner(db, question_id, interviewer.id)

    await question_service.delete_question(db, question_id)
    return {"message": "Question deleted successfully"}
