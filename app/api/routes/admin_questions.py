from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import require_admin
from app.api.errors import unwrap_or_raise
from app.api.routes.admin_models import (
    QuestionCreateRequest,
    QuestionListResponse,
    QuestionReorderRequest,
    QuestionUpdateRequest,
)
from app.api.routes.public_models import QuestionResponse, question_as_response
from app.surveys.questions import QuestionsService
from app.surveys.types import QuestionDraft, QuestionPatch, ReorderDirection

router = APIRouter(tags=["admin", "questions"], dependencies=[Depends(require_admin)])


@router.get("/admin/tenants/{tenant_id}/questions", response_model=QuestionListResponse)
async def list_questions(tenant_id: UUID) -> QuestionListResponse:
    questions = unwrap_or_raise(await QuestionsService.list_questions(tenant_id))
    return QuestionListResponse(questions=[question_as_response(item) for item in questions])


@router.post(
    "/admin/tenants/{tenant_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_question(tenant_id: UUID, payload: QuestionCreateRequest) -> QuestionResponse:
    question = unwrap_or_raise(
        await QuestionsService.create_question(
            tenant_id,
            QuestionDraft(
                question=payload.question,
                type=payload.type,
                options=list(payload.options),
                is_active=payload.is_active,
            ),
        )
    )
    return question_as_response(question)


@router.patch(
    "/admin/tenants/{tenant_id}/questions/{question_id}",
    response_model=QuestionResponse,
)
async def update_question(
    tenant_id: UUID,
    question_id: UUID,
    payload: QuestionUpdateRequest,
) -> QuestionResponse:
    question = unwrap_or_raise(
        await QuestionsService.update_question(
            tenant_id,
            question_id,
            QuestionPatch(
                question=payload.question,
                type=payload.type,
                options=payload.options,
                is_active=payload.is_active,
            ),
        )
    )
    return question_as_response(question)


@router.delete(
    "/admin/tenants/{tenant_id}/questions/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_question(tenant_id: UUID, question_id: UUID) -> Response:
    unwrap_or_raise(await QuestionsService.delete_question(tenant_id, question_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/admin/tenants/{tenant_id}/questions/{question_id}/toggle",
    response_model=QuestionResponse,
)
async def toggle_question(tenant_id: UUID, question_id: UUID) -> QuestionResponse:
    question = unwrap_or_raise(await QuestionsService.toggle_question(tenant_id, question_id))
    return question_as_response(question)


@router.post(
    "/admin/tenants/{tenant_id}/questions/{question_id}/reorder",
    response_model=QuestionListResponse,
)
async def reorder_question(
    tenant_id: UUID,
    question_id: UUID,
    payload: QuestionReorderRequest,
) -> QuestionListResponse:
    questions = unwrap_or_raise(
        await QuestionsService.reorder_question(
            tenant_id, question_id, ReorderDirection(payload.direction)
        )
    )
    return QuestionListResponse(questions=[question_as_response(item) for item in questions])
