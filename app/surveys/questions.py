from __future__ import annotations

from uuid import UUID, uuid4

import structlog

from app.core.results import Result, capture
from app.db.models.questions import CHOICE_QUESTION_TYPES, QUESTION_TYPES, Question
from app.db.repo.questions_repo import QuestionsRepo
from app.db.tenant_scope import tenant_session
from app.surveys.errors import QuestionInvalidError, QuestionNotFoundError, QuestionReorderError
from app.surveys.survey import to_question_view
from app.surveys.types import QuestionDraft, QuestionPatch, QuestionView, ReorderDirection

QUESTION_TEXT_MAX_LENGTH = 500

logger = structlog.get_logger(__name__)


def validate_question_text(raw: str) -> str:
    text = raw.strip()
    if not text or len(text) > QUESTION_TEXT_MAX_LENGTH:
        raise QuestionInvalidError(
            f"Question must be between 1 and {QUESTION_TEXT_MAX_LENGTH} characters"
        )
    return text


def validate_question_type(raw: str) -> str:
    if raw not in QUESTION_TYPES:
        raise QuestionInvalidError(f"Unsupported question type: {raw}")
    return raw


def normalize_options(question_type: str, options: list[object] | None) -> list[object]:
    """Choice questions need at least one non-blank option; other types carry none."""
    if question_type not in CHOICE_QUESTION_TYPES:
        return []
    cleaned: list[object] = []
    for option in options or []:
        if isinstance(option, str):
            option = option.strip()
            if not option:
                continue
        elif option is None:
            continue
        cleaned.append(option)
    if not cleaned:
        raise QuestionInvalidError("Choice questions require at least one option")
    return cleaned


class QuestionsService:
    @staticmethod
    async def _list(tenant_id: UUID) -> list[QuestionView]:
        async with tenant_session(tenant_id) as session:
            questions = await QuestionsRepo.list_for_tenant(session, tenant_id=tenant_id)
            return [to_question_view(question) for question in questions]

    @staticmethod
    async def _create(tenant_id: UUID, draft: QuestionDraft) -> QuestionView:
        question_type = validate_question_type(draft.type)
        question = Question(
            id=uuid4(),
            tenant_id=tenant_id,
            question=validate_question_text(draft.question),
            type=question_type,
            options=normalize_options(question_type, draft.options),
            is_active=draft.is_active,
        )
        async with tenant_session(tenant_id) as session:
            max_index = await QuestionsRepo.get_max_order_index(session, tenant_id=tenant_id)
            question.order_index = (max_index or 0) + 1
            created = await QuestionsRepo.create(session, question=question)
            logger.info("question_created", question_id=str(created.id), type=created.type)
            return to_question_view(created)

    @staticmethod
    async def _update(tenant_id: UUID, question_id: UUID, patch: QuestionPatch) -> QuestionView:
        async with tenant_session(tenant_id) as session:
            question = await QuestionsRepo.get_by_id_for_update(
                session, tenant_id=tenant_id, question_id=question_id
            )
            if question is None:
                raise QuestionNotFoundError

            if patch.question is not None:
                question.question = validate_question_text(patch.question)
            if patch.type is not None:
                question.type = validate_question_type(patch.type)
            if patch.type is not None or patch.options is not None:
                options = patch.options if patch.options is not None else question.options
                question.options = normalize_options(question.type, options)
            if patch.is_active is not None:
                question.is_active = patch.is_active

            await session.flush()
            logger.info("question_updated", question_id=str(question.id))
            return to_question_view(question)

    @staticmethod
    async def _delete(tenant_id: UUID, question_id: UUID) -> bool:
        async with tenant_session(tenant_id) as session:
            deleted = await QuestionsRepo.delete(
                session, tenant_id=tenant_id, question_id=question_id
            )
        if deleted == 0:
            raise QuestionNotFoundError
        logger.info("question_deleted", question_id=str(question_id))
        return True

    @staticmethod
    async def _toggle(tenant_id: UUID, question_id: UUID) -> QuestionView:
        async with tenant_session(tenant_id) as session:
            question = await QuestionsRepo.get_by_id_for_update(
                session, tenant_id=tenant_id, question_id=question_id
            )
            if question is None:
                raise QuestionNotFoundError
            question.is_active = not question.is_active
            await session.flush()
            logger.info(
                "question_toggled", question_id=str(question.id), is_active=question.is_active
            )
            return to_question_view(question)

    @staticmethod
    async def _reorder(
        tenant_id: UUID, question_id: UUID, direction: ReorderDirection
    ) -> list[QuestionView]:
        async with tenant_session(tenant_id) as session:
            question = await QuestionsRepo.get_by_id_for_update(
                session, tenant_id=tenant_id, question_id=question_id
            )
            if question is None:
                raise QuestionNotFoundError

            neighbour = await QuestionsRepo.get_neighbour_for_update(
                session,
                tenant_id=tenant_id,
                order_index=question.order_index,
                direction=direction.value,
            )
            if neighbour is None:
                edge = "top" if direction is ReorderDirection.UP else "bottom"
                raise QuestionReorderError(
                    f"Cannot move {direction.value} - already at {edge}"
                )

            question.order_index, neighbour.order_index = (
                neighbour.order_index,
                question.order_index,
            )
            await session.flush()
            logger.info(
                "question_reordered", question_id=str(question.id), direction=direction.value
            )
            questions = await QuestionsRepo.list_for_tenant(session, tenant_id=tenant_id)
            return [to_question_view(item) for item in questions]

    @staticmethod
    async def list_questions(tenant_id: UUID) -> Result[list[QuestionView]]:
        return await capture("list_questions", QuestionsService._list(tenant_id))

    @staticmethod
    async def create_question(tenant_id: UUID, draft: QuestionDraft) -> Result[QuestionView]:
        return await capture("create_question", QuestionsService._create(tenant_id, draft))

    @staticmethod
    async def update_question(
        tenant_id: UUID, question_id: UUID, patch: QuestionPatch
    ) -> Result[QuestionView]:
        return await capture(
            "update_question", QuestionsService._update(tenant_id, question_id, patch)
        )

    @staticmethod
    async def delete_question(tenant_id: UUID, question_id: UUID) -> Result[bool]:
        return await capture(
            "delete_question", QuestionsService._delete(tenant_id, question_id)
        )

    @staticmethod
    async def toggle_question(tenant_id: UUID, question_id: UUID) -> Result[QuestionView]:
        return await capture(
            "toggle_question", QuestionsService._toggle(tenant_id, question_id)
        )

    @staticmethod
    async def reorder_question(
        tenant_id: UUID,
        question_id: UUID,
        direction: ReorderDirection,
    ) -> Result[list[QuestionView]]:
        """Swaps the question's position with its neighbour in the given direction."""
        return await capture(
            "reorder_question", QuestionsService._reorder(tenant_id, question_id, direction)
        )
