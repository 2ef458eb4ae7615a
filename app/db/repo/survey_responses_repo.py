from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.questions import Question
from app.db.models.survey_responses import SurveyResponse


class SurveyResponsesRepo:
    @staticmethod
    async def create_many(
        session: AsyncSession, *, responses: Sequence[SurveyResponse]
    ) -> list[SurveyResponse]:
        session.add_all(list(responses))
        await session.flush()
        return list(responses)

    @staticmethod
    async def count_responses_and_sessions(
        session: AsyncSession, *, tenant_id: UUID
    ) -> tuple[int, int]:
        stmt = select(
            func.count(SurveyResponse.id),
            func.count(distinct(SurveyResponse.session_id)),
        ).where(SurveyResponse.tenant_id == tenant_id)
        result = await session.execute(stmt)
        responses, sessions = result.one()
        return int(responses or 0), int(sessions or 0)

    @staticmethod
    async def list_numeric_answers(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        question_type: str,
    ) -> list[float]:
        stmt = (
            select(SurveyResponse.answer["number"].as_float())
            .join(Question, Question.id == SurveyResponse.question_id)
            .where(
                SurveyResponse.tenant_id == tenant_id,
                Question.type == question_type,
                SurveyResponse.answer.has_key("number"),
            )
        )
        result = await session.execute(stmt)
        return [float(value) for value in result.scalars().all() if value is not None]
