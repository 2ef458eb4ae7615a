from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog

from app.analytics.events import emit_analytics_event
from app.analytics.types import EventType
from app.core.emails import normalize_email
from app.core.rate_limits import SURVEY_SUBMIT
from app.core.results import Result, capture
from app.db.models.questions import Question
from app.db.models.survey_responses import SurveyResponse
from app.db.repo.questions_repo import QuestionsRepo
from app.db.repo.survey_responses_repo import SurveyResponsesRepo
from app.db.tenant_scope import tenant_session
from app.services.rate_limit import get_rate_limiter
from app.surveys.answers import build_session_id, encode_answer
from app.surveys.errors import EmailInvalidError, SurveySubmissionInvalidError
from app.surveys.opt_ins import record_opt_in
from app.surveys.types import QuestionView, SurveySubmission, SurveySubmitOutcome, SurveyView
from app.tenancy.resolver import require_active_tenant_id

logger = structlog.get_logger(__name__)


def to_question_view(question: Question) -> QuestionView:
    return QuestionView(
        id=question.id,
        tenant_id=question.tenant_id,
        question=question.question,
        type=question.type,
        options=list(question.options) if isinstance(question.options, list) else [],
        order_index=question.order_index,
        is_active=question.is_active,
    )


class SurveyService:
    @staticmethod
    async def _get_survey(*, tenant_slug: str, offer_id: UUID | None) -> SurveyView:
        tenant_id = await require_active_tenant_id(tenant_slug)
        async with tenant_session(tenant_id) as session:
            questions = await QuestionsRepo.list_for_tenant(
                session, tenant_id=tenant_id, active_only=True
            )
            return SurveyView(
                tenant_id=tenant_id,
                offer_id=offer_id,
                questions=[to_question_view(question) for question in questions],
            )

    @staticmethod
    async def _submit(
        *,
        tenant_slug: str,
        submission: SurveySubmission,
        client_id: str,
        now_utc: datetime,
    ) -> SurveySubmitOutcome:
        if not submission.answers:
            raise SurveySubmissionInvalidError("At least one answer is required")
        try:
            email = normalize_email(submission.email)
        except ValueError as exc:
            raise EmailInvalidError from exc

        await get_rate_limiter().enforce(client_id, SURVEY_SUBMIT)
        tenant_id = await require_active_tenant_id(tenant_slug)
        session_id = build_session_id(offer_id=submission.offer_id, email=email)

        async with tenant_session(tenant_id) as session:
            question_ids = {answer.question_id for answer in submission.answers}
            known_ids = await QuestionsRepo.list_existing_ids(
                session, tenant_id=tenant_id, question_ids=question_ids
            )
            unknown_ids = question_ids - known_ids
            if unknown_ids:
                raise SurveySubmissionInvalidError(
                    "Unknown question: " + ", ".join(sorted(str(value) for value in unknown_ids))
                )

            responses = await SurveyResponsesRepo.create_many(
                session,
                responses=[
                    SurveyResponse(
                        id=uuid4(),
                        tenant_id=tenant_id,
                        question_id=answer.question_id,
                        answer=encode_answer(answer),
                        session_id=session_id,
                        created_at=now_utc,
                    )
                    for answer in submission.answers
                ],
            )

            opted_in = False
            if email is not None:
                await record_opt_in(session, tenant_id=tenant_id, email=email, now_utc=now_utc)
                opted_in = True

            await emit_analytics_event(
                session,
                tenant_id=tenant_id,
                event_type=EventType.SURVEY_COMPLETION,
                happened_at=now_utc,
                session_id=session_id,
                email=email,
                payload={"offer_id": str(submission.offer_id)} if submission.offer_id else None,
            )

        logger.info(
            "survey_submitted",
            responses=len(responses),
            has_email=email is not None,
            offer_id=str(submission.offer_id) if submission.offer_id else None,
        )
        return SurveySubmitOutcome(
            session_id=session_id,
            responses_saved=len(responses),
            opted_in=opted_in,
        )

    @staticmethod
    async def get_survey(
        tenant_slug: str,
        *,
        offer_id: UUID | None = None,
    ) -> Result[SurveyView]:
        return await capture(
            "get_survey", SurveyService._get_survey(tenant_slug=tenant_slug, offer_id=offer_id)
        )

    @staticmethod
    async def submit_survey(
        tenant_slug: str,
        submission: SurveySubmission,
        *,
        client_id: str,
        now_utc: datetime | None = None,
    ) -> Result[SurveySubmitOutcome]:
        return await capture(
            "submit_survey",
            SurveyService._submit(
                tenant_slug=tenant_slug,
                submission=submission,
                client_id=client_id,
                now_utc=now_utc or datetime.now(timezone.utc),
            ),
        )
