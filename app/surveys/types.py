from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class ReorderDirection(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True, slots=True)
class QuestionView:
    id: UUID
    tenant_id: UUID
    question: str
    type: str
    options: list[object]
    order_index: int
    is_active: bool


@dataclass(frozen=True, slots=True)
class SurveyView:
    tenant_id: UUID
    offer_id: UUID | None
    questions: list[QuestionView]


@dataclass(frozen=True, slots=True)
class SurveyAnswerInput:
    question_id: UUID
    answer_text: str | None = None
    answer_number: float | None = None
    answer_boolean: bool | None = None


@dataclass(frozen=True, slots=True)
class SurveySubmission:
    answers: list[SurveyAnswerInput]
    email: str | None = None
    offer_id: UUID | None = None


@dataclass(slots=True)
class SurveySubmitOutcome:
    session_id: str
    responses_saved: int
    opted_in: bool


@dataclass(slots=True)
class OptInOutcome:
    email: str
    already_registered: bool


@dataclass(frozen=True, slots=True)
class QuestionDraft:
    question: str
    type: str
    options: list[object] = field(default_factory=list)
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class QuestionPatch:
    question: str | None = None
    type: str | None = None
    options: list[object] | None = None
    is_active: bool | None = None
