from __future__ import annotations

from uuid import UUID

from sqlalchemy import BOOLEAN, CheckConstraint, ForeignKey, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base

QUESTION_TYPES = (
    "text",
    "number",
    "boolean",
    "single_choice",
    "multiple_choice",
    "ranked_choice",
    "date",
    "time",
    "rating",
)
CHOICE_QUESTION_TYPES = frozenset({"single_choice", "multiple_choice", "ranked_choice"})


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint(
            "type IN ("
            + ",".join(f"'{question_type}'" for question_type in QUESTION_TYPES)
            + ")",
            name="ck_questions_type",
        ),
        CheckConstraint("order_index >= 0", name="ck_questions_order_index_non_negative"),
        Index("idx_questions_tenant_order", "tenant_id", "order_index"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    tenant_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("tenants.id"),
        nullable=False,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[object]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
