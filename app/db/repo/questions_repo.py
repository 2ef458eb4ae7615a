from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.questions import Question


class QuestionsRepo:
    @staticmethod
    async def list_for_tenant(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        active_only: bool = False,
    ) -> list[Question]:
        stmt = (
            select(Question)
            .where(Question.tenant_id == tenant_id)
            .order_by(Question.order_index.asc(), Question.id.asc())
        )
        if active_only:
            stmt = stmt.where(Question.is_active.is_(True))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_by_id_for_update(
        session: AsyncSession, *, tenant_id: UUID, question_id: UUID
    ) -> Question | None:
        stmt = (
            select(Question)
            .where(Question.tenant_id == tenant_id, Question.id == question_id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_neighbour_for_update(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        order_index: int,
        direction: str,
    ) -> Question | None:
        stmt = select(Question).where(Question.tenant_id == tenant_id)
        if direction == "up":
            stmt = stmt.where(Question.order_index < order_index).order_by(
                Question.order_index.desc()
            )
        else:
            stmt = stmt.where(Question.order_index > order_index).order_by(
                Question.order_index.asc()
            )
        result = await session.execute(stmt.limit(1).with_for_update())
        return result.scalar_one_or_none()

    @staticmethod
    async def get_max_order_index(session: AsyncSession, *, tenant_id: UUID) -> int | None:
        stmt = select(func.max(Question.order_index)).where(Question.tenant_id == tenant_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_existing_ids(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        question_ids: Collection[UUID],
    ) -> set[UUID]:
        if not question_ids:
            return set()
        stmt = select(Question.id).where(
            Question.tenant_id == tenant_id,
            Question.id.in_(tuple(question_ids)),
        )
        result = await session.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, question: Question) -> Question:
        session.add(question)
        await session.flush()
        return question

    @staticmethod
    async def delete(session: AsyncSession, *, tenant_id: UUID, question_id: UUID) -> int:
        stmt = delete(Question).where(
            Question.tenant_id == tenant_id,
            Question.id == question_id,
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
