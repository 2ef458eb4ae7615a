from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base

GRANT_CODE_CONSTRAINT = "uq_grants_code"
GRANT_OPEN_RECIPIENT_INDEX = "uq_grants_open_recipient"


class Grant(Base):
    __tablename__ = "grants"
    __table_args__ = (
        CheckConstraint(
            "status IN ('issued','redeemed','revoked','expired')",
            name="ck_grants_status",
        ),
        CheckConstraint("max_redemptions >= 1", name="ck_grants_max_redemptions_positive"),
        CheckConstraint(
            "redemptions_count >= 0 AND redemptions_count <= max_redemptions",
            name="ck_grants_redemptions_count_range",
        ),
        UniqueConstraint("code", name=GRANT_CODE_CONSTRAINT),
        Index(
            GRANT_OPEN_RECIPIENT_INDEX,
            "tenant_id",
            "offer_id",
            "recipient",
            unique=True,
            postgresql_where=text("status = 'issued' AND recipient IS NOT NULL"),
        ),
        Index("idx_grants_tenant_issued_at", "tenant_id", "issued_at"),
        Index("idx_grants_recipient_lookup", "tenant_id", "offer_id", "recipient", "issued_at"),
        Index(
            "idx_grants_open_expires_at",
            "expires_at",
            postgresql_where=text("status IN ('issued', 'redeemed') AND expires_at IS NOT NULL"),
        ),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    tenant_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("tenants.id"),
        nullable=False,
    )
    offer_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String(48), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    max_redemptions: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )
    redemptions_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    recipient: Mapped[str | None] = mapped_column(String(320), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    redeemed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    metadata_: Mapped[dict[str, object]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
