from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base

STAFF_ROLES = ("owner", "admin", "staff")
STAFF_EMAIL_CONSTRAINT = "uq_staff_tenant_email"


class StaffMember(Base):
    __tablename__ = "staff"
    __table_args__ = (
        CheckConstraint(
            "role IN (" + ",".join(f"'{role}'" for role in STAFF_ROLES) + ")",
            name="ck_staff_role",
        ),
        UniqueConstraint("tenant_id", "email", name=STAFF_EMAIL_CONSTRAINT),
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
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
