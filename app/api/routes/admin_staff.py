from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.dependencies import require_admin
from app.api.errors import unwrap_or_raise
from app.api.routes.admin_models import StaffCreateRequest, StaffListResponse, StaffResponse
from app.tenancy.staff import StaffService
from app.tenancy.types import StaffView

router = APIRouter(tags=["admin", "staff"], dependencies=[Depends(require_admin)])


def _staff_as_response(member: StaffView) -> StaffResponse:
    return StaffResponse(
        id=member.id,
        email=member.email,
        role=member.role,
        created_at=member.created_at,
        updated_at=member.updated_at,
    )


@router.get("/admin/tenants/{tenant_id}/staff", response_model=StaffListResponse)
async def list_staff(tenant_id: UUID) -> StaffListResponse:
    members = unwrap_or_raise(await StaffService.list_staff(tenant_id))
    return StaffListResponse(staff=[_staff_as_response(member) for member in members])


@router.post(
    "/admin/tenants/{tenant_id}/staff",
    response_model=StaffResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_staff(tenant_id: UUID, payload: StaffCreateRequest) -> StaffResponse:
    member = unwrap_or_raise(await StaffService.add_staff(tenant_id, payload.email, payload.role))
    return _staff_as_response(member)
