"""Administrator management endpoints (super_admin only)"""
from typing import List

from fastapi import APIRouter, Depends, status

from sleepplanet.api.deps import get_lifecycle_service, require_authorized
from sleepplanet.schemas.admin_user import AdminSummary, AdminUserCreate, AdminUserCreated, MessageResponse
from sleepplanet.services.admin_lifecycle import AdminLifecycleService
from sleepplanet.utils.jwt_utils import Claims

router = APIRouter(prefix="/sys/admins", tags=["admin"])


@router.post("", response_model=AdminUserCreated, status_code=status.HTTP_201_CREATED)
def create_admin(
    data: AdminUserCreate,
    claims: Claims = Depends(require_authorized),
    service: AdminLifecycleService = Depends(get_lifecycle_service),
) -> AdminUserCreated:
    """
    Create an administrator and assign its roles.

    Username, email and phone number must be unused; every role name must exist.
    Either everything is stored or nothing is.
    """
    admin_id = service.create(
        acting_admin_id=claims.admin_id,
        username=data.username,
        password=data.password,
        email=data.email,
        phone_number=data.phone_number,
        role_names=data.role_names,
    )
    return AdminUserCreated(admin_id=admin_id)


@router.get("", response_model=List[AdminSummary])
def list_admins(
    claims: Claims = Depends(require_authorized),
    service: AdminLifecycleService = Depends(get_lifecycle_service),
) -> List[AdminSummary]:
    """List active administrators with their role names."""
    return service.list(claims.admin_id)


@router.post("/{admin_id}/delete", response_model=MessageResponse)
def delete_admin(
    admin_id: int,
    claims: Claims = Depends(require_authorized),
    service: AdminLifecycleService = Depends(get_lifecycle_service),
) -> MessageResponse:
    """Permanently remove an active administrator and its role assignments."""
    service.delete(claims.admin_id, admin_id)
    return MessageResponse(message=f"administrator {admin_id} deleted")


@router.api_route("/{admin_id}/freeze", methods=["GET", "POST"], response_model=MessageResponse)
def freeze_admin(
    admin_id: int,
    claims: Claims = Depends(require_authorized),
    service: AdminLifecycleService = Depends(get_lifecycle_service),
) -> MessageResponse:
    """Deactivate an administrator. A frozen account can no longer log in."""
    service.freeze(claims.admin_id, admin_id)
    return MessageResponse(message=f"administrator {admin_id} frozen")
