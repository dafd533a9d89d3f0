"""User router - FastAPI endpoints for signup, profiles and the reviewer directory"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User, UserRole
from ...shared.exceptions import Forbidden
from .schemas import AvailabilityUpdate, UserCreate, UserResponse, UserStatsResponse, UserUpdate
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


def to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        isActive=user.is_active,
        emailVerified=user.email_verified,
        specialization=user.specialization,
        licenseNumber=user.license_number,
        hourlyRate=user.hourly_rate,
        availableSlots=user.available_slots,
        created_at=user.created_at,
    )


@router.post("/signup", response_model=UserResponse, status_code=201)
async def signup(data: UserCreate, service: UserService = Depends(get_user_service)):
    """Register a new customer or reviewer"""
    return to_response(service.signup(data))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return to_response(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return to_response(service.update_profile(current_user, data))


@router.put("/me/availability", response_model=UserResponse)
async def update_availability(
    data: AvailabilityUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Publish the reviewer's weekly availability"""
    return to_response(service.update_availability(current_user, data.availableSlots))


@router.get("/reviewers", response_model=list[UserResponse])
async def list_reviewers(
    specialization: Optional[str] = Query(None),
    _user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Active reviewers, optionally filtered by specialization"""
    return [to_response(u) for u in service.list_reviewers(specialization)]


@router.get("/stats", response_model=UserStatsResponse)
async def user_stats(
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    stats = service.stats()
    return UserStatsResponse(
        totalUsers=stats["total_users"],
        activeUsers=stats["active_users"],
        verifiedUsers=stats["verified_users"],
        customers=stats["by_role"][UserRole.CUSTOMER.value],
        reviewers=stats["by_role"][UserRole.REVIEWER.value],
        admins=stats["by_role"][UserRole.ADMIN.value],
    )


@router.get("/search", response_model=list[UserResponse])
async def search_users(
    q: str = Query(..., min_length=1),
    role: Optional[UserRole] = Query(None),
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Search by name, email or specialization"""
    return [to_response(u) for u in service.search(q, role.value if role else None)]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.get_user(user_id)
    # Reviewer profiles are public to signed-in users; everything else is self or admin
    if (
        user.id != current_user.id
        and current_user.role != UserRole.ADMIN.value
        and user.role != UserRole.REVIEWER.value
    ):
        raise Forbidden("Not allowed to view this user")
    return to_response(user)


@router.post("/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(
    user_id: int,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return to_response(service.set_active(user_id, False))


@router.post("/{user_id}/reactivate", response_model=UserResponse)
async def reactivate_user(
    user_id: int,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return to_response(service.set_active(user_id, True))


__all__ = ["router"]
