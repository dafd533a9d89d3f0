"""User service - Business logic for the user directory"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User, UserRole
from ...shared.exceptions import Conflict, Forbidden, InvalidInput, InvalidReviewer, NotFound
from .repository import UserRepository
from .schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def get_user(self, user_id: int) -> User:
        user = self.repo.get_by_id(self.db, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def signup(self, data: UserCreate) -> User:
        """Register a customer or reviewer"""
        if data.role == UserRole.ADMIN:
            raise Forbidden("Administrators cannot self-register")

        if self.repo.get_by_email(self.db, data.email):
            logger.warning(f"⚠️ Signup rejected, email already registered: {data.email}")
            raise Conflict("Email already registered")

        user_data = {
            "name": data.name,
            "email": data.email,
            "phone": data.phone,
            "role": data.role.value,
        }
        if data.role == UserRole.REVIEWER:
            user_data.update(
                specialization=data.specialization,
                license_number=data.licenseNumber,
                hourly_rate=data.hourlyRate,
            )

        try:
            user = self.repo.create_user(self.db, **user_data)
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict("Email already registered") from e

        logger.info(f"🆕 Registered {user.role} user {user.id}")
        return user

    def update_profile(self, user: User, data: UserUpdate) -> User:
        updates = {"name": data.name, "phone": data.phone}
        if user.role == UserRole.REVIEWER.value:
            updates.update(
                specialization=data.specialization,
                license_number=data.licenseNumber,
                hourly_rate=data.hourlyRate,
            )
        return self.repo.update_user(self.db, user, **updates)

    def set_active(self, user_id: int, active: bool) -> User:
        """Deactivate or reactivate an account; users are never hard-deleted"""
        user = self.get_user(user_id)
        user.is_active = active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"{'✅ Reactivated' if active else '🚫 Deactivated'} user {user_id}")
        return user

    def list_reviewers(self, specialization: Optional[str] = None) -> list[User]:
        return self.repo.get_active_reviewers(self.db, specialization)

    def search(self, term: str, role: Optional[str] = None) -> list[User]:
        if not term or not term.strip():
            raise InvalidInput("Search term is required")
        return self.repo.search(self.db, term, role)

    def stats(self) -> dict:
        return self.repo.get_stats(self.db)

    def update_availability(self, user: User, slots: dict) -> User:
        if user.role != UserRole.REVIEWER.value:
            raise InvalidReviewer("Only reviewers can publish availability")
        user.available_slots = slots
        self.db.commit()
        self.db.refresh(user)
        return user
