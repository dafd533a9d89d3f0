"""User repository - Database operations for users"""

from typing import Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from ...models import User, UserRole


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        """Case-insensitive email lookup"""
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def get_active_reviewers(db: Session, specialization: Optional[str] = None) -> list[User]:
        query = db.query(User).filter(
            User.role == UserRole.REVIEWER.value, User.is_active.is_(True)
        )
        if specialization:
            query = query.filter(User.specialization.ilike(f"%{specialization}%"))
        return query.order_by(User.name.asc()).all()

    @staticmethod
    def search(db: Session, term: str, role: Optional[str] = None, limit: int = 10) -> list[User]:
        """Match name, email or specialization"""
        pattern = f"%{term.strip()}%"
        query = db.query(User).filter(
            or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.specialization.ilike(pattern),
            )
        )
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.name.asc(), User.id.asc()).limit(limit).all()

    @staticmethod
    def get_stats(db: Session) -> dict:
        by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
        total, active, verified = db.query(
            func.count(User.id),
            func.coalesce(func.sum(case((User.is_active.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((User.email_verified.is_(True), 1), else_=0)), 0),
        ).one()
        return {
            "total_users": total,
            "active_users": int(active),
            "verified_users": int(verified),
            "by_role": {r.value: by_role.get(r.value, 0) for r in UserRole},
        }

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(**user_data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        """Update a user with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)

        db.commit()
        db.refresh(user)
        return user
