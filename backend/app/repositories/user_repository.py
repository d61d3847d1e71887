"""Repository for user persistence and retrieval."""
from __future__ import annotations

import logging
import re

from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate

LOGGER = logging.getLogger(__name__)

_USER_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def is_valid_user_id(user_id: str) -> bool:
    return bool(_USER_ID_RE.match(user_id))


class UserRepository:
    def create(self, db: Session, user_create: UserCreate, image: str | None = None) -> User:
        user = User(
            username=user_create.username,
            email=user_create.email,
            password=user_create.password,
            image=image,
        )
        db.add(user)
        self._commit(db, "create", user.username)
        db.refresh(user)
        return user

    def list_all(self, db: Session) -> list[User]:
        return db.query(User).order_by(User.created_at).all()

    def get_by_id(self, db: Session, user_id: str) -> User | None:
        # Ids that could never have been issued are reported as missing without a query.
        if not is_valid_user_id(user_id):
            return None
        return db.get(User, user_id)

    def update_by_id(self, db: Session, user_id: str, patch: UserUpdate, image: str | None = None) -> User | None:
        user = self.get_by_id(db, user_id)
        if user is None:
            return None
        for field, value in patch.changes().items():
            setattr(user, field, value)
        if image:
            user.image = image
        self._commit(db, "update", user_id)
        db.refresh(user)
        return user

    def delete_by_id(self, db: Session, user_id: str) -> User | None:
        user = self.get_by_id(db, user_id)
        if user is None:
            return None
        db.delete(user)
        self._commit(db, "delete", user_id)
        return user

    def _commit(self, db: Session, action: str, subject: str) -> None:
        try:
            db.commit()
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            LOGGER.error("DB %s failed for user=%s: %s", action, subject, exc)
            raise
