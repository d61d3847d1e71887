"""Domain service tying the user repository to the upload store."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from app.core.exceptions import UserImageNotFoundError, UserNotFoundError
from app.repositories.user_repository import UserRepository
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services.upload_store import UploadStore

LOGGER = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        repo: UserRepository,
        upload_store: UploadStore,
        public_base_url: str,
        delete_image_on_user_delete: bool = False,
    ) -> None:
        self.repo = repo
        self.upload_store = upload_store
        self.public_base_url = public_base_url.rstrip("/")
        self.delete_image_on_user_delete = delete_image_on_user_delete

    def create_user(self, db: Session, payload: UserCreate, image: Optional[UploadFile] = None) -> UserOut:
        image_ref = self.upload_store.save(image) if image is not None else None
        try:
            user = self.repo.create(db, payload, image_ref)
        except Exception:
            if image_ref:
                LOGGER.warning("User creation failed, discarding upload %s", image_ref)
                self.upload_store.discard(image_ref)
            raise
        LOGGER.info("Created user id=%s image=%s", user.id, image_ref)
        return UserOut.model_validate(user)

    def list_users(self, db: Session) -> list[UserOut]:
        users = []
        for user in self.repo.list_all(db):
            out = UserOut.model_validate(user)
            if out.image:
                out = out.model_copy(update={"image": self.absolute_image_url(out.image)})
            users.append(out)
        return users

    def get_user(self, db: Session, user_id: str) -> UserOut:
        user = self.repo.get_by_id(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return UserOut.model_validate(user)

    def update_user(
        self,
        db: Session,
        user_id: str,
        patch: UserUpdate,
        image: Optional[UploadFile] = None,
    ) -> UserOut:
        if self.repo.get_by_id(db, user_id) is None:
            raise UserNotFoundError(user_id)

        image_ref = self.upload_store.save(image) if image is not None else None
        try:
            user = self.repo.update_by_id(db, user_id, patch, image_ref)
        except Exception:
            if image_ref:
                LOGGER.warning("Update of user id=%s failed, discarding upload %s", user_id, image_ref)
                self.upload_store.discard(image_ref)
            raise
        if user is None:
            # Deleted concurrently between the existence check and the write.
            if image_ref:
                self.upload_store.discard(image_ref)
            raise UserNotFoundError(user_id)
        LOGGER.info("Updated user id=%s fields=%s", user_id, sorted(patch.changes()))
        return UserOut.model_validate(user)

    def delete_user(self, db: Session, user_id: str) -> None:
        user = self.repo.delete_by_id(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        if user.image:
            if self.delete_image_on_user_delete:
                self.upload_store.discard(user.image)
            else:
                LOGGER.info("Deleted user id=%s, image %s left on disk", user_id, user.image)

    def get_user_image_path(self, db: Session, user_id: str) -> Path:
        user = self.repo.get_by_id(db, user_id)
        if user is None or not user.image:
            raise UserImageNotFoundError(user_id)
        path = self.upload_store.resolve(user.image)
        if not path.is_file():
            LOGGER.warning("Image %s for user id=%s is missing on disk", user.image, user_id)
            raise UserImageNotFoundError(user_id)
        return path

    def absolute_image_url(self, image_ref: str) -> str:
        return f"{self.public_base_url}{image_ref}"
