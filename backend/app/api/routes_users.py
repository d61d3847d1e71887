"""User CRUD and image routes."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from app.core.db import get_db
from app.core.exceptions import RequestDataError, UnsupportedContentTypeError
from app.schemas.user import DeleteResponse, UserCreate, UserOut, UserUpdate
from app.services.user_service import UserService

router = APIRouter(tags=["users"])

SchemaT = TypeVar("SchemaT", bound=BaseModel)

USER_FIELDS = ("username", "email", "password")
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


@dataclass
class UserBody:
    fields: dict[str, Any] = field(default_factory=dict)
    image: Optional[UploadFile] = None


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


async def read_user_body(request: Request) -> UserBody:
    """Read user fields from a form (with optional ``image`` part) or a JSON object."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type == "application/json":
        try:
            payload = await request.json()
        except ValueError as exc:
            raise RequestDataError("Malformed JSON body") from exc
        if not isinstance(payload, dict):
            raise RequestDataError("JSON body must be an object")
        return UserBody(fields={k: payload[k] for k in USER_FIELDS if payload.get(k) is not None})

    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        fields = {k: form[k] for k in USER_FIELDS if form.get(k) not in (None, "")}
        image = form.get("image")
        # Browsers submit an empty part when the file input is left blank.
        if not isinstance(image, UploadFile) or not image.filename:
            image = None
        return UserBody(fields=fields, image=image)

    if not content_type and not await request.body():
        return UserBody()
    raise UnsupportedContentTypeError()


def _parse_fields(schema: Type[SchemaT], fields: dict[str, Any]) -> SchemaT:
    try:
        return schema(**fields)
    except ValidationError as exc:
        causes = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
        raise RequestDataError(causes) from exc


@router.post("/addUser", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def add_user(
    body: UserBody = Depends(read_user_body),
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> UserOut:
    payload = _parse_fields(UserCreate, body.fields)
    return user_service.create_user(db, payload, body.image)


@router.get("/users", response_model=list[UserOut])
def list_users(
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> list[UserOut]:
    return user_service.list_users(db)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> UserOut:
    return user_service.get_user(db, user_id)


@router.put("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    body: UserBody = Depends(read_user_body),
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> UserOut:
    patch = _parse_fields(UserUpdate, body.fields)
    return user_service.update_user(db, user_id, patch, body.image)


@router.delete("/users/{user_id}", response_model=DeleteResponse)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> DeleteResponse:
    user_service.delete_user(db, user_id)
    return DeleteResponse(message="User deleted successfully")


@router.get("/userImage/{user_id}", response_class=FileResponse)
def get_user_image(
    user_id: str,
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> FileResponse:
    return FileResponse(user_service.get_user_image_path(db, user_id))
