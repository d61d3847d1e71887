"""Pydantic schemas for user create/update forms and responses."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _reject_blank(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("must not be empty")
    return v


class UserCreate(BaseModel):
    username: str
    email: str
    password: str

    @field_validator("username", "email", "password")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _reject_blank(v)


class UserUpdate(BaseModel):
    """Partial update; fields left as ``None`` keep their stored value."""

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("username", "email", "password")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _reject_blank(v)

    def changes(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias=AliasChoices("_id", "id"), serialization_alias="_id")
    username: str
    email: str
    password: str
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeleteResponse(BaseModel):
    message: str
