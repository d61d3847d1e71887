"""SQLAlchemy model for the users collection."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func

from app.core.db import Base


def generate_user_id() -> str:
    return uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_user_id)
    username = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    image = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
