from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from .task import utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(SQLModel, table=True):
    """User model for authentication and user management."""
    __tablename__ = "user"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    email_verified: bool = Field(default=False)
    image: Optional[str] = None
    role: str = Field(default=ROLE_USER)
    banned: bool = Field(default=False)
    ban_reason: Optional[str] = None
    ban_expires: Optional[datetime] = Field(default=None, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, sa_column_kwargs={"onupdate": utcnow})

    tasks: List["Task"] = Relationship(back_populates="user")
    sessions: List["AuthSession"] = Relationship(
        back_populates="user", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    accounts: List["Account"] = Relationship(
        back_populates="user", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )