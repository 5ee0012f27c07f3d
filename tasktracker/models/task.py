from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every table stores.

    Timestamp columns are declared as plain ``DateTime`` so the ORM neither
    adds nor demands a zone.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Task(SQLModel, table=True):
    """Task model for todo items."""
    __tablename__ = "task"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    completed: bool = Field(default=False, nullable=False)
    user_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime, sa_column_kwargs={"onupdate": utcnow})

    # Relationship back to user
    user: Optional["User"] = Relationship(back_populates="tasks")
