from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from .task import utcnow

CREDENTIAL_PROVIDER = "credential"


class AuthSession(SQLModel, table=True):
    """A signed-in browser or API client."""
    __tablename__ = "session"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    token: str = Field(unique=True, index=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    expires_at: datetime = Field(sa_type=DateTime)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    impersonated_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, sa_column_kwargs={"onupdate": utcnow})

    user: Optional["User"] = Relationship(back_populates="sessions")


class Account(SQLModel, table=True):
    """Login method of a user; e-mail/password logins use the credential provider."""
    __tablename__ = "account"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    account_id: str
    provider_id: str = Field(default=CREDENTIAL_PROVIDER)
    user_id: str = Field(foreign_key="user.id", index=True)
    password: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    access_token_expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    refresh_token_expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    scope: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, sa_column_kwargs={"onupdate": utcnow})

    user: Optional["User"] = Relationship(back_populates="accounts")


class Verification(SQLModel, table=True):
    __tablename__ = "verification"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    identifier: str = Field(index=True)
    value: str
    expires_at: datetime = Field(sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, sa_column_kwargs={"onupdate": utcnow})
