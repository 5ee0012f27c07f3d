from typing import List, Literal, Optional

from pydantic import ConfigDict, EmailStr, Field, StrictBool, StrictStr, model_validator

from .common import CamelModel, UtcDatetime

Role = Literal["user", "admin"]


class UserRead(CamelModel):
    id: str
    name: str
    email: str
    email_verified: bool
    image: Optional[str] = None
    role: str
    banned: bool
    ban_reason: Optional[str] = None
    ban_expires: Optional[UtcDatetime] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class SessionRead(CamelModel):
    id: str
    token: str
    user_id: str
    expires_at: UtcDatetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    impersonated_by: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class SessionResponse(CamelModel):
    session: SessionRead
    user: UserRead


class SignUpEmail(CamelModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr = Field(min_length=1, max_length=255)
    email: EmailStr
    password: StrictStr = Field(min_length=8, max_length=128)
    image: Optional[StrictStr] = None


class SignInEmail(CamelModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: StrictStr = Field(min_length=1)
    remember_me: StrictBool = True


class SignUpResponse(CamelModel):
    token: str
    user: UserRead


class SignInResponse(CamelModel):
    token: str
    redirect: bool = False
    user: UserRead


class ListUsersQuery(CamelModel):
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)
    search_value: Optional[str] = None
    search_field: Literal["email", "name"] = "email"
    search_operator: Literal["contains", "starts_with", "ends_with"] = "contains"
    sort_by: Literal["createdAt", "email", "name"] = "createdAt"
    sort_direction: Literal["asc", "desc"] = "asc"


class ListUsersResponse(CamelModel):
    users: List[UserRead]
    total: int
    limit: int
    offset: int


class CreateUser(CamelModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: StrictStr = Field(min_length=8, max_length=128)
    name: StrictStr = Field(min_length=1, max_length=255)
    role: Role = "user"


class UserProfileUpdate(CamelModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[StrictStr] = Field(default=None, min_length=1, max_length=255)
    image: Optional[StrictStr] = None

    @model_validator(mode="after")
    def _name_not_null(self):
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name may not be null")
        return self


class UpdateUser(CamelModel):
    model_config = ConfigDict(extra="ignore")

    user_id: StrictStr
    data: UserProfileUpdate


class SetRole(CamelModel):
    user_id: StrictStr
    role: Role


class BanUser(CamelModel):
    model_config = ConfigDict(extra="ignore")

    user_id: StrictStr
    ban_reason: Optional[StrictStr] = None
    ban_expires_in: Optional[int] = Field(default=None, gt=0)


class UnbanUser(CamelModel):
    user_id: StrictStr


class UserResponse(CamelModel):
    user: UserRead

