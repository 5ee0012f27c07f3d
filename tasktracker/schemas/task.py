from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, model_validator

from .common import CamelModel, UtcDatetime


class TaskCreate(BaseModel):
    """Body of ``POST /tasks``."""
    model_config = ConfigDict(extra="ignore")

    title: StrictStr = Field(min_length=1)
    description: Optional[StrictStr] = None
    completed: Optional[StrictBool] = None


class TaskUpdate(BaseModel):
    """Body of ``PUT /tasks/{id}``.

    Every field is optional but none may be sent as ``null``; which fields
    were sent is read from ``model_fields_set``.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[StrictStr] = Field(default=None, min_length=2, max_length=100)
    description: Optional[StrictStr] = Field(default=None, min_length=2, max_length=1000)
    completed: Optional[StrictBool] = None

    @model_validator(mode="after")
    def _reject_explicit_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} may not be null")
        return self

    def provided_fields(self) -> Dict[str, Any]:
        return self.model_dump(include=self.model_fields_set)


class TaskParams(BaseModel):
    id: UUID


class TasksQuery(BaseModel):
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0, le=100000)


class TaskRead(CamelModel):
    """Task as returned by the API."""
    id: str
    title: str
    description: Optional[str] = None
    completed: bool
    user_id: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class TaskResponse(BaseModel):
    status: Literal["ok"] = "ok"
    data: TaskRead


class TaskListResponse(BaseModel):
    status: Literal["ok"] = "ok"
    data: List[TaskRead]
