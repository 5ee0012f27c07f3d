from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ..controllers.tasks import TasksController
from ..database import get_db
from ..schemas.common import StatusOk
from ..schemas.task import (
    TaskCreate,
    TaskListResponse,
    TaskParams,
    TaskRead,
    TaskResponse,
    TasksQuery,
    TaskUpdate,
)
from ..services.auth import Identity
from ..services.tasks import TasksService
from ..storage.tasks import TasksStorage
from .auth import parse_request, read_json_body, require_identity

router = APIRouter()


def get_tasks_controller(db: Session = Depends(get_db)) -> TasksController:
    return TasksController(TasksService(TasksStorage(db)))


def _task_id(task_id: str) -> str:
    return str(parse_request(TaskParams, {"id": task_id}).id)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


# Identity is declared first on every route: FastAPI resolves dependencies in
# order, so an anonymous request is rejected before its input is looked at.

@router.post("", response_model=TaskResponse)
async def create_task(
    identity: Identity = Depends(require_identity),
    body: Any = Depends(read_json_body),
    controller: TasksController = Depends(get_tasks_controller),
):
    """Create a task owned by the caller."""
    payload = parse_request(TaskCreate, body)
    task = await controller.create_task(identity, payload)
    return TaskResponse(data=TaskRead.model_validate(task))


@router.get("", response_model=TaskListResponse)
async def get_tasks(
    request: Request,
    identity: Identity = Depends(require_identity),
    controller: TasksController = Depends(get_tasks_controller),
):
    """List the caller's tasks, oldest first."""
    query = parse_request(TasksQuery, dict(request.query_params))
    tasks = await controller.get_tasks(identity, query)
    return TaskListResponse(data=[TaskRead.model_validate(task) for task in tasks])


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    identity: Identity = Depends(require_identity),
    controller: TasksController = Depends(get_tasks_controller),
):
    task = await controller.get_task(identity, _task_id(task_id))
    if task is None:
        raise _not_found()
    return TaskResponse(data=TaskRead.model_validate(task))


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    identity: Identity = Depends(require_identity),
    body: Any = Depends(read_json_body),
    controller: TasksController = Depends(get_tasks_controller),
):
    """Apply a partial update; only the fields present in the body change."""
    task_id = _task_id(task_id)
    payload = parse_request(TaskUpdate, body)
    task = await controller.update_task(identity, task_id, payload)
    if task is None:
        raise _not_found()
    return TaskResponse(data=TaskRead.model_validate(task))


@router.delete("/{task_id}", response_model=StatusOk)
async def delete_task(
    task_id: str,
    identity: Identity = Depends(require_identity),
    controller: TasksController = Depends(get_tasks_controller),
):
    deleted = await controller.delete_task(identity, _task_id(task_id))
    if deleted is None:
        raise _not_found()
    return StatusOk()
