from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from ..models import Task
from ..schemas.task import TaskCreate, TasksQuery, TaskUpdate
from ..services.auth import Identity
from ..services.tasks import TasksService


class TasksController:
    """Async facade over :class:`TasksService`.

    The service talks to the database synchronously, so each call is moved
    to the thread pool to keep the event loop free.
    """

    def __init__(self, service: TasksService):
        self.service = service

    async def create_task(self, identity: Identity, payload: TaskCreate) -> Task:
        return await run_in_threadpool(self.service.create_task, identity.user_id, payload)

    async def get_tasks(self, identity: Identity, query: TasksQuery) -> List[Task]:
        return await run_in_threadpool(self.service.get_tasks, identity.user_id, query)

    async def get_task(self, identity: Identity, task_id: str) -> Optional[Task]:
        return await run_in_threadpool(self.service.get_task, identity.user_id, task_id)

    async def update_task(self, identity: Identity, task_id: str, payload: TaskUpdate) -> Optional[Task]:
        return await run_in_threadpool(self.service.update_task, identity.user_id, task_id, payload)

    async def delete_task(self, identity: Identity, task_id: str) -> Optional[Task]:
        return await run_in_threadpool(self.service.delete_task, identity.user_id, task_id)
