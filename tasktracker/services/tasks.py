from typing import List, Optional

from ..errors import NoFieldsToUpdate
from ..models import Task
from ..schemas.task import TaskCreate, TasksQuery, TaskUpdate
from ..storage.tasks import TasksStorage


class TasksService:
    """Business rules for tasks, on top of :class:`TasksStorage`."""

    def __init__(self, storage: TasksStorage):
        self.storage = storage

    def create_task(self, owner_id: str, payload: TaskCreate) -> Task:
        return self.storage.create_task(
            owner_id,
            title=payload.title,
            description=payload.description,
            completed=payload.completed,
        )

    def get_tasks(self, owner_id: str, query: Optional[TasksQuery] = None) -> List[Task]:
        if query is None:
            query = TasksQuery()
        return self.storage.list_tasks(owner_id, limit=query.limit, offset=query.offset)

    def get_task(self, owner_id: str, task_id: str) -> Optional[Task]:
        return self.storage.get_task(owner_id, task_id)

    def update_task(self, owner_id: str, task_id: str, payload: TaskUpdate) -> Optional[Task]:
        """Apply the fields present in ``payload``.

        Raises :class:`NoFieldsToUpdate` when the payload carried none, before
        storage is touched.
        """
        updates = payload.provided_fields()
        if not updates:
            raise NoFieldsToUpdate()
        return self.storage.update_task(owner_id, task_id, updates)

    def delete_task(self, owner_id: str, task_id: str) -> Optional[Task]:
        return self.storage.delete_task(owner_id, task_id)
