from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..models import Task, utcnow


class TasksStorage:
    """Database access for tasks.

    Every query is filtered by the owning user in the same predicate as the
    task id, so a task belonging to someone else is simply not found.
    """

    def __init__(self, db: Session):
        self.db = db

    def _owned(self, owner_id: str, task_id: str) -> Optional[Task]:
        statement = select(Task).where(Task.id == task_id, Task.user_id == owner_id)
        return self.db.exec(statement).first()

    def create_task(
        self,
        owner_id: str,
        title: str,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Task:
        now = utcnow()
        task = Task(
            title=title,
            description=description,
            completed=False if completed is None else completed,
            user_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def list_tasks(self, owner_id: str, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Task]:
        statement = (
            select(Task)
            .where(Task.user_id == owner_id)
            .order_by(Task.created_at.asc(), Task.id.asc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        if offset:
            statement = statement.offset(offset)
        return list(self.db.exec(statement).all())

    def get_task(self, owner_id: str, task_id: str) -> Optional[Task]:
        return self._owned(owner_id, task_id)

    def update_task(self, owner_id: str, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        task = self._owned(owner_id, task_id)
        if task is None:
            return None

        for field, value in fields.items():
            setattr(task, field, value)

        # Keep updated_at strictly increasing even when the clock has not moved
        now = utcnow()
        if now <= task.updated_at:
            now = task.updated_at + timedelta(microseconds=1)
        task.updated_at = now

        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def delete_task(self, owner_id: str, task_id: str) -> Optional[Task]:
        task = self._owned(owner_id, task_id)
        if task is None:
            return None

        self.db.delete(task)
        self.db.commit()
        return task
