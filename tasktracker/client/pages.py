import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..schemas.task import TaskRead
from ..schemas.user import ListUsersResponse, UserRead
from .api import ApiClient, AuthClient
from .hooks import (
    Toaster,
    use_ban_user,
    use_create_task,
    use_delete_task,
    use_tasks,
    use_unban_user,
    use_update_task,
    use_update_user,
    use_users_list,
)
from .query import QueryClient

SEARCH_DEBOUNCE = 0.3
USERS_PAGE_SIZE = 10


@dataclass(frozen=True)
class ConfirmOptions:
    title: str
    message: str
    confirm_label: str = "Confirm"
    cancel_label: str = "Cancel"
    confirm_color: str = "primary"


# Shows a confirmation dialog and returns whether the user accepted
Confirm = Callable[[ConfirmOptions], bool]


class Debouncer:
    """Trailing-edge debounce: a pushed value settles once ``delay`` seconds pass without another push."""

    def __init__(self, delay: float = SEARCH_DEBOUNCE, initial: Any = "", clock: Callable[[], float] = time.monotonic):
        self.delay = delay
        self.value = initial
        self._clock = clock
        self._pending: Any = None
        self._deadline: Optional[float] = None

    @property
    def is_pending(self) -> bool:
        return self._deadline is not None

    def push(self, value: Any) -> None:
        self._pending = value
        self._deadline = self._clock() + self.delay

    def poll(self) -> bool:
        """Settle the pending value if its delay has elapsed; True when the value changed."""
        if self._deadline is None or self._clock() < self._deadline:
            return False
        changed = self._pending != self.value
        self.value = self._pending
        self._pending = None
        self._deadline = None
        return changed


@dataclass
class TaskForm:
    title: str = ""
    description: str = ""


class TasksPage:
    """State of the task list page: list, create form, edit slideover and deletion."""

    def __init__(self, query_client: QueryClient, api: ApiClient, confirm: Confirm):
        self.confirm = confirm
        self.tasks_query = use_tasks(query_client, api)
        self.create_mutation = use_create_task(query_client, api)
        self.update_mutation = use_update_task(query_client, api)
        self.delete_mutation = use_delete_task(query_client, api)
        self.form = TaskForm()
        self.editing: Optional[TaskRead] = None
        self.edit_form = TaskForm()

    def load(self) -> List[TaskRead]:
        return self.tasks_query.fetch() or []

    @property
    def tasks(self) -> List[TaskRead]:
        return self.tasks_query.data or []

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self.tasks if task.completed)

    @property
    def pending_count(self) -> int:
        return len(self.tasks) - self.completed_count

    def submit_new(self) -> Optional[TaskRead]:
        title = self.form.title.strip()
        if not title:
            return None
        variables: Dict[str, Any] = {"title": title}
        if self.form.description.strip():
            variables["description"] = self.form.description.strip()
        task = self.create_mutation.mutate(variables)
        if task is not None:
            self.form = TaskForm()
        return task

    def toggle(self, task: TaskRead) -> Optional[TaskRead]:
        return self.update_mutation.mutate({"id": task.id, "json": {"completed": not task.completed}})

    @property
    def edit_open(self) -> bool:
        return self.editing is not None

    def open_edit(self, task: TaskRead) -> None:
        self.editing = task
        self.edit_form = TaskForm(title=task.title, description=task.description or "")

    def close_edit(self) -> None:
        self.editing = None
        self.edit_form = TaskForm()

    def save_edit(self) -> Optional[TaskRead]:
        """Send only the fields that differ from the task being edited."""
        if self.editing is None:
            return None
        changes: Dict[str, Any] = {}
        if self.edit_form.title != self.editing.title:
            changes["title"] = self.edit_form.title
        if self.edit_form.description != (self.editing.description or ""):
            changes["description"] = self.edit_form.description
        if not changes:
            unchanged = self.editing
            self.close_edit()
            return unchanged
        task = self.update_mutation.mutate({"id": self.editing.id, "json": changes})
        if task is not None:
            self.close_edit()
        return task

    def delete(self, task: TaskRead) -> bool:
        accepted = self.confirm(
            ConfirmOptions(
                title="Delete task",
                message=f'Delete "{task.title}"? This cannot be undone.',
                confirm_label="Delete",
                confirm_color="error",
            )
        )
        if not accepted:
            return False
        self.delete_mutation.mutate(task.id)
        return self.delete_mutation.status == "success"


class UsersPage:
    """State of the admin users page.

    Pages are 1-based. Typing in the search box only changes the query once
    the debounce settles, and a settled search returns to the first page.
    """

    def __init__(
        self,
        query_client: QueryClient,
        auth: AuthClient,
        toaster: Toaster,
        confirm: Confirm,
        page_size: int = USERS_PAGE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.confirm = confirm
        self.page_size = page_size
        self.page = 1
        self.total = 0
        self.search_input = ""
        self.search = Debouncer(SEARCH_DEBOUNCE, initial="", clock=clock)
        self.users_query = use_users_list(
            query_client,
            auth,
            limit=lambda: self.page_size,
            offset=lambda: self.offset,
            search_email=lambda: self.search.value,
        )
        self.ban_mutation = use_ban_user(query_client, auth, toaster)
        self.unban_mutation = use_unban_user(query_client, auth, toaster)
        self.update_mutation = use_update_user(query_client, auth, toaster)
        self.editing: Optional[UserRead] = None
        self.edit_name = ""

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def type_search(self, text: str) -> None:
        self.search_input = text
        self.search.push(text.strip())

    def tick(self) -> bool:
        """Advance timers; returns True when a new search was applied."""
        if self.search.poll():
            self.page = 1
            return True
        return False

    def load(self) -> Optional[ListUsersResponse]:
        self.tick()
        page = self.users_query.fetch()
        if page is not None:
            # Survives page changes until the next page loads
            self.total = page.total
        return page

    @property
    def users(self) -> List[UserRead]:
        data = self.users_query.data
        return data.users if data is not None else []

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    def go_to(self, page: int) -> None:
        self.page = min(max(1, page), self.page_count)

    def next_page(self) -> None:
        self.go_to(self.page + 1)

    def previous_page(self) -> None:
        self.go_to(self.page - 1)

    def ban(self, user: UserRead, reason: Optional[str] = None) -> bool:
        accepted = self.confirm(
            ConfirmOptions(
                title="Ban user",
                message=f"Are you sure you want to ban {user.email}?",
                confirm_label="Ban",
                confirm_color="error",
            )
        )
        if not accepted:
            return False
        return self.ban_mutation.mutate({"user_id": user.id, "ban_reason": reason}) is not None

    def unban(self, user: UserRead) -> bool:
        accepted = self.confirm(
            ConfirmOptions(
                title="Unban user",
                message=f"Are you sure you want to unban {user.email}?",
                confirm_label="Unban",
                confirm_color="success",
            )
        )
        if not accepted:
            return False
        return self.unban_mutation.mutate({"user_id": user.id}) is not None

    @property
    def edit_open(self) -> bool:
        return self.editing is not None

    def open_edit(self, user: UserRead) -> None:
        self.editing = user
        self.edit_name = user.name

    def close_edit(self) -> None:
        self.editing = None
        self.edit_name = ""

    def save_edit(self) -> Optional[UserRead]:
        if self.editing is None:
            return None
        name = self.edit_name.strip()
        if not name:
            return None
        user = self.update_mutation.mutate({"user_id": self.editing.id, "data": {"name": name}})
        if user is not None:
            self.close_edit()
        return user
