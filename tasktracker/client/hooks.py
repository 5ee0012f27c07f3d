from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..schemas.task import TaskRead
from ..schemas.user import ListUsersResponse, SessionResponse, UserRead
from .api import ApiClient, ApiError, AuthClient
from .query import Mutation, Query, QueryClient, resolve_value

TASKS_KEY = ("tasks",)
ADMIN_USERS_KEY = ("admin-users",)
AUTH_USER_KEY = ("auth-user",)

USERS_STALE_TIME = 60 * 5
SESSION_STALE_TIME = 60 * 5


@dataclass(frozen=True)
class Toast:
    title: str
    color: str
    description: Optional[str] = None
    icon: Optional[str] = None


class Toaster:
    """Collects notifications for the UI to display."""

    def __init__(self):
        self.toasts: List[Toast] = []

    def add(self, title: str, color: str = "primary", description: Optional[str] = None, icon: Optional[str] = None):
        toast = Toast(title=title, color=color, description=description, icon=icon)
        self.toasts.append(toast)
        return toast

    def clear(self) -> None:
        self.toasts.clear()


# tasks

def use_tasks(query_client: QueryClient, api: ApiClient) -> Query[List[TaskRead]]:
    return Query(query_client, TASKS_KEY, api.list_tasks)


def use_task(query_client: QueryClient, api: ApiClient, task_id: str) -> Query[TaskRead]:
    return Query(query_client, TASKS_KEY + (task_id,), lambda: api.get_task(task_id))


def use_create_task(query_client: QueryClient, api: ApiClient) -> Mutation[Dict[str, Any], TaskRead]:
    """Create a task and append it to the cached list without refetching."""

    def on_success(task: TaskRead, variables) -> None:
        query_client.set_query_data(
            TASKS_KEY, lambda old: [*old, task] if isinstance(old, list) else [task]
        )

    return Mutation(lambda variables: api.create_task(**variables), on_success=on_success)


def use_update_task(query_client: QueryClient, api: ApiClient) -> Mutation[Dict[str, Any], TaskRead]:
    """Update a task; variables are ``{"id": ..., "json": {...fields}}``."""

    def on_success(task: TaskRead, variables) -> None:
        if not query_client.has_query_data(TASKS_KEY):
            return
        query_client.set_query_data(
            TASKS_KEY, lambda old: [task if item.id == task.id else item for item in (old or [])]
        )

    return Mutation(lambda variables: api.update_task(variables["id"], **variables["json"]), on_success=on_success)


def use_delete_task(query_client: QueryClient, api: ApiClient) -> Mutation[str, None]:
    """Delete a task by id and drop it from the cached list."""

    def on_success(_, task_id: str) -> None:
        if not query_client.has_query_data(TASKS_KEY):
            return
        query_client.set_query_data(
            TASKS_KEY, lambda old: old if not isinstance(old, list) else [item for item in old if item.id != task_id]
        )

    return Mutation(api.delete_task, on_success=on_success)


# admin

def use_users_list(
    query_client: QueryClient,
    auth: AuthClient,
    limit,
    offset,
    search_email="",
) -> Query[ListUsersResponse]:
    """Page of users; ``limit``, ``offset`` and ``search_email`` may be getters.

    Each distinct combination is cached under its own key.
    """

    def key():
        return ADMIN_USERS_KEY + (resolve_value(limit), resolve_value(offset), resolve_value(search_email) or "")

    def fetch() -> ListUsersResponse:
        return auth.list_users(
            limit=resolve_value(limit),
            offset=resolve_value(offset),
            search_value=resolve_value(search_email) or None,
            search_field="email",
            search_operator="contains",
        )

    return Query(query_client, key, fetch, stale_time=USERS_STALE_TIME)


def _admin_mutation(
    query_client: QueryClient,
    toaster: Toaster,
    fn: Callable[[Dict[str, Any]], UserRead],
    success_title: str,
    failure_title: str,
) -> Mutation[Dict[str, Any], UserRead]:
    def on_success(user: UserRead, variables) -> None:
        query_client.invalidate_queries(ADMIN_USERS_KEY)
        toaster.add(title=success_title, color="success", icon="i-lucide-circle-check")

    def on_error(error: ApiError, variables) -> None:
        toaster.add(title=failure_title, color="error", description=error.message, icon="i-lucide-alert-circle")

    return Mutation(fn, on_success=on_success, on_error=on_error)


def use_ban_user(query_client: QueryClient, auth: AuthClient, toaster: Toaster):
    return _admin_mutation(
        query_client,
        toaster,
        lambda variables: auth.ban_user(
            variables["user_id"],
            ban_reason=variables.get("ban_reason"),
            ban_expires_in=variables.get("ban_expires_in"),
        ),
        "User banned successfully",
        "Failed to ban user",
    )


def use_unban_user(query_client: QueryClient, auth: AuthClient, toaster: Toaster):
    return _admin_mutation(
        query_client,
        toaster,
        lambda variables: auth.unban_user(variables["user_id"]),
        "User unbanned successfully",
        "Failed to unban user",
    )


def use_update_user(query_client: QueryClient, auth: AuthClient, toaster: Toaster):
    return _admin_mutation(
        query_client,
        toaster,
        lambda variables: auth.update_user(variables["user_id"], variables["data"]),
        "User updated successfully",
        "Failed to update user",
    )


# auth

def use_auth_user(query_client: QueryClient, auth: AuthClient) -> Query[Optional[SessionResponse]]:
    return Query(query_client, AUTH_USER_KEY, auth.get_session, stale_time=SESSION_STALE_TIME)


def use_login_email(
    auth: AuthClient,
    query_client: Optional[QueryClient] = None,
    on_success: Optional[Callable[[UserRead, Dict[str, Any]], None]] = None,
    on_error: Optional[Callable[[ApiError, Dict[str, Any]], None]] = None,
    on_mutate: Optional[Callable[[Dict[str, Any]], None]] = None,
) -> Mutation[Dict[str, Any], UserRead]:
    def succeeded(user: UserRead, variables) -> None:
        if query_client is not None:
            # The cached session belongs to whoever was signed in before
            query_client.invalidate_queries(AUTH_USER_KEY)
        if on_success is not None:
            on_success(user, variables)

    return Mutation(
        lambda credentials: auth.sign_in_email(**credentials),
        on_success=succeeded,
        on_error=on_error,
        on_mutate=on_mutate,
    )


def use_register_email(
    auth: AuthClient,
    on_success: Optional[Callable[[UserRead, Dict[str, Any]], None]] = None,
) -> Mutation[Dict[str, Any], UserRead]:
    return Mutation(lambda credentials: auth.sign_up_email(**credentials), on_success=on_success)


def use_logout(
    query_client: QueryClient,
    auth: AuthClient,
    on_success: Optional[Callable[[], None]] = None,
) -> Mutation[None, None]:
    def succeeded(_, variables) -> None:
        query_client.set_query_data(AUTH_USER_KEY, None)
        if on_success is not None:
            on_success()

    return Mutation(lambda _: auth.sign_out(), on_success=succeeded)
