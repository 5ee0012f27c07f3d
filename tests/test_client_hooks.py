from unittest.mock import MagicMock

import pytest

from client_factories import make_page, make_session, make_task, make_user
from tasktracker.client import ApiError, QueryClient, Toaster
from tasktracker.client.hooks import (
    ADMIN_USERS_KEY,
    AUTH_USER_KEY,
    TASKS_KEY,
    use_auth_user,
    use_ban_user,
    use_create_task,
    use_delete_task,
    use_login_email,
    use_register_email,
    use_logout,
    use_task,
    use_tasks,
    use_unban_user,
    use_update_task,
    use_update_user,
    use_users_list,
)


@pytest.fixture
def query_client():
    return QueryClient()


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def auth():
    return MagicMock()


def test_use_tasks_caches_list(query_client, api):
    tasks = [make_task()]
    api.list_tasks.return_value = tasks

    assert use_tasks(query_client, api).fetch() == tasks
    assert use_tasks(query_client, api).fetch() == tasks
    api.list_tasks.assert_called_once_with()


def test_use_task_keys_by_id(query_client, api):
    task = make_task()
    api.get_task.return_value = task

    query = use_task(query_client, api, task.id)

    assert query.key == TASKS_KEY + (task.id,)
    assert query.fetch() is task


def test_create_appends_to_cached_list(query_client, api):
    existing = make_task("existing")
    created = make_task("new")
    query_client.set_query_data(TASKS_KEY, [existing])
    api.create_task.return_value = created

    use_create_task(query_client, api).mutate({"title": "new"})

    api.create_task.assert_called_once_with(title="new")
    assert query_client.get_query_data(TASKS_KEY) == [existing, created]


def test_create_seeds_empty_cache(query_client, api):
    created = make_task("new")
    api.create_task.return_value = created

    use_create_task(query_client, api).mutate({"title": "new"})

    assert query_client.get_query_data(TASKS_KEY) == [created]


def test_update_replaces_cached_task(query_client, api):
    first, second = make_task("first"), make_task("second")
    query_client.set_query_data(TASKS_KEY, [first, second])
    changed = first.model_copy(update={"completed": True})
    api.update_task.return_value = changed

    use_update_task(query_client, api).mutate({"id": first.id, "json": {"completed": True}})

    api.update_task.assert_called_once_with(first.id, completed=True)
    assert query_client.get_query_data(TASKS_KEY) == [changed, second]


def test_update_without_cache_leaves_it_empty(query_client, api):
    api.update_task.return_value = make_task()

    use_update_task(query_client, api).mutate({"id": "x", "json": {"title": "ab"}})

    assert not query_client.has_query_data(TASKS_KEY)


def test_delete_removes_cached_task(query_client, api):
    first, second = make_task("first"), make_task("second")
    query_client.set_query_data(TASKS_KEY, [first, second])
    api.delete_task.return_value = None

    mutation = use_delete_task(query_client, api)
    mutation.mutate(first.id)

    assert mutation.status == "success"
    assert query_client.get_query_data(TASKS_KEY) == [second]


def test_failed_delete_keeps_cache(query_client, api):
    task = make_task()
    query_client.set_query_data(TASKS_KEY, [task])
    api.delete_task.side_effect = ApiError(404, "Task not found")

    mutation = use_delete_task(query_client, api)
    mutation.mutate(task.id)

    assert mutation.status == "error"
    assert query_client.get_query_data(TASKS_KEY) == [task]


def test_users_list_key_and_search(query_client, auth):
    auth.list_users.return_value = make_page([make_user()])

    query = use_users_list(query_client, auth, limit=10, offset=20, search_email="car")
    query.fetch()

    assert query.key == ADMIN_USERS_KEY + (10, 20, "car")
    auth.list_users.assert_called_once_with(
        limit=10, offset=20, search_value="car", search_field="email", search_operator="contains"
    )


def test_users_list_without_search(query_client, auth):
    auth.list_users.return_value = make_page([])

    use_users_list(query_client, auth, limit=10, offset=0).fetch()

    assert auth.list_users.call_args.kwargs["search_value"] is None


def test_users_list_stays_fresh_for_five_minutes(auth):
    clock = [0.0]
    query_client = QueryClient(clock=lambda: clock[0])
    auth.list_users.return_value = make_page([])
    query = use_users_list(query_client, auth, limit=10, offset=0)

    query.fetch()
    clock[0] = 299
    query.fetch()
    assert auth.list_users.call_count == 1

    clock[0] = 300
    query.fetch()
    assert auth.list_users.call_count == 2


@pytest.mark.parametrize(
    "hook, method, variables, title",
    [
        (use_ban_user, "ban_user", {"user_id": "u1", "ban_reason": "spam"}, "User banned successfully"),
        (use_unban_user, "unban_user", {"user_id": "u1"}, "User unbanned successfully"),
        (use_update_user, "update_user", {"user_id": "u1", "data": {"name": "New"}}, "User updated successfully"),
    ],
)
def test_admin_mutations_invalidate_and_toast(query_client, auth, hook, method, variables, title):
    toaster = Toaster()
    getattr(auth, method).return_value = make_user()
    query_client.set_query_data(ADMIN_USERS_KEY + (10, 0, ""), make_page([]))

    hook(query_client, auth, toaster).mutate(variables)

    assert query_client.is_stale(ADMIN_USERS_KEY + (10, 0, ""))
    assert toaster.toasts[-1].title == title
    assert toaster.toasts[-1].color == "success"


def test_admin_mutation_failure_toasts_error(query_client, auth):
    toaster = Toaster()
    auth.ban_user.side_effect = ApiError(400, "You cannot ban yourself")

    mutation = use_ban_user(query_client, auth, toaster)
    mutation.mutate({"user_id": "me"})

    assert mutation.status == "error"
    toast = toaster.toasts[-1]
    assert toast.title == "Failed to ban user"
    assert toast.color == "error"
    assert toast.description == "You cannot ban yourself"


def test_ban_passes_reason_and_expiry(query_client, auth):
    auth.ban_user.return_value = make_user()

    use_ban_user(query_client, auth, Toaster()).mutate({"user_id": "u1", "ban_reason": "spam", "ban_expires_in": 60})

    auth.ban_user.assert_called_once_with("u1", ban_reason="spam", ban_expires_in=60)


def test_auth_user_query(query_client, auth):
    session = make_session(make_user())
    auth.get_session.return_value = session

    assert use_auth_user(query_client, auth).fetch() is session
    assert query_client.get_query_data(AUTH_USER_KEY) is session


def test_login_invalidates_cached_session(query_client, auth):
    seen = []
    user = make_user()
    auth.sign_in_email.return_value = user
    query_client.set_query_data(AUTH_USER_KEY, None)

    use_login_email(auth, query_client, on_success=lambda result, variables: seen.append(result)).mutate(
        {"email": "carol@example.com", "password": "password123"}
    )

    auth.sign_in_email.assert_called_once_with(email="carol@example.com", password="password123")
    assert query_client.is_stale(AUTH_USER_KEY)
    assert seen == [user]


def test_login_failure_calls_on_error(auth):
    errors = []
    auth.sign_in_email.side_effect = ApiError(401, "Invalid email or password")

    use_login_email(auth, on_error=lambda exc, variables: errors.append(exc.status_code)).mutate(
        {"email": "carol@example.com", "password": "wrong"}
    )

    assert errors == [401]


def test_logout_clears_cached_session(query_client, auth):
    called = []
    query_client.set_query_data(AUTH_USER_KEY, make_session(make_user()))

    use_logout(query_client, auth, on_success=lambda: called.append(True)).mutate()

    auth.sign_out.assert_called_once_with()
    assert query_client.has_query_data(AUTH_USER_KEY)
    assert query_client.get_query_data(AUTH_USER_KEY) is None
    assert called == [True]


def test_register_email(auth):
    user = make_user()
    auth.sign_up_email.return_value = user

    result = use_register_email(auth).mutate({"name": "Carol", "email": "carol@example.com", "password": "password123"})

    assert result is user
    auth.sign_up_email.assert_called_once_with(name="Carol", email="carol@example.com", password="password123")
