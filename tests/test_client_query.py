import pytest

from tasktracker.client import ApiError, Mutation, Query, QueryClient


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def query_client(clock):
    return QueryClient(default_stale_time=10, clock=clock)


class Counter:
    def __init__(self, value="data"):
        self.calls = 0
        self.value = value

    def __call__(self):
        self.calls += 1
        return f"{self.value}-{self.calls}"


def test_fresh_data_is_served_from_cache(query_client, clock):
    fn = Counter()

    assert query_client.fetch_query(("tasks",), fn) == "data-1"
    clock.now = 9
    assert query_client.fetch_query(("tasks",), fn) == "data-1"
    assert fn.calls == 1


def test_stale_data_is_refetched(query_client, clock):
    fn = Counter()
    query_client.fetch_query(("tasks",), fn)

    clock.now = 10

    assert query_client.is_stale(("tasks",))
    assert query_client.fetch_query(("tasks",), fn) == "data-2"


def test_per_query_stale_time(query_client, clock):
    fn = Counter()
    query_client.fetch_query(("users",), fn, stale_time=300)

    clock.now = 299

    assert query_client.fetch_query(("users",), fn) == "data-1"


def test_invalidate_by_prefix(query_client):
    query_client.set_query_data(("admin-users", 10, 0, ""), "page 1")
    query_client.set_query_data(("admin-users", 10, 10, ""), "page 2")
    query_client.set_query_data(("tasks",), "tasks")

    assert query_client.invalidate_queries(("admin-users",)) == 2
    assert query_client.is_stale(("admin-users", 10, 0, ""))
    assert not query_client.is_stale(("tasks",))
    assert query_client.get_query_data(("admin-users", 10, 10, "")) == "page 2"


def test_set_query_data_with_updater(query_client):
    query_client.set_query_data(("tasks",), [1])

    query_client.set_query_data(("tasks",), lambda old: old + [2])

    assert query_client.get_query_data(("tasks",)) == [1, 2]


def test_ensure_query_data_keeps_stale_entries(query_client, clock):
    fn = Counter()
    query_client.ensure_query_data(("auth-user",), fn)
    clock.now = 1000

    assert query_client.ensure_query_data(("auth-user",), fn) == "data-1"


def test_remove_and_clear(query_client):
    query_client.set_query_data(("tasks", "a"), 1)
    query_client.set_query_data(("tasks", "b"), 2)
    query_client.set_query_data(("other",), 3)

    assert query_client.remove_queries(("tasks",)) == 2
    assert not query_client.has_query_data(("tasks", "a"))
    query_client.clear()
    assert not query_client.has_query_data(("other",))


def test_query_follows_key_getter(query_client):
    state = {"page": 1}
    query = Query(query_client, lambda: ("users", state["page"]), lambda: f"page {state['page']}")

    assert query.fetch() == "page 1"
    state["page"] = 2
    assert query.key == ("users", 2)
    assert query.fetch() == "page 2"
    assert query.is_success


def test_query_records_api_errors(query_client):
    def failing():
        raise ApiError(500, "Internal server error")

    query = Query(query_client, ("tasks",), failing)

    assert query.fetch() is None
    assert query.status == "error"
    assert query.error.status_code == 500


def test_refetch_ignores_fresh_cache(query_client):
    fn = Counter()
    query = Query(query_client, ("tasks",), fn)
    query.fetch()

    assert query.refetch() == "data-2"


def test_mutation_callbacks():
    events = []
    mutation = Mutation(
        lambda value: value * 2,
        on_success=lambda result, value: events.append(("success", result, value)),
        on_mutate=lambda value: events.append(("mutate", value)),
    )

    assert mutation.mutate(21) == 42
    assert mutation.status == "success"
    assert events == [("mutate", 21), ("success", 42, 21)]


def test_mutation_api_error_goes_to_on_error():
    errors = []

    def fail(_):
        raise ApiError(400, "Validation failed")

    mutation = Mutation(fail, on_error=lambda exc, value: errors.append(exc.message))

    assert mutation.mutate("x") is None
    assert mutation.status == "error"
    assert errors == ["Validation failed"]

    mutation.reset()
    assert mutation.status == "idle"
    assert mutation.error is None


def test_mutation_programming_errors_propagate():
    def broken(_):
        raise KeyError("oops")

    with pytest.raises(KeyError):
        Mutation(broken).mutate()
