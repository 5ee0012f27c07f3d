"""Client-side query cache.

Results are cached under tuple keys. A cached entry is *fresh* for its stale
time after it was written and *stale* afterwards or once invalidated; a
stale entry is still served by :meth:`QueryClient.get_query_data` but is
refetched by :meth:`QueryClient.fetch_query`.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar, Union

from .api import ApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")
V = TypeVar("V")

QueryKey = Tuple[Hashable, ...]

DEFAULT_STALE_TIME = 5.0


@dataclass
class _Entry:
    data: Any
    updated_at: float
    stale_time: float
    invalidated: bool = False


def resolve_value(value):
    """Read a plain value or a zero-argument getter."""
    return value() if callable(value) else value


class QueryClient:
    def __init__(self, default_stale_time: float = DEFAULT_STALE_TIME, clock: Callable[[], float] = time.monotonic):
        self.default_stale_time = default_stale_time
        self._clock = clock
        self._entries: Dict[QueryKey, _Entry] = {}

    def has_query_data(self, key: QueryKey) -> bool:
        return tuple(key) in self._entries

    def get_query_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(tuple(key))
        return None if entry is None else entry.data

    def set_query_data(self, key: QueryKey, value: Any, stale_time: Optional[float] = None) -> Any:
        """Store ``value`` under ``key``; a callable is applied to the current data instead."""
        key = tuple(key)
        previous = self._entries.get(key)
        data = value(None if previous is None else previous.data) if callable(value) else value
        if stale_time is None:
            stale_time = previous.stale_time if previous is not None else self.default_stale_time
        self._entries[key] = _Entry(data=data, updated_at=self._clock(), stale_time=stale_time)
        return data

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(tuple(key))
        if entry is None or entry.invalidated:
            return True
        return self._clock() - entry.updated_at >= entry.stale_time

    def fetch_query(self, key: QueryKey, fn: Callable[[], T], stale_time: Optional[float] = None) -> T:
        """Return fresh cached data or call ``fn`` and cache its result."""
        if not self.is_stale(key):
            return self.get_query_data(key)
        return self.set_query_data(key, fn(), stale_time=stale_time)

    def ensure_query_data(self, key: QueryKey, fn: Callable[[], T], stale_time: Optional[float] = None) -> T:
        """Return cached data whether stale or not, fetching only when nothing is cached."""
        if self.has_query_data(key):
            return self.get_query_data(key)
        return self.set_query_data(key, fn(), stale_time=stale_time)

    def _matching(self, prefix: QueryKey):
        prefix = tuple(prefix)
        return [key for key in self._entries if key[: len(prefix)] == prefix]

    def invalidate_queries(self, prefix: QueryKey) -> int:
        """Mark every query whose key starts with ``prefix`` as stale."""
        keys = self._matching(prefix)
        for key in keys:
            self._entries[key].invalidated = True
        return len(keys)

    def remove_queries(self, prefix: QueryKey) -> int:
        keys = self._matching(prefix)
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()


class Query(Generic[T]):
    """A cached read bound to a key.

    ``key`` may be a tuple or a getter returning one, so the query follows
    page state (limit, offset, search) that changes between fetches.
    """

    def __init__(
        self,
        client: QueryClient,
        key: Union[QueryKey, Callable[[], QueryKey]],
        fn: Callable[[], T],
        stale_time: Optional[float] = None,
    ):
        self.client = client
        self._key = key
        self._fn = fn
        self.stale_time = stale_time
        self.status = "pending"
        self.error: Optional[ApiError] = None

    @property
    def key(self) -> QueryKey:
        return tuple(resolve_value(self._key))

    @property
    def data(self) -> Optional[T]:
        return self.client.get_query_data(self.key)

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    def fetch(self) -> Optional[T]:
        try:
            data = self.client.fetch_query(self.key, self._fn, stale_time=self.stale_time)
        except ApiError as exc:
            logger.warning("Query %s failed: %s", self.key, exc)
            self.status = "error"
            self.error = exc
            return None
        self.status = "success"
        self.error = None
        return data

    def refetch(self) -> Optional[T]:
        self.client.invalidate_queries(self.key)
        return self.fetch()


class Mutation(Generic[V, T]):
    """A write with success and error callbacks.

    API failures are recorded on the mutation and passed to ``on_error``;
    anything else propagates.
    """

    def __init__(
        self,
        fn: Callable[[V], T],
        on_success: Optional[Callable[[T, V], None]] = None,
        on_error: Optional[Callable[[ApiError, V], None]] = None,
        on_mutate: Optional[Callable[[V], None]] = None,
    ):
        self._fn = fn
        self.on_success = on_success
        self.on_error = on_error
        self.on_mutate = on_mutate
        self.status = "idle"
        self.data: Optional[T] = None
        self.error: Optional[ApiError] = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def mutate(self, variables: V = None) -> Optional[T]:
        self.status = "pending"
        self.error = None
        if self.on_mutate is not None:
            self.on_mutate(variables)
        try:
            result = self._fn(variables)
        except ApiError as exc:
            self.status = "error"
            self.error = exc
            if self.on_error is not None:
                self.on_error(exc, variables)
            return None
        self.status = "success"
        self.data = result
        if self.on_success is not None:
            self.on_success(result, variables)
        return result

    def reset(self) -> None:
        self.status = "idle"
        self.data = None
        self.error = None
