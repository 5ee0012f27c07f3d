from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

from ..schemas.user import SessionResponse
from .api import ApiError, AuthClient
from .hooks import AUTH_USER_KEY, SESSION_STALE_TIME
from .query import QueryClient


@dataclass(frozen=True)
class Route:
    path: str
    name: str
    requires_auth: bool = False
    required_roles: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Redirect:
    name: Optional[str] = None
    path: Optional[str] = None
    query: Dict[str, str] = field(default_factory=dict)


ROUTES = (
    Route("/auth", "sign-in"),
    Route("/auth/sign-up", "sign-up"),
    Route("/", "home", requires_auth=True),
    Route("/tasks", "tasks", requires_auth=True),
    Route("/users", "users", requires_auth=True, required_roles=("admin",)),
)

NOT_FOUND = Route("*", "NotFound")


def match_route(path: str) -> Route:
    normalized = path.split("?", 1)[0].rstrip("/") or "/"
    for route in ROUTES:
        if route.path == normalized:
            return route
    return NOT_FOUND


class NavigationGuard:
    """Decides, before each navigation, whether to proceed or redirect.

    The session is read from the query cache under the same key the auth
    hooks use, and fetched once when nothing is cached yet.
    """

    def __init__(self, query_client: QueryClient, auth: AuthClient):
        self.query_client = query_client
        self.auth = auth

    def current_session(self) -> Optional[SessionResponse]:
        if self.query_client.has_query_data(AUTH_USER_KEY):
            return self.query_client.get_query_data(AUTH_USER_KEY)
        try:
            return self.query_client.ensure_query_data(
                AUTH_USER_KEY, self.auth.get_session, stale_time=SESSION_STALE_TIME
            )
        except ApiError:
            return None

    def before_each(self, path: str, query: Optional[Dict[str, str]] = None) -> Union[bool, Redirect]:
        query = query or {}
        route = match_route(path)
        session = self.current_session()
        authenticated = session is not None

        if route.requires_auth and not authenticated:
            return Redirect(name="sign-in", query={"redirectTo": path})

        if route.required_roles and authenticated and session.user.role not in route.required_roles:
            return Redirect(name="home")

        if authenticated and path.startswith("/auth"):
            redirect_to = query.get("redirectTo")
            if isinstance(redirect_to, str) and redirect_to and redirect_to != path:
                return Redirect(path=redirect_to)
            return Redirect(name="home")

        return True
