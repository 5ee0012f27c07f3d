from .api import ApiClient, ApiError, AuthClient
from .hooks import Toaster
from .pages import ConfirmOptions, Debouncer, TasksPage, UsersPage
from .query import Mutation, Query, QueryClient
from .router import NavigationGuard, Redirect, match_route

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthClient",
    "ConfirmOptions",
    "Debouncer",
    "Mutation",
    "NavigationGuard",
    "Query",
    "QueryClient",
    "Redirect",
    "TasksPage",
    "Toaster",
    "UsersPage",
    "match_route",
]
