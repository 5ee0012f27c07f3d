from typing import Any, Dict, List, Optional

import httpx

from ..schemas.task import TaskRead
from ..schemas.user import ListUsersResponse, SessionResponse, UserRead

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str, body: Any = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.body = body


class _BaseClient:
    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.Client] = None):
        if http is None:
            if base_url is None:
                raise ValueError("either base_url or http must be given")
            http = httpx.Client(base_url=base_url, timeout=DEFAULT_TIMEOUT)
        self.http = http

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self.http.request(method, path, **kwargs)
        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(response.status_code, message or response.reason_phrase, body)
        return body

    def close(self) -> None:
        self.http.close()


class ApiClient(_BaseClient):
    """Typed calls to the task endpoints.

    Authentication rides on the session cookie kept by the underlying
    ``httpx.Client``, so sign in through an :class:`AuthClient` sharing it.
    """

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    def list_tasks(self, limit: Optional[int] = None, offset: Optional[int] = None) -> List[TaskRead]:
        params = {}
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        body = self._request("GET", "/api/v1/tasks", params=params)
        return [TaskRead.model_validate(item) for item in body["data"]]

    def get_task(self, task_id: str) -> TaskRead:
        body = self._request("GET", f"/api/v1/tasks/{task_id}")
        return TaskRead.model_validate(body["data"])

    def create_task(self, title: str, description: Optional[str] = None, completed: Optional[bool] = None) -> TaskRead:
        payload: Dict[str, Any] = {"title": title}
        if description is not None:
            payload["description"] = description
        if completed is not None:
            payload["completed"] = completed
        body = self._request("POST", "/api/v1/tasks", json=payload)
        return TaskRead.model_validate(body["data"])

    def update_task(self, task_id: str, **fields) -> TaskRead:
        body = self._request("PUT", f"/api/v1/tasks/{task_id}", json=fields)
        return TaskRead.model_validate(body["data"])

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"/api/v1/tasks/{task_id}")


class AuthClient(_BaseClient):
    """E-mail/password authentication plus the admin user-management calls."""

    def sign_up_email(self, name: str, email: str, password: str) -> UserRead:
        body = self._request(
            "POST", "/api/auth/sign-up/email", json={"name": name, "email": email, "password": password}
        )
        return UserRead.model_validate(body["user"])

    def sign_in_email(self, email: str, password: str, remember_me: bool = True) -> UserRead:
        body = self._request(
            "POST",
            "/api/auth/sign-in/email",
            json={"email": email, "password": password, "rememberMe": remember_me},
        )
        return UserRead.model_validate(body["user"])

    def sign_out(self) -> None:
        self._request("POST", "/api/auth/sign-out")

    def get_session(self) -> Optional[SessionResponse]:
        body = self._request("GET", "/api/auth/get-session")
        if body is None:
            return None
        return SessionResponse.model_validate(body)

    # admin

    def list_users(
        self,
        limit: int,
        offset: int,
        search_value: Optional[str] = None,
        search_field: str = "email",
        search_operator: str = "contains",
    ) -> ListUsersResponse:
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if search_value:
            params.update(searchValue=search_value, searchField=search_field, searchOperator=search_operator)
        body = self._request("GET", "/api/auth/admin/list-users", params=params)
        return ListUsersResponse.model_validate(body)

    def ban_user(self, user_id: str, ban_reason: Optional[str] = None, ban_expires_in: Optional[int] = None) -> UserRead:
        payload: Dict[str, Any] = {"userId": user_id}
        if ban_reason is not None:
            payload["banReason"] = ban_reason
        if ban_expires_in is not None:
            payload["banExpiresIn"] = ban_expires_in
        body = self._request("POST", "/api/auth/admin/ban-user", json=payload)
        return UserRead.model_validate(body["user"])

    def unban_user(self, user_id: str) -> UserRead:
        body = self._request("POST", "/api/auth/admin/unban-user", json={"userId": user_id})
        return UserRead.model_validate(body["user"])

    def update_user(self, user_id: str, data: Dict[str, Any]) -> UserRead:
        body = self._request("POST", "/api/auth/admin/update-user", json={"userId": user_id, "data": data})
        return UserRead.model_validate(body["user"])

    def set_role(self, user_id: str, role: str) -> UserRead:
        body = self._request("POST", "/api/auth/admin/set-role", json={"userId": user_id, "role": role})
        return UserRead.model_validate(body["user"])
