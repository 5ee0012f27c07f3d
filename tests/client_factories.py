from datetime import datetime, timezone
from uuid import uuid4

from tasktracker.schemas.task import TaskRead
from tasktracker.schemas.user import ListUsersResponse, SessionRead, SessionResponse, UserRead

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_task(title="Buy milk", **fields) -> TaskRead:
    values = dict(id=str(uuid4()), title=title, description=None, completed=False, user_id="u1", created_at=NOW, updated_at=NOW)
    values.update(fields)
    return TaskRead(**values)


def make_user(name="Carol", role="user", **fields) -> UserRead:
    values = dict(
        id=uuid4().hex,
        name=name,
        email=f"{name.lower()}@example.com",
        email_verified=False,
        role=role,
        banned=False,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(fields)
    return UserRead(**values)


def make_session(user: UserRead) -> SessionResponse:
    session = SessionRead(id="s1", token="t", user_id=user.id, expires_at=NOW, created_at=NOW, updated_at=NOW)
    return SessionResponse(session=session, user=user)


def make_page(users, total=None, limit=10, offset=0) -> ListUsersResponse:
    return ListUsersResponse(users=list(users), total=len(users) if total is None else total, limit=limit, offset=offset)
