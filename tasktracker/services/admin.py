import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from ..errors import AuthError, UserNotFound
from ..models import User, utcnow
from ..schemas.user import ListUsersQuery, UserProfileUpdate
from .auth import AuthService

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "createdAt": User.created_at,
    "email": User.email,
    "name": User.name,
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class AdminService:
    """User management operations available to administrators."""

    def __init__(self, db: Session, auth: AuthService):
        self.db = db
        self.auth = auth

    def _get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFound("User not found")
        return user

    def list_users(self, query: ListUsersQuery) -> Tuple[List[User], int]:
        statement = select(User)
        count_statement = select(func.count()).select_from(User)

        if query.search_value:
            column = User.email if query.search_field == "email" else User.name
            needle = _escape_like(query.search_value.lower())
            pattern = {
                "contains": f"%{needle}%",
                "starts_with": f"{needle}%",
                "ends_with": f"%{needle}",
            }[query.search_operator]
            condition = func.lower(column).like(pattern, escape="\\")
            statement = statement.where(condition)
            count_statement = count_statement.where(condition)

        column = _SORT_COLUMNS[query.sort_by]
        order = column.desc() if query.sort_direction == "desc" else column.asc()
        statement = statement.order_by(order, User.id.asc()).offset(query.offset).limit(query.limit)

        users = list(self.db.exec(statement).all())
        total = self.db.exec(count_statement).one()
        return users, total

    def create_user(self, email: str, password: str, name: str, role: str) -> User:
        return self.auth.create_user(name=name, email=email, password=password, role=role)

    def update_user(self, user_id: str, data: UserProfileUpdate) -> User:
        user = self._get_user(user_id)
        changes = data.model_dump(include=data.model_fields_set)
        if not changes:
            raise AuthError("No fields to update", code="NO_FIELDS_TO_UPDATE", status_code=422)
        for field, value in changes.items():
            setattr(user, field, value)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Updated user %s fields %s", user.id, sorted(changes))
        return user

    def set_role(self, user_id: str, role: str) -> User:
        user = self._get_user(user_id)
        user.role = role
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Set role of user %s to %s", user.id, role)
        return user

    def ban_user(
        self,
        acting_user_id: str,
        user_id: str,
        reason: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> User:
        if acting_user_id == user_id:
            raise AuthError("You cannot ban yourself", code="YOU_CANNOT_BAN_YOURSELF")
        user = self._get_user(user_id)
        user.banned = True
        user.ban_reason = reason or "No reason"
        user.ban_expires = utcnow() + timedelta(seconds=expires_in) if expires_in else None
        self.db.add(user)
        self.db.commit()
        revoked = self.auth.revoke_user_sessions(user.id)
        self.db.refresh(user)
        logger.info("Banned user %s (%d sessions revoked)", user.id, revoked)
        return user

    def unban_user(self, user_id: str) -> User:
        user = self._get_user(user_id)
        user.banned = False
        user.ban_reason = None
        user.ban_expires = None
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Unbanned user %s", user.id)
        return user
