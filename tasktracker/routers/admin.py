from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ..database import get_db
from ..models import ROLE_ADMIN
from ..schemas.user import (
    BanUser,
    CreateUser,
    ListUsersQuery,
    ListUsersResponse,
    SetRole,
    UnbanUser,
    UpdateUser,
    UserRead,
    UserResponse,
)
from ..services.admin import AdminService
from ..services.auth import AuthService, Identity
from .auth import check_origin, get_auth_service, parse_request, read_json_body, require_identity

router = APIRouter()


def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    if identity.role != ROLE_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return identity


def get_admin_service(
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> AdminService:
    return AdminService(db, auth)


def _user_response(user) -> dict:
    return UserResponse(user=UserRead.model_validate(user)).model_dump(mode="json", by_alias=True)


@router.get("/list-users")
def list_users(
    request: Request,
    identity: Identity = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
):
    """Page through users, optionally filtered by e-mail or name."""
    query = parse_request(ListUsersQuery, dict(request.query_params))
    users, total = admin.list_users(query)
    return ListUsersResponse(
        users=[UserRead.model_validate(user) for user in users],
        total=total,
        limit=query.limit,
        offset=query.offset,
    ).model_dump(mode="json", by_alias=True)


@router.post("/create-user", dependencies=[Depends(check_origin)])
def create_user(
    identity: Identity = Depends(require_admin),
    body: Any = Depends(read_json_body),
    admin: AdminService = Depends(get_admin_service),
):
    payload = parse_request(CreateUser, body)
    user = admin.create_user(email=payload.email, password=payload.password, name=payload.name, role=payload.role)
    return _user_response(user)


@router.post("/update-user", dependencies=[Depends(check_origin)])
def update_user(
    identity: Identity = Depends(require_admin),
    body: Any = Depends(read_json_body),
    admin: AdminService = Depends(get_admin_service),
):
    payload = parse_request(UpdateUser, body)
    return _user_response(admin.update_user(payload.user_id, payload.data))


@router.post("/set-role", dependencies=[Depends(check_origin)])
def set_role(
    identity: Identity = Depends(require_admin),
    body: Any = Depends(read_json_body),
    admin: AdminService = Depends(get_admin_service),
):
    payload = parse_request(SetRole, body)
    return _user_response(admin.set_role(payload.user_id, payload.role))


@router.post("/ban-user", dependencies=[Depends(check_origin)])
def ban_user(
    identity: Identity = Depends(require_admin),
    body: Any = Depends(read_json_body),
    admin: AdminService = Depends(get_admin_service),
):
    """Ban a user and revoke every session they hold."""
    payload = parse_request(BanUser, body)
    user = admin.ban_user(
        identity.user_id,
        payload.user_id,
        reason=payload.ban_reason,
        expires_in=payload.ban_expires_in,
    )
    return _user_response(user)


@router.post("/unban-user", dependencies=[Depends(check_origin)])
def unban_user(
    identity: Identity = Depends(require_admin),
    body: Any = Depends(read_json_body),
    admin: AdminService = Depends(get_admin_service),
):
    payload = parse_request(UnbanUser, body)
    return _user_response(admin.unban_user(payload.user_id))
