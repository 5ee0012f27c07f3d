from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlmodel import Session

from ..config import SESSION_COOKIE_NAME, Settings
from ..database import get_db
from ..errors import RequestInvalid
from ..schemas.user import SessionRead, SignInEmail, SignInResponse, SignUpEmail, SignUpResponse, UserRead
from ..schemas.validation import Invalid, validate
from ..services.auth import AuthContext, AuthService, Identity

router = APIRouter()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(db, settings)


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def get_auth_context(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """Resolve the request's session; anonymous requests get an empty context."""
    return auth.resolve(_get_token_from_request(request))


def require_identity(context: AuthContext = Depends(get_auth_context)) -> Identity:
    identity = context.identity
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def check_origin(request: Request, settings: Settings = Depends(get_app_settings)) -> None:
    """Reject cookie-bearing requests coming from an untrusted page."""
    origin = request.headers.get("origin")
    if origin is None:
        return
    trusted = set(settings.auth_trusted_origins)
    trusted.add(settings.auth_url)
    if origin.rstrip("/") not in trusted:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid origin")


async def read_json_body(request: Request) -> Any:
    """Parse the request body as JSON, treating an empty body as absent."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return await request.json()
    except ValueError:
        raise RequestInvalid([{"field": "body", "message": "Malformed JSON"}], "Invalid JSON body") from None


def parse_request(contract, data):
    """Validate ``data`` against ``contract`` or raise :class:`RequestInvalid`."""
    result = validate(contract, data)
    if isinstance(result, Invalid):
        raise RequestInvalid(result.errors)
    return result.value


def _client_info(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def _set_session_cookie(response: Response, token: str, settings: Settings, max_age: int) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=max_age,
        path="/",
    )


@router.post("/sign-up/email", response_model=SignUpResponse, dependencies=[Depends(check_origin)])
def sign_up_email(
    request: Request,
    response: Response,
    body: Any = Depends(read_json_body),
    auth: AuthService = Depends(get_auth_service),
):
    """Create an account with e-mail and password and sign it in."""
    payload = parse_request(SignUpEmail, body)

    user, session, token = auth.sign_up(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        image=payload.image,
        **_client_info(request),
    )
    _set_session_cookie(response, token, auth.settings, auth.settings.session_expires_in)
    return SignUpResponse(token=token, user=UserRead.model_validate(user))


@router.post("/sign-in/email", response_model=SignInResponse, dependencies=[Depends(check_origin)])
def sign_in_email(
    request: Request,
    response: Response,
    body: Any = Depends(read_json_body),
    auth: AuthService = Depends(get_auth_service),
):
    """Sign in with e-mail and password."""
    payload = parse_request(SignInEmail, body)

    user, session, token = auth.sign_in(
        email=payload.email,
        password=payload.password,
        remember_me=payload.remember_me,
        **_client_info(request),
    )
    max_age = int((session.expires_at - session.created_at).total_seconds())
    _set_session_cookie(response, token, auth.settings, max_age)
    return SignInResponse(token=token, user=UserRead.model_validate(user))


@router.post("/sign-out", dependencies=[Depends(check_origin)])
def sign_out(
    response: Response,
    context: AuthContext = Depends(get_auth_context),
    auth: AuthService = Depends(get_auth_service),
):
    """Delete the current session and clear the cookie."""
    auth.sign_out(context.session)
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/get-session")
def get_session(context: AuthContext = Depends(get_auth_context)):
    """Return the current session and user, or ``null``."""
    if context.user is None or context.session is None:
        return None
    return {
        "session": SessionRead.model_validate(context.session).model_dump(mode="json", by_alias=True),
        "user": UserRead.model_validate(context.user).model_dump(mode="json", by_alias=True),
    }
