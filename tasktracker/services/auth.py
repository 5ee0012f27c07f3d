import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
from jose import JWTError, jwt
from sqlmodel import Session, select

from ..config import Settings
from ..errors import InvalidCredentials, UserAlreadyExists, UserBanned
from ..models import CREDENTIAL_PROVIDER, ROLE_USER, Account, AuthSession, User, utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, handed explicitly to every task operation."""
    user_id: str
    session_id: str
    role: str = ROLE_USER


@dataclass(frozen=True)
class AuthContext:
    """Result of session resolution; both fields are ``None`` for anonymous requests."""
    user: Optional[User] = None
    session: Optional[AuthSession] = None

    @property
    def identity(self) -> Optional[Identity]:
        if self.user is None or self.session is None:
            return None
        return Identity(user_id=self.user.id, session_id=self.session.id, role=self.user.role)


ANONYMOUS = AuthContext()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    hashed_bytes = hashed_password.encode("utf-8") if isinstance(hashed_password, str) else hashed_password
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt directly."""
    password_bytes = password.encode("utf-8")[:72]  # Truncate to 72 bytes (bcrypt limit)
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def create_session_token(session: AuthSession, secret: str) -> str:
    """Sign the session's token id into the value handed to the client."""
    expires_at = session.expires_at.replace(tzinfo=timezone.utc)
    payload = {"sid": session.token, "sub": session.user_id, "exp": expires_at}
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_session_token(token: str, secret: str) -> Optional[str]:
    """Return the session token id carried by ``token``, or ``None`` if it is not valid."""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) and sid else None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def ban_is_active(user: User, now: Optional[datetime] = None) -> bool:
    if not user.banned:
        return False
    if user.ban_expires is None:
        return True
    return user.ban_expires > (now or utcnow())


class AuthService:
    """E-mail/password identity: users, credential accounts and sessions."""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.exec(select(User).where(User.email == normalize_email(email))).first()

    def create_user(self, name: str, email: str, password: str, role: str = ROLE_USER, image: Optional[str] = None) -> User:
        if self.get_user_by_email(email) is not None:
            raise UserAlreadyExists("User already exists. Use another email.")

        user = User(name=name, email=normalize_email(email), role=role, image=image)
        self.db.add(user)
        self.db.flush()
        self.db.add(
            Account(
                account_id=user.id,
                provider_id=CREDENTIAL_PROVIDER,
                user_id=user.id,
                password=get_password_hash(password),
            )
        )
        self.db.commit()
        self.db.refresh(user)
        logger.info("Created user %s with role %s", user.id, user.role)
        return user

    def create_session(
        self,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        remember_me: bool = True,
    ) -> Tuple[AuthSession, str]:
        expires_in = self.settings.session_expires_in if remember_me else 60 * 60 * 24
        session = AuthSession(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            expires_at=utcnow() + timedelta(seconds=expires_in),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session, create_session_token(session, self.settings.auth_secret)

    def sign_up(self, name: str, email: str, password: str, image: Optional[str] = None, **client) -> Tuple[User, AuthSession, str]:
        user = self.create_user(name=name, email=email, password=password, image=image)
        session, token = self.create_session(user, **client)
        return user, session, token

    def sign_in(self, email: str, password: str, remember_me: bool = True, **client) -> Tuple[User, AuthSession, str]:
        user = self.get_user_by_email(email)
        account = None
        if user is not None:
            account = self.db.exec(
                select(Account).where(Account.user_id == user.id, Account.provider_id == CREDENTIAL_PROVIDER)
            ).first()
        if user is None or account is None or not account.password or not verify_password(password, account.password):
            logger.info("Rejected sign-in for %s", normalize_email(email))
            raise InvalidCredentials("Invalid email or password")

        if user.banned:
            if ban_is_active(user):
                raise UserBanned("You have been banned from this application")
            # The ban ran out; lift it before letting the user in
            user.banned = False
            user.ban_reason = None
            user.ban_expires = None
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)

        session, token = self.create_session(user, remember_me=remember_me, **client)
        logger.info("User %s signed in", user.id)
        return user, session, token

    def resolve(self, token: Optional[str]) -> AuthContext:
        """Turn request credentials into an :class:`AuthContext`."""
        if not token:
            return ANONYMOUS

        sid = decode_session_token(token, self.settings.auth_secret)
        if sid is None:
            return ANONYMOUS

        session = self.db.exec(select(AuthSession).where(AuthSession.token == sid)).first()
        if session is None:
            return ANONYMOUS

        if session.expires_at <= utcnow():
            self.db.delete(session)
            self.db.commit()
            return ANONYMOUS

        user = self.db.get(User, session.user_id)
        if user is None or ban_is_active(user):
            return ANONYMOUS
        return AuthContext(user=user, session=session)

    def sign_out(self, session: Optional[AuthSession]) -> None:
        if session is None:
            return
        self.db.delete(session)
        self.db.commit()

    def revoke_user_sessions(self, user_id: str) -> int:
        sessions = self.db.exec(select(AuthSession).where(AuthSession.user_id == user_id)).all()
        for session in sessions:
            self.db.delete(session)
        self.db.commit()
        return len(sessions)
