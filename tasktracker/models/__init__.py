from .auth import CREDENTIAL_PROVIDER, Account, AuthSession, Verification
from .task import Task, utcnow
from .user import ROLE_ADMIN, ROLE_USER, User

# Export all models for easy importing
__all__ = [
    "Account",
    "AuthSession",
    "CREDENTIAL_PROVIDER",
    "ROLE_ADMIN",
    "ROLE_USER",
    "Task",
    "User",
    "Verification",
    "utcnow",
]
