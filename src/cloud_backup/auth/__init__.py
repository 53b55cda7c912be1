"""Authentication port and providers.

Usage:
    from cloud_backup.auth import MemoryAuth, CurrentUser, Authenticated

    auth = MemoryAuth()
    sub = auth.state.subscribe(print)
    auth.sign_in(CurrentUser(id="user-1"))
"""

from .base import RESULT_CANCELED, RESULT_OK, Auth
from .jwt_auth import DEFAULT_REQUEST_CODE, JwtAuth
from .memory import MemoryAuth
from .state import (
    Authenticated,
    Authenticating,
    AuthState,
    CurrentUser,
    NotAuthenticated,
    user_of,
)

__all__ = [
    "Auth",
    "AuthState",
    "Authenticated",
    "Authenticating",
    "NotAuthenticated",
    "CurrentUser",
    "user_of",
    "MemoryAuth",
    "JwtAuth",
    "DEFAULT_REQUEST_CODE",
    "RESULT_OK",
    "RESULT_CANCELED",
]
